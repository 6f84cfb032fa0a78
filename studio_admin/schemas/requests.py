from pydantic import BaseModel, EmailStr, Field


class PasswordResetRequestIn(BaseModel):
    email: EmailStr = Field(..., description="Admin account email", max_length=255)


class PasswordResetConfirmIn(BaseModel):
    email: str = Field(..., description="Admin account email", max_length=255)
    code: str = Field(..., description="Verification code from the email", max_length=32)
    new_password: str = Field(..., max_length=72)
    confirm_password: str = Field(..., max_length=72)


class PasswordChangeRequestIn(BaseModel):
    current_password: str = Field(..., max_length=256)


class PasswordChangeConfirmIn(BaseModel):
    code: str = Field(..., max_length=32)
    new_password: str = Field(..., max_length=72)
    confirm_password: str = Field(..., max_length=72)
