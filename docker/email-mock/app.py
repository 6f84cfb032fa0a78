import logging
import sys
import uuid

from fastapi import FastAPI, Header, status
from pydantic import BaseModel, EmailStr

logging.basicConfig(stream=sys.stdout, level=logging.INFO, format="%(asctime)sZ %(levelname)s %(message)s")

app = FastAPI(title="Email API Mock", version="1.0.0")


class SendEmail(BaseModel):
    to: list[EmailStr]
    subject: str
    html: str
    text: str | None = None

    model_config = {"extra": "allow"}


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/emails", status_code=status.HTTP_200_OK)
async def send(
    payload: SendEmail,
    idempotency_key: str | None = Header(default=None),
) -> dict:
    # text body is logged so local runs can read the code off the console
    logging.info("EMAIL-MOCK to=%s subject=%r idem=%s text=%r", payload.to, payload.subject, idempotency_key, payload.text)
    return {"id": str(uuid.uuid4())}
