from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from studio_admin.domain.entities import CodePurpose


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str
    text: str


_TITLES: dict[str, tuple[str, str]] = {
    "password_reset": (
        "Password Reset Code",
        "You asked to reset the password for your {brand} admin account.",
    ),
    "password_change": (
        "Password Change Verification Code",
        "You asked to change the password for your {brand} admin account.",
    ),
}

_HTML = """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #dc2626;">{title}</h1>
    <p>Hello,</p>
    <p>{intro} Use the verification code below:</p>
    <div style="border: 2px dashed #dc2626; border-radius: 8px; padding: 20px; text-align: center;">
      <div style="font-size: 36px; font-weight: bold; letter-spacing: 10px; font-family: 'Courier New', monospace;">{code}</div>
      <p style="font-size: 14px; color: #6b7280;">Valid for {minutes} minutes</p>
    </div>
    <ul>
      <li>This code expires in <strong>{minutes} minutes</strong></li>
      <li>Never share this code with anyone</li>
      <li>If you didn't request this, ignore this email; your current password stays active</li>
    </ul>
    <p style="font-size: 12px; color: #9ca3af;">&copy; {year} {brand}. This is an automated security message.</p>
  </div>
</body>
</html>
"""

_TEXT = """{title}

{intro}

Your verification code: {code}

The code expires in {minutes} minutes. Never share it with anyone.
If you didn't request this, ignore this email; your current password stays active.

-- {brand}
"""


def render_code_email(
    purpose: CodePurpose, code: str, ttl: timedelta, *, brand: str
) -> EmailMessage:
    title, intro = _TITLES[purpose]
    minutes = max(1, int(ttl.total_seconds() // 60))
    intro_text = intro.format(brand=brand)
    year = datetime.now(timezone.utc).year
    return EmailMessage(
        subject=f"{title} - {brand}",
        html=_HTML.format(
            title=html.escape(title),
            intro=html.escape(intro_text),
            code=html.escape(code),
            minutes=minutes,
            year=year,
            brand=html.escape(brand),
        ),
        text=_TEXT.format(
            title=title, intro=intro_text, code=code, minutes=minutes, brand=brand
        ),
    )
