from __future__ import annotations

from typing import Dict, Optional

import httpx

from studio_admin.domain.errors import DeliveryFailed
from studio_admin.domain.ports.email_port import EmailPort


class ResendEmailAdapter(EmailPort):
    """Transactional email over a Resend-compatible HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str,
        sender: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/emails",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._api_key = api_key
        self._sender = sender
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        text: str,
        idempotency_key: str | None = None,
    ) -> None:
        if not self._api_key:
            raise DeliveryFailed("email API key is not configured")

        headers: Dict[str, str] = {"Authorization": f"Bearer {self._api_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        url = f"{self._base_url}{self._send_path}"
        payload = {
            "from": self._sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }

        try:
            resp = await self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailed(f"email API HTTP error: {e}") from e
        if not (200 <= resp.status_code < 300):
            raise DeliveryFailed(
                f"email API responded {resp.status_code}: {resp.text[:200]}"
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
