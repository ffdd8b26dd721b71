"""
Resend transactional e-mail client.

Sends an ``EmailPayload`` as JSON to the Resend ``/emails`` endpoint through
``send_with_retry``, so every send gets the attempt deadline and the single
retry on transport failure.

Resend send request
-------------------
  POST https://api.resend.com/emails
  Authorization: Bearer <RESEND_API_KEY>
  Content-Type: application/json

  {from, to[], cc[]?, reply_to?, subject, html, text,
   attachments[]?: {filename, content (base64), content_type?}}

Any 2xx means the message was accepted. Everything else is a failure.
"""

import logging
from typing import Optional

import httpx

from app.config import DEFAULT_RESEND_API_URL
from app.models.submission import EmailPayload
from app.services.http_retry import send_with_retry

logger = logging.getLogger(__name__)

# Longest slice of a provider error body kept for logs
_MAX_LOGGED_BODY = 500


class DeliveryError(Exception):
    """Raised when Resend answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class ResendClient:
    """Thin wrapper binding an httpx client to a Resend API key."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        endpoint: str = DEFAULT_RESEND_API_URL,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self.endpoint = endpoint

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def send(self, payload: EmailPayload) -> httpx.Response:
        """
        Send one e-mail and return the raw response (2xx or not).

        Transport failures that survive the retry propagate as
        ``httpx.RequestError`` / ``asyncio.TimeoutError``.
        """
        return await send_with_retry(
            self._http,
            self.endpoint,
            "POST",
            json=payload.to_request_body(),
            headers=self._headers(),
        )

    async def send_or_raise(self, payload: EmailPayload) -> httpx.Response:
        """Like ``send`` but raises ``DeliveryError`` for a non-2xx response."""
        response = await self.send(payload)
        if not response.is_success:
            body = response.text[:_MAX_LOGGED_BODY]
            raise DeliveryError(
                f"Resend rejected {payload.subject!r} with HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response
