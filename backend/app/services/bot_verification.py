"""
Cloudflare Turnstile token verification.

Not called by any form handler yet; the site does not render the
Turnstile widget. Kept ready so a handler can call ``BotVerifier.verify``
once the widget ships.

Siteverify request
------------------
  POST https://challenges.cloudflare.com/turnstile/v0/siteverify
  Content-Type: application/x-www-form-urlencoded

  secret=<secret>&response=<token>[&remoteip=<ip>]

Response JSON: {"success": bool, ...}

Failure reasons
---------------
missing-token   no token posted
missing-secret  neither CLOUDFLARE_TURNSTILE_SECRET_KEY nor
                TURNSTILE_SECRET_KEY is set
busy            too many verifications in flight
verify-failed   siteverify answered non-2xx
invalid         siteverify rejected the token
error           network failure, timeout or unreadable response
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.services.http_retry import send_with_retry
from app.services.inflight import InflightGate

logger = logging.getLogger(__name__)

VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
TIMEOUT_SECONDS = 4.0
RETRY_DELAY_SECONDS = 0.25
MAX_INFLIGHT = 25


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    reason: Optional[str] = None


class BotVerifier:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        secret: Optional[str],
        gate: Optional[InflightGate] = None,
        verify_url: str = VERIFY_URL,
    ) -> None:
        self._http = http_client
        self._secret = secret
        self.gate = gate or InflightGate("turnstile", MAX_INFLIGHT)
        self.verify_url = verify_url

    async def verify(self, token: str, remote_ip: Optional[str] = None) -> VerificationResult:
        if not token:
            return VerificationResult(ok=False, reason="missing-token")

        if not self._secret:
            logger.error("Turnstile secret is not configured")
            return VerificationResult(ok=False, reason="missing-secret")

        if not self.gate.try_enter():
            return VerificationResult(ok=False, reason="busy")

        try:
            body = {"secret": self._secret, "response": token}
            if remote_ip:
                body["remoteip"] = remote_ip

            response = await send_with_retry(
                self._http,
                self.verify_url,
                "POST",
                timeout=TIMEOUT_SECONDS,
                retry_delay=RETRY_DELAY_SECONDS,
                data=body,
            )

            if not response.is_success:
                logger.warning("Turnstile siteverify returned HTTP %s", response.status_code)
                return VerificationResult(ok=False, reason="verify-failed")

            data = response.json()
            if not isinstance(data, dict) or not data.get("success"):
                return VerificationResult(ok=False, reason="invalid")

            return VerificationResult(ok=True)
        except Exception:
            logger.warning("Turnstile verification failed", exc_info=True)
            return VerificationResult(ok=False, reason="error")
        finally:
            self.gate.leave()
