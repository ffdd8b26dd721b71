"""
Runtime configuration for the forms backend.

Everything is read from the environment. A ``.env`` file in the working
directory is loaded once at import time (real environment variables win).

Environment variables
---------------------
RESEND_API_KEY                    Resend API key. When missing every form
                                  submission fails fast with reason "config".
RESEND_API_URL                    Resend send endpoint
                                  (default: https://api.resend.com/emails).
RESEND_FROM_EMAIL                 Sender, e.g. "Dry Force <ops@example.com>".
RESEND_TO_EMAIL                   Operations inbox that receives notifications.
RESEND_CC_EMAILS                  Comma-separated cc list for notifications.
SITE_URL                          Public site origin used for redirects. When
                                  empty, redirects are relative.
CLOUDFLARE_TURNSTILE_SECRET_KEY   Turnstile secret. TURNSTILE_SECRET_KEY is
                                  accepted as a fallback.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

OPERATIONS_EMAIL = "operations@dryforce.co.za"
DEFAULT_RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_FROM_EMAIL = f"Dry Force <{OPERATIONS_EMAIL}>"


@dataclass(frozen=True)
class Settings:
    """Snapshot of the environment taken at request time."""

    resend_api_key: Optional[str]
    resend_api_url: str = DEFAULT_RESEND_API_URL
    from_email: str = DEFAULT_FROM_EMAIL
    to_email: str = OPERATIONS_EMAIL
    cc_emails: list[str] = field(default_factory=list)
    site_url: str = ""
    turnstile_secret: Optional[str] = None


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def get_settings() -> Settings:
    """
    Build a Settings snapshot from the current environment.

    Read on every call (cheap) so that tests can patch ``os.environ`` and so
    that a rotated key is picked up without a restart. Also used as a FastAPI
    dependency.
    """
    return Settings(
        resend_api_key=os.getenv("RESEND_API_KEY", "").strip() or None,
        resend_api_url=os.getenv("RESEND_API_URL", "").strip() or DEFAULT_RESEND_API_URL,
        from_email=os.getenv("RESEND_FROM_EMAIL", "").strip() or DEFAULT_FROM_EMAIL,
        to_email=os.getenv("RESEND_TO_EMAIL", "").strip() or OPERATIONS_EMAIL,
        cc_emails=_split_list(os.getenv("RESEND_CC_EMAILS", "")),
        site_url=os.getenv("SITE_URL", "").strip().rstrip("/"),
        turnstile_secret=(
            os.getenv("CLOUDFLARE_TURNSTILE_SECRET_KEY")
            or os.getenv("TURNSTILE_SECRET_KEY")
            or None
        ),
    )
