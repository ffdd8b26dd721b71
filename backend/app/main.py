"""
Dry Force Forms API
FastAPI application that receives the website's quote, assessment and
callback forms and relays them to the operations inbox via Resend.
"""

import logging
import os
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies import FormServices
from app.routers import forms

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Dry Force Forms API",
    description="Form handling and notification relay for the Dry Force website",
    version="0.1.0",
)

# One set of rate-limit buckets and inflight gates per process
app.state.services = FormServices()


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Always includes the Next.js dev server (http://localhost:3000) and the
    public site (SITE_URL) when configured. Additional origins are read
    from the CORS_ORIGINS environment variable as a comma-separated list, e.g.:
        CORS_ORIGINS=https://dryforce.co.za,https://www.dryforce.co.za

    Duplicates are removed while preserving order.
    """
    always_included = ["http://localhost:3000"]

    site_url = get_settings().site_url
    if site_url:
        always_included.append(site_url)

    extra_origins: List[str] = []
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if cors_env:
        extra_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    # Deduplicate while preserving order
    seen: set = set()
    origins: List[str] = []
    for origin in always_included + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(forms.router, prefix="/api/forms", tags=["forms"])


@app.on_event("startup")
async def log_startup() -> None:
    """
    Log where the API is listening and whether e-mail delivery is configured.

    The port shown is taken from ``HOST_PORT`` (default 8000) so that
    Docker-mapped ports are reported correctly.
    """
    host_port = os.getenv("HOST_PORT", "8000")
    logger.info("Dry Force Forms API running at http://localhost:%s", host_port)
    if not get_settings().resend_api_key:
        logger.warning("RESEND_API_KEY is not set; every form submission will fail with reason=config")


@app.get("/")
async def root():
    return {"message": "Dry Force Forms API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/email")
async def health_email():
    """
    Report whether outbound e-mail is configured.

    Does not call Resend; only checks that an API key is present so that a
    deploy with a missing secret shows up before the first customer hits it.
    Returns 503 when the key is missing.
    """
    settings = get_settings()
    if not settings.resend_api_key:
        raise HTTPException(
            status_code=503,
            detail="E-mail delivery unavailable: RESEND_API_KEY is not configured",
        )
    return {"status": "ok", "email": "configured", "recipient": settings.to_email}
