"""
Form submission router.

Endpoints:
  POST /quote        - contact page quote request (multipart, optional photos)
  POST /assessment   - emergency page assessment booking
  POST /callback     - services page callback request
  GET  /status       - banner text for a (status, reason) pair

Every POST answers with 303 See Other back to the page the form lives on,
carrying ``status`` (and ``reason`` on failure) in the query string, e.g.

  /emergency?status=error&reason=date#booking

The browser never sees anything else: no JSON, no error detail.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.config import Settings, get_settings
from app.dependencies import FormServices, get_http_client, get_services
from app.models.submission import FormKind, FormStatusResponse, Submission, SubmissionResult, SubmittedFile
from app.services.status_messages import describe_status
from app.services.submissions import handle_submission
from app.services.validation import (
    ASSESSMENT_FIELDS,
    CALLBACK_FIELDS,
    QUOTE_FIELDS,
    normalize_fields,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# form kind -> (page path, fragment)
_REDIRECT_TARGETS: dict[str, tuple[str, str]] = {
    "quote": ("/contact", ""),
    "assessment": ("/emergency", "booking"),
    "callback": ("/services", "callback"),
}

_FORM_FIELDS = {
    "quote": QUOTE_FIELDS,
    "assessment": ASSESSMENT_FIELDS,
    "callback": CALLBACK_FIELDS,
}

ATTACHMENTS_FIELD = "attachments"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def client_ip(request: Request) -> str:
    """
    Best-effort client address for rate limiting.

    Uses the first hop of X-Forwarded-For, then X-Real-IP, then "unknown".
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return "unknown"


def redirect_url(kind: str, result: SubmissionResult, site_url: str = "") -> str:
    path, fragment = _REDIRECT_TARGETS[kind]
    params = {"status": result.status}
    if result.reason:
        params["reason"] = result.reason
    url = f"{site_url}{path}?{urlencode(params)}"
    if fragment:
        url = f"{url}#{fragment}"
    return url


async def _read_files(uploads: list) -> list[SubmittedFile]:
    files: list[SubmittedFile] = []
    for upload in uploads:
        if not isinstance(upload, UploadFile):
            continue
        content = await upload.read()
        files.append(
            SubmittedFile(
                filename=upload.filename or "",
                content=content,
                content_type=upload.content_type or "",
            )
        )
    return files


async def _build_submission(request: Request, kind: FormKind) -> Submission:
    form = await request.form()
    files: list[SubmittedFile] = []
    if kind == "quote":
        files = await _read_files(form.getlist(ATTACHMENTS_FIELD))
    return Submission(
        kind=kind,
        fields=normalize_fields(form, _FORM_FIELDS[kind]),
        files=files,
        client_ip=client_ip(request),
    )


async def _submit(
    kind: FormKind,
    request: Request,
    settings: Settings,
    services: FormServices,
    http_client: httpx.AsyncClient,
) -> RedirectResponse:
    try:
        submission = await _build_submission(request, kind)
    except (StarletteHTTPException, MultiPartException) as exc:
        # Unparseable body: answer like any other invalid post
        logger.warning(
            "Could not parse %s form from %s: %s",
            kind, client_ip(request), getattr(exc, "detail", exc),
        )
        result = SubmissionResult(status="error", reason="validation")
    else:
        result = await handle_submission(submission, settings, services, http_client)
    return RedirectResponse(redirect_url(kind, result, settings.site_url), status_code=303)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/quote")
async def submit_quote(
    request: Request,
    settings: Settings = Depends(get_settings),
    services: FormServices = Depends(get_services),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> RedirectResponse:
    return await _submit("quote", request, settings, services, http_client)


@router.post("/assessment")
async def submit_assessment(
    request: Request,
    settings: Settings = Depends(get_settings),
    services: FormServices = Depends(get_services),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> RedirectResponse:
    return await _submit("assessment", request, settings, services, http_client)


@router.post("/callback")
async def submit_callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    services: FormServices = Depends(get_services),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> RedirectResponse:
    return await _submit("callback", request, settings, services, http_client)


@router.get("/status", response_model=FormStatusResponse)
async def form_status(
    status: Optional[str] = Query(None),
    reason: Optional[str] = Query(None),
    form: Optional[str] = Query(None),
) -> FormStatusResponse:
    """
    Return the banner sentence for the query string a redirect produced.

    ``form`` (quote, assessment, callback) picks a form-specific success
    sentence; error sentences depend only on ``reason``.
    """
    return FormStatusResponse(
        status=status,
        reason=reason,
        message=describe_status(status, reason, form),
    )
