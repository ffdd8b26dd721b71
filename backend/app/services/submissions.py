"""
Submission handling pipeline shared by the three site forms.

Each form runs the same fail-fast sequence and stops at the first failing
step:

  config check -> honeypot + field validation -> rate limit
    -> inflight gate -> build payload(s) -> deliver -> outcome

The result is a ``SubmissionResult`` that the router turns into a redirect.
Validation, the rate-limit check and gate entry are synchronous and happen
before the first outbound call, so no other request can interleave between
counting a submission and acting on the count.
"""

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

import httpx

from app.config import Settings
from app.dependencies import FormServices
from app.models.submission import EmailPayload, Submission, SubmissionResult
from app.services.email_client import DeliveryError, ResendClient
from app.services.inflight import InflightGate
from app.services.notifications import (
    build_assessment_notification,
    build_callback_notification,
    build_quote_confirmation,
    build_quote_notification,
)
from app.services.validation import (
    Accepted,
    Rejected,
    ValidationOutcome,
    validate_assessment,
    validate_callback,
    validate_quote,
)

logger = logging.getLogger(__name__)

RATE_LIMIT = 3
RATE_WINDOW_SECONDS = 60
ANONYMOUS_IDENTITY = "anonymous"

# Reasons that signal abuse rather than a typo; logged at warning level
_ABUSE_REASONS = {"spam", "rate", "busy"}


def _success() -> SubmissionResult:
    return SubmissionResult(status="success")


def _error(reason: str) -> SubmissionResult:
    return SubmissionResult(status="error", reason=reason)


def rate_limit_key(client_ip: str, identity: str) -> str:
    return f"{client_ip or 'unknown'}|{identity or ANONYMOUS_IDENTITY}"


def _log_delivery_failure(kind: str, exc: BaseException) -> None:
    if isinstance(exc, DeliveryError):
        logger.error(
            "Resend rejected %s notification: HTTP %s %s",
            kind, exc.status_code, exc.body,
        )
    elif isinstance(exc, (httpx.RequestError, asyncio.TimeoutError)):
        logger.error(
            "Could not reach Resend for %s notification: %s",
            kind, type(exc).__name__,
        )
    else:
        logger.error(
            "Unexpected error sending %s notification",
            kind, exc_info=(type(exc), exc, exc.__traceback__),
        )


async def deliver_all(client: ResendClient, payloads: list[EmailPayload]) -> list[BaseException]:
    """Send every payload concurrently; return the failures (empty on success)."""
    results = await asyncio.gather(
        *(client.send_or_raise(payload) for payload in payloads),
        return_exceptions=True,
    )
    return [result for result in results if isinstance(result, BaseException)]


async def _process(
    submission: Submission,
    settings: Settings,
    services: FormServices,
    http_client: httpx.AsyncClient,
    gate: InflightGate,
    validate: Callable[[], ValidationOutcome],
    identity_field: str,
    build_payloads: Callable[[Accepted], list[EmailPayload]],
) -> SubmissionResult:
    kind = submission.kind

    # A missing key is an operational fault, not abuse: bail out before the
    # rate limiter sees the request.
    if not settings.resend_api_key:
        logger.error("RESEND_API_KEY is not configured; cannot accept %s submissions", kind)
        return _error("config")

    outcome = validate()
    if isinstance(outcome, Rejected):
        if outcome.reason in _ABUSE_REASONS:
            logger.warning("Rejected %s submission from %s: %s", kind, submission.client_ip, outcome.reason)
        return _error(outcome.reason)

    key = rate_limit_key(submission.client_ip, outcome.fields.get(identity_field, ""))
    verdict = services.rate_limiter.check(key, RATE_LIMIT, RATE_WINDOW_SECONDS)
    if not verdict.ok:
        logger.warning("Rate limit hit for %s submission (%s)", kind, submission.client_ip)
        return _error("rate")

    if not gate.try_enter():
        logger.warning("Too many %s submissions in flight (limit %d)", kind, gate.limit)
        return _error("busy")

    try:
        client = ResendClient(http_client, settings.resend_api_key, settings.resend_api_url)
        failures = await deliver_all(client, build_payloads(outcome))
    except Exception as exc:
        _log_delivery_failure(kind, exc)
        return _error("send")
    finally:
        gate.leave()

    if failures:
        for failure in failures:
            _log_delivery_failure(kind, failure)
        return _error("send")

    return _success()


async def handle_quote(
    submission: Submission,
    settings: Settings,
    services: FormServices,
    http_client: httpx.AsyncClient,
) -> SubmissionResult:
    """Quote request: operations notification plus customer confirmation."""

    def build(accepted: Accepted) -> list[EmailPayload]:
        return [
            build_quote_notification(accepted.fields, accepted.files, settings),
            build_quote_confirmation(accepted.fields, accepted.files, settings),
        ]

    return await _process(
        submission, settings, services, http_client,
        gate=services.quote_gate,
        validate=lambda: validate_quote(submission.fields, submission.files),
        identity_field="email",
        build_payloads=build,
    )


async def handle_assessment(
    submission: Submission,
    settings: Settings,
    services: FormServices,
    http_client: httpx.AsyncClient,
    today: Optional[date] = None,
) -> SubmissionResult:
    return await _process(
        submission, settings, services, http_client,
        gate=services.assessment_gate,
        validate=lambda: validate_assessment(submission.fields, today=today),
        identity_field="phone",
        build_payloads=lambda accepted: [build_assessment_notification(accepted.fields, settings)],
    )


async def handle_callback(
    submission: Submission,
    settings: Settings,
    services: FormServices,
    http_client: httpx.AsyncClient,
) -> SubmissionResult:
    return await _process(
        submission, settings, services, http_client,
        gate=services.callback_gate,
        validate=lambda: validate_callback(submission.fields),
        identity_field="callbackEmail",
        build_payloads=lambda accepted: [build_callback_notification(accepted.fields, settings)],
    )


_HANDLERS = {
    "quote": handle_quote,
    "assessment": handle_assessment,
    "callback": handle_callback,
}


async def handle_submission(
    submission: Submission,
    settings: Settings,
    services: FormServices,
    http_client: httpx.AsyncClient,
) -> SubmissionResult:
    """Route a submission to its form handler and log the terminal outcome."""
    handler = _HANDLERS[submission.kind]
    result = await handler(submission, settings, services, http_client)
    logger.info(
        "%s submission finished: status=%s reason=%s",
        submission.kind, result.status, result.reason or "-",
    )
    return result
