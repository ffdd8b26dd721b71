"""
Tests for the submission pipeline (app.services.submissions).

Resend is replaced with httpx.MockTransport. Each test builds a fresh
FormServices so rate-limit buckets and gates never leak between tests.
"""

import json
from datetime import date
from unittest.mock import patch

import httpx
import pytest

from app.config import Settings
from app.dependencies import FormServices
from app.models.submission import Submission, SubmittedFile
from app.services.inflight import InflightGate
from app.services.submissions import (
    RATE_LIMIT,
    handle_assessment,
    handle_callback,
    handle_quote,
    handle_submission,
    rate_limit_key,
)

TODAY = date(2026, 3, 10)
SETTINGS = Settings(resend_api_key="re_test", to_email="ops@dryforce.test")


class FakeResend:
    """MockTransport handler recording every e-mail body it receives."""

    def __init__(self, status_code: int = 200, fail_subject: str = ""):
        self.status_code = status_code
        self.fail_subject = fail_subject
        self.sent: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.sent.append(body)
        if self.fail_subject and body["subject"] == self.fail_subject:
            return httpx.Response(500, text="boom")
        return httpx.Response(self.status_code, json={"id": "email"})


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _quote(**fields) -> Submission:
    base = {"fullName": "John Doe", "email": "john@example.co.za"}
    base.update(fields)
    return Submission(kind="quote", fields=base, client_ip="1.2.3.4")


def _assessment(**fields) -> Submission:
    base = {
        "serviceType": "flood",
        "fullName": "Thandi Nkosi",
        "phone": "082 123 4567",
        "preferredDate": "2026-03-12",
        "preferredTime": "14:00",
        "location": "durban",
        "severity": "minor",
    }
    base.update(fields)
    return Submission(kind="assessment", fields=base, client_ip="1.2.3.4")


def _callback(email="jane@example.com", ip="1.2.3.4") -> Submission:
    return Submission(kind="callback", fields={"callbackEmail": email}, client_ip=ip)


class TestRateLimitKey:

    def test_combines_ip_and_identity(self):
        assert rate_limit_key("1.2.3.4", "a@b.co") == "1.2.3.4|a@b.co"

    def test_empty_parts_fall_back(self):
        assert rate_limit_key("", "") == "unknown|anonymous"


class TestQuotePipeline:

    @pytest.mark.asyncio
    async def test_success_sends_notification_and_confirmation(self):
        resend = FakeResend()
        async with _client(resend) as http:
            result = await handle_quote(_quote(), SETTINGS, FormServices(), http)

        assert result.ok
        assert sorted(body["to"][0] for body in resend.sent) == ["john@example.co.za", "ops@dryforce.test"]

    @pytest.mark.asyncio
    async def test_photos_are_attached_to_notification_only(self):
        resend = FakeResend()
        submission = _quote()
        submission.files = [SubmittedFile(filename="a.png", content=b"png", content_type="image/png")]

        async with _client(resend) as http:
            result = await handle_quote(submission, SETTINGS, FormServices(), http)

        assert result.ok
        by_recipient = {body["to"][0]: body for body in resend.sent}
        assert len(by_recipient["ops@dryforce.test"]["attachments"]) == 1
        assert "attachments" not in by_recipient["john@example.co.za"]

    @pytest.mark.asyncio
    async def test_one_failed_send_fails_the_submission(self):
        resend = FakeResend(fail_subject="We received your request - Dry Force")
        async with _client(resend) as http:
            result = await handle_quote(_quote(), SETTINGS, FormServices(), http)

        assert result.status == "error"
        assert result.reason == "send"
        assert len(resend.sent) == 2

    @pytest.mark.asyncio
    async def test_one_bad_photo_rejects_quote_without_partial_notification(self):
        resend = FakeResend()
        submission = _quote()
        submission.files = [
            SubmittedFile(filename="a.png", content=b"png", content_type="image/png"),
            SubmittedFile(filename="notes.txt", content=b"hello", content_type="text/plain"),
        ]

        async with _client(resend) as http:
            result = await handle_quote(submission, SETTINGS, FormServices(), http)

        assert result.reason == "type"
        assert resend.sent == []

    @pytest.mark.asyncio
    async def test_validation_failure_sends_nothing(self):
        resend = FakeResend()
        async with _client(resend) as http:
            result = await handle_quote(_quote(email="nope"), SETTINGS, FormServices(), http)

        assert result.reason == "validation"
        assert resend.sent == []


class TestConfigCheck:

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_rate_limiter(self):
        services = FormServices()
        resend = FakeResend()
        settings = Settings(resend_api_key=None)

        async with _client(resend) as http:
            result = await handle_callback(_callback(), settings, services, http)

        assert result.reason == "config"
        assert len(services.rate_limiter) == 0
        assert resend.sent == []

    @pytest.mark.asyncio
    async def test_config_beats_invalid_fields(self):
        async with _client(FakeResend()) as http:
            result = await handle_callback(_callback(email=""), Settings(resend_api_key=None), FormServices(), http)

        assert result.reason == "config"


class TestRateLimiting:

    @pytest.mark.asyncio
    async def test_fourth_submission_in_window_is_rate_limited(self):
        services = FormServices()
        resend = FakeResend()

        async with _client(resend) as http:
            results = [await handle_callback(_callback(), SETTINGS, services, http) for _ in range(RATE_LIMIT + 1)]

        assert [r.status for r in results[:RATE_LIMIT]] == ["success"] * RATE_LIMIT
        assert results[-1].reason == "rate"
        assert len(resend.sent) == RATE_LIMIT

    @pytest.mark.asyncio
    async def test_different_identity_same_ip_is_not_limited(self):
        services = FormServices()
        async with _client(FakeResend()) as http:
            for _ in range(RATE_LIMIT + 1):
                await handle_callback(_callback(), SETTINGS, services, http)
            other = await handle_callback(_callback(email="other@example.com"), SETTINGS, services, http)

        assert other.ok

    @pytest.mark.asyncio
    async def test_invalid_submissions_do_not_consume_quota(self):
        services = FormServices()
        async with _client(FakeResend()) as http:
            for _ in range(5):
                await handle_callback(_callback(email="bad"), SETTINGS, services, http)
            result = await handle_callback(_callback(), SETTINGS, services, http)

        assert result.ok
        assert len(services.rate_limiter) == 1

    @pytest.mark.asyncio
    async def test_failed_delivery_still_counts(self):
        services = FormServices()
        async with _client(FakeResend(status_code=500)) as http:
            results = [await handle_callback(_callback(), SETTINGS, services, http) for _ in range(RATE_LIMIT + 1)]

        assert [r.reason for r in results] == ["send"] * RATE_LIMIT + ["rate"]


class TestInflightGate:

    @pytest.mark.asyncio
    async def test_full_gate_rejects_as_busy(self):
        services = FormServices(callback_gate=InflightGate("callback", limit=0))
        resend = FakeResend()

        async with _client(resend) as http:
            result = await handle_callback(_callback(), SETTINGS, services, http)

        assert result.reason == "busy"
        assert resend.sent == []

    @pytest.mark.asyncio
    async def test_gate_released_after_success(self):
        services = FormServices()
        async with _client(FakeResend()) as http:
            await handle_callback(_callback(), SETTINGS, services, http)

        assert services.callback_gate.inflight == 0

    @pytest.mark.asyncio
    async def test_gate_released_when_transport_fails(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        services = FormServices()
        async with _client(handler) as http:
            result = await handle_assessment(_assessment(), SETTINGS, services, http, today=TODAY)

        assert result.reason == "send"
        assert services.assessment_gate.inflight == 0

    @pytest.mark.asyncio
    async def test_gate_released_when_building_payload_raises(self):
        services = FormServices()
        submission = _quote()

        async with _client(FakeResend()) as http:
            with patch(
                "app.services.submissions.build_quote_confirmation",
                side_effect=RuntimeError("template error"),
            ):
                result = await handle_quote(submission, SETTINGS, services, http)

        assert result.reason == "send"
        assert services.quote_gate.inflight == 0


class TestAssessmentPipeline:

    @pytest.mark.asyncio
    async def test_success_sends_one_notification(self):
        resend = FakeResend()
        async with _client(resend) as http:
            result = await handle_assessment(_assessment(), SETTINGS, FormServices(), http, today=TODAY)

        assert result.ok
        assert len(resend.sent) == 1
        assert resend.sent[0]["subject"] == "New Assessment Booking - Dry Force"

    @pytest.mark.asyncio
    async def test_past_date_is_rejected(self):
        async with _client(FakeResend()) as http:
            result = await handle_assessment(
                _assessment(preferredDate="2026-03-09"), SETTINGS, FormServices(), http, today=TODAY,
            )

        assert result.reason == "date"


class TestHandleSubmission:

    @pytest.mark.asyncio
    async def test_dispatches_by_kind(self):
        resend = FakeResend()
        async with _client(resend) as http:
            result = await handle_submission(_callback(), SETTINGS, FormServices(), http)

        assert result.ok
        assert resend.sent[0]["subject"] == "Callback Request - Dry Force"

    @pytest.mark.asyncio
    async def test_honeypot_is_spam_and_sends_nothing(self):
        resend = FakeResend()
        submission = Submission(kind="callback", fields={"callbackEmail": "a@b.co", "website": "x"})

        async with _client(resend) as http:
            result = await handle_submission(submission, SETTINGS, FormServices(), http)

        assert result.reason == "spam"
        assert resend.sent == []
