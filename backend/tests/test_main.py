"""
Tests for app-level endpoints, CORS origins and settings.
"""

import os
from unittest.mock import patch

os.environ.setdefault("RESEND_API_KEY", "re_test")

from fastapi.testclient import TestClient  # noqa: E402

from app.config import DEFAULT_RESEND_API_URL, OPERATIONS_EMAIL, get_settings  # noqa: E402
from app.main import app, get_cors_origins  # noqa: E402

client = TestClient(app)


class TestHealth:

    def test_root(self):
        assert client.get("/").json()["message"] == "Dry Force Forms API"

    def test_health(self):
        assert client.get("/health").json() == {"status": "ok"}

    def test_email_health_ok_when_key_set(self):
        with patch.dict(os.environ, {"RESEND_API_KEY": "re_test", "RESEND_TO_EMAIL": "ops@dryforce.test"}):
            response = client.get("/health/email")

        assert response.status_code == 200
        assert response.json()["recipient"] == "ops@dryforce.test"

    def test_email_health_503_when_key_missing(self):
        with patch.dict(os.environ, {"RESEND_API_KEY": ""}):
            response = client.get("/health/email")

        assert response.status_code == 503
        assert "RESEND_API_KEY" in response.json()["detail"]


class TestCorsOrigins:

    def test_dev_origin_always_present(self):
        with patch.dict(os.environ, {"SITE_URL": "", "CORS_ORIGINS": ""}):
            assert get_cors_origins() == ["http://localhost:3000"]

    def test_site_url_and_extra_origins_deduplicated(self):
        env = {
            "SITE_URL": "https://dryforce.co.za/",
            "CORS_ORIGINS": "https://dryforce.co.za, https://www.dryforce.co.za,,http://localhost:3000",
        }
        with patch.dict(os.environ, env):
            origins = get_cors_origins()

        assert origins == ["http://localhost:3000", "https://dryforce.co.za", "https://www.dryforce.co.za"]


class TestSettings:

    def test_defaults(self):
        env = {
            "RESEND_API_KEY": " ",
            "RESEND_API_URL": "",
            "RESEND_FROM_EMAIL": "",
            "RESEND_TO_EMAIL": "",
            "RESEND_CC_EMAILS": "",
            "SITE_URL": "",
            "CLOUDFLARE_TURNSTILE_SECRET_KEY": "",
            "TURNSTILE_SECRET_KEY": "",
        }
        with patch.dict(os.environ, env):
            settings = get_settings()

        assert settings.resend_api_key is None
        assert settings.resend_api_url == DEFAULT_RESEND_API_URL
        assert settings.to_email == OPERATIONS_EMAIL
        assert settings.cc_emails == []
        assert settings.site_url == ""
        assert settings.turnstile_secret is None

    def test_cc_list_is_split_and_trimmed(self):
        with patch.dict(os.environ, {"RESEND_CC_EMAILS": " a@x.co , ,b@x.co"}):
            assert get_settings().cc_emails == ["a@x.co", "b@x.co"]

    def test_turnstile_fallback_variable(self):
        env = {"CLOUDFLARE_TURNSTILE_SECRET_KEY": "", "TURNSTILE_SECRET_KEY": "fallback"}
        with patch.dict(os.environ, env):
            assert get_settings().turnstile_secret == "fallback"

    def test_cloudflare_variable_wins(self):
        env = {"CLOUDFLARE_TURNSTILE_SECRET_KEY": "primary", "TURNSTILE_SECRET_KEY": "fallback"}
        with patch.dict(os.environ, env):
            assert get_settings().turnstile_secret == "primary"
