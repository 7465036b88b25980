"""Tests for the application shell: health, contact form, security headers
and rate limiting.
"""

import uuid
from unittest.mock import MagicMock

from pydantic import SecretStr

from eventtrack.core.config import settings
from eventtrack.core.rate_limiting import _rate_limit_key_func, limiter
from tests.conftest import TEST_AUTH_SECRET, create_test_jwt


class TestHealth:
    """Tests for GET /health."""

    async def test_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestSecurityHeaders:
    """Tests for SecurityHeadersMiddleware."""

    async def test_default_headers(self, client):
        response = await client.get("/health")

        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["referrer-policy"] == (
            "strict-origin-when-cross-origin"
        )

    async def test_api_responses_not_cached(self, client):
        response = await client.post("/api/v1/auth/logout")

        assert response.headers["cache-control"] == "no-store, max-age=0"


class TestContact:
    """Tests for POST /api/v1/contact."""

    async def test_relays_query_to_support(self, client, mock_notifier):
        response = await client.post(
            "/api/v1/contact",
            json={
                "name": "Bob",
                "email": "bob@example.com",
                "phone": "555-0199",
                "message": "Is parking available?",
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["message"] == (
            "Your message has been sent. You will be contacted soon."
        )
        message = mock_notifier.last_message
        assert message.destination == settings.support_email
        assert "Is parking available?" in message.body

    async def test_missing_message_rejected(self, client, mock_notifier):
        response = await client.post(
            "/api/v1/contact", json={"name": "Bob", "email": "bob@example.com"}
        )

        assert response.status_code == 400
        assert mock_notifier.attempts == []


class TestRateLimiting:
    """Rate limits on token-issuing endpoints."""

    async def test_forgot_password_limited_after_five_requests(self, client):
        limiter.enabled = True
        limiter.reset()
        try:
            statuses = [
                (
                    await client.post(
                        "/api/v1/auth/forgot-password",
                        json={"email": "ghost@example.com"},
                    )
                ).status_code
                for _ in range(6)
            ]
        finally:
            limiter.reset()

        assert statuses[:5] == [404] * 5
        assert statuses[5] == 429

    async def test_limited_response_uses_error_envelope(self, client):
        limiter.enabled = True
        limiter.reset()
        try:
            for _ in range(5):
                await client.post(
                    "/api/v1/auth/forgot-password", json={"email": "ghost@example.com"}
                )
            response = await client.post(
                "/api/v1/auth/forgot-password", json={"email": "ghost@example.com"}
            )
        finally:
            limiter.reset()

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMITED"
        assert "retry-after" in response.headers


class TestRateLimitKey:
    """Tests for _rate_limit_key_func."""

    def _request(self, cookies: dict[str, str]) -> MagicMock:
        request = MagicMock()
        request.cookies = cookies
        request.client.host = "203.0.113.7"
        return request

    def test_anonymous_keyed_by_ip(self):
        assert _rate_limit_key_func(self._request({})) == "anon:203.0.113.7"

    def test_signed_in_keyed_by_account(self, monkeypatch):
        monkeypatch.setattr(settings, "auth_secret", SecretStr(TEST_AUTH_SECRET))
        account_id = uuid.uuid4()
        request = self._request(
            {settings.auth_cookie_name: create_test_jwt(account_id)}
        )

        assert _rate_limit_key_func(request) == f"account:{account_id}"

    def test_invalid_jwt_falls_back_to_ip(self):
        request = self._request({settings.auth_cookie_name: "garbage"})

        assert _rate_limit_key_func(request) == "anon:203.0.113.7"
