"""Tests for the notification layer.

MockNotifier recording, ResendNotifier over httpx.MockTransport, the
notifier factory and the email templates.
"""

import json
import logging

import httpx
import pytest
from pydantic import SecretStr

from eventtrack.core.config import Settings
from eventtrack.core.errors import NotifyError
from eventtrack.notifications import factory
from eventtrack.notifications.base import OutboundMessage
from eventtrack.notifications.mock_adapter import MockNotifier
from eventtrack.notifications.resend_adapter import RESEND_API_URL, ResendNotifier
from eventtrack.notifications.templates import (
    password_changed_message,
    password_reset_message,
    support_query_message,
    verification_message,
)

_MESSAGE = OutboundMessage(
    destination="alice@example.com", subject="Hello", body="Body text"
)


# =============================================================================
# MockNotifier
# =============================================================================


class TestMockNotifier:
    """Tests for MockNotifier."""

    async def test_records_sent_message(self):
        notifier = MockNotifier()

        await notifier.send_message(_MESSAGE)

        assert notifier.sent == [_MESSAGE]
        assert notifier.last_message == _MESSAGE

    async def test_failure_is_recorded_as_attempt_only(self):
        notifier = MockNotifier(fail_with=NotifyError())

        with pytest.raises(NotifyError):
            await notifier.send_message(_MESSAGE)

        assert notifier.attempts == [_MESSAGE]
        assert notifier.sent == []
        assert notifier.last_message is None

    async def test_clear_resets_state(self):
        notifier = MockNotifier(fail_with=NotifyError())
        with pytest.raises(NotifyError):
            await notifier.send_message(_MESSAGE)

        notifier.clear()
        await notifier.send_message(_MESSAGE)

        assert notifier.attempts == [_MESSAGE]
        assert notifier.sent == [_MESSAGE]

    def test_backend_name(self):
        assert MockNotifier().backend_name == "console"

    async def test_echo_body_logs_link_at_debug(self, caplog):
        notifier = MockNotifier(echo_body=True)

        with caplog.at_level(logging.DEBUG, logger="eventtrack.notifications"):
            await notifier.send_message(_MESSAGE)

        assert "Body text" in caplog.text

    async def test_body_not_logged_by_default(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="eventtrack.notifications"):
            await MockNotifier().send_message(_MESSAGE)

        assert "Body text" not in caplog.text


# =============================================================================
# ResendNotifier
# =============================================================================


def _resend(handler) -> ResendNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResendNotifier(
        api_key=SecretStr("re_test_key"),
        sender="noreply@eventtrack.app",
        client=client,
    )


class TestResendNotifier:
    """Tests for ResendNotifier.send()."""

    async def test_posts_plain_text_email(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"id": "email-1"})

        await _resend(handler).send_message(_MESSAGE)

        assert len(captured) == 1
        request = captured[0]
        assert str(request.url) == RESEND_API_URL
        assert request.headers["Authorization"] == "Bearer re_test_key"
        assert json.loads(request.content) == {
            "from": "noreply@eventtrack.app",
            "to": "alice@example.com",
            "subject": "Hello",
            "text": "Body text",
        }

    async def test_http_error_becomes_notify_error(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"message": "down"})

        with pytest.raises(NotifyError) as exc_info:
            await _resend(handler).send_message(_MESSAGE)

        assert exc_info.value.destination == "alice@example.com"
        assert exc_info.value.status_code == 502

    async def test_transport_error_becomes_notify_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NotifyError):
            await _resend(handler).send_message(_MESSAGE)

    async def test_single_attempt_per_message(self):
        calls = 0

        def handler(_request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        with pytest.raises(NotifyError):
            await _resend(handler).send_message(_MESSAGE)

        assert calls == 1

    def test_backend_name(self):
        notifier = ResendNotifier(api_key=SecretStr("k"), sender="a@b.c")
        assert notifier.backend_name == "resend"


# =============================================================================
# Factory
# =============================================================================


class TestNotifierFactory:
    """Tests for get_notifier() / reset_notifier()."""

    def test_console_backend_returns_mock(self):
        notifier = factory.get_notifier(Settings(email_backend="console"))

        assert notifier.backend_name == "console"

    def test_console_backend_echoes_bodies_only_in_development(self):
        dev = factory.get_notifier(
            Settings(email_backend="console", environment="development")
        )
        factory.reset_notifier()
        staging = factory.get_notifier(
            Settings(email_backend="console", environment="staging")
        )

        assert dev.echo_body is True
        assert staging.echo_body is False

    def test_resend_backend_returns_resend(self):
        notifier = factory.get_notifier(
            Settings(email_backend="resend", resend_api_key=SecretStr("k"))
        )

        assert notifier.backend_name == "resend"

    def test_singleton_until_reset(self):
        first = factory.get_notifier(Settings(email_backend="console"))

        assert factory.get_notifier() is first
        factory.reset_notifier()
        assert factory.get_notifier(Settings(email_backend="console")) is not first


# =============================================================================
# Templates
# =============================================================================


class TestTemplates:
    """Tests for the email body builders."""

    def test_verification_message_carries_link(self):
        link = "https://h/verify/" + "a" * 40

        message = verification_message(destination="alice@example.com", link=link)

        assert message.destination == "alice@example.com"
        assert message.subject == "EventTrack User Account Verification."
        assert link in message.body
        assert "valid only for a day" in message.body

    def test_reset_message_carries_link(self):
        link = "https://h/reset/" + "b" * 40

        message = password_reset_message(destination="alice@example.com", link=link)

        assert message.subject == "EventTrack User Account Password Reset"
        assert link in message.body
        assert "password will remain unchanged" in message.body

    def test_password_changed_names_username(self):
        message = password_changed_message(
            destination="alice@example.com", username="alice"
        )

        assert "username alice has been changed" in message.body

    def test_support_query_without_phone(self):
        message = support_query_message(
            destination="support@eventtrack.app",
            name="Bob",
            email="bob@example.com",
            phone=None,
            message="Where is the venue?",
        )

        assert message.destination == "support@eventtrack.app"
        assert "From: Bob" in message.body
        assert "Phone: -" in message.body
        assert "Where is the venue?" in message.body
