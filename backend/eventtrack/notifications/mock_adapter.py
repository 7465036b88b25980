"""Recording notifier for tests and local development.

MockNotifier never talks to the network. It keeps every message it was asked
to send and logs a one-line summary. With ``echo_body`` set (the console
backend in development) the body is logged at DEBUG, so emailed links can be
followed without an email provider.
"""

import logging

from eventtrack.core.errors import NotifyError
from eventtrack.notifications.base import Notifier, OutboundMessage

logger = logging.getLogger(__name__)


class MockNotifier(Notifier):
    """Notifier that records messages instead of delivering them.

    WHY MOCK:
    - Unit tests shouldn't send real email
    - Tests read the emitted link straight from ``sent``
    - Can simulate delivery failures

    Attributes:
        sent: Messages successfully "delivered", oldest first.
        attempts: Every send() call, including failed ones.
        fail_with: If set, send() raises this instead of recording.
        echo_body: If set, message bodies are logged at DEBUG.
    """

    def __init__(
        self, *, fail_with: NotifyError | None = None, echo_body: bool = False
    ) -> None:
        self.sent: list[OutboundMessage] = []
        self.attempts: list[OutboundMessage] = []
        self.fail_with = fail_with
        self.echo_body = echo_body

    @property
    def backend_name(self) -> str:
        """Return 'console'."""
        return "console"

    async def send(self, *, destination: str, subject: str, body: str) -> None:
        message = OutboundMessage(destination=destination, subject=subject, body=body)
        self.attempts.append(message)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        logger.info("Email recorded (console backend): %r to %s", subject, destination)
        if self.echo_body:
            logger.debug("Email body for %s:\n%s", destination, body)

    @property
    def last_message(self) -> OutboundMessage | None:
        """The most recently delivered message, if any."""
        return self.sent[-1] if self.sent else None

    def clear(self) -> None:
        """Forget all recorded messages (for testing)."""
        self.sent.clear()
        self.attempts.clear()
        self.fail_with = None
