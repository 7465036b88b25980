"""Abstract base class and types for outbound notifications.

The token workflows only need "send this text to this address, tell me if
it failed". Transport details (Resend HTTP API, in-process recording) live in
the adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OutboundMessage:
    """A plain-text email.

    Attributes:
        destination: Recipient address.
        subject: Subject line.
        body: Plain-text body.
    """

    destination: str
    subject: str
    body: str


class Notifier(ABC):
    """Abstract outbound email sender.

    WHY ABSTRACT CLASS:
    - Workflows stay independent of the email transport
    - Tests swap in MockNotifier without patching HTTP calls
    - Credentials are injected into the adapter, not read by the workflows

    Implementations make exactly one delivery attempt per call; retry policy
    is the caller's decision (the workflows never retry).
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier (e.g., 'resend', 'console')."""
        ...

    @abstractmethod
    async def send(self, *, destination: str, subject: str, body: str) -> None:
        """Deliver one message.

        Args:
            destination: Recipient address.
            subject: Subject line.
            body: Plain-text body.

        Raises:
            NotifyError: If the message could not be handed to the transport.
        """
        ...

    async def send_message(self, message: OutboundMessage) -> None:
        """Deliver a prepared OutboundMessage."""
        await self.send(
            destination=message.destination,
            subject=message.subject,
            body=message.body,
        )
