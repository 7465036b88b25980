"""Outbound notification layer.

Exports:
    Notifier interface and message type
    Adapters (Resend, in-process mock)
    Factory functions for the notifier singleton
"""

from eventtrack.notifications.base import Notifier, OutboundMessage
from eventtrack.notifications.factory import get_notifier, reset_notifier
from eventtrack.notifications.mock_adapter import MockNotifier
from eventtrack.notifications.resend_adapter import ResendNotifier

__all__ = [
    "Notifier",
    "OutboundMessage",
    "MockNotifier",
    "ResendNotifier",
    "get_notifier",
    "reset_notifier",
]
