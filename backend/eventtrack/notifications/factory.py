"""Notifier factory functions.

Singleton pattern for the process-wide notifier.
"""

from eventtrack.core.config import Settings, settings
from eventtrack.notifications.base import Notifier
from eventtrack.notifications.mock_adapter import MockNotifier
from eventtrack.notifications.resend_adapter import ResendNotifier

_notifier: Notifier | None = None


def get_notifier(config: Settings | None = None) -> Notifier:
    """Get or create the notifier singleton.

    WHY SINGLETON:
    - Credentials are read once at startup and confined to the adapter
    - The console backend keeps one message log for the whole process

    Args:
        config: Optional settings. Defaults to the global settings.

    Returns:
        Notifier instance.

    Raises:
        ValueError: If the configured backend is unknown.
    """
    global _notifier

    if _notifier is None:
        config = config or settings
        if config.email_backend == "resend":
            _notifier = ResendNotifier(
                api_key=config.resend_api_key,
                sender=config.email_from,
                timeout=config.email_timeout_seconds,
            )
        elif config.email_backend == "console":
            _notifier = MockNotifier(echo_body=config.environment == "development")
        else:
            raise ValueError(f"Unknown email backend: {config.email_backend}")

    return _notifier


def reset_notifier() -> None:
    """Reset the notifier singleton.

    Used in tests to ensure isolation between test cases.
    """
    global _notifier
    _notifier = None
