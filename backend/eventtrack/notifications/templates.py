"""Plain-text email bodies for account workflows.

Each builder returns an OutboundMessage ready for Notifier.send_message().
"""

from eventtrack.notifications.base import OutboundMessage

_APP_NAME = "EventTrack"


def verification_message(*, destination: str, link: str) -> OutboundMessage:
    """Email carrying the account verification link."""
    return OutboundMessage(
        destination=destination,
        subject=f"{_APP_NAME} User Account Verification.",
        body=(
            f"This is to verify your {_APP_NAME} user account.\n\n"
            "Please click on the following link, or paste this into your "
            "browser to complete the process\n\n"
            f"{link}\n\n"
            "The above verification link is valid only for a day.\n\n"
            "If you did not create the account, please ignore this email.\n"
        ),
    )


def password_reset_message(*, destination: str, link: str) -> OutboundMessage:
    """Email carrying the password reset link."""
    return OutboundMessage(
        destination=destination,
        subject=f"{_APP_NAME} User Account Password Reset",
        body=(
            "You are receiving this because you (or someone else) have requested "
            f"to reset the password of your {_APP_NAME} account.\n\n"
            "Please click on the following link, or paste this into your "
            "browser to complete the process\n\n"
            f"{link}\n\n"
            "If you did not request this, please ignore this email and your "
            "password will remain unchanged.\n"
        ),
    )


def password_changed_message(*, destination: str, username: str) -> OutboundMessage:
    """Confirmation sent after a successful password reset."""
    return OutboundMessage(
        destination=destination,
        subject=f"{_APP_NAME} User Account Password Changed",
        body=(
            f"The password to your {_APP_NAME} account with username "
            f"{username} has been changed.\n\n"
            "In case you don't recognize this activity please contact the "
            "administration of the page. The contact details can be found "
            "in the page.\n"
        ),
    )


def support_query_message(
    *,
    destination: str,
    name: str,
    email: str,
    phone: str | None,
    message: str,
) -> OutboundMessage:
    """Contact-form query relayed to the support inbox."""
    return OutboundMessage(
        destination=destination,
        subject=f"{_APP_NAME} User wants to contact you.",
        body=(
            f"From: {name}\n"
            f"Email: {email}\n"
            f"Phone: {phone or '-'}\n"
            f"Message: {message}\n"
        ),
    )
