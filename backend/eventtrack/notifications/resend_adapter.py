"""Email sending via Resend API.

Simple HTTP POST to Resend with a plain-text body. One attempt per message;
an HTTP error or timeout becomes NotifyError.
"""

import logging

import httpx
from pydantic import SecretStr

from eventtrack.core.errors import NotifyError
from eventtrack.notifications.base import Notifier

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
_DEFAULT_TIMEOUT = 10.0


class ResendNotifier(Notifier):
    """Notifier that posts to the Resend email API.

    Args:
        api_key: Resend API key.
        sender: From address.
        timeout: HTTP timeout in seconds for the single delivery attempt.
        client: Optional shared AsyncClient (tests inject a MockTransport).
    """

    def __init__(
        self,
        *,
        api_key: SecretStr,
        sender: str,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout
        self._client = client

    @property
    def backend_name(self) -> str:
        """Return 'resend'."""
        return "resend"

    async def send(self, *, destination: str, subject: str, body: str) -> None:
        payload = {
            "from": self._sender,
            "to": destination,
            "subject": subject,
            "text": body,
        }
        headers = {"Authorization": f"Bearer {self._api_key.get_secret_value()}"}

        try:
            if self._client is not None:
                await self._post(self._client, headers, payload)
            else:
                async with httpx.AsyncClient() as client:
                    await self._post(client, headers, payload)
        except httpx.HTTPError as exc:
            # Security: no token-bearing body in the log line
            logger.warning(
                "Failed to send email %r: %s", subject, type(exc).__name__
            )
            raise NotifyError(destination=destination) from exc

    async def _post(
        self, client: httpx.AsyncClient, headers: dict[str, str], payload: dict
    ) -> None:
        resp = await client.post(
            RESEND_API_URL,
            headers=headers,
            json=payload,
            timeout=self._timeout,
        )
        resp.raise_for_status()
