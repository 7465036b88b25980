"""Single-use account tokens: kinds, generation and link construction.

Tokens are 20 random bytes, hex encoded (40 characters, 160 bits). They are
stored on the Account row next to their expiry and embedded in the emailed
link as-is.

Link format (bit-exact, the emailed URL):
    {scheme}://{host}/verify/{token}
    {scheme}://{host}/reset/{token}
"""

import logging
import secrets
from enum import Enum

from eventtrack.core.errors import RandomnessFailure

logger = logging.getLogger(__name__)

TOKEN_BYTES = 20
TOKEN_LENGTH = TOKEN_BYTES * 2

_ALLOWED_SCHEMES = frozenset({"http", "https"})


class TokenKind(Enum):
    """The two token-gated account workflows.

    The value doubles as the link path segment. Each kind owns one
    token/expiry column pair on Account.
    """

    VERIFICATION = "verify"
    PASSWORD_RESET = "reset"

    @property
    def token_field(self) -> str:
        """Account attribute holding the token."""
        if self is TokenKind.VERIFICATION:
            return "verification_token"
        return "reset_password_token"

    @property
    def expires_field(self) -> str:
        """Account attribute holding the token's expiry."""
        if self is TokenKind.VERIFICATION:
            return "verification_token_expires"
        return "reset_password_expires"


class TokenGenerator:
    """Cryptographically random token source.

    WHY LATCH ON FAILURE:
    A broken randomness source cannot be trusted to recover mid-process, so
    after one failure every later generate() call fails immediately too.
    """

    def __init__(self, num_bytes: int = TOKEN_BYTES) -> None:
        self._num_bytes = num_bytes
        self._failed = False

    @property
    def available(self) -> bool:
        """False once the randomness source has failed."""
        return not self._failed

    def generate(self) -> str:
        """Return a new lowercase hex token.

        Raises:
            RandomnessFailure: If the OS randomness source is unavailable,
                now or on any earlier call.
        """
        if self._failed:
            raise RandomnessFailure("Token issuance disabled after randomness failure")
        try:
            return secrets.token_hex(self._num_bytes)
        except (OSError, NotImplementedError) as exc:
            self._failed = True
            logger.critical("Randomness source failed; token issuance disabled")
            raise RandomnessFailure("Randomness source unavailable") from exc


def build_token_link(*, scheme: str, host: str, kind: TokenKind, token: str) -> str:
    """Build the emailed link for a token.

    Args:
        scheme: "http" or "https", taken from the originating request.
        host: Host header of the originating request (may include a port).
        kind: Which workflow the link completes.
        token: Raw token string, embedded unmodified.

    Returns:
        Absolute URL such as ``https://example.com/reset/<token>``.

    Raises:
        ValueError: If scheme is not http/https or host is empty.
    """
    if scheme not in _ALLOWED_SCHEMES:
        raise ValueError(f"Unsupported link scheme: {scheme!r}")
    if not host:
        raise ValueError("Link host must not be empty")
    return f"{scheme}://{host}/{kind.value}/{token}"


_default_generator: TokenGenerator | None = None


def get_token_generator() -> TokenGenerator:
    """Get the process-wide token generator singleton."""
    global _default_generator
    if _default_generator is None:
        _default_generator = TokenGenerator()
    return _default_generator


def reset_token_generator() -> None:
    """Reset the generator singleton (for testing)."""
    global _default_generator
    _default_generator = None
