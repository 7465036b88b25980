"""Abstract account store.

The token workflows read and write accounts only through this interface.
Two implementations ship: SqlAccountStore (PostgreSQL via SQLAlchemy) and
InMemoryAccountStore (tests and database-less local development).

Contract shared by every implementation:
- Lookups return None for "not found" and raise StorageError for failures.
- get_by_token() matches token AND expiry in a single lookup; an expired
  token is indistinguishable from an unknown one.
- save() is the only way an Account change becomes visible to later reads.
  There is no per-account locking: two concurrent saves of the same account
  are last-write-wins.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from eventtrack.core.tokens import TokenKind
from eventtrack.models.account import Account


class AccountStore(ABC):
    """Persistence contract for Account records."""

    @abstractmethod
    async def get_by_id(self, account_id: uuid.UUID) -> Account | None:
        """Fetch an account by primary key."""
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by email address (case-insensitive)."""
        ...

    @abstractmethod
    async def get_by_username(self, username: str) -> Account | None:
        """Fetch an account by username (exact match)."""
        ...

    @abstractmethod
    async def get_by_token(
        self,
        kind: TokenKind,
        token: str,
        *,
        now: datetime,
    ) -> Account | None:
        """Fetch the account holding a still-valid token of the given kind.

        Args:
            kind: Which token slot to search.
            token: Raw token string as presented in the link.
            now: Reference instant; the stored expiry must be strictly
                greater than this.

        Returns:
            The matching account, or None if no account holds this token
            with an expiry after ``now``.
        """
        ...

    @abstractmethod
    async def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
        contact_no: str | None = None,
        sex: str | None = None,
        image: str | None = None,
        image_id: str | None = None,
    ) -> Account:
        """Create a new, unverified account.

        Raises:
            ConflictError: If the username or email is already taken.
            StorageError: If the store fails.
        """
        ...

    @abstractmethod
    async def save(self, account: Account) -> Account:
        """Persist all changes made to an account.

        The write is durable when this returns: a later failure in the same
        request does not undo it.

        Raises:
            StorageError: If the write fails.
        """
        ...
