"""In-memory account store.

WHY SNAPSHOTS:
- Rows are stored as plain column dicts and every read builds a fresh
  Account, so an in-memory change is invisible to other readers until
  save() is called, the same as with the database store.
- Lets tests assert that a failed step left the stored record untouched.

Note: Safe for async/await usage (single-threaded event loop) but not for
multi-threaded access. Accounts are lost on restart.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from eventtrack.core.errors import ConflictError, StorageError
from eventtrack.core.tokens import TokenKind
from eventtrack.models.account import Account
from eventtrack.repositories.account_store import AccountStore

_COLUMNS: tuple[str, ...] = tuple(column.key for column in Account.__table__.columns)


def _snapshot(account: Account) -> dict[str, Any]:
    return {name: getattr(account, name) for name in _COLUMNS}


def _materialize(row: dict[str, Any]) -> Account:
    return Account(**row)


class InMemoryAccountStore(AccountStore):
    """AccountStore keeping rows in a dict keyed by account id."""

    def __init__(self) -> None:
        self._rows: dict[uuid.UUID, dict[str, Any]] = {}

    def _find(self, **criteria: object) -> Account | None:
        for row in self._rows.values():
            if all(row[name] == value for name, value in criteria.items()):
                return _materialize(row)
        return None

    async def get_by_id(self, account_id: uuid.UUID) -> Account | None:
        row = self._rows.get(account_id)
        return _materialize(row) if row is not None else None

    async def get_by_email(self, email: str) -> Account | None:
        return self._find(email=email.strip().lower())

    async def get_by_username(self, username: str) -> Account | None:
        return self._find(username=username)

    async def get_by_token(
        self,
        kind: TokenKind,
        token: str,
        *,
        now: datetime,
    ) -> Account | None:
        for row in self._rows.values():
            expires = row[kind.expires_field]
            if row[kind.token_field] == token and expires is not None and expires > now:
                return _materialize(row)
        return None

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
        if self._find(username=username) is not None:
            raise ConflictError(
                code="USERNAME_ALREADY_EXISTS",
                message="A user with the given username is already registered",
            )
        normalized_email = email.strip().lower()
        if self._find(email=normalized_email) is not None:
            raise ConflictError(
                code="EMAIL_ALREADY_EXISTS",
                message="Email already registered",
            )

        now = datetime.now(UTC)
        account = Account(
            id=uuid.uuid4(),
            username=username,
            email=normalized_email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            contact_no=contact_no,
            sex=sex,
            image=image,
            image_id=image_id,
            is_verified=False,
            verification_token=None,
            verification_token_expires=None,
            reset_password_token=None,
            reset_password_expires=None,
            token_invalidated_before=None,
            created_at=now,
            updated_at=now,
        )
        self._rows[account.id] = _snapshot(account)
        return _materialize(self._rows[account.id])

    async def save(self, account: Account) -> Account:
        if account.id not in self._rows:
            raise StorageError("Could not save your changes. The account no longer exists.")
        account.updated_at = datetime.now(UTC)
        self._rows[account.id] = _snapshot(account)
        return account

    def clear(self) -> None:
        """Remove all accounts (for testing)."""
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)


# Singleton instance for ACCOUNT_STORE_BACKEND=memory
_memory_store: InMemoryAccountStore | None = None


def get_memory_account_store() -> InMemoryAccountStore:
    """Get the process-wide in-memory store singleton."""
    global _memory_store
    if _memory_store is None:
        _memory_store = InMemoryAccountStore()
    return _memory_store


def reset_memory_account_store() -> None:
    """Reset the in-memory store singleton (for testing)."""
    global _memory_store
    if _memory_store is not None:
        _memory_store.clear()
    _memory_store = None
