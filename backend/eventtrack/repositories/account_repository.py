"""SQLAlchemy-backed account store.

One instance wraps one AsyncSession (one request). save() commits, so a
token persisted by an initiation survives a later notification failure in
the same request.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventtrack.core.errors import ConflictError, StorageError
from eventtrack.core.tokens import TokenKind
from eventtrack.models.account import Account
from eventtrack.repositories.account_store import AccountStore

logger = logging.getLogger(__name__)


class SqlAccountStore(AccountStore):
    """AccountStore over the accounts table.

    Args:
        db: Async database session. The store commits on create() and
            save(); callers should not hold other pending work on it.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _scalar(self, stmt) -> Account | None:  # noqa: ANN001
        try:
            result = await self._db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Account lookup failed: %s", type(exc).__name__)
            raise StorageError("Could not load the account. Please try again.") from exc

    async def get_by_id(self, account_id: uuid.UUID) -> Account | None:
        return await self._scalar(select(Account).where(Account.id == account_id))

    async def get_by_email(self, email: str) -> Account | None:
        return await self._scalar(
            select(Account).where(Account.email == email.strip().lower())
        )

    async def get_by_username(self, username: str) -> Account | None:
        return await self._scalar(select(Account).where(Account.username == username))

    async def get_by_token(
        self,
        kind: TokenKind,
        token: str,
        *,
        now: datetime,
    ) -> Account | None:
        token_column = getattr(Account, kind.token_field)
        expires_column = getattr(Account, kind.expires_field)
        stmt = select(Account).where(
            token_column == token,
            expires_column > now,
        )
        return await self._scalar(stmt)

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
        """Insert a new account.

        Username and email are checked up front for a specific message; the
        unique constraints remain the authority under concurrent inserts.
        """
        if await self.get_by_username(username) is not None:
            raise ConflictError(
                code="USERNAME_ALREADY_EXISTS",
                message="A user with the given username is already registered",
            )
        if await self.get_by_email(email) is not None:
            raise ConflictError(
                code="EMAIL_ALREADY_EXISTS",
                message="Email already registered",
            )

        account = Account(
            username=username,
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            contact_no=contact_no,
            sex=sex,
            image=image,
            image_id=image_id,
            is_verified=False,
        )
        try:
            self._db.add(account)
            await self._db.flush()
            await self._db.refresh(account)
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise ConflictError(
                code="ACCOUNT_ALREADY_EXISTS",
                message="Username or email already registered",
            ) from exc
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error("Account insert failed: %s", type(exc).__name__)
            raise StorageError() from exc
        return account

    async def save(self, account: Account) -> Account:
        try:
            self._db.add(account)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error(
                "Account save failed for %s: %s", account.id, type(exc).__name__
            )
            raise StorageError() from exc
        return account
