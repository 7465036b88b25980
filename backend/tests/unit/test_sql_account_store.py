"""Tests for SqlAccountStore.

These tests require PostgreSQL (integration tests). Skipped automatically
if the database is not available.
"""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import MultipleResultsFound, OperationalError

from eventtrack.core.errors import ConflictError, StorageError
from eventtrack.core.tokens import TokenKind
from eventtrack.repositories.account_repository import SqlAccountStore

_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
_TOKEN = "c" * 40


@pytest.fixture
def store(db_session) -> SqlAccountStore:
    return SqlAccountStore(db_session)


async def _create(store: SqlAccountStore, username: str = "alice"):
    return await store.create(
        username=username,
        email=f"{username.title()}@Example.com",
        password_hash="hashed",
    )


class TestCreate:
    """Tests for SqlAccountStore.create()."""

    async def test_inserts_unverified_account(self, store):
        account = await _create(store)

        assert account.id is not None
        assert account.email == "alice@example.com"
        assert account.is_verified is False
        assert account.created_at is not None

    async def test_duplicate_username_conflicts(self, store):
        await _create(store)

        with pytest.raises(ConflictError) as exc_info:
            await store.create(
                username="alice", email="other@example.com", password_hash="h"
            )

        assert exc_info.value.code == "USERNAME_ALREADY_EXISTS"

    async def test_duplicate_email_conflicts(self, store):
        await _create(store)

        with pytest.raises(ConflictError) as exc_info:
            await store.create(
                username="bob", email="alice@example.com", password_hash="h"
            )

        assert exc_info.value.code == "EMAIL_ALREADY_EXISTS"


class TestLookups:
    """Tests for the get_by_* methods."""

    async def test_get_by_id(self, store):
        account = await _create(store)

        assert (await store.get_by_id(account.id)).username == "alice"
        assert await store.get_by_id(uuid.uuid4()) is None

    async def test_get_by_email_ignores_case(self, store):
        account = await _create(store)

        found = await store.get_by_email("ALICE@example.COM")

        assert found.id == account.id

    async def test_get_by_username(self, store):
        account = await _create(store)

        assert (await store.get_by_username("alice")).id == account.id

    async def test_database_failure_becomes_storage_error(self, store, db_session):
        with (
            patch.object(
                db_session,
                "execute",
                AsyncMock(side_effect=OperationalError("SELECT", {}, Exception())),
            ),
            pytest.raises(StorageError),
        ):
            await store.get_by_username("alice")

    async def test_ambiguous_result_becomes_storage_error(self):
        result = MagicMock()
        result.scalar_one_or_none.side_effect = MultipleResultsFound()
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        with pytest.raises(StorageError):
            await SqlAccountStore(session).get_by_token(
                TokenKind.PASSWORD_RESET, _TOKEN, now=_NOW
            )


class TestTokens:
    """Token attach, lookup with expiry, and save()."""

    async def test_saved_token_found_before_expiry(self, store):
        account = await _create(store)
        account.attach_token(TokenKind.VERIFICATION, _TOKEN, _NOW + timedelta(hours=24))
        await store.save(account)

        found = await store.get_by_token(
            TokenKind.VERIFICATION, _TOKEN, now=_NOW + timedelta(hours=23)
        )

        assert found is not None
        assert found.id == account.id

    async def test_token_not_found_at_expiry(self, store):
        account = await _create(store)
        account.attach_token(TokenKind.PASSWORD_RESET, _TOKEN, _NOW + timedelta(hours=1))
        await store.save(account)

        found = await store.get_by_token(
            TokenKind.PASSWORD_RESET, _TOKEN, now=_NOW + timedelta(hours=1)
        )

        assert found is None

    async def test_cleared_token_not_found(self, store):
        account = await _create(store)
        account.attach_token(TokenKind.PASSWORD_RESET, _TOKEN, _NOW + timedelta(hours=1))
        await store.save(account)

        account.clear_token(TokenKind.PASSWORD_RESET)
        await store.save(account)

        assert await store.get_by_token(TokenKind.PASSWORD_RESET, _TOKEN, now=_NOW) is None

    async def test_save_failure_becomes_storage_error(self, store, db_session):
        account = await _create(store)
        account.is_verified = True

        with (
            patch.object(
                db_session,
                "commit",
                AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception())),
            ),
            pytest.raises(StorageError),
        ):
            await store.save(account)
