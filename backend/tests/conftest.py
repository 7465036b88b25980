import socket
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from eventtrack.core.config import settings
from eventtrack.models.base import Base
from eventtrack.notifications.mock_adapter import MockNotifier
from eventtrack.repositories.memory_account_store import InMemoryAccountStore

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_PASSWORD = "ValidP@ss1"  # nosec B105  # gitleaks:allow
TEST_BCRYPT_ROUNDS = 4  # Low cost factor for fast tests


def create_test_jwt(
    account_id: uuid.UUID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed session JWT for test authentication.

    Args:
        account_id: Account UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(account_id),
        "aud": "eventtrack",
        "iss": "eventtrack",
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((settings.database_host, settings.database_port))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS pgcrypto")
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Store / notifier fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryAccountStore:
    """Fresh in-memory account store."""
    return InMemoryAccountStore()


@pytest.fixture
def mock_notifier() -> MockNotifier:
    """Recording notifier; tests read emitted links from ``sent``."""
    return MockNotifier()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fixed clock at 2026-03-01 12:00 UTC."""
    return FakeClock()


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    memory_store: InMemoryAccountStore,
    mock_notifier: MockNotifier,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the in-memory store and recording notifier.

    Sets up:
    - AccountStore and Notifier dependency overrides
    - JWT signing with the test secret
    - Non-secure cookies so the client's jar sends them back over http
    """
    from eventtrack.api.deps import get_account_store, get_notifier_dep
    from eventtrack.main import app

    app.dependency_overrides[get_account_store] = lambda: memory_store
    app.dependency_overrides[get_notifier_dep] = lambda: mock_notifier

    original_auth_secret = settings.auth_secret
    original_cookie_secure = settings.auth_cookie_secure
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.auth_cookie_secure = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.auth_secret = original_auth_secret
    settings.auth_cookie_secure = original_cookie_secure
    app.dependency_overrides.clear()


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_singletons() -> Iterator[None]:
    """Reset token generator, notifier and memory store singletons.

    A generator latched by a simulated randomness failure must not leak
    into the next test.

    Yields:
        None (autouse fixture).
    """
    from eventtrack.core.tokens import reset_token_generator
    from eventtrack.notifications.factory import reset_notifier
    from eventtrack.repositories.memory_account_store import (
        reset_memory_account_store,
    )

    reset_token_generator()
    reset_notifier()
    reset_memory_account_store()
    yield
    reset_token_generator()
    reset_notifier()
    reset_memory_account_store()


@pytest.fixture(autouse=True)
def fast_password_hashing() -> Iterator[None]:
    """Use a low bcrypt cost factor during tests.

    Yields:
        None (autouse fixture).
    """
    original_rounds = settings.bcrypt_rounds
    settings.bcrypt_rounds = TEST_BCRYPT_ROUNDS
    yield
    settings.bcrypt_rounds = original_rounds


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from eventtrack.core.rate_limiting import limiter

    # Store original state and disable
    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    # Restore original state
    limiter.enabled = original_enabled
