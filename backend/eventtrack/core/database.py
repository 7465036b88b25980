"""Async database engine and session factory.

Configures the SQLAlchemy async engine with connection pooling. Request
scoped sessions are opened by api.deps.get_account_store when the database
account store backend is selected.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from eventtrack.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
