"""
Database connection and session management.

The relational database only holds user accounts here; events go to
ClickHouse (see `services/event_store.py`). We use it to resolve an
access token to a user id.

SQLAlchemy 2.0 async pattern:
- Engine: manages the connection pool
- SessionLocal: factory for creating database sessions
- Base: parent class for our ORM models
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from analytics_api.core.config import settings


# =============================================================================
# DATABASE ENGINE
# =============================================================================
# - echo=settings.debug: when True, logs all SQL statements
# - pool_pre_ping=True: tests connections before using them (handles stale connections)
# - connect_timeout bounds the auth lookup when the database is unreachable

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    connect_args={"connect_timeout": int(settings.auth_timeout_s)},
)


# =============================================================================
# SESSION FACTORY
# =============================================================================

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


# =============================================================================
# DEPENDENCY: GET DATABASE SESSION
# =============================================================================


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Usage in a route:
        @router.post("/ingest")
        async def ingest(db: AsyncSession = Depends(get_db)):
            # use db here
    """
    async with AsyncSessionLocal() as session:
        yield session
