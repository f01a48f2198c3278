"""
Database connection and session management.
Uses SQLAlchemy 2.0 async pattern.
"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from authflow.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend."""
    if not database_url.startswith("sqlite"):
        # PostgreSQL (asyncpg) with connection pooling
        return create_async_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    in_memory = database_url.rstrip("/").endswith(":memory:") or database_url.endswith("://")
    engine = create_async_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False},
        # An in-memory database lives as long as its single connection
        poolclass=StaticPool if in_memory else NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        """Foreign keys and a busy timeout on every new SQLite connection."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


settings = get_settings()

engine = build_engine(settings.database_url, echo=settings.debug)

# Session factory
async_session_maker = build_session_maker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields one session per request.

    Commits when the handler returns, rolls back when it raises, so a
    request's writes land together or not at all.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(target: AsyncEngine = engine) -> None:
    """Create tables that do not exist yet."""
    from authflow.kernel.models import Base

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
