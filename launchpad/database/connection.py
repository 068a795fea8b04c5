"""
Database connection and session management.

Deployment history and status records live in a SQL database:
- Async support (aiosqlite locally, asyncpg or any async driver in CI)
- Schema creation on first use
- Health checks
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import text

from launchpad.core.logger import get_logger
from launchpad.database.base import Base

logger = get_logger("database")

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///.launchpad/history.db"


class DatabaseConnection:
    """
    Manages the database engine and session lifecycle.

    One engine per process; configure() swaps it (tests use in-memory SQLite).
    """

    _url: str = DEFAULT_DATABASE_URL
    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker] = None
    _schema_ready: bool = False

    @classmethod
    def configure(cls, url: str) -> None:
        """Point the connection at a database URL (drops any existing engine)."""
        if cls._engine is not None and url != cls._url:
            logger.debug("[DATABASE] Reconfiguring engine; previous engine left for close()")
        cls._url = url
        cls._engine = None
        cls._session_factory = None
        cls._schema_ready = False

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        """
        Get or create async database engine.

        Returns:
            AsyncEngine: SQLAlchemy async engine instance
        """
        if cls._engine is None:
            url = make_url(cls._url)
            logger.info(f"[DATABASE] Creating engine: {url.render_as_string(hide_password=True)}")

            if url.get_backend_name() == "sqlite":
                database = url.database or ""
                if database in ("", ":memory:"):
                    # One shared connection, otherwise every session sees an empty DB
                    cls._engine = create_async_engine(
                        cls._url,
                        poolclass=StaticPool,
                        connect_args={"check_same_thread": False},
                    )
                    return cls._engine
                Path(database).parent.mkdir(parents=True, exist_ok=True)

            cls._engine = create_async_engine(
                cls._url,
                poolclass=NullPool,
                echo=False,
            )

        return cls._engine

    @classmethod
    def get_session_factory(cls) -> async_sessionmaker:
        """
        Get or create session factory.

        Returns:
            async_sessionmaker: Factory for creating async sessions
        """
        if cls._session_factory is None:
            cls._session_factory = async_sessionmaker(
                cls.get_engine(),
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return cls._session_factory

    @classmethod
    async def init_schema(cls) -> None:
        """Create tables if they do not exist."""
        if cls._schema_ready:
            return
        # Register models on Base.metadata
        import launchpad.models  # noqa: F401

        async with cls.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        cls._schema_ready = True

    @classmethod
    async def health_check(cls) -> bool:
        """
        Check database connection health.

        Returns:
            bool: True if connection is healthy, False otherwise
        """
        try:
            async with cls.get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("[DATABASE] ✓ Health check passed")
            return True
        except Exception as e:
            logger.error(f"[DATABASE] ✗ Health check failed: {e}")
            return False

    @classmethod
    async def close(cls) -> None:
        """Close database engine and cleanup connections."""
        if cls._engine:
            await cls._engine.dispose()
            cls._engine = None
            cls._session_factory = None
            cls._schema_ready = False
            logger.debug("[DATABASE] Connections closed")


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Transactional session scope: commit on success, roll back on error.

    Usage:
        async with get_session() as session:
            session.add(row)
    """
    await DatabaseConnection.init_schema()
    session_factory = DatabaseConnection.get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Export for convenience
configure_database = DatabaseConnection.configure
get_engine = DatabaseConnection.get_engine
health_check = DatabaseConnection.health_check
close_database = DatabaseConnection.close
