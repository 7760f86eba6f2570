"""
Database Connection

Async engine and session lifecycle for the "database" storage backend.
Messages and risk events are the only persisted aggregates; escalation
records and safety plans stay in process memory.

SECURITY: The connection URL embeds the password. Log the host and
database name only.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from crisisline.config.settings import DatabaseSettings
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the message and risk event tables."""


class DatabaseManager:
    """
    Owns the engine and hands out unit-of-work sessions.

    Built by the service container only when storage_backend is
    "database"; the SQL repositories share one instance.

    Usage:
        db = DatabaseManager(settings.database)
        await db.initialize()
        async with db.session() as session:
            session.add(MessageModel.from_domain(message))
        await db.close()
    """

    def __init__(self, settings: DatabaseSettings, echo: bool = False) -> None:
        self._settings = settings
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        """
        Open the connection pool.

        With create_schema enabled the tables are created directly from
        the ORM metadata; otherwise the schema comes from Alembic.
        """
        if self._engine is not None:
            logger.warning("Database already initialized")
            return

        self._engine = create_async_engine(
            self._settings.async_url,
            pool_size=self._settings.pool_size,
            max_overflow=self._settings.max_overflow,
            pool_pre_ping=True,
            echo=self._echo,
        )
        self._sessions = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
            autoflush=False,
        )

        if self._settings.create_schema:
            # Register the tables on Base.metadata
            from crisisline.infrastructure.database import models  # noqa: F401

            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database schema created from ORM metadata")

        logger.info(
            "Database pool opened",
            host=self._settings.host,
            database=self._settings.name,
            pool_size=self._settings.pool_size,
        )

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Database pool closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        One unit of work: committed on exit, rolled back on error.

        Raises:
            RuntimeError: If initialize() has not run
        """
        if self._sessions is None:
            raise RuntimeError("DatabaseManager.initialize() must run before session()")

        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """True when a trivial query succeeds."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
        return True
