"""Database Session Manager — async engine with automatic rollback and health checks.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - All SQLAlchemy exceptions mapped to DatabaseError (core/errors.py)
    - Pool sizing options only applied to server databases (SQLite pools are fixed)

Design Decisions:
    - One manager per app, created by create_app and disposed in its lifespan
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from dvstore.core.errors import DatabaseError
from dvstore.db.base import Base
import dvstore.models  # noqa: F401  (populates Base.metadata)

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
        **engine_options: Any,
    ):
        if not database_url.startswith("sqlite"):
            engine_options.setdefault("pool_size", pool_size)
            engine_options.setdefault("max_overflow", max_overflow)
            engine_options.setdefault("pool_recycle", 3600)
        self.engine = create_async_engine(
            database_url, pool_pre_ping=True, **engine_options,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.debug(f"DB integrity error: {e}")
            raise DatabaseError("commit", e)
        except OperationalError as e:
            await session.rollback()
            logger.debug(f"DB operational error: {e}")
            raise DatabaseError("execute", e)
        except DBAPIError as e:
            await session.rollback()
            logger.debug(f"DB driver error: {e}")
            raise DatabaseError("query", e)
        except SQLAlchemyError as e:
            await session.rollback()
            logger.debug(f"SQLAlchemy error: {e}")
            raise DatabaseError("operation", e)
        finally:
            await session.close()

    async def create_schema(self) -> None:
        """Create missing tables. Existing tables are left untouched."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
