"""DVStore API — FastAPI application factory.

Invariants:
    - Definition routes registered explicitly through the endpoint table
    - The store is injected once here and captured by handler closures
    - Global error handlers render router misses as {"code", "message"}
    - Database schema created and engine disposed via the lifespan context manager

Design Decisions:
    - Factory over module-level app: tests and the CLI build apps with their
      own settings and stores (uvicorn --factory dvstore.main:create_app)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dvstore import __version__
from dvstore.api.endpoints import new_router
from dvstore.api.error_handlers import register_error_handlers
from dvstore.api.routes import health
from dvstore.config import Settings, get_settings
from dvstore.core.repository_protocols import DefinitionRepository
from dvstore.infrastructure.database import DatabaseSessionManager
from dvstore.infrastructure.definition_store import SqlDefinitionStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None, store: DefinitionRepository | None = None,
) -> FastAPI:
    """Build the API. Without a store, one is backed by settings.database_address."""
    settings = settings or get_settings()

    db = None
    if store is None:
        db = DatabaseSessionManager(settings.database_address)
        store = SqlDefinitionStore(db)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        if db is not None:
            await db.create_schema()
        logger.info("Starting dvstore", extra={"topic": "app"})
        try:
            yield
        finally:
            logger.info("Shutdown detected", extra={"topic": "app"})
            if db is not None:
                await db.dispose()
            logger.info("Good bye", extra={"topic": "app"})

    app = FastAPI(title="DVStore API", version=__version__, lifespan=lifespan)
    app.state.db = db

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(
        new_router(store, request_timeout=settings.request_timeout or None),
    )
    return app
