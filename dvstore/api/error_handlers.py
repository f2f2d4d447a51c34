"""Error Handlers — global exception handlers for requests outside the adapter.

Invariants:
    - Router misses (404/405) render as {"code", "message"} like adapter errors
    - Exception (catch-all) → 500 "Internal server error", never internal details

Design Decisions:
    - Adapter-wrapped endpoints classify their own errors; these handlers only
      see routing failures and the non-definition routes (health)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dvstore.core.errors import classify
from dvstore.schemas.definition import ErrorResponse

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_http_error_handler(app)
    _register_generic_error_handler(app)


def _register_http_error_handler(app: FastAPI) -> None:
    """Render router and framework HTTP errors in the API error shape."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        logger.debug(
            f"HTTP {exc.status_code} on {request.method} {request.url.path}",
            extra={"topic": "api", "status_code": exc.status_code},
        )
        body = ErrorResponse(code=exc.status_code, message=str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(),
            headers=getattr(exc, "headers", None),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"topic": "api"},
        )
        body = ErrorResponse(**classify(exc).to_response())
        return JSONResponse(status_code=500, content=body.model_dump())
