"""Request Adapter — turns typed handler functions into HTTP endpoints.

Every endpoint goes through `wrap`, which owns tracing, latency metrics,
content-type enforcement, body reading, response serialization and error
classification. Handlers only see:

    async def handler(ctx, path_params, query_params, body) -> result

and signal failure by raising. A `None` result is an empty 200; anything
else is JSON-encoded.

Invariants:
    - Exactly one response per request: the handler result or one classified error
    - Non-JSON Content-Type is rejected with 415 before the body is read
    - Serialization happens before any byte is sent, so a failure is a clean 500
    - Error bodies are always {"code": int, "message": str}
    - One log line per failed request: debug for 4xx, error otherwise
"""

import asyncio
import binascii
import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from dvstore.api.context import RequestContext
from dvstore.core.errors import (
    BadRequestError, ClientCancelledError, UnsupportedMediaTypeError, classify,
)
from dvstore.infrastructure.telemetry import (
    inc_api_errors, observe_api_latency, span_name, tracer,
)
from dvstore.schemas.definition import ErrorResponse

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"

PathParams = Mapping[str, str]
QueryParams = Mapping[str, Sequence[str]]
HandlerFunc = Callable[[RequestContext, PathParams, QueryParams, bytes], Awaitable[Any]]

M = TypeVar("M", bound=BaseModel)


class ApiResponse(Response):
    """Response that logs, rather than raises, when the connection is gone."""

    def __init__(
        self, ctx: RequestContext, content: bytes = b"",
        status_code: int = 200, media_type: str | None = None,
    ):
        super().__init__(content, status_code=status_code, media_type=media_type)
        self.ctx = ctx

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except OSError as e:
            # Connection presumed broken; nothing left to retry.
            logger.error(
                "Failed writing api response", exc_info=e,
                extra=self.ctx.log_fields(status_code=self.status_code),
            )


def wrap(
    endpoint: str, handler: HandlerFunc, timeout: float | None = None,
) -> Callable[[Request], Awaitable[Response]]:
    """Adapt handler into a request endpoint with tracing, metrics and error writing."""

    async def serve(request: Request) -> Response:
        with observe_api_latency(endpoint), tracer.start_as_current_span(
            span_name(endpoint),
            attributes={"http.method": request.method, "http.target": request.url.path},
        ) as span:
            ctx = RequestContext(endpoint=endpoint, request=request, timeout=timeout)
            response = await _serve(ctx, request, handler)
            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))
            return response

    serve.__name__ = endpoint
    return serve


async def _serve(
    ctx: RequestContext, request: Request, handler: HandlerFunc,
) -> Response:
    content_type = request.headers.get("content-type", "")
    if content_type and JSON_MEDIA_TYPE not in content_type:
        return await write_error(ctx, UnsupportedMediaTypeError(content_type))

    try:
        body = await request.body()
    except Exception as e:
        return await write_error(ctx, e)

    query = {key: request.query_params.getlist(key) for key in request.query_params.keys()}
    deadline = asyncio.timeout(ctx.timeout or None)
    try:
        async with deadline:
            result = await handler(ctx, dict(request.path_params), query, body)
    except Exception as e:
        if deadline.expired():
            e = ClientCancelledError(e)
        return await write_error(ctx, e)

    return await write_response(ctx, result)


def encode_json(value: Any) -> bytes:
    """Serialize a handler result. Raises TypeError/ValueError if it cannot."""
    if isinstance(value, BaseModel):
        return value.model_dump_json().encode("utf-8")
    return json.dumps(value, allow_nan=False).encode("utf-8")


async def write_response(ctx: RequestContext, result: Any) -> Response:
    """200 with the JSON result, or an empty body for None."""
    if result is None:
        return ApiResponse(ctx)

    try:
        body = encode_json(result)
    except (TypeError, ValueError) as e:
        return await write_error(ctx, e)

    return ApiResponse(ctx, body, media_type=JSON_MEDIA_TYPE)


async def write_error(ctx: RequestContext, err: BaseException) -> Response:
    """Classify err, log it once, count it, and render the JSON error body."""
    classified = classify(err, cancelled=await ctx.cancelled())
    fields = ctx.log_fields(
        status_code=classified.status_code,
        response_message=classified.message,
        error=str(err),
        duration=ctx.duration(),
    )
    if classified.log_level == logging.DEBUG:
        logger.debug("Api 4xx response", extra=fields)
    else:
        logger.error("Api 5xx response", exc_info=classified.cause or err, extra=fields)

    inc_api_errors(ctx.endpoint, classified.status_code)

    return ApiResponse(
        ctx,
        ErrorResponse(**classified.to_response()).model_dump_json().encode("utf-8"),
        status_code=classified.status_code,
        media_type=JSON_MEDIA_TYPE,
    )


def unmarshal(body: bytes, model: type[M]) -> M:
    """Parse a JSON request body into model."""
    if not body:
        raise BadRequestError("empty request body", ValueError("empty request body"))
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise BadRequestError("failed parsing request body", e) from e


def hex_query(query: QueryParams, name: str) -> bytes | None:
    """Decode a 0x-hex query parameter, or None unless present exactly once."""
    values = query.get(name)
    if not values or len(values) != 1:
        return None
    value = values[0]

    try:
        return binascii.unhexlify(value.removeprefix("0x"))
    except ValueError as e:
        raise BadRequestError(
            f"invalid 0x-hex query parameter {name} [{value}]", e,
        ) from e


def hex_query_fixed(query: QueryParams, name: str, length: int) -> bytes:
    """Decode a required 0x-hex query parameter of exactly length bytes."""
    value = hex_query(query, name)
    if value is None:
        raise BadRequestError(f"missing 0x-hex query parameter {name}")
    if len(value) != length:
        raise BadRequestError(
            f"invalid length for 0x-hex query parameter {name}, expect {length} bytes",
        )
    return value
