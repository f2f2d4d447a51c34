"""Endpoint Table — declarative (name, method, path, handler) bindings for the definition API.

Invariants:
    - Built once per app; Endpoint is immutable
    - Every endpoint is registered through adapter.wrap, never as a bare route
    - Routing is exact method + templated path; misses fall to the router's 404/405
"""

from dataclasses import dataclass

from fastapi import APIRouter

from dvstore.api import handlers
from dvstore.api.adapter import HandlerFunc, wrap
from dvstore.core.repository_protocols import DefinitionRepository


@dataclass(frozen=True)
class Endpoint:
    name: str
    method: str
    path: str
    handler: HandlerFunc


def definition_endpoints(store: DefinitionRepository) -> list[Endpoint]:
    return [
        Endpoint("get_definition", "GET", "/dv/{config_hash}", handlers.get_definition(store)),
        Endpoint("delete_definition", "DELETE", "/dv/{config_hash}", handlers.delete_definition(store)),
        Endpoint("create_definition", "POST", "/dv", handlers.create_definition(store)),
        Endpoint("add_operator", "PUT", "/dv/{config_hash}", handlers.add_operator(store)),
    ]


def build_router(
    endpoints: list[Endpoint], request_timeout: float | None = None,
) -> APIRouter:
    """Register each endpoint, wrapped, on a fresh router."""
    router = APIRouter(tags=["definitions"])
    for e in endpoints:
        router.add_api_route(
            e.path,
            wrap(e.name, e.handler, timeout=request_timeout),
            methods=[e.method],
            name=e.name,
        )
    return router


def new_router(
    store: DefinitionRepository, request_timeout: float | None = None,
) -> APIRouter:
    return build_router(definition_endpoints(store), request_timeout)
