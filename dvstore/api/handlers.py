"""Definition Handlers — get, delete, create and add-operator over a DefinitionRepository.

Invariants:
    - The record key is the config_hash query parameter: 0x-hex, exactly 32 bytes
    - Handlers parse and validate, then make exactly one store call
    - add_operator does not verify the operator's own signatures
"""

from dvstore.api.adapter import (
    HandlerFunc, PathParams, QueryParams, hex_query, hex_query_fixed, unmarshal,
)
from dvstore.api.context import RequestContext
from dvstore.core.errors import BadRequestError
from dvstore.core.repository_protocols import DefinitionRepository
from dvstore.schemas.definition import (
    HASH_LENGTH, AddOperatorRequest, Definition, DefinitionVerificationError,
    decode_hex,
)

CONFIG_HASH = "config_hash"


def config_hash_query(query: QueryParams) -> bytes:
    if hex_query(query, CONFIG_HASH) is None:
        raise BadRequestError("Missing config_hash")
    return hex_query_fixed(query, CONFIG_HASH, HASH_LENGTH)


def get_definition(store: DefinitionRepository) -> HandlerFunc:
    async def handle(
        ctx: RequestContext, params: PathParams, query: QueryParams, body: bytes,
    ) -> Definition:
        return await store.get(config_hash_query(query))

    return handle


def delete_definition(store: DefinitionRepository) -> HandlerFunc:
    async def handle(
        ctx: RequestContext, params: PathParams, query: QueryParams, body: bytes,
    ) -> None:
        await store.delete(config_hash_query(query))

    return handle


def create_definition(store: DefinitionRepository) -> HandlerFunc:
    async def handle(
        ctx: RequestContext, params: PathParams, query: QueryParams, body: bytes,
    ) -> None:
        definition = unmarshal(body, Definition)

        try:
            definition.verify_hashes()
        except DefinitionVerificationError as e:
            raise BadRequestError("Invalid definition hash", e) from e

        try:
            definition.verify_signatures()
        except DefinitionVerificationError as e:
            raise BadRequestError("Invalid definition signature", e) from e

        await store.create(definition)

    return handle


def add_operator(store: DefinitionRepository) -> HandlerFunc:
    async def handle(
        ctx: RequestContext, params: PathParams, query: QueryParams, body: bytes,
    ) -> None:
        config_hash = config_hash_query(query)
        req = unmarshal(body, AddOperatorRequest)

        try:
            decode_hex(req.fork_version)
        except ValueError as e:
            raise BadRequestError("Invalid fork version hex", e) from e

        await store.add_operator(config_hash, req.operator())

    return handle
