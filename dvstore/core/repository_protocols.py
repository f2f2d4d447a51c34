"""Boundary Protocols — contract between the HTTP handlers and persistence.

Invariants:
    - Handlers depend on DefinitionRepository only, never on SQLAlchemy
    - Lookup misses raise DefinitionNotFoundError (core/errors.py)
    - Implementations are safe for concurrent use by many request tasks

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
"""

from typing import Protocol

from dvstore.schemas.definition import Definition, Operator


class DefinitionRepository(Protocol):
    """Definition persistence keyed by config hash — implemented by infrastructure."""
    async def get(self, config_hash: bytes) -> Definition: ...
    async def delete(self, config_hash: bytes) -> None: ...
    async def create(self, definition: Definition) -> None: ...
    async def add_operator(self, config_hash: bytes, operator: Operator) -> None: ...
