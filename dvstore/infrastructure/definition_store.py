"""Definition Store — SQL implementation of DefinitionRepository.

Invariants:
    - Keyed by raw config hash bytes (DefinitionRecord.config_hash)
    - Misses raise DefinitionNotFoundError; duplicates raise DefinitionExistsError
    - add_operator is a set-add: an operator equal to an existing one is not appended
    - Each operation is one transaction; no retries here

Design Decisions:
    - add_operator reads with FOR UPDATE (no-op on SQLite, whose writes are serialized)
      and reassigns the document so the JSON column change is flushed
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from dvstore.core.errors import DefinitionExistsError, DefinitionNotFoundError
from dvstore.infrastructure.database import DatabaseSessionManager
from dvstore.models.definition import DefinitionRecord
from dvstore.schemas.definition import Definition, Operator

logger = logging.getLogger(__name__)


class SqlDefinitionStore:
    """Definition persistence over a DatabaseSessionManager."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get(self, config_hash: bytes) -> Definition:
        async with self._db.session() as session:
            result = await session.execute(
                select(DefinitionRecord.document).where(
                    DefinitionRecord.config_hash == config_hash,
                ),
            )
            document = result.scalar_one_or_none()
        if document is None:
            raise DefinitionNotFoundError(config_hash)
        return Definition.model_validate(document)

    async def delete(self, config_hash: bytes) -> None:
        async with self._db.session() as session:
            result = await session.execute(
                delete(DefinitionRecord).where(
                    DefinitionRecord.config_hash == config_hash,
                ),
            )
            await session.commit()
        if result.rowcount == 0:
            raise DefinitionNotFoundError(config_hash)

    async def create(self, definition: Definition) -> None:
        config_hash = definition.config_hash_bytes()
        async with self._db.session() as session:
            session.add(DefinitionRecord(
                config_hash=config_hash,
                document=definition.model_dump(mode="json"),
            ))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DefinitionExistsError(config_hash, e) from e
        logger.info(
            "Definition created", extra={"config_hash": "0x" + config_hash.hex()},
        )

    async def add_operator(self, config_hash: bytes, operator: Operator) -> None:
        async with self._db.session() as session:
            result = await session.execute(
                select(DefinitionRecord)
                .where(DefinitionRecord.config_hash == config_hash)
                .with_for_update(),
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise DefinitionNotFoundError(config_hash)

            entry = operator.model_dump(mode="json")
            operators = list(record.document.get("operators") or [])
            if entry not in operators:
                operators.append(entry)
                record.document = {**record.document, "operators": operators}
            await session.commit()
