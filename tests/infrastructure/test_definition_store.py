"""Definition Store — SQLite-backed CRUD, set-add semantics and error mapping.

Invariants:
    - Each test runs against a fresh in-memory database
    - Store errors are ApiErrors: not found 404, exists 409, database 500
"""

import pytest
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from dvstore.core.errors import DatabaseError, DefinitionExistsError, DefinitionNotFoundError
from dvstore.infrastructure.database import DatabaseSessionManager
from dvstore.infrastructure.definition_store import SqlDefinitionStore
from dvstore.schemas.definition import Operator


@pytest.fixture
async def db():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
def store(db):
    return SqlDefinitionStore(db)


async def test_create_then_get(store, make_definition):
    definition = make_definition()
    await store.create(definition)
    assert await store.get(definition.config_hash_bytes()) == definition


async def test_get_missing_raises_not_found(store):
    with pytest.raises(DefinitionNotFoundError) as info:
        await store.get(b"\x00" * 32)
    assert info.value.config_hash == b"\x00" * 32


async def test_create_duplicate_raises_exists(store, make_definition):
    definition = make_definition()
    await store.create(definition)
    with pytest.raises(DefinitionExistsError):
        await store.create(definition)


async def test_create_logs_config_hash(store, make_definition, caplog):
    caplog.set_level("INFO", logger="dvstore.infrastructure.definition_store")
    definition = make_definition()
    await store.create(definition)
    (record,) = [r for r in caplog.records if r.getMessage() == "Definition created"]
    assert record.config_hash == definition.config_hash


async def test_delete_removes(store, make_definition):
    definition = make_definition()
    await store.create(definition)
    await store.delete(definition.config_hash_bytes())
    with pytest.raises(DefinitionNotFoundError):
        await store.get(definition.config_hash_bytes())


async def test_delete_missing_raises_not_found(store):
    with pytest.raises(DefinitionNotFoundError):
        await store.delete(b"\x01" * 32)


async def test_add_operator_appends_once(store, make_definition):
    definition = make_definition()
    await store.create(definition)
    key = definition.config_hash_bytes()
    operator = Operator(address="0x" + "ee" * 20, enr="enr:-new")

    await store.add_operator(key, operator)
    await store.add_operator(key, operator)

    stored = await store.get(key)
    assert stored.operators == [*definition.operators, operator]


async def test_add_operator_existing_member_is_noop(store, make_definition):
    definition = make_definition()
    await store.create(definition)
    key = definition.config_hash_bytes()

    await store.add_operator(key, definition.operators[0])
    assert (await store.get(key)).operators == definition.operators


async def test_add_operator_missing_raises_not_found(store):
    with pytest.raises(DefinitionNotFoundError):
        await store.add_operator(b"\x02" * 32, Operator(address="0x01"))


async def test_definitions_are_isolated_by_key(store, make_definition):
    first = make_definition(name="first")
    second = make_definition(name="second")
    await store.create(first)
    await store.create(second)
    await store.delete(first.config_hash_bytes())
    assert await store.get(second.config_hash_bytes()) == second


async def test_missing_table_maps_to_database_error(db, store):
    async with db.engine.begin() as conn:
        await conn.execute(text("DROP TABLE definitions"))
    with pytest.raises(DatabaseError) as info:
        await store.get(b"\x00" * 32)
    assert info.value.status_code == 500
    assert info.value.message == "Database execute failed"


async def test_health_check(db):
    assert await db.health_check() is True
    broken = DatabaseSessionManager("sqlite+aiosqlite:////nonexistent/dir/x.db")
    assert await broken.health_check() is False
    await broken.dispose()
