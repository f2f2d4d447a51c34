"""API test fixtures — SQLite-backed store, a recording fake store, and httpx clients.

Invariants:
    - Every test gets a fresh in-memory SQLite database (StaticPool: one shared connection)
    - Clients talk to the ASGI app in-process; lifespan is not run
    - RecordingStore logs every call so tests can assert handlers never ran

Design Decisions:
    - Concurrency tests use file_store (file-backed SQLite, real pool) instead of the
      shared in-memory connection
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from dvstore.config import Settings
from dvstore.core.errors import DefinitionExistsError, DefinitionNotFoundError
from dvstore.infrastructure.database import DatabaseSessionManager
from dvstore.infrastructure.definition_store import SqlDefinitionStore
from dvstore.main import create_app


class RecordingStore:
    """In-memory DefinitionRepository that records every call."""

    def __init__(self):
        self.calls = []
        self.definitions = {}

    async def get(self, config_hash):
        self.calls.append(("get", config_hash))
        if config_hash not in self.definitions:
            raise DefinitionNotFoundError(config_hash)
        return self.definitions[config_hash]

    async def delete(self, config_hash):
        self.calls.append(("delete", config_hash))
        if self.definitions.pop(config_hash, None) is None:
            raise DefinitionNotFoundError(config_hash)

    async def create(self, definition):
        self.calls.append(("create", definition))
        key = definition.config_hash_bytes()
        if key in self.definitions:
            raise DefinitionExistsError(key)
        self.definitions[key] = definition

    async def add_operator(self, config_hash, operator):
        self.calls.append(("add_operator", config_hash, operator))
        if config_hash not in self.definitions:
            raise DefinitionNotFoundError(config_hash)
        definition = self.definitions[config_hash]
        if operator not in definition.operators:
            definition.operators.append(operator)


def _settings() -> Settings:
    return Settings(database_address="sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def db():
    manager = DatabaseSessionManager(
        "sqlite+aiosqlite:///:memory:", poolclass=StaticPool,
    )
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
def store(db):
    return SqlDefinitionStore(db)


@pytest.fixture
async def client(store, db):
    """FastAPI test client over the SQLite store."""
    app = create_app(_settings(), store=store)
    app.state.db = db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
async def recording_client(recording_store):
    """FastAPI test client over the RecordingStore."""
    app = create_app(_settings(), store=recording_store)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


@pytest.fixture
async def file_store(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'dvstore.db'}")
    await manager.create_schema()
    yield SqlDefinitionStore(manager)
    await manager.dispose()
