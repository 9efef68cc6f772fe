import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from gateway.core.config import Settings
from gateway.core.database import PoolRegistry, TargetPool
from gateway.core.dependencies import get_manager, get_settings
from gateway.core.execution import ExecutionManager
from gateway.core.schemas import BackendTarget
from gateway.main import app

INT4 = 23
TEXT = 25


# In-memory stand-ins for the async engine / connection / result the manager uses
class FakeRow:
    def __init__(self, mapping):
        self._mapping = mapping


class FakeCursor:
    def __init__(self, columns):
        self.description = [(name, oid, None, None, None, None, None) for name, oid in columns]


class FakeResult:
    def __init__(self, columns, rows):
        self.cursor = FakeCursor(columns)
        self._names = [name for name, _ in columns]
        self._rows = [FakeRow(dict(zip(self._names, row))) for row in rows]
        self.fetch_sizes = []

    def keys(self):
        return list(self._names)

    def fetchmany(self, size):
        self.fetch_sizes.append(size)
        return self._rows[:size]


class FakeConnection:
    def __init__(self, engine):
        self.engine = engine

    async def start(self):
        if self.engine.connect_delay:
            await asyncio.sleep(self.engine.connect_delay)
        if self.engine.connect_error is not None:
            raise self.engine.connect_error
        self.engine.opened += 1
        return self

    async def exec_driver_sql(self, statement, parameters=None):
        self.engine.calls.append((statement, parameters))
        if self.engine.delay:
            await asyncio.sleep(self.engine.delay)
        if self.engine.error is not None:
            raise self.engine.error
        if self.engine.responses:
            columns, rows = self.engine.responses.pop(0)
        else:
            columns, rows = self.engine.columns, self.engine.rows
        return FakeResult(columns, rows)

    async def invalidate(self):
        self.engine.invalidated += 1

    async def close(self):
        self.engine.closed += 1


class FakeEngine:
    def __init__(self, columns=(("id", INT4),), rows=(), responses=None):
        self.columns = list(columns)
        self.rows = list(rows)
        self.responses = list(responses or [])
        self.error = None
        self.connect_error = None
        self.delay = 0
        self.connect_delay = 0
        self.calls = []
        self.opened = 0
        self.closed = 0
        self.invalidated = 0
        self.disposed = False
        self.counts_at_dispose = None

    def connect(self):
        return FakeConnection(self)

    async def dispose(self):
        self.disposed = True
        self.counts_at_dispose = (self.opened, self.closed)


@pytest.fixture
def target():
    return BackendTarget(
        name="db",
        host="db.internal",
        port=5432,
        user="admin",
        password="S3cr3t",
        database="app",
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def manager(target, engine):
    registry = PoolRegistry({"db": TargetPool(target=target, engine=engine)})
    return ExecutionManager(registry, statement_timeout_ms=1000, client_timeout_grace_ms=500)


# Client
@pytest_asyncio.fixture(scope="function")
async def client(manager: ExecutionManager):
    app.dependency_overrides[get_manager] = lambda: manager
    app.dependency_overrides[get_settings] = lambda: Settings(TEXT_TRUNCATE=20)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
