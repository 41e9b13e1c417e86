import pytest
import pytest_asyncio

from sqlsession.server.session.manager import SessionManager
from sqlsession.server.session.models import SessionConfig
from sqlsession.server.session.store import SQLiteSessionStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return SessionConfig(id_length=32, ttl_seconds=60, sweep_interval_seconds=0)


@pytest_asyncio.fixture
async def store(tmp_path, config, clock):
    session_store = SQLiteSessionStore(str(tmp_path / "sessions.db"), config, clock=clock)
    await session_store.init()
    yield session_store
    await session_store.close()


@pytest.fixture
def manager(store):
    return SessionManager(store)
