import sqlite3

import pytest

from sqlsession.server.session.errors import StorageFault
from sqlsession.server.session.models import SessionConfig
from sqlsession.server.session.store import SQLiteSessionStore


@pytest.mark.asyncio
async def test_init_creates_table_with_sized_id_column(store):
    with sqlite3.connect(store.db_path) as connection:
        row = connection.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = 'session'"
        ).fetchone()
    assert row is not None
    assert "varchar(33)" in row[0]
    assert "UNIQUE" in row[0]

    # running it again is harmless
    await store.init()


@pytest.mark.asyncio
async def test_upsert_then_load_live(store, clock):
    stored = await store.upsert("a" * 32, b"payload", store.now())
    assert stored is True

    row = await store.load_live("a" * 32)
    assert row is not None
    assert row.id == "a" * 32
    assert row.data == b"payload"
    assert row.stamp == int(clock.now)


@pytest.mark.asyncio
async def test_upsert_replaces_existing_row(store, clock):
    await store.upsert("a" * 32, b"first", store.now())
    clock.advance(5)
    await store.upsert("a" * 32, b"second", store.now())

    row = await store.load_live("a" * 32)
    assert row is not None
    assert row.data == b"second"
    assert row.stamp == int(clock.now)
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_load_live_ignores_missing_and_stale_rows(store, clock):
    assert await store.load_live("missing") is None

    await store.upsert("a" * 32, b"payload", store.now())
    clock.advance(60)
    assert await store.load_live("a" * 32) is not None

    clock.advance(1)
    assert await store.load_live("a" * 32) is None
    # stale rows stay until swept
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_sweep_expired_counts_only_stale_rows(store, clock):
    for index in range(3):
        await store.upsert(f"old-{index}", b"", store.now())
    clock.advance(30)
    await store.upsert("fresh", b"", store.now())
    clock.advance(31)

    assert await store.sweep_expired() == 3
    assert await store.count() == 1
    assert await store.load_live("fresh") is not None
    assert await store.sweep_expired() == 0


@pytest.mark.asyncio
async def test_delete_removes_row(store):
    await store.upsert("a" * 32, b"", store.now())
    assert await store.delete("a" * 32) is True
    assert await store.delete("a" * 32) is False
    assert await store.count() == 0
    assert await store.load_live("a" * 32) is None


@pytest.mark.asyncio
async def test_storage_faults_fail_open(tmp_path, config):
    # table never created, so every statement fails
    store = SQLiteSessionStore(str(tmp_path / "broken.db"), config)

    assert await store.load_live("a" * 32) is None
    assert await store.upsert("a" * 32, b"", store.now()) is False
    assert await store.sweep_expired() == 0
    assert await store.delete("a" * 32) is False
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_init_reports_unusable_database(tmp_path, config):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    store = SQLiteSessionStore(str(blocker / "sessions.db"), config)

    with pytest.raises((StorageFault, OSError)):
        await store.init()


def test_db_path_gets_db_suffix(tmp_path):
    store = SQLiteSessionStore(str(tmp_path / "sessions"), SessionConfig())
    assert store.db_path.endswith("sessions.db")


@pytest.mark.asyncio
async def test_custom_table_name(tmp_path, clock):
    config = SessionConfig(id_length=8, table="web_sessions")
    store = SQLiteSessionStore(str(tmp_path / "custom.db"), config, clock=clock)
    await store.init()
    await store.upsert("abcdefgh", b"x", store.now())

    with sqlite3.connect(store.db_path) as connection:
        count = connection.execute("SELECT COUNT(*) FROM web_sessions").fetchone()[0]
    assert count == 1
