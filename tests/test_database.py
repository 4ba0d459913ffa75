"""Pool lifecycle: creation, schema bootstrap, shutdown."""

import asyncpg
import pytest
from fastapi.testclient import TestClient

from bodycomp.config import Settings
from bodycomp.core.database import close_pool, create_pool, ensure_schema
from bodycomp.core.directory import AccountDirectory
from bodycomp.core.statistics import StatisticsReader
from bodycomp.main import create_app
from conftest import TEST_SECRET, FakePool


@pytest.fixture()
def fake_pool(monkeypatch):
    pool = FakePool()
    calls = []

    async def fake_create_pool(**kwargs):
        calls.append(kwargs)
        return pool

    monkeypatch.setattr(asyncpg, "create_pool", fake_create_pool)
    pool.create_calls = calls
    return pool


def _executed_sql(pool) -> str:
    return "\n".join(c.args[0] for c in pool.conn.execute.call_args_list)


@pytest.mark.asyncio
async def test_create_pool_wiring(fake_pool):
    settings = Settings(
        _env_file=None, jwt_secret=TEST_SECRET,
        db_host="db.internal", db_port=6543, db_database="body", db_pool_size=4, db_timeout_seconds=2.0,
    )
    assert await create_pool(settings) is fake_pool
    kwargs = fake_pool.create_calls[0]
    assert kwargs["host"] == "db.internal"
    assert kwargs["port"] == 6543
    assert kwargs["database"] == "body"
    assert kwargs["max_size"] == 4
    assert kwargs["timeout"] == kwargs["command_timeout"] == 2.0


@pytest.mark.asyncio
async def test_ensure_schema_and_close(fake_pool):
    await ensure_schema(fake_pool, timeout=3.0)
    sql = _executed_sql(fake_pool)
    assert "CREATE TABLE IF NOT EXISTS users" in sql
    assert "CREATE TABLE IF NOT EXISTS body_stats" in sql
    assert fake_pool.timeouts == [3.0]
    assert fake_pool.released == 1

    await close_pool(fake_pool)
    fake_pool.close.assert_awaited_once()


def test_lifespan_opens_and_closes_pool(fake_pool, settings):
    app = create_app(settings)
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert isinstance(app.state.directory, AccountDirectory)
        assert app.state.directory.pool is fake_pool
        assert isinstance(app.state.statistics, StatisticsReader)
        fake_pool.close.assert_not_awaited()

    assert fake_pool.create_calls[0]["max_size"] == settings.db_pool_size
    sql = _executed_sql(fake_pool)
    assert "users" in sql and "body_stats" in sql
    fake_pool.close.assert_awaited_once()


def test_injected_storage_skips_pool(fake_pool, client):
    assert client.get("/").status_code == 200
    assert fake_pool.create_calls == []
