"""
Unit Tests: session storage drivers and SessionManager
"""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, Mock

import pytest

from copperx_bot.config.config import Settings
from copperx_bot.session import store as store_module
from copperx_bot.session.models import AuthState, RateLimitEntry, SceneState, Session
from copperx_bot.session.store import (
    KEY_PREFIX,
    MemorySessionStore,
    PostgresSessionStore,
    RedisSessionStore,
    SessionManager,
    SqliteSessionStore,
    create_session_store,
    session_key,
)

VALUE = {"auth": None, "rate_limits": {}, "scene": None}


# ============================================================================
# SESSION KEYS AND MODEL
# ============================================================================

def test_session_key_prefers_user():
    assert session_key(1, 2) == "user:1"
    assert session_key(None, 2) == "chat:2"
    assert session_key(None, None) is None


def test_session_round_trips_through_dict():
    session = Session(
        auth=AuthState(is_authenticated=True, access_token="enc", expires_at=10.0, email="a@b.co"),
        rate_limits={"auth:1": RateLimitEntry(attempts=2, reset_at=99.0)},
        scene=SceneState(scene_id="transfer", state="enter_amount", data={"recipient": "a@b.co"}),
        preferences={"notifications_enabled": False},
        created_at=1.0,
        updated_at=2.0,
    )

    restored = Session.from_dict(json.loads(json.dumps(session.to_dict())))

    assert restored == session
    assert restored.notifications_enabled is False


def test_session_defaults():
    session = Session.from_dict(None)

    assert session.auth is None
    assert session.notifications_enabled is True
    session.set_preference("notifications_enabled", False)
    assert session.notifications_enabled is False


# ============================================================================
# MEMORY
# ============================================================================

@pytest.mark.asyncio
async def test_memory_store_get_set_delete(clock):
    store = MemorySessionStore(ttl=60, clock=clock)

    assert await store.get("user:1") is None
    await store.set("user:1", VALUE)
    assert await store.get("user:1") == VALUE

    await store.delete("user:1")
    assert await store.get("user:1") is None


@pytest.mark.asyncio
async def test_memory_store_expires_entries(clock):
    store = MemorySessionStore(ttl=60, clock=clock)
    await store.set("user:1", VALUE)

    clock.advance(61)

    assert await store.get("user:1") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_memory_store_does_not_share_mutable_state(clock):
    store = MemorySessionStore(ttl=60, clock=clock)
    value = {"data": [1]}
    await store.set("k", value)

    value["data"].append(2)

    assert await store.get("k") == {"data": [1]}


# ============================================================================
# SQLITE
# ============================================================================

@pytest.mark.asyncio
async def test_sqlite_store(tmp_path, clock):
    store = SqliteSessionStore(str(tmp_path / "sessions.db"), ttl=60, clock=clock)
    try:
        await store.set("user:1", VALUE)
        await store.set("user:1", {**VALUE, "preferences": {"notifications_enabled": False}})
        assert (await store.get("user:1"))["preferences"] == {"notifications_enabled": False}

        clock.advance(61)
        assert await store.get("user:1") is None

        await store.set("user:2", VALUE)
        await store.delete("user:2")
        assert await store.get("user:2") is None
    finally:
        await store.close()


# ============================================================================
# REDIS
# ============================================================================

@pytest.mark.asyncio
async def test_redis_store_uses_setex_with_ttl():
    client = Mock()
    client.setex = AsyncMock()
    client.get = AsyncMock(return_value=json.dumps(VALUE))
    client.delete = AsyncMock()
    client.aclose = AsyncMock()
    store = RedisSessionStore("redis://localhost", ttl=120, client=client)

    await store.set("user:1", VALUE)
    assert await store.get("user:1") == VALUE
    await store.delete("user:1")
    await store.close()

    client.setex.assert_awaited_once_with(KEY_PREFIX + "user:1", 120, json.dumps(VALUE))
    client.get.assert_awaited_once_with(KEY_PREFIX + "user:1")
    client.delete.assert_awaited_once_with(KEY_PREFIX + "user:1")
    client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_store_missing_key():
    client = Mock()
    client.get = AsyncMock(return_value=None)
    store = RedisSessionStore("redis://localhost", ttl=120, client=client)

    assert await store.get("user:1") is None


# ============================================================================
# POSTGRES
# ============================================================================

class FakePool:
    def __init__(self, row=None):
        self.conn = Mock()
        self.conn.execute = AsyncMock()
        self.conn.fetchrow = AsyncMock(return_value=row)
        self.close = AsyncMock()

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.mark.asyncio
async def test_postgres_store(monkeypatch, clock):
    pool = FakePool(row={"value": json.dumps(VALUE), "expires_at": clock() + 10})
    create_pool = AsyncMock(return_value=pool)
    monkeypatch.setattr(store_module.asyncpg, "create_pool", create_pool)
    store = PostgresSessionStore("postgresql://localhost/bot", ttl=60, clock=clock)

    assert await store.get("user:1") == VALUE
    await store.set("user:1", VALUE)
    await store.close()

    create_pool.assert_awaited_once()
    args = pool.conn.execute.await_args_list[-1].args
    assert args[1:] == ("user:1", json.dumps(VALUE), clock() + 60)
    pool.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_postgres_store_drops_expired_rows(monkeypatch, clock):
    pool = FakePool(row={"value": json.dumps(VALUE), "expires_at": clock() - 1})
    monkeypatch.setattr(store_module.asyncpg, "create_pool", AsyncMock(return_value=pool))
    store = PostgresSessionStore("postgresql://localhost/bot", ttl=60, clock=clock)

    assert await store.get("user:1") is None
    assert "DELETE" in pool.conn.execute.await_args_list[-1].args[0]


# ============================================================================
# FACTORY
# ============================================================================

def make_settings(**overrides):
    return Settings(_env_file=None, bot_token="123:abc", app_key="0123456789abcdef", **overrides)


def test_create_session_store_drivers(tmp_path):
    assert isinstance(create_session_store(make_settings(session_driver="memory")), MemorySessionStore)
    sqlite = create_session_store(make_settings(session_driver="sqlite", sqlite_filename=str(tmp_path / "s.db")))
    assert isinstance(sqlite, SqliteSessionStore)
    assert isinstance(
        create_session_store(make_settings(session_driver="postgres", postgres_dsn="postgresql://x/y")),
        PostgresSessionStore,
    )
    assert isinstance(
        create_session_store(make_settings(session_driver="redis", redis_url="redis://localhost:6379/0")),
        RedisSessionStore,
    )
    assert sqlite.ttl == make_settings().session_ttl


# ============================================================================
# SESSION MANAGER
# ============================================================================

@pytest.mark.asyncio
async def test_session_manager_creates_and_saves(clock):
    store = MemorySessionStore(ttl=60, clock=clock)
    manager = SessionManager(store, clock=clock)

    async with manager.session_for("user:1") as session:
        session.set_preference("notifications_enabled", False)
        clock.advance(5)

    saved = await store.get("user:1")
    assert saved["preferences"] == {"notifications_enabled": False}
    assert saved["updated_at"] == clock()


@pytest.mark.asyncio
async def test_session_manager_without_key(clock, caplog):
    manager = SessionManager(MemorySessionStore(ttl=60, clock=clock), clock=clock)

    async with manager.session_for(None) as session:
        assert session is None

    assert "without a session" in caplog.text


@pytest.mark.asyncio
async def test_session_manager_saves_when_handler_fails(clock):
    store = MemorySessionStore(ttl=60, clock=clock)
    manager = SessionManager(store, clock=clock)

    with pytest.raises(RuntimeError):
        async with manager.session_for("user:1") as session:
            session.rate_limits["api:1"] = RateLimitEntry(attempts=1, reset_at=clock() + 60)
            raise RuntimeError("boom")

    saved = await store.get("user:1")
    assert saved["rate_limits"]["api:1"]["attempts"] == 1
