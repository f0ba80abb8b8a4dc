import asyncio
import json
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Tuple

import aiosqlite
import asyncpg
import redis.asyncio as redis

from copperx_bot.config.config import Settings
from copperx_bot.session.models import Session
from copperx_bot.utils.logger import logger

KEY_PREFIX = "copperx:session:"


def session_key(user_id: Optional[int] = None, chat_id: Optional[int] = None) -> Optional[str]:
    """Derive the storage key for an update's sender.

    Prefers the user, falls back to the chat and returns None when the
    update carries neither.
    """
    if user_id is not None:
        return f"user:{user_id}"
    if chat_id is not None:
        return f"chat:{chat_id}"
    return None


class SessionStore(ABC):
    """Async key-value storage for serialized sessions"""

    def __init__(self, ttl: int):
        self.ttl = ttl

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        pass


class MemorySessionStore(SessionStore):
    """In-process store; sessions are lost on restart"""

    def __init__(self, ttl: int, clock: Callable[[], float] = time.time):
        super().__init__(ttl)
        self._clock = clock
        self._data: Dict[str, Tuple[float, str]] = {}

    async def get(self, key):
        item = self._data.get(key)
        if item is None:
            return None
        expires_at, raw = item
        if expires_at <= self._clock():
            del self._data[key]
            return None
        return json.loads(raw)

    async def set(self, key, value):
        # Stored as JSON so callers never share mutable state with the store
        self._data[key] = (self._clock() + self.ttl, json.dumps(value))

    async def delete(self, key):
        self._data.pop(key, None)

    def __len__(self):
        return len(self._data)


class RedisSessionStore(SessionStore):
    def __init__(self, url: str, ttl: int, client: Optional[redis.Redis] = None):
        super().__init__(ttl)
        self._client = client or redis.from_url(url, decode_responses=True)

    async def get(self, key):
        raw = await self._client.get(KEY_PREFIX + key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key, value):
        await self._client.setex(KEY_PREFIX + key, self.ttl, json.dumps(value))

    async def delete(self, key):
        await self._client.delete(KEY_PREFIX + key)

    async def close(self):
        await self._client.aclose()


class SqliteSessionStore(SessionStore):
    def __init__(self, filename: str, ttl: int, clock: Callable[[], float] = time.time):
        super().__init__(ttl)
        self.filename = filename
        self._clock = clock
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def _connection(self) -> aiosqlite.Connection:
        async with self._lock:
            if self._conn is None:
                conn = await aiosqlite.connect(self.filename)
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS sessions (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        expires_at REAL NOT NULL
                    )
                    """
                )
                await conn.commit()
                self._conn = conn
        return self._conn

    async def get(self, key):
        conn = await self._connection()
        cursor = await conn.execute(
            "SELECT value, expires_at FROM sessions WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None

        value, expires_at = row
        if expires_at <= self._clock():
            await self.delete(key)
            return None
        return json.loads(value)

    async def set(self, key, value):
        conn = await self._connection()
        await conn.execute(
            """
            INSERT INTO sessions (key, value, expires_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at
            """,
            (key, json.dumps(value), self._clock() + self.ttl),
        )
        await conn.commit()

    async def delete(self, key):
        conn = await self._connection()
        await conn.execute("DELETE FROM sessions WHERE key = ?", (key,))
        await conn.commit()

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None


class PostgresSessionStore(SessionStore):
    def __init__(self, dsn: str, ttl: int, clock: Callable[[], float] = time.time):
        super().__init__(ttl)
        self.dsn = dsn
        self._clock = clock
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()

    async def _get_pool(self) -> asyncpg.Pool:
        async with self._lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(dsn=self.dsn, min_size=1, max_size=5)
                async with pool.acquire() as conn:
                    await conn.execute(
                        """
                        CREATE TABLE IF NOT EXISTS bot_sessions (
                            key TEXT PRIMARY KEY,
                            value TEXT NOT NULL,
                            expires_at DOUBLE PRECISION NOT NULL
                        )
                        """
                    )
                self._pool = pool
        return self._pool

    async def get(self, key):
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT value, expires_at FROM bot_sessions WHERE key = $1", key
            )
            if row is None:
                return None
            if row["expires_at"] <= self._clock():
                await conn.execute("DELETE FROM bot_sessions WHERE key = $1", key)
                return None
        return json.loads(row["value"])

    async def set(self, key, value):
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO bot_sessions (key, value, expires_at) VALUES ($1, $2, $3)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, expires_at = EXCLUDED.expires_at
                """,
                key, json.dumps(value), self._clock() + self.ttl,
            )

    async def delete(self, key):
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute("DELETE FROM bot_sessions WHERE key = $1", key)

    async def close(self):
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


def create_session_store(settings: Settings) -> SessionStore:
    """Pick the session backend named by SESSION_DRIVER"""
    driver = settings.session_driver
    ttl = settings.session_ttl

    # Settings validation guarantees a known driver and its connection URL
    if driver == "redis":
        store = RedisSessionStore(settings.redis_url, ttl)
    elif driver == "sqlite":
        store = SqliteSessionStore(settings.sqlite_filename, ttl)
    elif driver == "postgres":
        store = PostgresSessionStore(settings.postgres_dsn, ttl)
    else:
        store = MemorySessionStore(ttl)

    logger.info(f"Using {driver} session store (ttl={ttl}s)")
    return store


class SessionManager:
    """Loads a session before an update is handled and saves it afterwards"""

    def __init__(self, store: SessionStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock

    async def load(self, key: Optional[str]) -> Optional[Session]:
        if key is None:
            return None
        data = await self.store.get(key)
        if data is None:
            now = self._clock()
            return Session(created_at=now, updated_at=now)
        return Session.from_dict(data)

    async def save(self, key: Optional[str], session: Optional[Session]) -> None:
        if key is None or session is None:
            return
        session.touch(self._clock())
        await self.store.set(key, session.to_dict())

    @asynccontextmanager
    async def session_for(self, key: Optional[str]):
        if key is None:
            logger.warning("Update has no user or chat id; handling it without a session")
        session = await self.load(key)
        try:
            yield session
        finally:
            # Failed updates still count against rate limits
            await self.save(key, session)
