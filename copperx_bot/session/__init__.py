from copperx_bot.session.models import AuthState, RateLimitEntry, SceneState, Session
from copperx_bot.session.store import (
    MemorySessionStore,
    PostgresSessionStore,
    RedisSessionStore,
    SessionManager,
    SessionStore,
    SqliteSessionStore,
    create_session_store,
    session_key,
)

__all__ = [
    "AuthState",
    "MemorySessionStore",
    "PostgresSessionStore",
    "RateLimitEntry",
    "RedisSessionStore",
    "SceneState",
    "Session",
    "SessionManager",
    "SessionStore",
    "SqliteSessionStore",
    "create_session_store",
    "session_key",
]
