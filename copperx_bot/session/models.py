import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class AuthState:
    is_authenticated: bool = False
    access_token: Optional[str] = None  # encrypted
    expires_at: Optional[float] = None
    email: Optional[str] = None
    user_id: Optional[str] = None
    organization_id: Optional[str] = None


@dataclass
class RateLimitEntry:
    attempts: int = 0
    reset_at: float = 0.0


@dataclass
class SceneState:
    scene_id: str
    state: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Session:
    """Conversation state for one Telegram user (or chat)"""
    auth: Optional[AuthState] = None
    rate_limits: Dict[str, RateLimitEntry] = field(default_factory=dict)
    scene: Optional[SceneState] = None
    preferences: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def touch(self, now: Optional[float] = None) -> None:
        self.updated_at = time.time() if now is None else now

    # Preferences

    @property
    def notifications_enabled(self) -> bool:
        return self.preferences.get("notifications_enabled") is not False

    def set_preference(self, key: str, value: Any) -> None:
        self.preferences[key] = value

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Session":
        if not data:
            return cls()

        auth = data.get("auth")
        scene = data.get("scene")
        now = time.time()
        return cls(
            auth=AuthState(**auth) if auth else None,
            rate_limits={
                key: RateLimitEntry(**entry)
                for key, entry in (data.get("rate_limits") or {}).items()
            },
            scene=SceneState(**scene) if scene else None,
            preferences=dict(data.get("preferences") or {}),
            created_at=data.get("created_at", now),
            updated_at=data.get("updated_at", now),
        )
