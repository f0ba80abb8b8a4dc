import math
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from copperx_bot.session.models import RateLimitEntry, Session
from copperx_bot.utils.logger import logger

DEFAULT_LIMIT_MESSAGE = (
    "⚠️ *Rate Limit Exceeded*\n\n"
    "You've reached the maximum number of attempts. Please try again in {reset_time}."
)


@dataclass(frozen=True)
class RateLimitConfig:
    key: str
    max_attempts: int
    decay_seconds: int
    message: Optional[str] = None

    def for_user(self, user_id) -> "RateLimitConfig":
        """Same policy, counted separately for one user"""
        return replace(self, key=f"{self.key}:{user_id}")


@dataclass(frozen=True)
class RateLimitInfo:
    attempts: int
    remaining: int
    exceeds: bool
    reset_at: float


class RateLimits:
    AUTH = RateLimitConfig(
        key="auth",
        max_attempts=5,
        decay_seconds=60,
        message=(
            "⚠️ *Too Many Authentication Attempts*\n\n"
            "For security reasons, please wait {reset_time} before trying again."
        ),
    )
    OTP_VERIFY = RateLimitConfig(
        key="otp_verify",
        max_attempts=3,
        decay_seconds=60,
        message=(
            "⚠️ *Too Many OTP Attempts*\n\n"
            "You've made too many incorrect OTP attempts. Please wait {reset_time} before trying again."
        ),
    )
    SENSITIVE_OPS = RateLimitConfig(
        key="sensitive_ops",
        max_attempts=10,
        decay_seconds=3600,
        message=(
            "⚠️ *Operation Limit Reached*\n\n"
            "You've reached the maximum number of sensitive operations allowed per hour. "
            "Please try again in {reset_time}."
        ),
    )
    API = RateLimitConfig(
        key="api",
        max_attempts=30,
        decay_seconds=60,
        message=(
            "⚠️ *Too Many Requests*\n\n"
            "You're making too many requests too quickly. Please slow down and try again in {reset_time}."
        ),
    )


class RateLimiter:
    """Fixed-window attempt counter stored in the user's session.

    Every attempt inside `decay_seconds` of the window start shares one
    counter; once the window has passed the counter starts from zero.
    Callers should check first and increment only when the action goes ahead.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def _entry(self, session: Session, config: RateLimitConfig) -> RateLimitEntry:
        now = self._clock()
        entry = session.rate_limits.get(config.key)
        if entry is None or entry.reset_at <= now:
            entry = RateLimitEntry(attempts=0, reset_at=now + config.decay_seconds)
            session.rate_limits[config.key] = entry
        return entry

    @staticmethod
    def _info(entry: RateLimitEntry, config: RateLimitConfig) -> RateLimitInfo:
        return RateLimitInfo(
            attempts=entry.attempts,
            remaining=max(0, config.max_attempts - entry.attempts),
            exceeds=entry.attempts >= config.max_attempts,
            reset_at=entry.reset_at,
        )

    def check(self, session: Optional[Session], config: RateLimitConfig) -> RateLimitInfo:
        if session is None:
            logger.warning(f"No session available for rate limit '{config.key}'; allowing request")
            return RateLimitInfo(attempts=0, remaining=config.max_attempts, exceeds=False, reset_at=0)
        return self._info(self._entry(session, config), config)

    def increment(self, session: Optional[Session], config: RateLimitConfig) -> RateLimitInfo:
        if session is None:
            return RateLimitInfo(attempts=0, remaining=config.max_attempts, exceeds=False, reset_at=0)
        entry = self._entry(session, config)
        entry.attempts += 1
        return self._info(entry, config)

    def is_limited(self, session: Optional[Session], config: RateLimitConfig) -> bool:
        return self.check(session, config).exceeds

    def clear(self, session: Optional[Session], key: str) -> None:
        if session is not None:
            session.rate_limits.pop(key, None)

    def clear_all(self, session: Optional[Session]) -> None:
        if session is not None:
            session.rate_limits.clear()

    def time_remaining(self, session: Optional[Session], key: str) -> int:
        """Whole seconds until the window for `key` resets"""
        if session is None:
            return 0
        entry = session.rate_limits.get(key)
        if entry is None:
            return 0
        return max(0, math.ceil(entry.reset_at - self._clock()))

    def time_remaining_text(self, session: Optional[Session], key: str) -> Optional[str]:
        seconds = self.time_remaining(session, key)
        if seconds <= 0:
            return None
        if seconds < 60:
            return f"{seconds} second{'s' if seconds != 1 else ''}"
        minutes = math.ceil(seconds / 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"

    def limit_message(self, session: Optional[Session], config: RateLimitConfig) -> str:
        reset_time = self.time_remaining_text(session, config.key) or "soon"
        return (config.message or DEFAULT_LIMIT_MESSAGE).format(reset_time=reset_time)
