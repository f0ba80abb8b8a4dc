from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from copperx_bot.errors import ConfigurationError

# Defaults
API_BASE_URL = "https://income-api.copperx.io/api"
API_TIMEOUT = 30
SESSION_TTL = 7 * 24 * 60 * 60
SESSION_DRIVERS = ("memory", "redis", "sqlite", "postgres")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
KYC_URL = "https://payout.copperx.io/app/kyc"
SUPPORT_URL = "https://t.me/copperxcommunity/2991"


class Settings(BaseSettings):
    """Bot configuration, read from the environment and a local .env file"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram
    bot_token: str = Field(..., min_length=1, description="Telegram Bot Token")

    # Copperx API
    api_base_url: str = Field(default=API_BASE_URL, description="Copperx API base URL")
    api_timeout: int = Field(default=API_TIMEOUT, gt=0, description="Request timeout (seconds)")
    app_key: str = Field(..., min_length=16, description="Key the stored access tokens are encrypted with")

    # Sessions
    session_driver: str = Field(default="memory", description="memory, redis, sqlite or postgres")
    session_ttl: int = Field(default=SESSION_TTL, gt=0, description="Session lifetime (seconds)")
    redis_url: Optional[str] = None
    postgres_dsn: Optional[str] = None
    sqlite_filename: str = ".sessions.db"

    # Deposit notifications
    pusher_key: Optional[str] = None
    pusher_cluster: Optional[str] = None

    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("session_driver")
    @classmethod
    def validate_session_driver(cls, v: str) -> str:
        v = v.lower()
        if v not in SESSION_DRIVERS:
            raise ValueError(f"'{v}' is not supported (use one of: {', '.join(SESSION_DRIVERS)})")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return v

    @model_validator(mode="after")
    def check_session_backend(self) -> "Settings":
        if self.session_driver == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is required when SESSION_DRIVER is redis")
        if self.session_driver == "postgres" and not self.postgres_dsn:
            raise ValueError("POSTGRES_DSN is required when SESSION_DRIVER is postgres")
        return self

    @property
    def notifications_configured(self) -> bool:
        return bool(self.pusher_key and self.pusher_cluster)


def _describe(error) -> str:
    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if not error["loc"]:
        return message
    return f"{str(error['loc'][0]).upper()}: {message}"


def load_settings(**overrides) -> Settings:
    """Build Settings, turning validation errors into one ConfigurationError"""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError([_describe(error) for error in e.errors()]) from e
