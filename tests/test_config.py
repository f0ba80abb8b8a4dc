"""
Unit Tests: Settings loading and validation
"""

import pytest

from copperx_bot.config.config import API_BASE_URL, SESSION_TTL, Settings, load_settings
from copperx_bot.errors import ConfigurationError

ENV_VARS = (
    "BOT_TOKEN", "API_BASE_URL", "API_TIMEOUT", "APP_KEY", "SESSION_DRIVER", "SESSION_TTL",
    "REDIS_URL", "POSTGRES_DSN", "SQLITE_FILENAME", "PUSHER_KEY", "PUSHER_CLUSTER", "LOG_LEVEL",
)

REQUIRED = {"bot_token": "123:abc", "app_key": "0123456789abcdef"}


@pytest.fixture
def env(monkeypatch, tmp_path):
    """A clean environment with no .env file in reach"""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def problems_for(**overrides):
    with pytest.raises(ConfigurationError) as exc:
        load_settings(**{**REQUIRED, **overrides})
    return exc.value.problems


def test_defaults(env):
    settings = load_settings(**REQUIRED)

    assert settings.api_base_url == API_BASE_URL
    assert settings.session_driver == "memory"
    assert settings.session_ttl == SESSION_TTL
    assert settings.log_level == "INFO"
    assert not settings.notifications_configured


def test_required_values_are_reported_together(env):
    with pytest.raises(ConfigurationError) as exc:
        load_settings()

    assert [p.split(":")[0] for p in exc.value.problems] == ["BOT_TOKEN", "APP_KEY"]


def test_reads_environment(env):
    env.setenv("BOT_TOKEN", "123:abc")
    env.setenv("APP_KEY", "0123456789abcdef")
    env.setenv("API_BASE_URL", "https://api.example.com/api/")
    env.setenv("API_TIMEOUT", "10")
    env.setenv("SESSION_DRIVER", "Redis")
    env.setenv("REDIS_URL", "redis://localhost:6379/0")
    env.setenv("PUSHER_KEY", "key")
    env.setenv("PUSHER_CLUSTER", "ap1")

    settings = load_settings()

    assert settings.bot_token == "123:abc"
    assert settings.api_base_url == "https://api.example.com/api"
    assert settings.api_timeout == 10
    assert settings.session_driver == "redis"
    assert settings.notifications_configured


def test_reads_dotenv_file(env, tmp_path):
    (tmp_path / ".env").write_text("BOT_TOKEN=from-file\nAPP_KEY=0123456789abcdef\n")

    settings = load_settings()

    assert settings.bot_token == "from-file"
    assert settings.app_key == "0123456789abcdef"


def test_environment_overrides_dotenv_file(env, tmp_path):
    (tmp_path / ".env").write_text("BOT_TOKEN=from-file\nAPP_KEY=0123456789abcdef\n")
    env.setenv("BOT_TOKEN", "from-env")

    assert load_settings().bot_token == "from-env"


def test_non_integer_setting_is_rejected(env):
    env.setenv("SESSION_TTL", "a week")

    problems = problems_for()

    assert len(problems) == 1
    assert problems[0].startswith("SESSION_TTL:")


def test_settings_is_a_pydantic_settings_model(env):
    assert isinstance(load_settings(**REQUIRED), Settings)


@pytest.mark.parametrize("overrides,field,detail", [
    ({"app_key": "short"}, "APP_KEY", "16"),
    ({"api_base_url": "ftp://nope"}, "API_BASE_URL", "http(s) URL"),
    ({"api_timeout": 0}, "API_TIMEOUT", "greater than 0"),
    ({"session_ttl": -1}, "SESSION_TTL", "greater than 0"),
    ({"session_driver": "mongo"}, "SESSION_DRIVER", "'mongo' is not supported"),
    ({"log_level": "chatty"}, "LOG_LEVEL", "must be one of"),
])
def test_invalid_values(env, overrides, field, detail):
    problems = problems_for(**overrides)

    assert len(problems) == 1
    assert problems[0].startswith(f"{field}:")
    assert detail in problems[0]


@pytest.mark.parametrize("driver,problem", [
    ("redis", "REDIS_URL is required when SESSION_DRIVER is redis"),
    ("postgres", "POSTGRES_DSN is required when SESSION_DRIVER is postgres"),
])
def test_session_backend_needs_connection_url(env, driver, problem):
    assert problems_for(session_driver=driver) == [problem]


def test_log_level_is_normalised(env):
    assert load_settings(log_level="debug", **REQUIRED).log_level == "DEBUG"
