from __future__ import annotations

import pytest
import structlog
from pydantic import ValidationError

from greythr.core.config import DEFAULT_JWT_SECRET, DEV_CORS_ORIGINS, Settings
from greythr.core.errors import NotFound
from greythr.core.logging import configure_logging, get_logger
from greythr.core.monitoring import drop_client_errors


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("GREYTHR_DATABASE_URL", "sqlite:///./other.db")
    monkeypatch.setenv("GREYTHR_ACCESS_TOKEN_EXPIRE_MINUTES", "15")

    settings = Settings()

    assert settings.database_url == "sqlite:///./other.db"
    assert settings.access_token_expire_minutes == 15


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.jwt_algorithm == "HS256"
    assert settings.access_token_expire_minutes == 7 * 24 * 60
    assert not settings.is_production


def test_production_refuses_default_secret():
    with pytest.raises(ValidationError):
        Settings(env="production", jwt_secret=DEFAULT_JWT_SECRET)


def test_production_accepts_explicit_secret():
    settings = Settings(env="production", jwt_secret="s3cret", cors_origins="https://hr.example.com")

    assert settings.is_production
    assert settings.cors_origin_list == ["https://hr.example.com"]


def test_cors_origins_split_and_dev_fallback():
    assert Settings(cors_origins="https://a.example.com, https://b.example.com").cors_origin_list == [
        "https://a.example.com",
        "https://b.example.com",
    ]
    assert Settings(env="dev", cors_origins="").cors_origin_list == DEV_CORS_ORIGINS
    assert Settings(env="production", jwt_secret="s3cret", cors_origins="").cors_origin_list == []


def test_settings_are_frozen():
    settings = Settings()

    with pytest.raises(ValidationError):
        settings.port = 9000


def test_sentry_filter_drops_client_errors():
    event = {"message": "boom"}

    assert drop_client_errors(event, {"exc_info": (NotFound, NotFound(), None)}) is None
    assert drop_client_errors(event, {"exc_info": (RuntimeError, RuntimeError(), None)}) is event
    assert drop_client_errors(event, {}) is event


@pytest.fixture
def restore_logging():
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)


def test_logs_go_to_stderr_not_stdout(capsys, restore_logging):
    configure_logging("INFO")

    get_logger("greythr.test").info("employee_created", employee_id="EMP0001")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert '"event": "employee_created"' in captured.err
