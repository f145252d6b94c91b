from __future__ import annotations

import pytest

from app.config import load_settings
from app.main import create_app
from app.services.errors import ConfigurationError


def test_missing_secret_refuses_to_load(monkeypatch) -> None:
    monkeypatch.delenv("JWT_SECRET", raising=False)

    with pytest.raises(ConfigurationError, match="JWT_SECRET"):
        load_settings(_env_file=None)


@pytest.mark.parametrize("secret", ["", "   ", "fallback_secret", "change-me"])
def test_blank_or_placeholder_secret_is_rejected(secret: str) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(JWT_SECRET=secret, _env_file=None)


def test_defaults_match_login_policy() -> None:
    settings = load_settings(JWT_SECRET="s3cret-for-tests", _env_file=None)

    assert settings.OTP_CODE_LENGTH == 6
    assert settings.OTP_EXP_MINUTES == 10
    assert settings.SESSION_TTL_DAYS == 30
    assert settings.JWT_ALGORITHM == "HS256"
    assert settings.cors_origins() == ["http://localhost:3000", "http://127.0.0.1:3000"]


def test_settings_read_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("OTP_MAX_ATTEMPTS", "3")

    settings = load_settings(_env_file=None)

    assert settings.JWT_SECRET == "from-env"
    assert settings.OTP_MAX_ATTEMPTS == 3


def test_create_app_builds_sqlite_store(tmp_path) -> None:
    settings = load_settings(
        JWT_SECRET="s3cret-for-tests",
        DATABASE_URL=f"sqlite:///{tmp_path / 'app.sqlite3'}",
        _env_file=None,
    )

    app = create_app(settings)

    assert (tmp_path / "app.sqlite3").exists()
    assert app.state.otp.ttl.total_seconds() == 600
