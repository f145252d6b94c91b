# app/config.py
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PATH = Path(__file__).resolve().parents[1] / ".env"

# values that have shipped as defaults somewhere and must never sign tokens
PLACEHOLDER_SECRETS = {"fallback_secret", "change-me", "changeme", "secret"}

DEFAULT_DATABASE_URL = "sqlite:///./careerpro.db"


class Settings(BaseSettings):
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    SESSION_TTL_DAYS: int = 30

    OTP_CODE_LENGTH: int = 6
    OTP_EXP_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 5

    DATABASE_URL: str = DEFAULT_DATABASE_URL

    RESEND_API_KEY: str = ""
    MAIL_FROM: str = "CareerPro AI <onboarding@resend.dev>"

    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("JWT_SECRET")
    @classmethod
    def _secret_must_be_real(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("JWT_SECRET must not be blank")
        if value.lower() in PLACEHOLDER_SECRETS:
            raise ValueError("JWT_SECRET is a placeholder value")
        return value

    @field_validator("OTP_CODE_LENGTH", "OTP_EXP_MINUTES", "OTP_MAX_ATTEMPTS", "SESSION_TTL_DAYS")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


def load_settings(**overrides) -> Settings:
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        logger.critical("Refusing to start: invalid configuration (%s)", fields or "unknown")
        raise ConfigurationError(f"Invalid configuration: {fields or exc}") from exc


@lru_cache
def get_settings() -> Settings:
    return load_settings()
