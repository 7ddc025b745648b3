"""
Environment configuration for the evidence management backend.

All deployment values are read here through Pydantic Settings, typed and
validated once at import time; ``settings.py`` only maps them onto
Django's setting names.  A malformed value (``JWT_ACCESS_MINUTES=abc``)
fails with a ``ValidationError`` naming the variable.
"""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Signing key used only when DEBUG is on and none is configured.
DEV_SECRET_KEY = "django-insecure-dev-only-change-me"


class EnvSettings(BaseSettings):
    """Deployment values loaded from environment variables (or ``.env``)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # DJANGO CORE
    # ===========================================
    DJANGO_SECRET_KEY: str | None = Field(
        default=None,
        description="Signing key; required whenever DJANGO_DEBUG is off.",
    )
    DJANGO_DEBUG: bool = False
    DJANGO_ALLOWED_HOSTS: str = "localhost,127.0.0.1"

    # ===========================================
    # DATABASE (PostgreSQL when POSTGRES_DB is set, SQLite otherwise)
    # ===========================================
    POSTGRES_DB: str = ""
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = Field(default=5432, ge=1, le=65535)

    # ===========================================
    # JWT
    # ===========================================
    JWT_ACCESS_MINUTES: int = Field(default=30, gt=0)
    JWT_REFRESH_DAYS: int = Field(default=1, gt=0)

    # ===========================================
    # ACCESS POLICY & AUDIT TRAIL
    # ===========================================
    ACCESS_POLICY_HIDE_EXISTENCE: bool = False
    ACCESS_POLICY_TRUSTED_PROXY_COUNT: int = Field(
        default=0,
        ge=0,
        description="Reverse proxies in front of the app whose X-Forwarded-For entries are trusted.",
    )
    AUDIT_DETAIL_TEXT_LIMIT: int = Field(default=255, gt=0)

    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level '{v}'")
        return level

    @model_validator(mode="after")
    def require_secret_key_outside_debug(self) -> EnvSettings:
        if not self.DJANGO_SECRET_KEY:
            if not self.DJANGO_DEBUG:
                raise ValueError("DJANGO_SECRET_KEY must be set when DJANGO_DEBUG is off")
            self.DJANGO_SECRET_KEY = DEV_SECRET_KEY
        return self

    @property
    def allowed_hosts(self) -> list[str]:
        return [host.strip() for host in self.DJANGO_ALLOWED_HOSTS.split(",") if host.strip()]


env = EnvSettings()
