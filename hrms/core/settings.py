"""Runtime configuration, read from the environment (and ``.env``) once per process."""
from __future__ import annotations

import json
from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, EnvSettingsSource, SettingsConfigDict

DEFAULT_ORIGINS = ["http://localhost", "http://localhost:3000", "http://127.0.0.1:3000"]
EMAIL_PROVIDERS = {"resend", "postmark", "smtp", "disabled", "none"}

# Fields that accept a plain comma-separated string where pydantic-settings expects JSON.
_CSV_FIELDS = {"allow_origins"}


class _CsvTolerantSource:
    def decode_complex_value(self, field_name, field, value):  # type: ignore[override]
        try:
            return super().decode_complex_value(field_name, field, value)
        except json.JSONDecodeError:
            if field_name in _CSV_FIELDS:
                return value
            raise


class _EnvSource(_CsvTolerantSource, EnvSettingsSource):
    pass


class _DotEnvSource(_CsvTolerantSource, DotEnvSettingsSource):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    project_name: str = "HRMS Portal API"
    project_version: str = "1.0.0"
    environment: str = Field(default="development", validation_alias=AliasChoices("ENV", "ENVIRONMENT"))
    git_sha: str | None = None
    log_level: str = "INFO"

    # Clock-in times and late marks are evaluated in this zone; timestamps are stored in UTC.
    attendance_timezone: str = "Asia/Kolkata"

    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/hrms"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a pooled connection is recycled")

    jwt_secret: str = "change_me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    login_max_attempts: int = 10
    login_window_minutes: int = 15
    verification_token_hours: int = 24
    reset_token_minutes: int = 60

    allow_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_ORIGINS))

    app_base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("APP_BASE_URL", "FRONTEND_BASE_URL"),
    )
    email_provider: str = "disabled"
    email_api_key: str | None = None
    email_from: str | None = None
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True

    @field_validator("allow_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            origins = [part.strip() for part in value.split(",") if part.strip()]
            return origins or list(DEFAULT_ORIGINS)
        return value or list(DEFAULT_ORIGINS)

    @field_validator("email_provider")
    @classmethod
    def check_email_provider(cls, value: str) -> str:
        provider = (value or "disabled").strip().lower()
        if provider not in EMAIL_PROVIDERS:
            raise ValueError(f"Unsupported email provider: {value}")
        return provider

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings):
        return init_settings, _EnvSource(settings_cls), _DotEnvSource(settings_cls), file_secret_settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
