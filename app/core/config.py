"""Application configuration using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or inconsistent."""


class AppSettings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RELAY_",
        extra="ignore",
    )

    environment: Literal["local", "test", "staging", "production"] = Field(
        default="local",
        validation_alias="env",
    )
    service_name: str = Field(default="membership-relay")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4000)
    permit_api_url: str = Field(default="https://api.permit.io")
    permit_token: str | None = Field(default=None)
    permit_project: str = Field(default="default")
    permit_environment: str = Field(default="production")
    permit_timeout_seconds: float = Field(default=10.0, gt=0)
    redis_url: str | None = Field(default=None)
    event_key_prefix: str = Field(default="event")
    event_ttl_seconds: int = Field(default=86400, ge=1)
    retry_interval_seconds: float = Field(default=300.0, gt=0)
    tenant: str = Field(default="default", min_length=1)
    webhook_secret: str | None = Field(default=None)
    acknowledge_pending_deliveries: bool = Field(default=False)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("event_key_prefix")
    @classmethod
    def strip_key_separator(cls, value: str) -> str:
        value = value.rstrip(":")
        if not value:
            raise ValueError("event_key_prefix must not be empty")
        return value

    @field_validator(
        "permit_token",
        "redis_url",
        "webhook_secret",
        mode="before",
    )
    @classmethod
    def empty_string_to_none(cls, value: str | None) -> str | None:
        if value == "":
            return None
        return value

    @field_validator("event_ttl_seconds", mode="before")
    @classmethod
    def ensure_int_ttl(cls, value: int | str | None) -> int | str | None:
        if value in (None, ""):
            return 86400
        return value

    def require_permit_token(self) -> str:
        if not self.permit_token:
            raise ConfigurationError("RELAY_PERMIT_TOKEN must be set to reach the policy backend")
        return self.permit_token


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings instance."""

    return AppSettings()
