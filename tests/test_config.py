from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import AppSettings


def test_defaults_match_relay_cadence() -> None:
    settings = AppSettings(_env_file=None)

    assert settings.port == 4000
    assert settings.retry_interval_seconds == 300
    assert settings.event_ttl_seconds == 86400
    assert settings.event_key_prefix == "event"
    assert settings.tenant == "default"


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("RELAY_REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("RELAY_RETRY_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("RELAY_EVENT_TTL_SECONDS", "")
    monkeypatch.setenv("RELAY_EVENT_KEY_PREFIX", "relay:event:")
    monkeypatch.setenv("RELAY_LOG_LEVEL", "debug")

    settings = AppSettings(_env_file=None)

    assert settings.redis_url == "redis://cache:6379/1"
    assert settings.retry_interval_seconds == 60
    assert settings.event_ttl_seconds == 86400
    assert settings.event_key_prefix == "relay:event"
    assert settings.log_level == "DEBUG"


def test_blank_optional_values_become_none(monkeypatch) -> None:
    monkeypatch.setenv("RELAY_WEBHOOK_SECRET", "")
    monkeypatch.setenv("RELAY_PERMIT_TOKEN", "")

    settings = AppSettings(_env_file=None)

    assert settings.webhook_secret is None
    assert settings.permit_token is None


def test_empty_tenant_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("RELAY_TENANT", "")

    with pytest.raises(ValidationError):
        AppSettings(_env_file=None)
