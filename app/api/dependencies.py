"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from app.core.config import AppSettings
from app.relay.intake import IntakeService
from app.relay.runtime import RelayRuntime
from app.relay.store import EventStore
from app.relay.sweeper import RetrySweeper


def get_runtime(request: Request) -> Optional[RelayRuntime]:
    return request.app.state.runtime


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_intake_service(request: Request) -> IntakeService:
    return get_runtime(request).intake


def get_event_store(request: Request) -> EventStore:
    return get_runtime(request).store


def get_retry_sweeper(request: Request) -> RetrySweeper:
    return get_runtime(request).sweeper
