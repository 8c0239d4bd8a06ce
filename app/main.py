"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from app.api.error_handlers import register_exception_handlers
from app.api.routers import get_api_router
from app.core.config import AppSettings, get_settings
from app.core.logging import configure_logging
from app.relay.runtime import RelayRuntime, build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Build the relay, replay stranded events, and run the retry sweeper."""

    runtime: Optional[RelayRuntime] = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = build_runtime(app.state.settings)
        app.state.runtime = runtime

    await runtime.startup()
    try:
        yield
    finally:
        await runtime.shutdown()


def create_app(
    settings: AppSettings | None = None,
    runtime: RelayRuntime | None = None,
) -> FastAPI:
    """Application factory.

    ``runtime`` lets callers supply pre-built relay handles; otherwise they
    are created from ``settings`` when the app starts.
    """

    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="GitHub Membership Relay",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.runtime = runtime

    register_exception_handlers(app)
    app.include_router(get_api_router())
    return app


app = create_app()
