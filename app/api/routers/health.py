"""Health check endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.dependencies import get_runtime
from app.relay.runtime import RelayRuntime

router = APIRouter()


@router.get("/healthz", summary="Liveness probe")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Readiness probe, gated on the startup replay")
def readiness_check(runtime: Optional[RelayRuntime] = Depends(get_runtime)) -> JSONResponse:
    if runtime is None or not runtime.ready:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return JSONResponse(
        status_code=200,
        content={"status": "ready", "sweeper_running": runtime.sweeper.is_running},
    )
