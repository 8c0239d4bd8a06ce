"""Exception handlers for the FastAPI app."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.relay.store import EventStoreError
from app.services.webhooks import InvalidWebhookPayloadError, WebhookSignatureError

logger = logging.getLogger("app.api.errors")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidWebhookPayloadError)
    async def invalid_payload_handler(request: Request, exc: InvalidWebhookPayloadError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(WebhookSignatureError)
    async def signature_handler(request: Request, exc: WebhookSignatureError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=401, content={"error": str(exc)})

    @app.exception_handler(EventStoreError)
    async def store_error_handler(request: Request, exc: EventStoreError) -> JSONResponse:  # noqa: WPS430
        logger.error("relay_store_unavailable", extra={"path": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
