"""GitHub organization-membership webhook endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_app_settings, get_intake_service
from app.core.config import AppSettings
from app.relay.intake import IntakeService
from app.schemas.webhook import WebhookAcceptedResponse
from app.services.webhooks import (
    SIGNATURE_HEADER,
    decode_form_payload,
    decode_json_payload,
    require_action,
    verify_signature,
)

router = APIRouter()
logger = logging.getLogger("app.api.webhooks")

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


async def _read_payload(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_CONTENT_TYPE):
        form = await request.form()
        return decode_form_payload(form)
    return decode_json_payload(await request.body())


@router.post(
    "/github-membership",
    response_model=WebhookAcceptedResponse,
    responses={400: {}, 401: {}, 500: {}},
)
async def github_membership(
    request: Request,
    intake: IntakeService = Depends(get_intake_service),
    settings: AppSettings = Depends(get_app_settings),
) -> JSONResponse:
    if settings.webhook_secret:
        verify_signature(settings.webhook_secret, await request.body(), request.headers.get(SIGNATURE_HEADER))

    payload = await _read_payload(request)
    action = require_action(payload)
    logger.info("relay_webhook_received", extra={"action": action})

    outcome = await intake.accept(payload)
    body = WebhookAcceptedResponse(
        message="Event processed successfully" if outcome.removed else "Event stored for retry",
        event_id=outcome.record.id,
        operation=outcome.record.operation,
        outcome=outcome.result.outcome,
        pending=outcome.pending,
        reason=outcome.result.reason,
    )

    if not outcome.pending:
        status_code = status.HTTP_200_OK
    elif settings.acknowledge_pending_deliveries:
        status_code = status.HTTP_202_ACCEPTED
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
