"""GitHub webhook decoding and signature verification."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Dict, Mapping, Optional

SIGNATURE_HEADER = "X-Hub-Signature-256"
FORM_PAYLOAD_FIELD = "payload"


class WebhookError(Exception):
    """Base class for webhook rejections."""


class InvalidWebhookPayloadError(WebhookError):
    """Raised when the body cannot be turned into a membership event."""


class WebhookSignatureError(WebhookError):
    """Raised when the HMAC signature is missing or wrong."""


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> None:
    if not signature or not signature.startswith("sha256="):
        raise WebhookSignatureError("Missing webhook signature")
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature):
        raise WebhookSignatureError("Webhook signature mismatch")


def decode_json_payload(raw: bytes | str) -> Dict[str, Any]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidWebhookPayloadError("Request body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise InvalidWebhookPayloadError("Request body must be a JSON object")
    return payload


def decode_form_payload(form: Mapping[str, Any]) -> Dict[str, Any]:
    """GitHub's form content type wraps the JSON document in a ``payload`` field."""

    raw = form.get(FORM_PAYLOAD_FIELD)
    if isinstance(raw, str):
        return decode_json_payload(raw)
    return {key: value for key, value in form.items() if isinstance(value, str)}


def require_action(payload: Dict[str, Any]) -> str:
    action = payload.get("action")
    if not isinstance(action, str) or not action:
        raise InvalidWebhookPayloadError("Missing action in request body")
    return action
