from __future__ import annotations

import hashlib
import hmac

import pytest

from app.services.webhooks import (
    InvalidWebhookPayloadError,
    WebhookSignatureError,
    decode_form_payload,
    decode_json_payload,
    require_action,
    verify_signature,
)


def _sign(secret: str, body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def test_verify_signature_accepts_valid_digest() -> None:
    body = b'{"action":"member_added"}'
    verify_signature("s3cret", body, _sign("s3cret", body))


@pytest.mark.parametrize("signature", [None, "", "sha1=abc", "sha256=deadbeef"])
def test_verify_signature_rejects_bad_digest(signature) -> None:
    with pytest.raises(WebhookSignatureError):
        verify_signature("s3cret", b"{}", signature)


def test_decode_json_payload_requires_object() -> None:
    assert decode_json_payload(b'{"action": "member_added"}') == {"action": "member_added"}
    with pytest.raises(InvalidWebhookPayloadError):
        decode_json_payload(b"[1, 2]")
    with pytest.raises(InvalidWebhookPayloadError):
        decode_json_payload(b"not json")


def test_decode_form_payload_unwraps_github_form() -> None:
    assert decode_form_payload({"payload": '{"action": "member_removed"}'}) == {"action": "member_removed"}
    assert decode_form_payload({"action": "member_invited"}) == {"action": "member_invited"}


def test_require_action() -> None:
    assert require_action({"action": "member_added"}) == "member_added"
    with pytest.raises(InvalidWebhookPayloadError):
        require_action({"membership": {}})
