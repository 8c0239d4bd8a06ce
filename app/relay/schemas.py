"""Pydantic models describing relayed membership events."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOGGER = logging.getLogger("app.relay.schemas")


class EventOperation(str, Enum):
    """Policy-backend operation derived from an upstream membership action."""

    APPLY_GRANT = "apply-grant"
    RETRACT_GRANT = "retract-grant"
    IGNORE = "ignore"


ACTION_OPERATIONS: Dict[str, EventOperation] = {
    "member_invited": EventOperation.IGNORE,
    "member_added": EventOperation.APPLY_GRANT,
    "member_removed": EventOperation.RETRACT_GRANT,
}


def map_action(action: Optional[str]) -> EventOperation:
    """Translate a GitHub membership action; unknown actions are ignored."""

    operation = ACTION_OPERATIONS.get(action or "")
    if operation is None:
        LOGGER.warning("relay_action_unhandled", extra={"action": action})
        return EventOperation.IGNORE
    return operation


def new_event_id(received_at: datetime) -> str:
    """Millisecond timestamp plus a random suffix so ids never collide within a millisecond."""

    millis = int(received_at.timestamp() * 1000)
    return f"{millis:013d}-{uuid.uuid4().hex}"


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


class EventRecord(BaseModel):
    """Canonical pending event, replayable at any later time."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    action: Optional[str] = None
    operation: EventOperation
    principal: Optional[str] = None
    role: Optional[str] = None
    tenant: str = Field(..., min_length=1)
    raw_payload: Dict[str, Any] = Field(default_factory=dict)
    received_at: datetime

    @field_validator("received_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @classmethod
    def from_payload(
        cls,
        payload: Dict[str, Any],
        *,
        tenant: str,
        received_at: Optional[datetime] = None,
    ) -> "EventRecord":
        """Build a record without validating membership data.

        Missing or malformed ``membership`` fields leave ``principal``/``role``
        unset; the delivery step decides whether that is fatal.
        """

        received_at = received_at or datetime.now(timezone.utc)
        action = payload.get("action")
        action = action if isinstance(action, str) else None
        operation = map_action(action)

        membership = payload.get("membership")
        membership = membership if isinstance(membership, dict) else {}
        user = membership.get("user")
        user = user if isinstance(user, dict) else {}

        role = _as_str(membership.get("role")) if operation is EventOperation.APPLY_GRANT else None

        return cls(
            id=new_event_id(received_at),
            action=action,
            operation=operation,
            principal=_as_str(user.get("login")),
            role=role,
            tenant=tenant,
            raw_payload=payload,
            received_at=received_at,
        )

    def log_context(self) -> Dict[str, Any]:
        return {
            "event_id": self.id,
            "operation": self.operation.value,
            "principal": self.principal,
        }
