"""Response schemas for the webhook and pending-event endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from app.relay.delivery import DeliveryOutcome
from app.relay.schemas import EventOperation, EventRecord


class WebhookAcceptedResponse(BaseModel):
    message: str
    event_id: str
    operation: EventOperation
    outcome: DeliveryOutcome
    pending: bool
    reason: Optional[str] = None


class PendingEventResponse(BaseModel):
    """API response describing a pending event."""

    id: str
    action: Optional[str]
    operation: EventOperation
    principal: Optional[str]
    role: Optional[str]
    tenant: str
    received_at: datetime
    raw_payload: Dict[str, Any]

    @classmethod
    def from_record(cls, record: EventRecord) -> "PendingEventResponse":
        return cls.model_validate(record.model_dump())


class SweepResponse(BaseModel):
    attempted: int
    delivered: int
    discarded: int
    pending: int
    errors: int
