"""Inspection and manual sweep endpoints for pending events."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_event_store, get_retry_sweeper
from app.relay.store import EventStore
from app.relay.sweeper import RetrySweeper
from app.schemas.webhook import PendingEventResponse, SweepResponse

router = APIRouter()


@router.get(
    "/pending",
    response_model=List[PendingEventResponse],
)
async def list_pending_events(store: EventStore = Depends(get_event_store)) -> List[PendingEventResponse]:
    entries = await store.list_pending()
    records = sorted((record for _, record in entries), key=lambda record: record.received_at)
    return [PendingEventResponse.from_record(record) for record in records]


@router.post(
    "/sweep",
    response_model=SweepResponse,
)
async def trigger_sweep(sweeper: RetrySweeper = Depends(get_retry_sweeper)) -> SweepResponse:
    report = await sweeper.run_once()
    return SweepResponse(**report.as_dict())


@router.get(
    "/{event_id}",
    response_model=PendingEventResponse,
)
async def get_pending_event(
    event_id: str,
    store: EventStore = Depends(get_event_store),
) -> PendingEventResponse:
    record = await store.get(event_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Event {event_id} not pending")
    return PendingEventResponse.from_record(record)
