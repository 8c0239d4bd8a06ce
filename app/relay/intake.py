"""Intake path: persist first, then attempt delivery once."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from app.relay.delivery import DeliveryResult, MembershipDelivery
from app.relay.schemas import EventRecord
from app.relay.store import EventStore, EventStoreError


@dataclass(frozen=True)
class IntakeResult:
    record: EventRecord
    result: DeliveryResult
    removed: bool

    @property
    def pending(self) -> bool:
        return not self.removed


class IntakeService:
    """Accepts inbound membership payloads on behalf of the webhook endpoint."""

    def __init__(
        self,
        store: EventStore,
        delivery: MembershipDelivery,
        *,
        tenant: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._tenant = tenant
        self._clock = clock
        self._logger = logging.getLogger("app.relay.intake")

    async def accept(self, payload: Dict[str, Any]) -> IntakeResult:
        """Durably record ``payload`` and try to deliver it.

        Raises ``EventStoreError`` when the event could not be recorded; every
        other failure is reported through the returned result.
        """

        record = EventRecord.from_payload(payload, tenant=self._tenant, received_at=self._clock())
        await self._store.put(record)
        self._logger.info("relay_event_persisted", extra={**record.log_context(), "action": record.action})

        try:
            result = await self._delivery.deliver(record)
        except Exception as exc:  # noqa: BLE001 - the record is already safe in the store
            self._logger.exception("relay_delivery_crashed", extra=record.log_context())
            result = DeliveryResult.retry(str(exc))

        removed = False
        if result.should_remove:
            try:
                await self._store.delete(record.id)
                removed = True
            except EventStoreError:
                self._logger.exception("relay_event_delete_failed", extra=record.log_context())

        return IntakeResult(record=record, result=result, removed=removed)
