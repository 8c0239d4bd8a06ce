"""Periodic retry sweep and the one-shot recovery replay run at startup."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.relay.delivery import DeliveryOutcome, MembershipDelivery
from app.relay.store import EventStore, EventStoreError

LOGGER = logging.getLogger("app.relay.sweeper")

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class SweepReport:
    attempted: int = 0
    delivered: int = 0
    discarded: int = 0
    pending: int = 0
    errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "attempted": self.attempted,
            "delivered": self.delivered,
            "discarded": self.discarded,
            "pending": self.pending,
            "errors": self.errors,
        }


async def sweep_pending(store: EventStore, delivery: MembershipDelivery) -> SweepReport:
    """Attempt delivery of every pending record; one failure never stops the pass."""

    report = SweepReport()
    for event_id, record in await store.list_pending():
        report.attempted += 1
        try:
            result = await delivery.deliver(record)
            if not result.should_remove:
                report.pending += 1
                continue
            await store.delete(event_id)
        except Exception:  # noqa: BLE001 - intentionally broad so the sweep keeps going
            LOGGER.exception("relay_sweep_record_failed", extra={"event_id": event_id})
            report.errors += 1
            report.pending += 1
            continue

        if result.outcome is DeliveryOutcome.SUCCEEDED:
            report.delivered += 1
        else:
            report.discarded += 1

    LOGGER.info("relay_sweep_completed", extra=report.as_dict())
    return report


async def replay_pending(store: EventStore, delivery: MembershipDelivery) -> Optional[SweepReport]:
    """Replay events persisted before the last shutdown.

    Returns ``None`` when the pass could not run at all; the scheduled
    sweeper picks the events up once the store is reachable again.
    """

    LOGGER.info("relay_replay_started")
    try:
        report = await sweep_pending(store, delivery)
    except EventStoreError:
        LOGGER.exception("relay_replay_store_unavailable")
        return None
    except Exception:  # noqa: BLE001 - startup must not abort on a failed replay
        LOGGER.exception("relay_replay_failed")
        return None
    LOGGER.info("relay_replay_completed", extra=report.as_dict())
    return report


class RetrySweeper:
    """Owns the recurring sweep task so it can be started and stopped deterministically."""

    def __init__(
        self,
        store: EventStore,
        delivery: MembershipDelivery,
        *,
        interval_seconds: float = 300.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._interval = interval_seconds
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task[None]] = None
        self.completed_sweeps = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepReport:
        """Run a single sweep; concurrent callers queue behind the one in progress."""

        async with self._lock:
            report = await sweep_pending(self._store, self._delivery)
            self.completed_sweeps += 1
            return report

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_forever(), name="relay-retry-sweeper")
        LOGGER.info("relay_sweeper_started", extra={"interval_seconds": self._interval})

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        LOGGER.info("relay_sweeper_stopped")

    async def _run_forever(self) -> None:
        while True:
            await self._sleep(self._interval)
            LOGGER.info("relay_sweep_started")
            try:
                await self.run_once()
            except EventStoreError:
                LOGGER.exception("relay_sweep_store_unavailable")
            except Exception:  # noqa: BLE001 - intentionally broad so the timer keeps firing
                LOGGER.exception("relay_sweep_failed")
