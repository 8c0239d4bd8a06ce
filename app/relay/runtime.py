"""Construct-once wiring of the relay components."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from app.core.config import AppSettings
from app.relay.delivery import MembershipDelivery
from app.relay.intake import IntakeService
from app.relay.store import EventStore, InMemoryEventStore, RedisEventStore
from app.relay.sweeper import RetrySweeper, SweepReport, replay_pending
from app.services.policy_backend import PermitClient, PolicyBackend

LOGGER = logging.getLogger("app.relay.runtime")


@dataclass
class RelayRuntime:
    """Handles shared by the webhook endpoint, the sweeper and the startup replay."""

    store: EventStore
    backend: PolicyBackend
    delivery: MembershipDelivery
    intake: IntakeService
    sweeper: RetrySweeper
    ready: bool = field(default=False)
    last_replay: Optional[SweepReport] = field(default=None)

    @classmethod
    def assemble(
        cls,
        *,
        store: EventStore,
        backend: PolicyBackend,
        tenant: str = "default",
        retry_interval_seconds: float = 300.0,
        **sweeper_kwargs,
    ) -> "RelayRuntime":
        delivery = MembershipDelivery(backend)
        return cls(
            store=store,
            backend=backend,
            delivery=delivery,
            intake=IntakeService(store, delivery, tenant=tenant),
            sweeper=RetrySweeper(
                store,
                delivery,
                interval_seconds=retry_interval_seconds,
                **sweeper_kwargs,
            ),
        )

    async def startup(self) -> None:
        """Replay stranded events, then begin periodic sweeps."""

        self.last_replay = await replay_pending(self.store, self.delivery)
        self.ready = True
        self.sweeper.start()

    async def shutdown(self) -> None:
        self.ready = False
        await self.sweeper.stop()
        await self.backend.aclose()
        await self.store.close()


def build_store(settings: AppSettings) -> EventStore:
    if settings.redis_url:
        return RedisEventStore.from_url(
            settings.redis_url,
            prefix=settings.event_key_prefix,
            ttl_seconds=settings.event_ttl_seconds,
        )
    LOGGER.warning(
        "relay_store_in_memory",
        extra={"reason": "redis_url_not_configured"},
    )
    return InMemoryEventStore(ttl_seconds=settings.event_ttl_seconds)


def build_runtime(settings: AppSettings) -> RelayRuntime:
    """Create the production runtime from settings."""

    return RelayRuntime.assemble(
        store=build_store(settings),
        backend=PermitClient.from_settings(settings),
        tenant=settings.tenant,
        retry_interval_seconds=settings.retry_interval_seconds,
    )
