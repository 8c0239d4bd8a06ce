"""Durable intake and retry of membership events bound for the policy backend."""

from .delivery import DeliveryOutcome, DeliveryResult, MembershipDelivery  # noqa: F401
from .intake import IntakeResult, IntakeService  # noqa: F401
from .runtime import RelayRuntime, build_runtime  # noqa: F401
from .schemas import EventOperation, EventRecord  # noqa: F401
from .store import EventStore, EventStoreError, InMemoryEventStore, RedisEventStore  # noqa: F401
from .sweeper import RetrySweeper, SweepReport, replay_pending, sweep_pending  # noqa: F401
