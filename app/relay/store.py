"""Durable storage for pending relay events."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.relay.schemas import EventRecord

LOGGER = logging.getLogger("app.relay.store")

PendingEntry = Tuple[str, EventRecord]
Clock = Callable[[], datetime]

DEFAULT_TTL_SECONDS = 86400


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventStoreError(RuntimeError):
    """Raised when the persistence layer cannot be reached or rejects a command."""


class EventStore(Protocol):
    """Contract for the pending-event store. Every operation touches a single key."""

    async def put(self, record: EventRecord) -> str:
        ...

    async def get(self, event_id: str) -> Optional[EventRecord]:
        ...

    async def delete(self, event_id: str) -> bool:
        ...

    async def list_pending(self) -> List[PendingEntry]:
        ...

    async def close(self) -> None:
        ...


def remaining_ttl_seconds(record: EventRecord, ttl_seconds: int, now: datetime) -> int:
    """Whole seconds left in the retention window that started at ``received_at``.

    Zero or negative means the window has already closed and the record must
    not be stored.
    """

    elapsed = (now - record.received_at).total_seconds()
    return math.ceil(ttl_seconds - elapsed)


@dataclass
class InMemoryEventStore(EventStore):
    """Process-local store with TTL semantics. Not durable across restarts."""

    ttl_seconds: int = DEFAULT_TTL_SECONDS
    clock: Clock = field(default=_utcnow)

    def __post_init__(self) -> None:
        self._records: Dict[str, Tuple[EventRecord, datetime]] = {}

    async def put(self, record: EventRecord) -> str:
        expires_at = record.received_at + timedelta(seconds=self.ttl_seconds)
        if expires_at <= self.clock():
            LOGGER.warning("relay_event_expired_before_store", extra=record.log_context())
            return record.id
        self._records[record.id] = (record, expires_at)
        return record.id

    async def get(self, event_id: str) -> Optional[EventRecord]:
        self._evict_expired()
        entry = self._records.get(event_id)
        return entry[0] if entry else None

    async def delete(self, event_id: str) -> bool:
        self._evict_expired()
        return self._records.pop(event_id, None) is not None

    async def list_pending(self) -> List[PendingEntry]:
        self._evict_expired()
        return [(event_id, record) for event_id, (record, _) in list(self._records.items())]

    async def close(self) -> None:
        return None

    def _evict_expired(self) -> None:
        now = self.clock()
        expired = [event_id for event_id, (_, expires_at) in self._records.items() if expires_at <= now]
        for event_id in expired:
            self._records.pop(event_id, None)
            LOGGER.warning("relay_event_expired", extra={"event_id": event_id})


class RedisEventStore(EventStore):
    """Redis-backed store: one ``<prefix>:<id>`` string key per pending event.

    The client is expected to return raw bytes. The key namespace may be shared
    with other writers, so values are decoded here and anything that is not a
    serialized record is skipped.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        prefix: str = "event",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Clock = _utcnow,
        scan_count: int = 200,
    ) -> None:
        self._redis = redis
        self._prefix = prefix
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._scan_count = scan_count

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisEventStore":
        return cls(Redis.from_url(url), **kwargs)

    def key_for(self, event_id: str) -> str:
        return f"{self._prefix}:{event_id}"

    def _id_from_key(self, key: str | bytes) -> str:
        if isinstance(key, bytes):
            key = key.decode("utf-8", errors="replace")
        return key[len(self._prefix) + 1 :]

    async def put(self, record: EventRecord) -> str:
        ttl = remaining_ttl_seconds(record, self._ttl_seconds, self._clock())
        if ttl <= 0:
            LOGGER.warning("relay_event_expired_before_store", extra=record.log_context())
            return record.id
        try:
            await self._redis.set(self.key_for(record.id), record.model_dump_json(), ex=ttl)
        except RedisError as exc:
            raise EventStoreError(f"Failed to persist event {record.id}: {exc}") from exc
        return record.id

    async def get(self, event_id: str) -> Optional[EventRecord]:
        try:
            raw = await self._redis.get(self.key_for(event_id))
        except RedisError as exc:
            raise EventStoreError(f"Failed to read event {event_id}: {exc}") from exc
        if raw is None:
            return None
        return self._decode(event_id, raw)

    async def delete(self, event_id: str) -> bool:
        try:
            removed = await self._redis.delete(self.key_for(event_id))
        except RedisError as exc:
            raise EventStoreError(f"Failed to delete event {event_id}: {exc}") from exc
        return bool(removed)

    async def list_pending(self) -> List[PendingEntry]:
        entries: List[PendingEntry] = []
        try:
            async for key in self._redis.scan_iter(match=f"{self._prefix}:*", count=self._scan_count):
                event_id = self._id_from_key(key)
                raw = await self._redis.get(key)
                if raw is None:
                    # Deleted or expired after the scan saw it.
                    continue
                record = self._decode(event_id, raw)
                if record is not None:
                    entries.append((event_id, record))
        except RedisError as exc:
            raise EventStoreError(f"Failed to enumerate pending events: {exc}") from exc
        return entries

    async def close(self) -> None:
        await self._redis.aclose()

    def _decode(self, event_id: str, raw: str | bytes) -> Optional[EventRecord]:
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            return EventRecord.model_validate_json(text)
        except (UnicodeDecodeError, ValidationError):
            LOGGER.warning("relay_event_undecodable", extra={"event_id": event_id})
            return None
