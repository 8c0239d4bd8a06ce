from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.relay.schemas import EventOperation, EventRecord, map_action, new_event_id
from conftest import member_added, member_removed


def test_map_action_covers_membership_taxonomy() -> None:
    assert map_action("member_invited") is EventOperation.IGNORE
    assert map_action("member_added") is EventOperation.APPLY_GRANT
    assert map_action("member_removed") is EventOperation.RETRACT_GRANT


def test_unknown_action_is_ignored_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="app.relay.schemas"):
        assert map_action("member_promoted") is EventOperation.IGNORE
    assert any(record.message == "relay_action_unhandled" for record in caplog.records)


def test_from_payload_extracts_grant_fields() -> None:
    received_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    payload = member_added("alice", "admin")

    record = EventRecord.from_payload(payload, tenant="default", received_at=received_at)

    assert record.operation is EventOperation.APPLY_GRANT
    assert record.principal == "alice"
    assert record.role == "admin"
    assert record.tenant == "default"
    assert record.raw_payload == payload
    assert record.received_at == received_at
    assert record.id.startswith(f"{int(received_at.timestamp() * 1000):013d}-")


def test_role_is_dropped_for_retractions() -> None:
    payload = member_removed("bob")
    payload["membership"]["role"] = "member"  # type: ignore[index]

    record = EventRecord.from_payload(payload, tenant="default")

    assert record.operation is EventOperation.RETRACT_GRANT
    assert record.principal == "bob"
    assert record.role is None


def test_malformed_membership_still_builds_record() -> None:
    record = EventRecord.from_payload({"action": "member_added", "membership": "oops"}, tenant="default")

    assert record.operation is EventOperation.APPLY_GRANT
    assert record.principal is None
    assert record.role is None


def test_ids_do_not_collide_within_same_millisecond() -> None:
    received_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
    ids = {new_event_id(received_at) for _ in range(500)}
    assert len(ids) == 500


def test_naive_timestamps_are_treated_as_utc() -> None:
    record = EventRecord.from_payload(member_added(), tenant="default", received_at=datetime(2024, 5, 1))
    assert record.received_at.tzinfo == timezone.utc


def test_serialized_record_replays_identically() -> None:
    record = EventRecord.from_payload(member_added(), tenant="default")
    assert EventRecord.model_validate_json(record.model_dump_json()) == record
