from datetime import timedelta

import pytest

from conftest import FIXED_NOW, make_event


def test_store_event_is_insert_if_absent(event_store):
    first = make_event("evt_1")
    again = make_event("evt_1", actor="someone-else@example.com")

    assert event_store.store_event(first) is True
    assert event_store.store_event(again) is False

    stored = event_store.list_events()
    assert len(stored) == 1
    assert stored[0].id == first.id
    assert stored[0].actor == "user@example.com"


def test_event_exists_uses_provider_id(event_store):
    event = make_event("evt_provider")
    event_store.store_event(event)

    assert event_store.event_exists("evt_provider")
    assert not event_store.event_exists(event.id)
    assert not event_store.event_exists("evt_other")


def test_last_event_timestamp(event_store):
    assert event_store.last_event_timestamp() is None

    event_store.store_event(make_event("evt_old", minutes_ago=30))
    event_store.store_event(make_event("evt_new", minutes_ago=2))

    latest = event_store.last_event_timestamp()
    assert latest == FIXED_NOW - timedelta(minutes=2)
    assert latest.tzinfo is not None


def test_get_event_round_trips_fields(event_store):
    event = make_event(
        "evt_fields",
        event_type="forbidden",
        resource="secrets",
        raw={"resource": "secrets/database-password", "source": "audit"},
    )
    event_store.store_event(event)

    loaded = event_store.get_event(event.id)

    assert loaded.event_id == "evt_fields"
    assert loaded.event_type == "forbidden"
    assert loaded.raw["resource"] == "secrets/database-password"
    assert loaded.timestamp == event.timestamp


def test_get_event_missing_raises_key_error(event_store):
    with pytest.raises(KeyError):
        event_store.get_event("does-not-exist")


def test_list_events_newest_first_with_filters(event_store):
    event_store.store_event(make_event("evt_a", minutes_ago=10))
    event_store.store_event(make_event("evt_b", minutes_ago=5, event_type="forbidden"))
    event_store.store_event(make_event("evt_c", minutes_ago=1, actor="admin@example.com"))

    assert [e.event_id for e in event_store.list_events()] == ["evt_c", "evt_b", "evt_a"]
    assert [e.event_id for e in event_store.list_events(limit=1, offset=1)] == ["evt_b"]
    assert [e.event_id for e in event_store.list_events(event_type="forbidden")] == ["evt_b"]
    assert [e.event_id for e in event_store.list_events(actor="admin@example.com")] == ["evt_c"]


def test_find_events_is_strictly_after_since(event_store):
    event_store.store_event(make_event("evt_edge", minutes_ago=15))
    event_store.store_event(make_event("evt_in_1", minutes_ago=14))
    event_store.store_event(make_event("evt_in_2", minutes_ago=1))
    event_store.store_event(make_event("evt_other_actor", minutes_ago=1, actor="x@example.com"))

    found = event_store.find_events(
        "auth.failed", "user@example.com", FIXED_NOW - timedelta(minutes=15)
    )

    assert [e.event_id for e in found] == ["evt_in_1", "evt_in_2"]


def test_events_exist_returns_stored_subset(event_store):
    event = make_event("evt_exists")
    event_store.store_event(event)

    assert event_store.events_exist([event.id, "missing"]) == {event.id}
    assert event_store.events_exist([]) == set()
