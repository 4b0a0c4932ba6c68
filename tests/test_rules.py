from datetime import timedelta

from conftest import FIXED_NOW, fixed_clock, make_event
from sentinel.schemas.alerts import Severity
from sentinel.services.detection.rules import (
    ApiKeyCreationRule,
    FailedLoginSpikeRule,
    ForbiddenSensitiveResourceRule,
    build_default_rules,
)


def _store_failed_logins(event_store, count, actor="user@example.com"):
    events = []
    for i in range(count):
        event = make_event(
            f"evt_fail_{actor}_{i}",
            actor=actor,
            minutes_ago=10 - i,
            ip=f"203.0.113.{1 + i % 2}",
        )
        event_store.store_event(event)
        events.append(event)
    return events


def _spike_rule(event_store, **kwargs):
    return FailedLoginSpikeRule(event_store, 15, 5, clock=fixed_clock, **kwargs)


def test_failed_login_below_threshold_raises_nothing(event_store):
    events = _store_failed_logins(event_store, 4)

    assert _spike_rule(event_store).evaluate(events[-1]) == []


def test_failed_login_at_threshold_raises_high_alert(event_store):
    events = _store_failed_logins(event_store, 5)

    alerts = _spike_rule(event_store).evaluate(events[-1])

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.alert_type == "failed_login_spike"
    assert alert.severity == Severity.HIGH
    assert alert.user_id == "user@example.com"
    assert alert.event_refs == [e.id for e in events]
    assert alert.evidence["failed_attempts"] == 5
    assert alert.evidence["window_minutes"] == 15
    assert alert.evidence["threshold"] == 5
    assert alert.evidence["ip_addresses"] == ["203.0.113.1", "203.0.113.2"]
    assert alert.evidence["first_attempt"] == "2025-01-15T11:50:00Z"
    assert alert.description == (
        "Detected 5 failed login attempts for user user@example.com "
        "within 15 minutes (threshold: 5)"
    )


def test_failed_login_ignores_events_outside_window(event_store):
    stale = make_event("evt_stale", minutes_ago=20)
    event_store.store_event(stale)
    events = _store_failed_logins(event_store, 4)

    assert _spike_rule(event_store).evaluate(events[-1]) == []


def test_failed_login_counts_per_actor(event_store):
    _store_failed_logins(event_store, 3, actor="a@example.com")
    events = _store_failed_logins(event_store, 3, actor="b@example.com")

    assert _spike_rule(event_store).evaluate(events[-1]) == []


def test_failed_login_ignores_other_types_and_missing_actor(event_store):
    rule = _spike_rule(event_store)

    assert rule.evaluate(make_event("evt_x", event_type="auth.success")) == []
    assert rule.evaluate(make_event("evt_y", actor="")) == []


def test_failed_login_cooldown_suppresses_repeat(event_store):
    events = _store_failed_logins(event_store, 6)

    class _Recent:
        calls = []

        def has_recent_alert(self, alert_type, user_id, since):
            self.calls.append((alert_type, user_id, since))
            return True

    recent = _Recent()
    rule = _spike_rule(event_store, alerts=recent, cooldown_minutes=30)

    assert rule.evaluate(events[-1]) == []
    assert recent.calls == [
        ("failed_login_spike", "user@example.com", FIXED_NOW - timedelta(minutes=30))
    ]


def test_failed_login_without_cooldown_alerts_every_time(event_store):
    events = _store_failed_logins(event_store, 6)
    rule = _spike_rule(event_store)

    assert len(rule.evaluate(events[-2])) == 1
    assert len(rule.evaluate(events[-1])) == 1


def test_forbidden_sensitive_resource_from_raw_resource():
    event = make_event(
        "evt_forbidden",
        event_type="forbidden",
        actor="attacker@example.com",
        resource="storage",
        ip="192.0.2.1",
        raw={"resource": "secrets/database-password", "action": "read"},
    )

    alerts = ForbiddenSensitiveResourceRule().evaluate(event)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.severity == Severity.CRITICAL
    assert alert.alert_type == "forbidden_sensitive_resource"
    assert alert.event_refs == [event.id]
    assert alert.evidence["resource_type"] == "secrets"
    assert alert.evidence["ip_address"] == "192.0.2.1"
    assert alert.evidence["raw_event"]["action"] == "read"


def test_forbidden_non_sensitive_resource_is_ignored():
    event = make_event(
        "evt_forbidden_bucket",
        event_type="forbidden",
        resource="object-storage",
        raw={"resource": "buckets/public"},
    )

    assert ForbiddenSensitiveResourceRule().evaluate(event) == []
    assert ForbiddenSensitiveResourceRule().evaluate(make_event("evt_ok", event_type="read")) == []


def test_api_key_creation_alert():
    event = make_event(
        "evt_key",
        event_type="apiKey.create",
        actor="admin@example.com",
        ip="198.51.100.1",
        raw={"key_id": "key_abc123", "key_name": "Production API Key"},
    )

    alerts = ApiKeyCreationRule().evaluate(event)

    assert len(alerts) == 1
    assert alerts[0].severity == Severity.HIGH
    assert alerts[0].evidence["key_id"] == "key_abc123"
    assert alerts[0].evidence["key_name"] == "Production API Key"
    assert alerts[0].user_id == "admin@example.com"


def test_default_registry_order_and_placeholders(event_store):
    rules = build_default_rules(event_store, clock=fixed_clock)

    assert [r.name for r in rules] == [
        "failed_login_spike",
        "forbidden_sensitive_resource",
        "api_key_creation",
        "unusual_ip_region",
        "impossible_travel",
        "iam_policy_change",
        "high_privilege_unknown_ip",
    ]
    placeholders = rules[3:]
    assert all(not r.is_active() for r in placeholders)
    assert all(r.evaluate(make_event("evt_any")) == [] for r in placeholders)
