import pytest
from fastapi.testclient import TestClient

from conftest import make_event
from sentinel.api import deps
from sentinel.core.config import settings
from sentinel.core.exceptions import IngestionError, RemediationError
from sentinel.main import app
from sentinel.schemas.alerts import Alert, AlertStatus, Severity
from sentinel.schemas.outcomes import IngestReport, ItemOutcome, Outcome, ReprocessReport
from sentinel.schemas.remediation import ActionType, RemediationLog


class _FakeRemediation:
    def __init__(self, alert_store, log_store, error=None):
        self.alert_store = alert_store
        self.log_store = log_store
        self.error = error
        self.calls = []

    async def remediate_alert(self, alert_id, action, actor, reason=""):
        self.calls.append((alert_id, action, actor, reason))
        if self.error is not None:
            raise self.error
        self.alert_store.get_alert(alert_id)
        entry = RemediationLog(
            alert_id=alert_id,
            actor_user=actor,
            action_type=action,
            payload={"user_id": "user@example.com", "reason": reason},
            result="success",
        )
        self.log_store.log_remediation(entry)
        self.alert_store.update_alert_status(alert_id, AlertStatus.RESOLVED)
        return entry


class _FakeIngestor:
    def __init__(self, error=None):
        self.error = error

    async def ingest(self):
        if self.error is not None:
            raise self.error
        return IngestReport(
            fetched_audit=2,
            fetched_authentication=1,
            outcomes=[
                ItemOutcome(item="evt_a", outcome=Outcome.STORED),
                ItemOutcome(item="evt_b", outcome=Outcome.DUPLICATE),
                ItemOutcome(item="evt_c", outcome=Outcome.FAILED),
            ],
            alerts_raised=1,
        )


@pytest.fixture
def remediation(alert_store, log_store):
    return _FakeRemediation(alert_store, log_store)


@pytest.fixture
def client(event_store, alert_store, log_store, remediation):
    app.dependency_overrides[deps.get_event_store] = lambda: event_store
    app.dependency_overrides[deps.get_alert_store] = lambda: alert_store
    app.dependency_overrides[deps.get_remediation_log_store] = lambda: log_store
    app.dependency_overrides[deps.get_remediation_service] = lambda: remediation
    app.dependency_overrides[deps.get_ingestor] = lambda: _FakeIngestor()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alert(event_store, alert_store) -> Alert:
    event = make_event("evt_api")
    event_store.store_event(event)
    return alert_store.store_alert(
        Alert(
            event_refs=[event.id],
            alert_type="failed_login_spike",
            severity=Severity.HIGH,
            user_id="user@example.com",
        )
    )


def test_health(client):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.json()["mock_data"] is True
    assert resp.json()["ingestion_enabled"] is False


def test_list_and_get_events(client, event_store):
    event = make_event("evt_listed")
    event_store.store_event(event)

    listed = client.get("/api/v1/events").json()
    assert listed["count"] == 1
    assert listed["events"][0]["event_id"] == "evt_listed"

    assert client.get(f"/api/v1/events/{event.id}").json()["event_id"] == "evt_listed"
    assert client.get("/api/v1/events/missing").status_code == 404


def test_list_alerts_with_filters(client, alert):
    body = client.get("/api/v1/alerts", params={"severity": "HIGH", "status": "OPEN"}).json()
    assert [a["id"] for a in body["alerts"]] == [alert.id]

    body = client.get("/api/v1/alerts", params={"status": "RESOLVED"}).json()
    assert body["count"] == 0

    assert client.get("/api/v1/alerts", params={"status": "CLOSED"}).status_code == 422


def test_get_alert(client, alert):
    assert client.get(f"/api/v1/alerts/{alert.id}").json()["user_id"] == "user@example.com"
    assert client.get("/api/v1/alerts/missing").status_code == 404


def test_update_alert_status(client, alert):
    resp = client.patch(f"/api/v1/alerts/{alert.id}/status", json={"status": "INVESTIGATING"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "INVESTIGATING"

    assert client.patch(
        f"/api/v1/alerts/{alert.id}/status", json={"status": "DONE"}
    ).status_code == 422
    assert client.patch(
        "/api/v1/alerts/missing/status", json={"status": "RESOLVED"}
    ).status_code == 404


def test_remediate_alert_and_list_logs(client, alert, remediation, alert_store):
    resp = client.post(
        f"/api/v1/alerts/{alert.id}/remediate",
        json={"action": "lock_user", "reason": "brute force"},
    )

    assert resp.status_code == 200
    assert resp.json()["status"] == "success"
    assert remediation.calls == [
        (alert.id, ActionType.LOCK_USER, settings.REMEDIATION_ACTOR, "brute force")
    ]
    assert alert_store.get_alert(alert.id).status == AlertStatus.RESOLVED

    logs = client.get(f"/api/v1/alerts/{alert.id}/remediations").json()
    assert logs["count"] == 1
    assert logs["logs"][0]["action_type"] == "lock_user"


def test_remediate_rejects_unknown_action(client, alert):
    resp = client.post(f"/api/v1/alerts/{alert.id}/remediate", json={"action": "delete_user"})

    assert resp.status_code == 422


@pytest.mark.parametrize(
    "error, expected",
    [
        (KeyError("missing"), 404),
        (ValueError("alert has no key_id in evidence"), 400),
        (RemediationError("lock_user failed", "lock_user", "user@example.com"), 502),
    ],
)
def test_remediate_error_mapping(client, alert, remediation, error, expected):
    remediation.error = error

    resp = client.post(f"/api/v1/alerts/{alert.id}/remediate", json={"action": "lock_user"})

    assert resp.status_code == expected


def test_remediations_for_unknown_alert(client):
    assert client.get("/api/v1/alerts/missing/remediations").status_code == 404


def test_ingest_now(client):
    body = client.post("/api/v1/ingest/now").json()

    assert body == {
        "status": "success",
        "message": "Ingestion triggered successfully",
        "fetched": 3,
        "stored": 1,
        "duplicates": 1,
        "failed": 1,
        "alerts_raised": 1,
    }


def test_ingest_now_fetch_failure_is_bad_gateway(client):
    app.dependency_overrides[deps.get_ingestor] = lambda: _FakeIngestor(
        IngestionError("failed to fetch audit events")
    )

    assert client.post("/api/v1/ingest/now").status_code == 502


def test_bearer_token_enforced_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "API_AUTH_TOKEN", "s3cret")

    assert client.get("/api/v1/events").status_code == 401
    assert client.get(
        "/api/v1/events", headers={"Authorization": "Bearer wrong"}
    ).status_code == 401
    assert client.get(
        "/api/v1/events", headers={"Authorization": "Bearer s3cret"}
    ).status_code == 200
    assert client.get("/api/v1/health").status_code == 200


def test_list_remediations(client, alert, log_store):
    log_store.log_remediation(
        RemediationLog(
            alert_id=alert.id,
            actor_user="analyst",
            action_type=ActionType.REVOKE_KEY,
            payload={"key_id": "key_abc123", "reason": ""},
            result="failed: status 500",
        )
    )

    body = client.get("/api/v1/remediations", params={"limit": 10}).json()

    assert body["count"] == 1
    assert body["logs"][0]["result"] == "failed: status 500"
    assert client.get("/api/v1/remediations", params={"limit": 0}).status_code == 422


def test_reprocess_endpoint(client, event_store):
    event_store.store_event(make_event("evt_stored"))
    seen = []

    class _Reprocessor:
        def reprocess(self, limit, offset, event_type, actor):
            seen.append((limit, offset, event_type, actor))
            return ReprocessReport(
                outcomes=[ItemOutcome(item="evt_stored", outcome=Outcome.EVALUATED)],
                alerts_raised=0,
            )

    app.dependency_overrides[deps.get_reprocess_service] = lambda: _Reprocessor()

    body = client.post("/api/v1/detection/reprocess", json={"event_type": "auth.failed"}).json()

    assert seen == [(100, 0, "auth.failed", None)]
    assert body == {"status": "success", "processed": 1, "failed": 0, "alerts_raised": 0}
