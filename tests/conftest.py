import os

# Must be set before any sentinel module builds its settings / engine
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ["INGESTION_ENABLED"] = "false"
os.environ["SCALEWAY_API_KEY"] = ""
os.environ["SLACK_ALERT_WEBHOOK_URL"] = ""
os.environ["GENERIC_ALERT_WEBHOOK_URL"] = ""
os.environ["API_AUTH_TOKEN"] = ""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from sentinel.db.init_db import init_db
from sentinel.db.session import build_engine
from sentinel.schemas.events import Event
from sentinel.services.alerts.alert_store_service import AlertStoreService
from sentinel.services.events.event_store_service import EventStoreService
from sentinel.services.remediation.remediation_log_store import RemediationLogStore

FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_event(
    event_id: str,
    event_type: str = "auth.failed",
    actor: str = "user@example.com",
    minutes_ago: float = 1,
    ip: str = "203.0.113.1",
    resource: str = "iam",
    raw: dict = None,
) -> Event:
    return Event(
        event_id=event_id,
        event_type=event_type,
        actor=actor,
        resource=resource,
        ip=ip,
        timestamp=FIXED_NOW - timedelta(minutes=minutes_ago),
        raw=raw if raw is not None else {"event_id": event_id, "type": event_type},
    )


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def event_store(session_factory) -> EventStoreService:
    return EventStoreService(session_factory)


@pytest.fixture
def alert_store(session_factory) -> AlertStoreService:
    return AlertStoreService(session_factory)


@pytest.fixture
def log_store(session_factory) -> RemediationLogStore:
    return RemediationLogStore(session_factory)
