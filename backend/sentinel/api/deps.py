# backend/sentinel/api/deps.py

from typing import Optional

from fastapi import Header, HTTPException, status

from sentinel.core.config import settings
from sentinel.services.alerts.alert_store_service import AlertStoreService, alert_store_service
from sentinel.services.detection.reprocess_service import ReprocessService, reprocess_service
from sentinel.services.events.event_store_service import EventStoreService, event_store_service
from sentinel.services.events.ingestor_service import IngestorService, ingestor_service
from sentinel.services.remediation.remediation_log_store import (
    RemediationLogStore,
    remediation_log_store,
)
from sentinel.services.remediation.remediation_service import (
    RemediationService,
    remediation_service,
)


def get_event_store() -> EventStoreService:
    return event_store_service


def get_alert_store() -> AlertStoreService:
    return alert_store_service


def get_remediation_log_store() -> RemediationLogStore:
    return remediation_log_store


def get_remediation_service() -> RemediationService:
    return remediation_service


def get_ingestor() -> IngestorService:
    return ingestor_service


def verify_token(authorization: Optional[str] = Header(default=None)) -> None:
    """
    Bearer token check. Disabled when API_AUTH_TOKEN is not configured.
    """
    expected = settings.API_AUTH_TOKEN
    if not expected:
        return

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or token != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_reprocess_service() -> ReprocessService:
    return reprocess_service
