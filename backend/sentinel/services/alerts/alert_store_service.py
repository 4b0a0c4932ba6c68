# backend/sentinel/services/alerts/alert_store_service.py

import logging
from typing import Iterable, List, Optional, Protocol, Set
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from sentinel.core.exceptions import AlertValidationError
from sentinel.core.time_utils import as_utc, utcnow
from sentinel.models.alert_record import AlertRecord
from sentinel.schemas.alerts import Alert, AlertStatus, Severity, is_lifecycle_transition
from sentinel.services.events.event_store_service import EventStoreService, event_store_service

logger = logging.getLogger(__name__)


def _to_alert(record: AlertRecord) -> Alert:
    return Alert(
        id=record.id,
        event_refs=list(record.event_refs or []),
        alert_type=record.alert_type,
        severity=Severity(record.severity),
        user_id=record.user_id or "",
        description=record.description or "",
        status=AlertStatus(record.status),
        evidence=record.evidence or {},
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


class EventLookup(Protocol):
    def events_exist(self, ids: Iterable[str]) -> Set[str]:
        ...


class AlertStoreService:
    """DB-backed alert store."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        events: Optional[EventLookup] = None,
    ) -> None:
        self._session_factory = session_factory
        self._events = events

    def _get_db(self) -> Session:
        if self._session_factory is None:
            from sentinel.db.session import SessionLocal

            self._session_factory = SessionLocal
        return self._session_factory()

    def _event_lookup(self) -> EventLookup:
        if self._events is None:
            self._events = EventStoreService(self._session_factory)
        return self._events

    def store_alert(self, alert: Alert) -> Alert:
        """
        Persist a new alert. Every id in `event_refs` must already be in the
        event store, otherwise AlertValidationError is raised.
        """
        refs = list(dict.fromkeys(alert.event_refs))
        if refs:
            found = self._event_lookup().events_exist(refs)
            missing = [ref for ref in refs if ref not in found]
            if missing:
                raise AlertValidationError(
                    f"alert {alert.id} references unknown events: {missing}"
                )

        db = self._get_db()
        try:
            record = AlertRecord(
                id=alert.id,
                event_refs=refs,
                alert_type=alert.alert_type,
                severity=alert.severity.value,
                user_id=alert.user_id,
                description=alert.description,
                status=alert.status.value,
                evidence=alert.evidence,
                created_at=as_utc(alert.created_at),
                updated_at=as_utc(alert.updated_at),
            )
            db.add(record)
            db.commit()
            return _to_alert(record)
        finally:
            db.close()

    def get_alert(self, alert_id: str) -> Alert:
        """Raises KeyError if not found."""
        db = self._get_db()
        try:
            record = db.query(AlertRecord).filter(AlertRecord.id == alert_id).first()
            if record is None:
                raise KeyError(alert_id)
            return _to_alert(record)
        finally:
            db.close()

    def list_alerts(
        self,
        limit: int = 50,
        offset: int = 0,
        severity: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> List[Alert]:
        """Alerts ordered by creation time, newest first."""
        db = self._get_db()
        try:
            q = db.query(AlertRecord)
            if severity:
                q = q.filter(AlertRecord.severity == severity)
            if status:
                q = q.filter(AlertRecord.status == status)
            if user_id:
                q = q.filter(AlertRecord.user_id == user_id)
            q = q.order_by(AlertRecord.created_at.desc()).offset(offset).limit(limit)
            return [_to_alert(r) for r in q]
        finally:
            db.close()

    def has_recent_alert(
        self,
        alert_type: str,
        user_id: str,
        since: datetime,
        statuses: Iterable[AlertStatus] = (AlertStatus.OPEN, AlertStatus.INVESTIGATING),
    ) -> bool:
        db = self._get_db()
        try:
            found = (
                db.query(AlertRecord.id)
                .filter(AlertRecord.alert_type == alert_type)
                .filter(AlertRecord.user_id == user_id)
                .filter(AlertRecord.status.in_([s.value for s in statuses]))
                .filter(AlertRecord.created_at > as_utc(since))
                .first()
            )
            return found is not None
        finally:
            db.close()

    def update_alert_status(self, alert_id: str, status: AlertStatus) -> Alert:
        """
        Set the status directly. Any valid status is accepted, including
        moving out of RESOLVED / FALSE_POSITIVE; such moves are logged.
        Raises KeyError if the alert does not exist.
        """
        status = AlertStatus(status)
        db = self._get_db()
        try:
            record = db.query(AlertRecord).filter(AlertRecord.id == alert_id).first()
            if record is None:
                raise KeyError(alert_id)

            current = AlertStatus(record.status)
            if not is_lifecycle_transition(current, status):
                logger.warning(
                    "Alert %s moved outside its lifecycle: %s -> %s",
                    alert_id, current.value, status.value,
                )

            record.status = status.value
            record.updated_at = utcnow()
            db.commit()
            return _to_alert(record)
        finally:
            db.close()


alert_store_service = AlertStoreService(events=event_store_service)
