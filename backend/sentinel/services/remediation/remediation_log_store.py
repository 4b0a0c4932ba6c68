# backend/sentinel/services/remediation/remediation_log_store.py

from typing import List, Optional

from sqlalchemy.orm import Session, sessionmaker

from sentinel.core.time_utils import as_utc
from sentinel.models.remediation_log_record import RemediationLogRecord
from sentinel.schemas.remediation import ActionType, RemediationLog


def _to_log(record: RemediationLogRecord) -> RemediationLog:
    return RemediationLog(
        id=record.id,
        alert_id=record.alert_id,
        actor_user=record.actor_user,
        action_type=ActionType(record.action_type),
        payload=record.payload or {},
        result=record.result or "",
        timestamp=as_utc(record.timestamp),
    )


class RemediationLogStore:
    """Append-only store of remediation attempts."""

    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        self._session_factory = session_factory

    def _get_db(self) -> Session:
        if self._session_factory is None:
            from sentinel.db.session import SessionLocal

            self._session_factory = SessionLocal
        return self._session_factory()

    def log_remediation(self, entry: RemediationLog) -> RemediationLog:
        db = self._get_db()
        try:
            db.add(
                RemediationLogRecord(
                    id=entry.id,
                    alert_id=entry.alert_id,
                    actor_user=entry.actor_user,
                    action_type=entry.action_type.value,
                    payload=entry.payload,
                    result=entry.result,
                    timestamp=as_utc(entry.timestamp),
                )
            )
            db.commit()
            return entry
        finally:
            db.close()

    def list_for_alert(self, alert_id: str) -> List[RemediationLog]:
        """Logs linked to `alert_id`, newest first."""
        db = self._get_db()
        try:
            q = (
                db.query(RemediationLogRecord)
                .filter(RemediationLogRecord.alert_id == alert_id)
                .order_by(RemediationLogRecord.timestamp.desc())
            )
            return [_to_log(r) for r in q]
        finally:
            db.close()

    def list_logs(self, limit: int = 50, offset: int = 0) -> List[RemediationLog]:
        db = self._get_db()
        try:
            q = (
                db.query(RemediationLogRecord)
                .order_by(RemediationLogRecord.timestamp.desc())
                .offset(offset)
                .limit(limit)
            )
            return [_to_log(r) for r in q]
        finally:
            db.close()


remediation_log_store = RemediationLogStore()
