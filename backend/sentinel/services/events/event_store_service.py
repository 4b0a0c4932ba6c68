# backend/sentinel/services/events/event_store_service.py

import logging
from typing import Iterable, List, Optional, Set
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from sentinel.core.time_utils import as_utc
from sentinel.models.event_record import EventRecord
from sentinel.schemas.events import Event

logger = logging.getLogger(__name__)


def _to_event(record: EventRecord) -> Event:
    return Event(
        id=record.id,
        event_id=record.event_id,
        event_type=record.event_type,
        actor=record.actor or "",
        resource=record.resource or "",
        ip=record.ip or "",
        region=record.region or "",
        timestamp=as_utc(record.timestamp),
        raw=record.raw or {},
        ingest_failed=bool(record.ingest_failed),
        created_at=as_utc(record.created_at),
    )


class EventStoreService:
    """
    DB-backed event store (Postgres via SQLAlchemy).

    Keyed by provider event id: `store_event` is insert-if-absent and relies
    on the unique index on events.event_id, so two overlapping ingest cycles
    can never store the same provider event twice.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        self._session_factory = session_factory

    def _get_db(self) -> Session:
        if self._session_factory is None:
            from sentinel.db.session import SessionLocal

            self._session_factory = SessionLocal
        return self._session_factory()

    # --------------------------------------------------------
    # Create / store
    # --------------------------------------------------------
    def store_event(self, event: Event) -> bool:
        """
        Persist `event`. Returns False (and changes nothing) when an event
        with the same provider id is already stored.
        """
        db = self._get_db()
        try:
            record = EventRecord(
                id=event.id,
                event_id=event.event_id,
                raw=event.raw,
                event_type=event.event_type,
                actor=event.actor,
                resource=event.resource,
                ip=event.ip,
                region=event.region,
                timestamp=as_utc(event.timestamp),
                ingest_failed=event.ingest_failed,
                created_at=as_utc(event.created_at),
            )
            db.add(record)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.debug("Event %s already stored; skipping", event.event_id)
                return False
            return True
        finally:
            db.close()

    # --------------------------------------------------------
    # Dedup / watermark
    # --------------------------------------------------------
    def event_exists(self, provider_event_id: str) -> bool:
        db = self._get_db()
        try:
            count = (
                db.query(func.count(EventRecord.id))
                .filter(EventRecord.event_id == provider_event_id)
                .scalar()
            )
            return bool(count)
        finally:
            db.close()

    def last_event_timestamp(self) -> Optional[datetime]:
        """Most recent provider timestamp in the store, None when empty."""
        db = self._get_db()
        try:
            latest = db.query(func.max(EventRecord.timestamp)).scalar()
            return as_utc(latest)
        finally:
            db.close()

    # --------------------------------------------------------
    # Read single
    # --------------------------------------------------------
    def get_event(self, event_id: str) -> Event:
        """Fetch by internal id. Raises KeyError if not found."""
        db = self._get_db()
        try:
            record = db.query(EventRecord).filter(EventRecord.id == event_id).first()
            if record is None:
                raise KeyError(event_id)
            return _to_event(record)
        finally:
            db.close()

    # --------------------------------------------------------
    # Read list
    # --------------------------------------------------------
    def list_events(
        self,
        limit: int = 50,
        offset: int = 0,
        event_type: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> List[Event]:
        """Events ordered by provider timestamp, newest first."""
        db = self._get_db()
        try:
            q = db.query(EventRecord)
            if event_type:
                q = q.filter(EventRecord.event_type == event_type)
            if actor:
                q = q.filter(EventRecord.actor == actor)
            q = q.order_by(EventRecord.timestamp.desc()).offset(offset).limit(limit)
            return [_to_event(r) for r in q]
        finally:
            db.close()

    def find_events(
        self,
        event_type: str,
        actor: str,
        since: datetime,
    ) -> List[Event]:
        """Events of `event_type` by `actor` strictly newer than `since`, oldest first."""
        db = self._get_db()
        try:
            q = (
                db.query(EventRecord)
                .filter(EventRecord.event_type == event_type)
                .filter(EventRecord.actor == actor)
                .filter(EventRecord.timestamp > as_utc(since))
                .order_by(EventRecord.timestamp.asc())
            )
            return [_to_event(r) for r in q]
        finally:
            db.close()

    def events_exist(self, ids: Iterable[str]) -> Set[str]:
        """Return the subset of internal ids that are stored."""
        wanted = set(ids)
        if not wanted:
            return set()
        db = self._get_db()
        try:
            rows = db.query(EventRecord.id).filter(EventRecord.id.in_(wanted)).all()
            return {row[0] for row in rows}
        finally:
            db.close()


event_store_service = EventStoreService()
