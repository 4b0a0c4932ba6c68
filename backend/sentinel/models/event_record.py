# backend/sentinel/models/event_record.py
from sqlalchemy import Boolean, Column, DateTime, String

from sentinel.core.time_utils import utcnow
from sentinel.db.base_class import Base, JSONType


class EventRecord(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, index=True)   # store UUID as string
    # Unique index makes insert-if-absent atomic across concurrent ingest cycles
    event_id = Column(String(255), unique=True, nullable=False, index=True)
    raw = Column(JSONType, nullable=False)
    event_type = Column(String(100), nullable=False, index=True)
    actor = Column(String(255), nullable=True, index=True)
    resource = Column(String(255), nullable=True)
    ip = Column(String(45), nullable=True, index=True)
    region = Column(String(100), nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    ingest_failed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
