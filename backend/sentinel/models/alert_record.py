# backend/sentinel/models/alert_record.py
from sqlalchemy import Column, DateTime, String, Text

from sentinel.core.time_utils import utcnow
from sentinel.db.base_class import Base, JSONType


class AlertRecord(Base):
    __tablename__ = "alerts"

    id = Column(String(36), primary_key=True, index=True)
    event_refs = Column(JSONType, nullable=False)   # list of events.id
    alert_type = Column(String(100), nullable=False)
    severity = Column(String(20), nullable=False, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="OPEN", index=True)
    evidence = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
