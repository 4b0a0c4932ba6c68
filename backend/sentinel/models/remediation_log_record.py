# backend/sentinel/models/remediation_log_record.py
from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from sentinel.core.time_utils import utcnow
from sentinel.db.base_class import Base, JSONType


class RemediationLogRecord(Base):
    __tablename__ = "remediation_logs"

    id = Column(String(36), primary_key=True, index=True)
    alert_id = Column(String(36), ForeignKey("alerts.id"), nullable=True, index=True)
    actor_user = Column(String(255), nullable=False, index=True)
    action_type = Column(String(50), nullable=False)
    payload = Column(JSONType, nullable=True)
    result = Column(Text, nullable=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, index=True)
