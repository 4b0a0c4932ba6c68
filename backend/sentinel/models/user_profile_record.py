# backend/sentinel/models/user_profile_record.py
# Reserved for stateful rules (impossible travel, unusual IP); nothing writes it yet.
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from sentinel.core.time_utils import utcnow
from sentinel.db.base_class import Base


class UserProfileRecord(Base):
    __tablename__ = "user_profiles"
    __table_args__ = (
        CheckConstraint("risk_score >= 0 AND risk_score <= 100", name="ck_risk_score_range"),
    )

    id = Column(String(36), primary_key=True, index=True)
    scaleway_user_id = Column(String(255), unique=True, nullable=False, index=True)
    last_seen_ip = Column(String(45), nullable=True)
    last_seen_region = Column(String(100), nullable=True)
    risk_score = Column(Integer, default=0, index=True)
    locked = Column(Boolean, default=False)

    updated_at = Column(DateTime(timezone=True), default=utcnow)
