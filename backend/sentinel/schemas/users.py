# backend/sentinel/schemas/users.py
from typing import Optional
from datetime import datetime
import uuid

from pydantic import BaseModel, Field

from sentinel.core.time_utils import utcnow


class UserProfile(BaseModel):
    """
    Per-identity risk profile. Reserved for stateful rules
    (impossible travel, unusual IP/region); no active rule reads it.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    scaleway_user_id: str
    last_seen_ip: Optional[str] = None
    last_seen_region: Optional[str] = None
    risk_score: int = Field(0, ge=0, le=100)
    locked: bool = False
    updated_at: datetime = Field(default_factory=utcnow)
