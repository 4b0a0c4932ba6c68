# backend/sentinel/schemas/remediation.py
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
import uuid

from pydantic import BaseModel, Field

from sentinel.core.time_utils import utcnow


RESULT_SUCCESS = "success"


class ActionType(str, Enum):
    LOCK_USER = "lock_user"
    UNLOCK_USER = "unlock_user"
    REVOKE_KEY = "revoke_key"


class RemediationLog(BaseModel):
    """Audit record of one remediation attempt, successful or not."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    alert_id: Optional[str] = None
    actor_user: str
    action_type: ActionType
    payload: Dict[str, Any] = Field(default_factory=dict)
    result: str   # "success" | "failed: <reason>"
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def succeeded(self) -> bool:
        return self.result == RESULT_SUCCESS


class RemediateRequest(BaseModel):
    action: ActionType
    reason: str = ""


class RemediateResponse(BaseModel):
    status: str = "success"
    message: str


class RemediationLogListResponse(BaseModel):
    logs: List[RemediationLog]
    count: int
