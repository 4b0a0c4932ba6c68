# backend/sentinel/schemas/alerts.py
from typing import Any, Dict, List
from datetime import datetime
from enum import Enum
import uuid

from pydantic import BaseModel, Field

from sentinel.core.time_utils import utcnow


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertStatus(str, Enum):
    OPEN = "OPEN"
    INVESTIGATING = "INVESTIGATING"
    RESOLVED = "RESOLVED"
    FALSE_POSITIVE = "FALSE_POSITIVE"


# Expected lifecycle. Direct status updates are not restricted to it;
# leaving a terminal state is allowed but logged.
ALERT_TRANSITIONS: Dict[AlertStatus, set] = {
    AlertStatus.OPEN: {
        AlertStatus.INVESTIGATING,
        AlertStatus.RESOLVED,
        AlertStatus.FALSE_POSITIVE,
    },
    AlertStatus.INVESTIGATING: {AlertStatus.RESOLVED, AlertStatus.FALSE_POSITIVE},
    AlertStatus.RESOLVED: set(),
    AlertStatus.FALSE_POSITIVE: set(),
}


def is_lifecycle_transition(current: AlertStatus, target: AlertStatus) -> bool:
    return current == target or target in ALERT_TRANSITIONS.get(current, set())


class Alert(BaseModel):
    """
    A detection finding, e.g.
    - "5 failed logins for alice@example.com in 15 minutes"
    - "forbidden access to secrets/* by bob@example.com"
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_refs: List[str] = Field(default_factory=list)   # events.id, not provider ids
    alert_type: str   # rule name, e.g. "failed_login_spike"
    severity: Severity
    user_id: str = ""
    description: str = ""
    status: AlertStatus = AlertStatus.OPEN
    evidence: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class AlertListResponse(BaseModel):
    alerts: List[Alert]
    count: int


class AlertStatusUpdate(BaseModel):
    status: AlertStatus
