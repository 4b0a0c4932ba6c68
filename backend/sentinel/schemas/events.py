# backend/sentinel/schemas/events.py
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
import uuid

from pydantic import BaseModel, Field

from sentinel.core.time_utils import utcnow


class EventSource(str, Enum):
    AUDIT = "audit"
    AUTHENTICATION = "authentication"


class AuditEvent(BaseModel):
    """
    A provider record after field-name normalisation, before it is stored.
    This is what the Scaleway client hands to the ingestor.
    """
    id: str = Field(..., description="Provider event id (natural dedup key)")
    type: str = "unknown"
    actor: str = ""
    resource: str = ""
    ip: str = ""
    region: str = ""
    timestamp: datetime
    source: Optional[EventSource] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class Event(BaseModel):
    """Normalised audit / authentication event as persisted in the event store."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_id: str = Field(..., description="Provider event id, globally unique")
    event_type: str
    actor: str = ""
    resource: str = ""
    ip: str = ""
    region: str = ""
    timestamp: datetime
    raw: Dict[str, Any] = Field(default_factory=dict)
    ingest_failed: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_audit_event(cls, audit_event: AuditEvent) -> "Event":
        # Shallow copy so tagging the source never touches the client's dict
        raw = dict(audit_event.raw or {})
        if audit_event.source is not None:
            raw["source"] = audit_event.source.value

        return cls(
            event_id=audit_event.id,
            event_type=audit_event.type,
            actor=audit_event.actor,
            resource=audit_event.resource,
            ip=audit_event.ip,
            region=audit_event.region,
            timestamp=audit_event.timestamp,
            raw=raw,
        )


class EventListResponse(BaseModel):
    events: List[Event]
    count: int
