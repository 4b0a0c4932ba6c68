# backend/sentinel/services/scaleway/mock_events.py
"""
Synthetic event set served when no Scaleway API key is configured.

The set is fixed: five failed logins for user@example.com (enough to cross
the default brute-force threshold), one API key creation and one forbidden
read on a secret. Timestamps are anchored on the supplied `now` truncated to
the second, so two calls at the same instant return identical events.
"""
from typing import List, Optional
from datetime import datetime, timedelta

from sentinel.schemas.events import AuditEvent, EventSource


# (suffix, type, actor, resource, ip, minutes_ago, extra raw fields)
_MOCK_SPECS = [
    ("001", "auth.failed", "user@example.com", "iam", "203.0.113.1", 10,
     {"reason": "invalid_credentials"}),
    ("002", "auth.failed", "user@example.com", "iam", "203.0.113.1", 8,
     {"reason": "invalid_credentials"}),
    ("003", "auth.failed", "user@example.com", "iam", "203.0.113.2", 5,
     {"reason": "invalid_credentials"}),
    ("006", "auth.failed", "user@example.com", "iam", "203.0.113.1", 4,
     {"reason": "invalid_credentials"}),
    ("007", "auth.failed", "user@example.com", "iam", "203.0.113.3", 2,
     {"reason": "invalid_credentials"}),
    ("004", "apiKey.create", "admin@example.com", "iam", "198.51.100.1", 3,
     {"key_id": "key_abc123", "key_name": "Production API Key"}),
    ("005", "forbidden", "attacker@example.com", "secrets", "192.0.2.1", 1,
     {"resource": "secrets/database-password", "action": "read"}),
]


def mock_events(
    now: datetime,
    source: EventSource,
    since: Optional[datetime] = None,
) -> List[AuditEvent]:
    now = now.replace(microsecond=0)
    id_base = int(now.timestamp())

    events: List[AuditEvent] = []
    for suffix, event_type, actor, resource, ip, minutes_ago, extra in _MOCK_SPECS:
        event_id = f"evt_mock_{id_base}_{suffix}"
        raw = {
            "event_id": event_id,
            "type": event_type,
            "actor": actor,
            **extra,
        }
        events.append(
            AuditEvent(
                id=event_id,
                type=event_type,
                actor=actor,
                resource=resource,
                ip=ip,
                timestamp=now - timedelta(minutes=minutes_ago),
                source=source,
                raw=raw,
            )
        )

    if since is None:
        return events
    return [e for e in events if e.timestamp > since]
