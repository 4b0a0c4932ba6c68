# backend/sentinel/services/detection/rules.py
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Protocol
from datetime import datetime, timedelta

from sentinel.core.time_utils import format_rfc3339, utcnow
from sentinel.schemas.alerts import Alert, Severity
from sentinel.schemas.events import Event

logger = logging.getLogger(__name__)


class FailedLoginSource(Protocol):
    def find_events(self, event_type: str, actor: str, since: datetime) -> List[Event]:
        ...


class RecentAlertSource(Protocol):
    def has_recent_alert(self, alert_type: str, user_id: str, since: datetime) -> bool:
        ...


class DetectionRule(ABC):
    """A named, independently failing unit of detection logic."""

    name: str = ""

    def is_active(self) -> bool:
        return True

    @abstractmethod
    def evaluate(self, event: Event) -> List[Alert]:
        """Return the alerts raised by `event` (possibly none). May raise."""


# -------------------------------------------------------------------------
# Rule 1: Failed-login spike (brute force against one identity)
# -------------------------------------------------------------------------
class FailedLoginSpikeRule(DetectionRule):
    """
    Counts stored `auth.failed` events for the actor inside the trailing
    window (the triggering event is already stored, so it is included).
    At or above the threshold a HIGH alert is raised.

    Every qualifying event past the threshold raises a new alert. Set
    `cooldown_minutes` to suppress repeats while an OPEN / INVESTIGATING
    alert for the same actor is younger than the cool-down.
    """

    name = "failed_login_spike"
    EVENT_TYPE = "auth.failed"

    def __init__(
        self,
        events: FailedLoginSource,
        window_minutes: int = 15,
        threshold: int = 5,
        *,
        alerts: Optional[RecentAlertSource] = None,
        cooldown_minutes: int = 0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._events = events
        self.window_minutes = window_minutes
        self.threshold = threshold
        self._alerts = alerts
        self.cooldown_minutes = cooldown_minutes
        self._clock = clock

    def evaluate(self, event: Event) -> List[Alert]:
        if event.event_type != self.EVENT_TYPE or not event.actor:
            return []

        now = self._clock()
        window_start = now - timedelta(minutes=self.window_minutes)
        attempts = self._events.find_events(self.EVENT_TYPE, event.actor, window_start)

        failed_count = len(attempts)
        if failed_count < self.threshold:
            return []

        if self._in_cooldown(event.actor, now):
            logger.info(
                "Suppressing %s alert for %s (cool-down %d min)",
                self.name, event.actor, self.cooldown_minutes,
            )
            return []

        event_refs = [e.id for e in attempts] or [event.id]
        ip_addresses = list(dict.fromkeys(e.ip for e in attempts if e.ip))
        if not ip_addresses and event.ip:
            ip_addresses = [event.ip]
        first_attempt = attempts[0].timestamp if attempts else event.timestamp

        return [
            Alert(
                event_refs=event_refs,
                alert_type=self.name,
                severity=Severity.HIGH,
                user_id=event.actor,
                description=(
                    f"Detected {failed_count} failed login attempts for user "
                    f"{event.actor} within {self.window_minutes} minutes "
                    f"(threshold: {self.threshold})"
                ),
                evidence={
                    "failed_attempts": failed_count,
                    "window_minutes": self.window_minutes,
                    "threshold": self.threshold,
                    "ip_addresses": ip_addresses,
                    "first_attempt": format_rfc3339(first_attempt),
                },
            )
        ]

    def _in_cooldown(self, actor: str, now: datetime) -> bool:
        if self.cooldown_minutes <= 0 or self._alerts is None:
            return False
        since = now - timedelta(minutes=self.cooldown_minutes)
        return self._alerts.has_recent_alert(self.name, actor, since)


# -------------------------------------------------------------------------
# Rule 2: Forbidden access to a sensitive resource
# -------------------------------------------------------------------------
class ForbiddenSensitiveResourceRule(DetectionRule):
    name = "forbidden_sensitive_resource"
    EVENT_TYPE = "forbidden"
    SENSITIVE_KEYWORDS = ("iam", "secrets", "kms", "secret")

    def _match(self, event: Event) -> Optional[str]:
        resource = (event.resource or "").lower()
        raw_resource = event.raw.get("resource")
        raw_resource = raw_resource.lower() if isinstance(raw_resource, str) else ""

        for keyword in self.SENSITIVE_KEYWORDS:
            if resource and keyword in resource:
                return keyword
            if raw_resource and keyword in raw_resource:
                return keyword
        return None

    def evaluate(self, event: Event) -> List[Alert]:
        if event.event_type != self.EVENT_TYPE:
            return []

        resource_type = self._match(event)
        if resource_type is None:
            return []

        return [
            Alert(
                event_refs=[event.id],
                alert_type=self.name,
                severity=Severity.CRITICAL,
                user_id=event.actor,
                description=(
                    f"Forbidden access attempt to sensitive resource "
                    f"({resource_type}) by {event.actor}"
                ),
                evidence={
                    "resource_type": resource_type,
                    "resource": event.resource,
                    "ip_address": event.ip,
                    "timestamp": format_rfc3339(event.timestamp),
                    "raw_event": event.raw,
                },
            )
        ]


# -------------------------------------------------------------------------
# Rule 3: API key creation
# -------------------------------------------------------------------------
class ApiKeyCreationRule(DetectionRule):
    name = "api_key_creation"
    EVENT_TYPE = "apiKey.create"

    def evaluate(self, event: Event) -> List[Alert]:
        if event.event_type != self.EVENT_TYPE:
            return []

        key_id = event.raw.get("key_id")
        key_name = event.raw.get("key_name")

        return [
            Alert(
                event_refs=[event.id],
                alert_type=self.name,
                severity=Severity.HIGH,
                user_id=event.actor,
                description=f"New API key created by {event.actor}",
                evidence={
                    "key_id": key_id if isinstance(key_id, str) else "",
                    "key_name": key_name if isinstance(key_name, str) else "",
                    "ip_address": event.ip,
                    "timestamp": format_rfc3339(event.timestamp),
                    "raw_event": event.raw,
                },
            )
        ]


# -------------------------------------------------------------------------
# Extension points: registered but inactive, evaluate() never raises alerts
# -------------------------------------------------------------------------
class PlaceholderRule(DetectionRule):
    active = False

    def is_active(self) -> bool:
        return self.active

    def evaluate(self, event: Event) -> List[Alert]:
        return []


class UnusualIPRegionRule(PlaceholderRule):
    name = "unusual_ip_region"


class ImpossibleTravelRule(PlaceholderRule):
    name = "impossible_travel"


class IAMPolicyChangeRule(PlaceholderRule):
    name = "iam_policy_change"


class HighPrivilegeUnknownIPRule(PlaceholderRule):
    name = "high_privilege_unknown_ip"


def build_default_rules(
    events: FailedLoginSource,
    *,
    window_minutes: int = 15,
    threshold: int = 5,
    alerts: Optional[RecentAlertSource] = None,
    cooldown_minutes: int = 0,
    clock: Callable[[], datetime] = utcnow,
) -> List[DetectionRule]:
    """The ordered rule registry used by the detection engine."""
    return [
        FailedLoginSpikeRule(
            events,
            window_minutes,
            threshold,
            alerts=alerts,
            cooldown_minutes=cooldown_minutes,
            clock=clock,
        ),
        ForbiddenSensitiveResourceRule(),
        ApiKeyCreationRule(),
        UnusualIPRegionRule(),
        ImpossibleTravelRule(),
        IAMPolicyChangeRule(),
        HighPrivilegeUnknownIPRule(),
    ]
