# backend/sentinel/services/detection/detection_engine.py
import logging
from typing import Callable, List, Optional, Protocol, Sequence

from sentinel.core.config import settings
from sentinel.schemas.alerts import Alert
from sentinel.schemas.events import Event
from sentinel.schemas.outcomes import DetectionReport, ItemOutcome, Outcome
from sentinel.services.alerting.alert_dispatcher import dispatch_alert
from sentinel.services.alerts.alert_store_service import alert_store_service
from sentinel.services.detection.rules import DetectionRule, build_default_rules
from sentinel.services.events.event_store_service import event_store_service

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    def store_alert(self, alert: Alert) -> Alert:
        ...


class DetectionEngine:
    """
    Runs every active rule, in registration order, against one event.

    Detection is best-effort: a rule that raises, or an alert that cannot be
    stored, is recorded in the DetectionReport and logged, and evaluation
    moves on to the next rule / alert.
    """

    def __init__(
        self,
        rules: Sequence[DetectionRule],
        alert_store: AlertSink,
        notifier: Optional[Callable[[Alert], None]] = None,
    ) -> None:
        self.rules: List[DetectionRule] = list(rules)
        self._alert_store = alert_store
        self._notifier = notifier

    @property
    def active_rules(self) -> List[DetectionRule]:
        return [rule for rule in self.rules if rule.is_active()]

    def process_event(self, event: Event) -> DetectionReport:
        report = DetectionReport(event_id=event.event_id)

        for rule in self.active_rules:
            try:
                alerts = rule.evaluate(event) or []
            except Exception as exc:
                logger.exception(
                    "Rule %s failed on event %s", rule.name, event.event_id
                )
                report.outcomes.append(
                    ItemOutcome(item=rule.name, outcome=Outcome.RULE_FAILED, detail=str(exc))
                )
                continue

            report.outcomes.append(ItemOutcome(item=rule.name, outcome=Outcome.EVALUATED))

            for alert in alerts:
                try:
                    stored = self._alert_store.store_alert(alert)
                except Exception as exc:
                    logger.exception(
                        "Failed to store %s alert %s for event %s",
                        rule.name, alert.id, event.event_id,
                    )
                    report.outcomes.append(
                        ItemOutcome(item=alert.id, outcome=Outcome.ALERT_FAILED, detail=str(exc))
                    )
                    continue

                report.alerts.append(stored)
                logger.info(
                    "Alert %s raised by %s (%s) for %s",
                    stored.id, rule.name, stored.severity.value, stored.user_id or "-",
                )
                self._notify(stored)

        return report

    def _notify(self, alert: Alert) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(alert)
        except Exception:
            logger.exception("Notification for alert %s failed", alert.id)


detection_engine = DetectionEngine(
    build_default_rules(
        event_store_service,
        window_minutes=settings.FAILED_LOGIN_WINDOW_MINUTES,
        threshold=settings.FAILED_LOGIN_THRESHOLD,
        alerts=alert_store_service,
        cooldown_minutes=settings.FAILED_LOGIN_COOLDOWN_MINUTES,
    ),
    alert_store_service,
    notifier=dispatch_alert,
)
