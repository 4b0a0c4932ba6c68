# backend/sentinel/services/alerting/alert_dispatcher.py
import logging

from sentinel.schemas.alerts import Alert, Severity
from sentinel.services.alerting.slack_alert_service import send_slack_alert
from sentinel.services.alerting.webhook_alert_service import send_generic_webhook_alert

logger = logging.getLogger(__name__)

NOTIFY_SEVERITIES = (Severity.HIGH, Severity.CRITICAL)


def dispatch_alert(alert: Alert) -> None:
    """
    Notifier handed to the detection engine; called once per stored alert.
    Only HIGH / CRITICAL alerts go out.
    """
    if alert.severity not in NOTIFY_SEVERITIES:
        logger.info(
            "Alert %s severity %s below notification threshold; not sent.",
            alert.id,
            alert.severity.value,
        )
        return

    logger.info(
        "Dispatching notifications for alert %s (%s, %s)",
        alert.id,
        alert.alert_type,
        alert.severity.value,
    )

    # Channels fail independently
    try:
        send_slack_alert(alert)
    except Exception:
        logger.exception("Slack alert failed.")

    try:
        send_generic_webhook_alert(alert)
    except Exception:
        logger.exception("Generic webhook alert failed.")
