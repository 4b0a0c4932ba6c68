# backend/sentinel/services/alerting/webhook_alert_service.py
import logging
import requests

from fastapi.encoders import jsonable_encoder

from sentinel.core.config import settings
from sentinel.schemas.alerts import Alert

logger = logging.getLogger(__name__)


def send_generic_webhook_alert(alert: Alert) -> None:
    """
    POST the alert as JSON to a generic receiver (SOAR playbook, n8n, ticketing).

    Configure env:
      GENERIC_ALERT_WEBHOOK_URL=https://your-endpoint/ingest
    """
    webhook_url = settings.GENERIC_ALERT_WEBHOOK_URL
    if not webhook_url:
        logger.debug("Generic webhook URL not configured; skipping generic alert.")
        return

    payload = {
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "alert_id": alert.id,
        "alert_type": alert.alert_type,
        "severity": alert.severity,
        "status": alert.status,
        "user_id": alert.user_id,
        "description": alert.description,
        "event_refs": alert.event_refs,
        "evidence": alert.evidence,
        "created_at": alert.created_at,
    }

    json_payload = jsonable_encoder(payload)

    try:
        resp = requests.post(webhook_url, json=json_payload, timeout=5)
        resp.raise_for_status()
    except Exception as exc:
        logger.exception("Failed to send generic webhook alert: %s", exc)
