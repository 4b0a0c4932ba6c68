# backend/sentinel/services/alerting/slack_alert_service.py
import logging
import requests

from fastapi.encoders import jsonable_encoder

from sentinel.core.config import settings
from sentinel.schemas.alerts import Alert

logger = logging.getLogger(__name__)


def build_slack_payload(alert: Alert) -> dict:
    text_lines = [
        ":rotating_light: *Security alert raised*",
        f"*Alert ID*: `{alert.id}`",
        f"*Rule*: `{alert.alert_type}`",
        f"*Severity*: `{alert.severity.value}`",
    ]
    if alert.user_id:
        text_lines.append(f"*User*: `{alert.user_id}`")
    if alert.description:
        text_lines.append(f"*Description*: {alert.description}")

    ips = alert.evidence.get("ip_addresses") or [alert.evidence.get("ip_address")]
    ips = [ip for ip in ips if ip]
    if ips:
        text_lines.append("*Source IPs*: " + ", ".join(f"`{ip}`" for ip in ips[:5]))

    return {"text": "\n".join(text_lines)}


def send_slack_alert(alert: Alert) -> None:
    """
    Simple Slack alert sender using Incoming Webhook URL.

    Configure env:
      SLACK_ALERT_WEBHOOK_URL=https://hooks.slack.com/services/...
    """
    webhook_url = settings.SLACK_ALERT_WEBHOOK_URL
    if not webhook_url:
        logger.debug("Slack webhook URL not configured; skipping Slack alert.")
        return

    # Make it JSON-safe (datetimes → isoformat, enums → values, etc.)
    json_payload = jsonable_encoder(build_slack_payload(alert))

    try:
        resp = requests.post(webhook_url, json=json_payload, timeout=5)
        resp.raise_for_status()
    except Exception as exc:
        logger.exception("Failed to send Slack alert: %s", exc)
