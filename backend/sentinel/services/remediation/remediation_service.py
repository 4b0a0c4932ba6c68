# backend/sentinel/services/remediation/remediation_service.py

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from sentinel.core.exceptions import RemediationError
from sentinel.schemas.alerts import AlertStatus
from sentinel.schemas.remediation import RESULT_SUCCESS, ActionType, RemediationLog
from sentinel.services.alerts.alert_store_service import AlertStoreService, alert_store_service
from sentinel.services.remediation.remediation_log_store import (
    RemediationLogStore,
    remediation_log_store,
)
from sentinel.services.scaleway.client import ScalewayClient, scaleway_client

logger = logging.getLogger(__name__)


class RemediationService:
    """
    Executes control-plane actions against Scaleway IAM and records an
    audit log entry for every attempt, whether it succeeded or not.
    """

    def __init__(
        self,
        client: ScalewayClient,
        log_store: RemediationLogStore,
        alert_store: AlertStoreService,
    ) -> None:
        self._client = client
        self._logs = log_store
        self._alerts = alert_store

    # --------------------------------------------------------
    # Standalone actions
    # --------------------------------------------------------
    async def lock_user(self, user_id: str, actor: str, reason: str = "") -> RemediationLog:
        return await self.lock_user_with_alert(None, user_id, actor, reason)

    async def unlock_user(self, user_id: str, actor: str, reason: str = "") -> RemediationLog:
        return await self.unlock_user_with_alert(None, user_id, actor, reason)

    async def revoke_api_key(self, key_id: str, actor: str, reason: str = "") -> RemediationLog:
        return await self.revoke_api_key_with_alert(None, key_id, actor, reason)

    # --------------------------------------------------------
    # Alert-linked actions
    # --------------------------------------------------------
    async def lock_user_with_alert(
        self, alert_id: Optional[str], user_id: str, actor: str, reason: str = ""
    ) -> RemediationLog:
        return await self._execute(
            ActionType.LOCK_USER,
            self._client.lock_user,
            subject=user_id,
            payload={"user_id": user_id, "reason": reason},
            alert_id=alert_id,
            actor=actor,
        )

    async def unlock_user_with_alert(
        self, alert_id: Optional[str], user_id: str, actor: str, reason: str = ""
    ) -> RemediationLog:
        return await self._execute(
            ActionType.UNLOCK_USER,
            self._client.unlock_user,
            subject=user_id,
            payload={"user_id": user_id, "reason": reason},
            alert_id=alert_id,
            actor=actor,
        )

    async def revoke_api_key_with_alert(
        self, alert_id: Optional[str], key_id: str, actor: str, reason: str = ""
    ) -> RemediationLog:
        return await self._execute(
            ActionType.REVOKE_KEY,
            self._client.revoke_api_key,
            subject=key_id,
            payload={"key_id": key_id, "reason": reason},
            alert_id=alert_id,
            actor=actor,
        )

    async def _execute(
        self,
        action_type: ActionType,
        call: Callable[[str], Awaitable[None]],
        *,
        subject: str,
        payload: Dict[str, Any],
        alert_id: Optional[str],
        actor: str,
    ) -> RemediationLog:
        entry = RemediationLog(
            alert_id=alert_id,
            actor_user=actor,
            action_type=action_type,
            payload=payload,
            result=RESULT_SUCCESS,
        )

        try:
            await call(subject)
        except Exception as exc:
            entry.result = f"failed: {exc}"
            try:
                self._logs.log_remediation(entry)
            except Exception:
                logger.exception(
                    "Failed to record failed %s remediation for %s",
                    action_type.value, subject,
                )
            logger.error("Remediation %s for %s failed: %s", action_type.value, subject, exc)
            raise RemediationError(
                f"{action_type.value} failed for {subject}: {exc}",
                action_type=action_type.value,
                subject=subject,
            ) from exc

        # Action already applied; an unrecorded success is surfaced to the caller
        self._logs.log_remediation(entry)
        logger.info(
            "Remediation %s applied to %s by %s (alert=%s)",
            action_type.value, subject, actor, alert_id or "-",
        )
        return entry

    # --------------------------------------------------------
    # Alert-driven dispatch
    # --------------------------------------------------------
    async def remediate_alert(
        self, alert_id: str, action: ActionType, actor: str, reason: str = ""
    ) -> RemediationLog:
        """
        Run `action` against the subject of an alert and resolve it.

        lock_user / unlock_user target alert.user_id; revoke_key targets
        evidence["key_id"]. Raises KeyError for an unknown alert and
        ValueError when the alert has no subject for the action.
        """
        alert = self._alerts.get_alert(alert_id)
        action = ActionType(action)

        if action in (ActionType.LOCK_USER, ActionType.UNLOCK_USER):
            subject = alert.user_id
            if not subject:
                raise ValueError(f"alert {alert_id} has no user_id to {action.value}")
        else:
            subject = str(alert.evidence.get("key_id") or "")
            if not subject:
                raise ValueError(f"alert {alert_id} has no key_id in evidence")

        if action == ActionType.LOCK_USER:
            entry = await self.lock_user_with_alert(alert_id, subject, actor, reason)
        elif action == ActionType.UNLOCK_USER:
            entry = await self.unlock_user_with_alert(alert_id, subject, actor, reason)
        else:
            entry = await self.revoke_api_key_with_alert(alert_id, subject, actor, reason)

        try:
            self._alerts.update_alert_status(alert_id, AlertStatus.RESOLVED)
        except Exception:
            logger.exception("Failed to resolve alert %s after remediation", alert_id)

        return entry


remediation_service = RemediationService(
    scaleway_client,
    remediation_log_store,
    alert_store_service,
)
