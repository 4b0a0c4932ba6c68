# backend/sentinel/api/v1/routes_alerts.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sentinel.api.deps import (
    get_alert_store,
    get_remediation_log_store,
    get_remediation_service,
    verify_token,
)
from sentinel.core.config import settings
from sentinel.core.exceptions import RemediationError
from sentinel.schemas.alerts import Alert, AlertListResponse, AlertStatus, AlertStatusUpdate, Severity
from sentinel.schemas.remediation import (
    RemediateRequest,
    RemediateResponse,
    RemediationLogListResponse,
)
from sentinel.services.alerts.alert_store_service import AlertStoreService
from sentinel.services.remediation.remediation_log_store import RemediationLogStore
from sentinel.services.remediation.remediation_service import RemediationService

router = APIRouter(
    prefix="/alerts",
    tags=["alerts"],
    dependencies=[Depends(verify_token)],
)


def _not_found(alert_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Alert {alert_id} not found",
    )


@router.get("", response_model=AlertListResponse, summary="List alerts, newest first")
def list_alerts(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    severity: Optional[Severity] = None,
    alert_status: Optional[AlertStatus] = Query(None, alias="status"),
    user_id: Optional[str] = None,
    alerts: AlertStoreService = Depends(get_alert_store),
) -> AlertListResponse:
    items = alerts.list_alerts(
        limit=limit,
        offset=offset,
        severity=severity.value if severity else None,
        status=alert_status.value if alert_status else None,
        user_id=user_id,
    )
    return AlertListResponse(alerts=items, count=len(items))


@router.get("/{alert_id}", response_model=Alert, summary="Get a single alert")
def get_alert(
    alert_id: str,
    alerts: AlertStoreService = Depends(get_alert_store),
) -> Alert:
    try:
        return alerts.get_alert(alert_id)
    except KeyError:
        raise _not_found(alert_id)


@router.patch("/{alert_id}/status", response_model=Alert, summary="Set alert status")
def update_alert_status(
    alert_id: str,
    payload: AlertStatusUpdate,
    alerts: AlertStoreService = Depends(get_alert_store),
) -> Alert:
    try:
        return alerts.update_alert_status(alert_id, payload.status)
    except KeyError:
        raise _not_found(alert_id)


@router.post(
    "/{alert_id}/remediate",
    response_model=RemediateResponse,
    summary="Run a remediation action for an alert and resolve it",
)
async def remediate_alert(
    alert_id: str,
    payload: RemediateRequest,
    remediation: RemediationService = Depends(get_remediation_service),
) -> RemediateResponse:
    try:
        await remediation.remediate_alert(
            alert_id,
            payload.action,
            actor=settings.REMEDIATION_ACTOR,
            reason=payload.reason,
        )
    except KeyError:
        raise _not_found(alert_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except RemediationError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return RemediateResponse(message=f"Remediation action {payload.action.value} executed")


@router.get(
    "/{alert_id}/remediations",
    response_model=RemediationLogListResponse,
    summary="Remediation attempts linked to an alert",
)
def list_alert_remediations(
    alert_id: str,
    alerts: AlertStoreService = Depends(get_alert_store),
    logs: RemediationLogStore = Depends(get_remediation_log_store),
) -> RemediationLogListResponse:
    try:
        alerts.get_alert(alert_id)
    except KeyError:
        raise _not_found(alert_id)

    items = logs.list_for_alert(alert_id)
    return RemediationLogListResponse(logs=items, count=len(items))
