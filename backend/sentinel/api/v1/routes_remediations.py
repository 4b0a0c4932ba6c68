# backend/sentinel/api/v1/routes_remediations.py

from fastapi import APIRouter, Depends, Query

from sentinel.api.deps import get_remediation_log_store, verify_token
from sentinel.schemas.remediation import RemediationLogListResponse
from sentinel.services.remediation.remediation_log_store import RemediationLogStore

router = APIRouter(
    prefix="/remediations",
    tags=["remediation"],
    dependencies=[Depends(verify_token)],
)


@router.get(
    "",
    response_model=RemediationLogListResponse,
    summary="Remediation audit trail, newest first",
)
def list_remediations(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    logs: RemediationLogStore = Depends(get_remediation_log_store),
) -> RemediationLogListResponse:
    items = logs.list_logs(limit=limit, offset=offset)
    return RemediationLogListResponse(logs=items, count=len(items))
