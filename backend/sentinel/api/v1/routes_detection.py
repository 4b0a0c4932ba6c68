# backend/sentinel/api/v1/routes_detection.py

from fastapi import APIRouter, Depends

from sentinel.api.deps import get_reprocess_service, verify_token
from sentinel.schemas.outcomes import ReprocessRequest, ReprocessResponse
from sentinel.services.detection.reprocess_service import ReprocessService

router = APIRouter(
    prefix="/detection",
    tags=["detection"],
    dependencies=[Depends(verify_token)],
)


@router.post(
    "/reprocess",
    response_model=ReprocessResponse,
    summary="Re-run detection over stored events",
)
def reprocess_events(
    payload: ReprocessRequest,
    reprocessor: ReprocessService = Depends(get_reprocess_service),
) -> ReprocessResponse:
    """
    Operator action. Alerts may be raised again for events that were
    already evaluated when they were first ingested.
    """
    report = reprocessor.reprocess(
        limit=payload.limit,
        offset=payload.offset,
        event_type=payload.event_type,
        actor=payload.actor,
    )
    return ReprocessResponse(
        processed=report.processed,
        failed=report.failed,
        alerts_raised=report.alerts_raised,
    )
