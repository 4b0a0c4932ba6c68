# backend/sentinel/api/v1/routes_ingest.py

from fastapi import APIRouter, Depends, HTTPException, status

from sentinel.api.deps import get_ingestor, verify_token
from sentinel.core.exceptions import IngestionError
from sentinel.schemas.outcomes import IngestResponse
from sentinel.services.events.ingestor_service import IngestorService

router = APIRouter(
    prefix="/ingest",
    tags=["ingest"],
    dependencies=[Depends(verify_token)],
)


@router.post("/now", response_model=IngestResponse, summary="Run one ingestion cycle now")
async def ingest_now(
    ingestor: IngestorService = Depends(get_ingestor),
) -> IngestResponse:
    try:
        report = await ingestor.ingest()
    except IngestionError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))

    return IngestResponse(
        fetched=report.fetched,
        stored=report.stored,
        duplicates=report.duplicates,
        failed=report.failed,
        alerts_raised=report.alerts_raised,
    )
