import asyncio
import logging
from typing import Optional

from fastapi import FastAPI

from sentinel.api.v1.routes_health import router as health_router
from sentinel.api.v1.routes_events import router as events_router
from sentinel.api.v1.routes_alerts import router as alerts_router
from sentinel.api.v1.routes_ingest import router as ingest_router
from sentinel.api.v1.routes_remediations import router as remediations_router
from sentinel.api.v1.routes_detection import router as detection_router

from sentinel.db.init_db import init_db
from sentinel.core.config import settings
from sentinel.services.events.ingestor_service import ingestor_service

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Audit Sentinel",
    version="0.1.0",
    description="Scaleway audit log ingestion, threat detection and IAM remediation.",
)

_ingestion_task: Optional[asyncio.Task] = None
_ingestion_stop: Optional[asyncio.Event] = None


@app.on_event("startup")
async def on_startup() -> None:
    global _ingestion_task, _ingestion_stop

    # Create DB tables if they don't exist
    init_db()

    if settings.INGESTION_ENABLED:
        logger.info(
            "Starting ingestion loop (interval %ss)", settings.POLL_INTERVAL_SECONDS
        )
        _ingestion_stop = asyncio.Event()
        _ingestion_task = asyncio.create_task(ingestor_service.start(_ingestion_stop))
    else:
        logger.info("Background ingestion disabled")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if _ingestion_task is None:
        return
    _ingestion_stop.set()
    # A cycle in progress is allowed to finish
    await _ingestion_task


@app.get("/", tags=["root"])
async def root() -> dict:
    return {
        "status": "ok",
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
    }


# API v1
app.include_router(health_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")
app.include_router(alerts_router, prefix="/api/v1")
app.include_router(ingest_router, prefix="/api/v1")
app.include_router(remediations_router, prefix="/api/v1")
app.include_router(detection_router, prefix="/api/v1")
