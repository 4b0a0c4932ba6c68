from fastapi import APIRouter

from sentinel.core.config import settings
from sentinel.services.scaleway.client import scaleway_client

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """
    Liveness check. Never requires the bearer token.
    `mock_data` is true when no Scaleway API key is configured.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "ingestion_enabled": settings.INGESTION_ENABLED,
        "poll_interval_seconds": settings.POLL_INTERVAL_SECONDS,
        "mock_data": scaleway_client.uses_mock_data,
    }
