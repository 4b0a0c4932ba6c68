# backend/sentinel/run.py
import uvicorn

from sentinel.core.config import settings


def main() -> None:
    """Serve the API (and the background ingestion loop) with uvicorn."""
    uvicorn.run(
        "sentinel.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
