# backend/sentinel/services/events/ingestor_service.py

import asyncio
import logging
from typing import List, Optional, Protocol
from datetime import datetime

from fastapi.concurrency import run_in_threadpool

from sentinel.core.config import settings
from sentinel.core.exceptions import IngestionError
from sentinel.schemas.events import AuditEvent, Event
from sentinel.schemas.outcomes import DetectionReport, IngestReport, ItemOutcome, Outcome
from sentinel.services.detection.detection_engine import detection_engine
from sentinel.services.events.event_store_service import event_store_service
from sentinel.services.scaleway.client import scaleway_client

logger = logging.getLogger(__name__)


class AuditFeed(Protocol):
    async def fetch_audit_events(self, since: Optional[datetime] = None) -> List[AuditEvent]:
        ...

    async def fetch_authentication_events(
        self, since: Optional[datetime] = None
    ) -> List[AuditEvent]:
        ...


class EventRepository(Protocol):
    def store_event(self, event: Event) -> bool:
        ...

    def event_exists(self, provider_event_id: str) -> bool:
        ...

    def last_event_timestamp(self) -> Optional[datetime]:
        ...


class EventProcessor(Protocol):
    def process_event(self, event: Event) -> DetectionReport:
        ...


class IngestorService:
    """
    Incremental poller for the Scaleway audit and authentication feeds.

    Each cycle:
      1. Watermark = latest stored event timestamp (None on read failure)
      2. Fetch both feeds since the watermark (either failing aborts the cycle)
      3. For each event, in feed order: dedup by provider id, store, detect
    """

    def __init__(
        self,
        source: AuditFeed,
        events: EventRepository,
        processor: Optional[EventProcessor] = None,
        poll_interval_seconds: float = 300,
    ) -> None:
        self._source = source
        self._events = events
        self._processor = processor
        self.poll_interval_seconds = poll_interval_seconds
        self._stop: Optional[asyncio.Event] = None

    # --------------------------------------------------------
    # One cycle
    # --------------------------------------------------------
    async def ingest(self) -> IngestReport:
        logger.info("Starting event ingestion...")

        try:
            watermark = await run_in_threadpool(self._events.last_event_timestamp)
        except Exception:
            logger.exception("Failed to get last event timestamp; fetching without watermark")
            watermark = None

        try:
            audit_events = await self._source.fetch_audit_events(watermark)
        except Exception as exc:
            raise IngestionError(f"failed to fetch audit events: {exc}") from exc

        try:
            auth_events = await self._source.fetch_authentication_events(watermark)
        except Exception as exc:
            raise IngestionError(f"failed to fetch authentication events: {exc}") from exc

        logger.info(
            "Fetched %d audit events and %d authentication events from Scaleway API",
            len(audit_events), len(auth_events),
        )

        report = IngestReport(
            fetched_audit=len(audit_events),
            fetched_authentication=len(auth_events),
        )

        batch = list(audit_events) + list(auth_events)
        if not batch:
            logger.info("No new events to ingest")
            return report

        # Storage, detection and notification are blocking; keep them off the loop
        for audit_event in batch:
            outcome = await run_in_threadpool(self._ingest_one, audit_event, report)
            report.outcomes.append(outcome)

        logger.info(
            "Ingestion completed: %d fetched, %d stored, %d duplicates, %d failed, %d alerts",
            report.fetched, report.stored, report.duplicates, report.failed,
            report.alerts_raised,
        )
        return report

    def _ingest_one(self, audit_event: AuditEvent, report: IngestReport) -> ItemOutcome:
        provider_id = audit_event.id

        try:
            if self._events.event_exists(provider_id):
                return ItemOutcome(item=provider_id, outcome=Outcome.DUPLICATE)
        except Exception as exc:
            logger.exception("Error checking existence of event %s", provider_id)
            return ItemOutcome(item=provider_id, outcome=Outcome.FAILED, detail=str(exc))

        event = Event.from_audit_event(audit_event)

        try:
            inserted = self._events.store_event(event)
        except Exception as exc:
            logger.exception("Failed to store event %s", provider_id)
            return ItemOutcome(item=provider_id, outcome=Outcome.FAILED, detail=str(exc))

        if not inserted:
            # Another cycle stored it between our check and our insert
            return ItemOutcome(item=provider_id, outcome=Outcome.DUPLICATE)

        if self._processor is None:
            return ItemOutcome(item=provider_id, outcome=Outcome.STORED)

        try:
            detection = self._processor.process_event(event)
        except Exception as exc:
            logger.exception("Failed to process event %s through detection", provider_id)
            return ItemOutcome(
                item=provider_id, outcome=Outcome.DETECTION_FAILED, detail=str(exc)
            )

        report.alerts_raised += len(detection.alerts)
        if detection.failures:
            return ItemOutcome(
                item=provider_id,
                outcome=Outcome.STORED,
                detail=f"{len(detection.failures)} detection step(s) failed",
            )
        return ItemOutcome(item=provider_id, outcome=Outcome.STORED)

    # --------------------------------------------------------
    # Poll loop
    # --------------------------------------------------------
    async def start(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Run one ingest immediately, then one per poll interval until stop()
        is called. Stop is only observed between cycles.
        """
        self._stop = stop_event or asyncio.Event()
        loop = asyncio.get_running_loop()
        interval = self.poll_interval_seconds
        next_tick = loop.time()

        while not self._stop.is_set():
            try:
                await self.ingest()
            except Exception:
                logger.exception("Ingestion cycle failed")

            # Fixed-rate schedule; ticks missed by a long cycle are dropped
            next_tick += interval
            now = loop.time()
            if next_tick < now:
                next_tick = now + interval - ((now - next_tick) % interval)

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=next_tick - now)
            except asyncio.TimeoutError:
                continue

        logger.info("Ingestion loop stopped")

    def stop(self) -> None:
        if self._stop is not None:
            self._stop.set()


ingestor_service = IngestorService(
    scaleway_client,
    event_store_service,
    detection_engine,
    poll_interval_seconds=settings.POLL_INTERVAL_SECONDS,
)
