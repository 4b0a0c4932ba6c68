# backend/sentinel/services/detection/reprocess_service.py

import logging
from typing import List, Optional, Protocol

from sentinel.schemas.events import Event
from sentinel.schemas.outcomes import DetectionReport, ItemOutcome, Outcome, ReprocessReport
from sentinel.services.detection.detection_engine import detection_engine
from sentinel.services.events.event_store_service import event_store_service

logger = logging.getLogger(__name__)


class StoredEvents(Protocol):
    def list_events(
        self,
        limit: int = 50,
        offset: int = 0,
        event_type: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> List[Event]:
        ...


class EventProcessor(Protocol):
    def process_event(self, event: Event) -> DetectionReport:
        ...


class ReprocessService:
    """
    Operator-triggered re-run of detection over events already in the store,
    e.g. after a rule change or a threshold tweak.

    Ingestion never calls this. Rules fire again for every selected event, so
    alerts already raised for them can be raised a second time.
    """

    def __init__(self, events: StoredEvents, processor: EventProcessor) -> None:
        self._events = events
        self._processor = processor

    def reprocess(
        self,
        limit: int = 100,
        offset: int = 0,
        event_type: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> ReprocessReport:
        # list_events is newest first; replay in provider time order
        selected = self._events.list_events(
            limit=limit, offset=offset, event_type=event_type, actor=actor
        )
        selected.reverse()
        logger.info("Re-running detection over %d stored events", len(selected))

        report = ReprocessReport()
        for event in selected:
            try:
                detection = self._processor.process_event(event)
            except Exception as exc:
                logger.exception("Failed to reprocess event %s", event.event_id)
                report.outcomes.append(
                    ItemOutcome(
                        item=event.event_id, outcome=Outcome.DETECTION_FAILED, detail=str(exc)
                    )
                )
                continue

            report.alerts_raised += len(detection.alerts)
            report.outcomes.append(ItemOutcome(item=event.event_id, outcome=Outcome.EVALUATED))

        logger.info(
            "Reprocessing completed: %d processed, %d failed, %d alerts",
            report.processed, report.failed, report.alerts_raised,
        )
        return report


reprocess_service = ReprocessService(event_store_service, detection_engine)
