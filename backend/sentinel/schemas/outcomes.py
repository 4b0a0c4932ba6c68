# backend/sentinel/schemas/outcomes.py
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from sentinel.schemas.alerts import Alert


class Outcome(str, Enum):
    STORED = "stored"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    DETECTION_FAILED = "detection_failed"
    EVALUATED = "evaluated"
    RULE_FAILED = "rule_failed"
    ALERT_FAILED = "alert_failed"


class ItemOutcome(BaseModel):
    """What happened to one item (event, rule, alert) within a batch."""
    item: str
    outcome: Outcome
    detail: Optional[str] = None


class DetectionReport(BaseModel):
    event_id: str
    outcomes: List[ItemOutcome] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)

    @property
    def failures(self) -> List[ItemOutcome]:
        return [
            o for o in self.outcomes
            if o.outcome in (Outcome.RULE_FAILED, Outcome.ALERT_FAILED)
        ]


class IngestReport(BaseModel):
    fetched_audit: int = 0
    fetched_authentication: int = 0
    outcomes: List[ItemOutcome] = Field(default_factory=list)
    alerts_raised: int = 0

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for o in self.outcomes if o.outcome == outcome)

    @property
    def fetched(self) -> int:
        return self.fetched_audit + self.fetched_authentication

    @property
    def stored(self) -> int:
        # Events that reached the store, whether or not detection succeeded
        return self._count(Outcome.STORED) + self._count(Outcome.DETECTION_FAILED)

    @property
    def duplicates(self) -> int:
        return self._count(Outcome.DUPLICATE)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)


class IngestResponse(BaseModel):
    status: str = "success"
    message: str = "Ingestion triggered successfully"
    fetched: int
    stored: int
    duplicates: int
    failed: int
    alerts_raised: int


class ReprocessReport(BaseModel):
    """Result of re-running detection over events that are already stored."""
    outcomes: List[ItemOutcome] = Field(default_factory=list)
    alerts_raised: int = 0

    @property
    def processed(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome == Outcome.EVALUATED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome == Outcome.DETECTION_FAILED)


class ReprocessRequest(BaseModel):
    limit: int = Field(100, ge=1, le=10000)
    offset: int = Field(0, ge=0)
    event_type: Optional[str] = None
    actor: Optional[str] = None


class ReprocessResponse(BaseModel):
    status: str = "success"
    processed: int
    failed: int
    alerts_raised: int
