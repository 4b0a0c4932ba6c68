from conftest import fixed_clock, make_event
from sentinel.schemas.outcomes import DetectionReport, Outcome
from sentinel.services.detection.detection_engine import DetectionEngine
from sentinel.services.detection.reprocess_service import ReprocessService
from sentinel.services.detection.rules import build_default_rules


class _RecordingProcessor:
    def __init__(self, fail_for=()):
        self.seen = []
        self.fail_for = set(fail_for)

    def process_event(self, event):
        self.seen.append(event.event_id)
        if event.event_id in self.fail_for:
            raise RuntimeError("rule storage offline")
        return DetectionReport(event_id=event.event_id)


def test_reprocess_replays_stored_events_oldest_first(event_store):
    event_store.store_event(make_event("evt_old", minutes_ago=10))
    event_store.store_event(make_event("evt_mid", minutes_ago=5))
    event_store.store_event(make_event("evt_new", minutes_ago=1))
    processor = _RecordingProcessor()

    report = ReprocessService(event_store, processor).reprocess()

    assert processor.seen == ["evt_old", "evt_mid", "evt_new"]
    assert report.processed == 3
    assert report.failed == 0


def test_reprocess_filters_and_isolates_failures(event_store):
    event_store.store_event(make_event("evt_a", minutes_ago=3))
    event_store.store_event(make_event("evt_b", minutes_ago=2))
    event_store.store_event(make_event("evt_key", event_type="apiKey.create", minutes_ago=1))
    processor = _RecordingProcessor(fail_for={"evt_a"})

    report = ReprocessService(event_store, processor).reprocess(event_type="auth.failed")

    assert processor.seen == ["evt_a", "evt_b"]
    assert {o.item: o.outcome for o in report.outcomes} == {
        "evt_a": Outcome.DETECTION_FAILED,
        "evt_b": Outcome.EVALUATED,
    }


def test_reprocess_raises_alerts_for_existing_events(event_store, alert_store):
    for i in range(5):
        event_store.store_event(make_event(f"evt_fail_{i}", minutes_ago=10 - i))
    engine = DetectionEngine(
        build_default_rules(event_store, alerts=alert_store, clock=fixed_clock),
        alert_store,
    )

    report = ReprocessService(event_store, engine).reprocess()

    # All five attempts are already stored, so every replay crosses the threshold
    assert report.alerts_raised == 5
    assert len(alert_store.list_alerts()) == 5
