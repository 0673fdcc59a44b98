from typing import List, Optional

from volleyscout.config import ScoringRules, SubstitutionRules
from volleyscout.engine import SetEngine
from volleyscout.exceptions import EventRangeError
from volleyscout.set_record import SetRecord
from volleyscout.snapshot import SetSnapshot


def build_set_timeline(
    record: SetRecord,
    rules: Optional[SubstitutionRules] = None,
    scoring: Optional[ScoringRules] = None,
) -> List[SetSnapshot]:
    """
    Replays a set from scratch.
    Returns the snapshot after each event, the starting state first.
    Does NOT mutate the record.
    """
    engine = SetEngine(record, rules, scoring)

    timeline: List[SetSnapshot] = [engine.snapshot()]

    for event in record.events.read_all():
        timeline.append(engine.process_event(event))

    return timeline


def snapshot_at(
    record: SetRecord,
    event_count: int,
    rules: Optional[SubstitutionRules] = None,
    scoring: Optional[ScoringRules] = None,
) -> SetSnapshot:
    """Snapshot after the first event_count events of the log."""
    events = record.events.read_all()

    if not 0 <= event_count <= len(events):
        raise EventRangeError(f"event_count must be within 0..{len(events)}")

    return SetEngine(record, rules, scoring).replay(events[:event_count])
