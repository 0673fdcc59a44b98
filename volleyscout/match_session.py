import logging
from typing import Dict, List, Optional, Sequence, Tuple

from volleyscout.config import ScoringRules, SubstitutionRules
from volleyscout.engine import SetEngine, compute_snapshot
from volleyscout.exceptions import (
    ConfigurationError,
    InvalidEventError,
    MatchFinishedError,
    ReplayError,
)
from volleyscout.match_status import MatchStatus, match_status
from volleyscout.models import Player, RallyEvent, Role, RotationConfig, Side, validate_event
from volleyscout.set_record import SetRecord
from volleyscout.snapshot import SetSnapshot
from volleyscout.status import set_winner
from volleyscout.storage import SetStore
from volleyscout.substitution import pull_out_candidates, replacement_candidates
from volleyscout.timeline import build_set_timeline

logger = logging.getLogger(__name__)


class MatchSession:
    """
    Single local match session.

    Responsibilities:
    - Own the SetRecords of one match (optionally backed by a SetStore)
    - Start sets in order, seeding the first server
    - Append events atomically: an event that breaks replay is never stored
    - Expose the read-only queries used by UI and reporting layers
    """

    def __init__(
        self,
        store: Optional[SetStore] = None,
        rules: Optional[SubstitutionRules] = None,
        scoring: Optional[ScoringRules] = None,
    ):
        self._store = store
        self.rules = rules
        self.scoring = scoring
        self._sets: Dict[int, SetRecord] = {}

        if store is not None:
            for record in store.load_all():
                self._sets[record.set_number] = record

    # ---------------------------------------------------------
    # Core API
    # ---------------------------------------------------------

    @property
    def sets(self) -> List[SetRecord]:
        return [self._sets[n] for n in sorted(self._sets)]

    def start_set(
        self,
        us: RotationConfig,
        them: Optional[RotationConfig] = None,
        serving: Optional[Side] = None,
    ) -> SetRecord:
        """
        Create the next set of the match.
        serving may be omitted for sets 2-4, where it alternates.
        """
        status = self.status()

        if status.match_finished:
            raise MatchFinishedError("match is already finished")

        if status.incomplete_set_number is not None:
            raise ConfigurationError(f"set {status.incomplete_set_number} is still in progress")

        number = status.next_set_number
        serving = serving or status.next_serving
        if serving is None:
            raise ConfigurationError(f"set {number} needs a first serving side")

        record = SetRecord.start(number, serving, us, them)

        if self._store is not None:
            self._store.create(record)

        self._sets[number] = record
        logger.debug("started set %d, %s serving", number, serving.value)
        return record

    def record_event(self, set_number: int, event: RallyEvent) -> SetSnapshot:
        record = self._get_current(set_number)

        problems = validate_event(event)
        if problems:
            raise InvalidEventError(", ".join(problems))

        # replay on a scratch engine first, commit only on success
        engine = SetEngine(record, self.rules, self.scoring)
        engine.replay(record.events.read_all())
        try:
            snapshot = engine.process_event(event)
        except ReplayError as e:
            logger.warning("set %d: rejected %s event: %s", set_number, event.kind.value, e)
            raise

        if self._store is not None:
            self._store.append(set_number, event)
        record.events.append(event)

        return snapshot

    def undo(self, set_number: int) -> Optional[RallyEvent]:
        record = self._get_current(set_number)

        if self._store is not None:
            self._store.remove_last(set_number)

        removed = record.events.remove_last()
        if removed is not None:
            logger.debug("set %d: undid %s event", set_number, removed.kind.value)
        return removed

    # ---------------------------------------------------------
    # Queries
    # ---------------------------------------------------------

    def snapshot(self, set_number: int) -> SetSnapshot:
        return compute_snapshot(self._get(set_number), self.rules, self.scoring)

    def set_winner(self, set_number: int) -> Optional[Side]:
        return set_winner(self.snapshot(set_number), set_number, self.scoring)

    def status(self) -> MatchStatus:
        return match_status(self.sets, self.rules, self.scoring)

    def timeline(self, set_number: int) -> List[SetSnapshot]:
        return build_set_timeline(self._get(set_number), self.rules, self.scoring)

    def pull_out_candidates(self, set_number: int, side: Side = Side.US) -> List[Tuple[Role, str]]:
        return pull_out_candidates(self.snapshot(set_number), side, self.rules)

    def replacement_candidates(
        self,
        set_number: int,
        roster: Sequence[Player],
        replaced_id: str,
        side: Side = Side.US,
    ) -> List[Player]:
        return replacement_candidates(
            self.snapshot(set_number), roster, replaced_id, side, self.rules
        )

    def _get(self, set_number: int) -> SetRecord:
        if set_number not in self._sets:
            raise KeyError(f"set {set_number} does not exist")
        return self._sets[set_number]

    def _get_current(self, set_number: int) -> SetRecord:
        """Only the latest set may change; earlier sets are closed."""
        record = self._get(set_number)
        latest = max(self._sets)
        if set_number != latest:
            raise ConfigurationError(f"set {set_number} is closed, set {latest} is being played")
        return record
