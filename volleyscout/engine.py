from typing import Dict, Iterable, List, Optional

from volleyscout.config import (
    DEFAULT_SCORING,
    DEFAULT_SUBSTITUTION_RULES,
    ScoringRules,
    SubstitutionRules,
)
from volleyscout.exceptions import (
    IllegalSubstitutionError,
    ReplayError,
    SetAlreadyDecidedError,
)
from volleyscout.models import EventKind, RallyEvent, Side, SubstitutionRecord
from volleyscout.rotation import Rotation
from volleyscout.set_record import SetRecord
from volleyscout.snapshot import SetSnapshot, SideState
from volleyscout.status import score_winner
from volleyscout.substitution import libero_exchange_problem, substitution_problem


class SetEngine:
    """
    Replay engine for one set.

    Responsibilities:
    - Apply RallyEvent strictly in log order
    - Enforce service, rotation and substitution invariants
    - Produce immutable SetSnapshot
    - Stay deterministic: the same prefix always gives the same snapshot
    """

    def __init__(
        self,
        record: SetRecord,
        rules: Optional[SubstitutionRules] = None,
        scoring: Optional[ScoringRules] = None,
    ):
        self.record = record
        self.rules = rules or DEFAULT_SUBSTITUTION_RULES
        self.scoring = scoring or DEFAULT_SCORING

        self._serving = record.serving
        self._scores: Dict[Side, int] = {side: 0 for side in Side}
        self._rotations: Dict[Side, Optional[Rotation]] = {}
        for side in Side:
            config = record.lineup(side)
            self._rotations[side] = (
                Rotation.from_config(config, serving=side == self._serving)
                if config is not None
                else None
            )
        self._substitutions: Dict[Side, List[SubstitutionRecord]] = {side: [] for side in Side}
        self._timeouts: Dict[Side, int] = {side: 0 for side in Side}
        self._libero_exchanges: Dict[Side, int] = {side: 0 for side in Side}
        self._index = 0
        self._last_event: Optional[RallyEvent] = None

    # =========================================================
    # PUBLIC API
    # =========================================================

    def process_event(self, event: RallyEvent) -> SetSnapshot:
        if event.kind == EventKind.POINT:
            self._apply_point(event)
        elif event.kind == EventKind.SUBSTITUTION:
            self._apply_substitution(event)
        elif event.kind == EventKind.SERVICE:
            self._apply_service(event)
        elif event.kind == EventKind.TIMEOUT:
            self._timeouts[event.side] += 1
        elif event.kind == EventKind.TECHNICAL:
            pass
        else:
            raise ReplayError(f"unhandled event kind: {event.kind}", self._index, event)

        self._index += 1
        self._last_event = event
        return self.snapshot()

    def replay(self, events: Iterable[RallyEvent]) -> SetSnapshot:
        for event in events:
            self.process_event(event)
        return self.snapshot()

    def snapshot(self) -> SetSnapshot:
        return SetSnapshot(
            set_number=self.record.set_number,
            serving=self._serving,
            us=self._side_state(Side.US),
            them=self._side_state(Side.THEM),
            events_replayed=self._index,
            last_event=self._last_event,
        )

    # =========================================================
    # EVENT HANDLERS
    # =========================================================

    def _apply_point(self, event: RallyEvent):
        side = event.side
        rotation = self._rotation_for(event)

        if score_winner(
            self._scores[Side.US],
            self._scores[Side.THEM],
            self.record.set_number,
            self.scoring,
        ) is not None:
            raise SetAlreadyDecidedError(
                f"set {self.record.set_number} is already decided", self._index, event
            )

        if side != self._serving:
            # side-out: the new serving side rotates
            self._rotations[side] = rotation.rotated()
            self._serving = side
            self._sync_serving()

        self._scores[side] += 1

    def _apply_service(self, event: RallyEvent):
        if event.side != self._serving:
            raise ReplayError(
                f"{event.side.value} cannot serve: {self._serving.value} is serving",
                self._index,
                event,
            )

    def _apply_substitution(self, event: RallyEvent):
        side = event.side
        rotation = self._rotation_for(event)
        player_out, player_in = event.player_out, event.player_in

        if rotation.libero is not None and player_out == rotation.libero:
            problem = libero_exchange_problem(
                rotation, self._libero_exchanges[side], player_out, player_in, self.rules
            )
            if problem:
                raise IllegalSubstitutionError(problem, self._index, event)
            self._rotations[side] = rotation.exchange_libero()
            self._libero_exchanges[side] += 1
            return

        problem = substitution_problem(
            rotation, self._substitutions[side], player_out, player_in, self.rules
        )
        if problem:
            raise IllegalSubstitutionError(problem, self._index, event)

        self._rotations[side] = rotation.substitute(player_out, player_in)
        self._substitutions[side].append(SubstitutionRecord(player_out, player_in))

    # =========================================================
    # HELPERS
    # =========================================================

    def _rotation_for(self, event: RallyEvent) -> Rotation:
        rotation = self._rotations[event.side]
        if rotation is None:
            raise ReplayError(
                f"{event.kind.value} for {event.side.value}, which has no rotation",
                self._index,
                event,
            )
        return rotation

    def _sync_serving(self):
        for side, rotation in self._rotations.items():
            if rotation is not None:
                self._rotations[side] = rotation.with_serving(side == self._serving)

    def _side_state(self, side: Side) -> SideState:
        return SideState(
            score=self._scores[side],
            rotation=self._rotations[side],
            substitutions=tuple(self._substitutions[side]),
            timeouts=self._timeouts[side],
            libero_exchanges=self._libero_exchanges[side],
        )


def compute_snapshot(
    record: SetRecord,
    rules: Optional[SubstitutionRules] = None,
    scoring: Optional[ScoringRules] = None,
) -> SetSnapshot:
    """Replay the whole log of record from its starting configuration."""
    return SetEngine(record, rules, scoring).replay(record.events.read_all())
