from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from volleyscout.config import DEFAULT_SCORING, ScoringRules, SubstitutionRules
from volleyscout.engine import compute_snapshot
from volleyscout.exceptions import IntegrityError
from volleyscout.models import Side
from volleyscout.set_record import SetRecord
from volleyscout.snapshot import SetSnapshot
from volleyscout.status import set_winner


@dataclass(frozen=True)
class SetResult:
    set_number: int
    winner: Side
    score_us: int
    score_them: int


@dataclass(frozen=True)
class MatchStatus:
    us_wins: int
    them_wins: int
    next_set_number: Optional[int]
    incomplete_set_number: Optional[int]
    incomplete_snapshot: Optional[SetSnapshot]
    match_finished: bool
    last_serving: Optional[Side]
    set_results: Tuple[SetResult, ...] = ()
    max_sets: int = DEFAULT_SCORING.max_sets

    @property
    def winner(self) -> Optional[Side]:
        if not self.match_finished:
            return None
        return Side.US if self.us_wins > self.them_wins else Side.THEM

    @property
    def next_serving(self) -> Optional[Side]:
        """
        First server of the next set. Sets 1 and 5 open with a toss, so
        there is nothing to suggest for them.
        """
        if self.next_set_number is None or self.last_serving is None:
            return None
        if self.next_set_number in (1, self.max_sets):
            return None
        return self.last_serving.opponent


def check_integrity(sets: Sequence[SetRecord], scoring: ScoringRules = DEFAULT_SCORING):
    if len(sets) > scoring.max_sets:
        raise IntegrityError(f"a match has at most {scoring.max_sets} sets, got {len(sets)}")

    numbers = [s.set_number for s in sets]
    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        raise IntegrityError(f"duplicate set number(s): {duplicates}")

    if sorted(numbers) != list(range(1, len(numbers) + 1)):
        raise IntegrityError(f"set numbers must be contiguous from 1, got {sorted(numbers)}")


def match_status(
    sets: Sequence[SetRecord],
    rules: Optional[SubstitutionRules] = None,
    scoring: Optional[ScoringRules] = None,
) -> MatchStatus:
    """
    Fold the sets of a match into its status.

    Scanning stops at the first missing set (next to play), the first
    set without a winner (in progress) or as soon as a side has won
    enough sets; later sets are ignored.
    """
    scoring = scoring or DEFAULT_SCORING
    check_integrity(sets, scoring)

    by_number: Dict[int, SetRecord] = {s.set_number: s for s in sets}
    wins: Dict[Side, int] = {Side.US: 0, Side.THEM: 0}
    results = []
    last_serving: Optional[Side] = None
    next_set_number: Optional[int] = None
    incomplete_set_number: Optional[int] = None
    incomplete_snapshot: Optional[SetSnapshot] = None
    finished = False

    for number in range(1, scoring.max_sets + 1):
        record = by_number.get(number)
        if record is None:
            next_set_number = number
            break

        snapshot = compute_snapshot(record, rules, scoring)
        winner = set_winner(snapshot, number, scoring)

        if winner is None:
            incomplete_set_number = number
            incomplete_snapshot = snapshot
            break

        wins[winner] += 1
        last_serving = record.serving
        results.append(SetResult(number, winner, snapshot.score_us, snapshot.score_them))

        if wins[winner] >= scoring.sets_to_win:
            finished = True
            break

    return MatchStatus(
        us_wins=wins[Side.US],
        them_wins=wins[Side.THEM],
        next_set_number=next_set_number,
        incomplete_set_number=incomplete_set_number,
        incomplete_snapshot=incomplete_snapshot,
        match_finished=finished,
        last_serving=last_serving,
        set_results=tuple(results),
        max_sets=scoring.max_sets,
    )
