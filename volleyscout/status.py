from typing import Optional

from volleyscout.config import DEFAULT_SCORING, ScoringRules
from volleyscout.models import Side
from volleyscout.snapshot import SetSnapshot


def score_winner(
    score_us: int,
    score_them: int,
    set_number: int,
    scoring: ScoringRules = DEFAULT_SCORING,
) -> Optional[Side]:
    target = scoring.target_for(set_number)

    if score_us >= target and score_us - score_them >= scoring.min_lead:
        return Side.US
    if score_them >= target and score_them - score_us >= scoring.min_lead:
        return Side.THEM
    return None


def set_winner(
    snapshot: SetSnapshot,
    set_number: Optional[int] = None,
    scoring: Optional[ScoringRules] = None,
) -> Optional[Side]:
    """
    Winner of the set described by snapshot, or None while in progress.
    set_number defaults to the snapshot's own set.
    """
    return score_winner(
        snapshot.score_us,
        snapshot.score_them,
        set_number if set_number is not None else snapshot.set_number,
        scoring or DEFAULT_SCORING,
    )
