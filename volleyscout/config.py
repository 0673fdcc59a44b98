from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MATCHES_DIR = PROJECT_ROOT / "matches"

SCHEMA_VERSION = 1

SETS_TO_WIN = 3
MAX_SETS = 5
DEFAULT_SET_TARGET_SCORE = 25
TIE_BREAK_SET_TARGET_SCORE = 15
MIN_POINT_LEAD = 2

MAX_SUBSTITUTIONS = 6


@dataclass(frozen=True)
class ScoringRules:
    target_score: int = DEFAULT_SET_TARGET_SCORE
    tie_break_target_score: int = TIE_BREAK_SET_TARGET_SCORE
    min_lead: int = MIN_POINT_LEAD
    sets_to_win: int = SETS_TO_WIN
    max_sets: int = MAX_SETS

    def target_for(self, set_number: int) -> int:
        if set_number == self.max_sets:
            return self.tie_break_target_score
        return self.target_score


@dataclass(frozen=True)
class SubstitutionRules:
    """
    Substitution regulations applied per side and per set.

    Federations differ on these, so none of them is hard-coded in the
    resolvers:
    - max_substitutions: regular substitutions allowed (libero exchanges excluded)
    - allow_reentry: a replaced player may come back once, only for the
      player who replaced them
    - require_role_match: bench players must share the base role of the
      replaced slot when their roster role is known
    - max_libero_exchanges: None means unlimited
    """
    max_substitutions: int = MAX_SUBSTITUTIONS
    allow_reentry: bool = True
    require_role_match: bool = False
    max_libero_exchanges: Optional[int] = None


DEFAULT_SCORING = ScoringRules()
DEFAULT_SUBSTITUTION_RULES = SubstitutionRules()
