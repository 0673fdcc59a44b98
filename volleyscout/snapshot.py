from dataclasses import dataclass
from typing import Optional, Tuple

from volleyscout.models import RallyEvent, Side, SubstitutionRecord
from volleyscout.rotation import Rotation


@dataclass(frozen=True)
class SideState:
    score: int = 0
    rotation: Optional[Rotation] = None
    substitutions: Tuple[SubstitutionRecord, ...] = ()
    timeouts: int = 0
    libero_exchanges: int = 0


@dataclass(frozen=True)
class SetSnapshot:
    """
    Point-in-time state of a set, derived by replaying its log.
    Never persisted, never cached across log mutations.
    """
    set_number: int
    serving: Side
    us: SideState
    them: SideState
    events_replayed: int = 0
    last_event: Optional[RallyEvent] = None

    def side(self, side: Side) -> SideState:
        return self.us if side == Side.US else self.them

    def score(self, side: Side) -> int:
        return self.side(side).score

    @property
    def score_us(self) -> int:
        return self.us.score

    @property
    def score_them(self) -> int:
        return self.them.score

    def rotation(self, side: Side) -> Optional[Rotation]:
        return self.side(side).rotation

    def substitutions(self, side: Side) -> Tuple[SubstitutionRecord, ...]:
        return self.side(side).substitutions

    def libero_replacing(self, side: Side) -> Optional[str]:
        rotation = self.rotation(side)
        return rotation.libero_replacing if rotation is not None else None
