from dataclasses import dataclass, replace
from typing import Optional, Tuple

from volleyscout.exceptions import PlayerNotOnCourtError
from volleyscout.models import Role, RotationConfig

COURT_SLOTS = 6

# Role by clockwise offset from the setter slot.
ROLE_CYCLE: Tuple[Role, ...] = (
    Role.SETTER,
    Role.OUTSIDE_HITTER,
    Role.MIDDLE_BLOCKER,
    Role.OPPOSITE_HITTER,
    Role.OUTSIDE_HITTER,
    Role.MIDDLE_BLOCKER,
)

SERVING_SLOT = 0
BACK_ROW_SLOTS = frozenset({0, 4, 5})


def is_back_row_slot(slot: int) -> bool:
    return slot in BACK_ROW_SLOTS


def base_role(setter_slot: int, slot: int) -> Role:
    return ROLE_CYCLE[(slot - setter_slot) % COURT_SLOTS]


@dataclass(frozen=True)
class Rotation:
    """
    Court state of one side.

    slots holds the six regular players, slot 0 being the serving
    position. The libero is never stored in slots: it is placed on the
    back-row middle blocker slot on the fly, unless that middle blocker
    is about to serve.
    """
    slots: Tuple[str, ...]
    setter: str
    libero: Optional[str] = None
    fallback_libero: Optional[str] = None
    serving: bool = False

    @staticmethod
    def from_config(config: RotationConfig, serving: bool = False) -> "Rotation":
        return Rotation(
            slots=tuple(config.players),
            setter=config.setter,
            libero=config.libero,
            fallback_libero=config.fallback_libero,
            serving=serving,
        )

    # ---------------------------------------------------------
    # Transitions (all return a new Rotation)
    # ---------------------------------------------------------

    def rotated(self) -> "Rotation":
        """One position clockwise: slot i takes the player of slot i+1."""
        return replace(self, slots=self.slots[1:] + self.slots[:1])

    def with_serving(self, serving: bool) -> "Rotation":
        return replace(self, serving=serving)

    def substitute(self, player_out: str, player_in: str) -> "Rotation":
        if player_out not in self.slots:
            raise PlayerNotOnCourtError(player_out)

        slots = tuple(player_in if p == player_out else p for p in self.slots)
        setter = player_in if self.setter == player_out else self.setter
        return replace(self, slots=slots, setter=setter)

    def exchange_libero(self) -> "Rotation":
        return replace(self, libero=self.fallback_libero, fallback_libero=self.libero)

    # ---------------------------------------------------------
    # Queries
    # ---------------------------------------------------------

    @property
    def rotation_number(self) -> int:
        """Slot currently held by the setter."""
        return self.slots.index(self.setter)

    @property
    def libero_slot(self) -> int:
        """The back-row one of the two middle blocker slots."""
        # the two middle blocker slots face each other, one per row
        slot = (self.rotation_number + 2) % COURT_SLOTS
        if is_back_row_slot(slot):
            return slot
        return (slot + 3) % COURT_SLOTS

    @property
    def libero_active(self) -> bool:
        if self.libero is None:
            return False
        return not (self.serving and self.libero_slot == SERVING_SLOT)

    @property
    def libero_replacing(self) -> Optional[str]:
        """Middle blocker currently sitting out for the libero."""
        if not self.libero_active:
            return None
        return self.slots[self.libero_slot]

    @property
    def on_court(self) -> Tuple[str, ...]:
        if not self.libero_active:
            return self.slots
        slot = self.libero_slot
        return self.slots[:slot] + (self.libero,) + self.slots[slot + 1:]

    @property
    def server(self) -> str:
        return self.on_court[SERVING_SLOT]

    def player_at(self, slot: int) -> str:
        return self.on_court[slot]

    def slot_of(self, player_id: str) -> int:
        try:
            return self.on_court.index(player_id)
        except ValueError:
            raise PlayerNotOnCourtError(player_id) from None

    def is_on_court(self, player_id: str) -> bool:
        return player_id in self.on_court

    def base_role_at(self, slot: int) -> Role:
        return base_role(self.rotation_number, slot)

    def role_at(self, slot: int) -> Role:
        role = self.base_role_at(slot)
        if role == Role.MIDDLE_BLOCKER and self.libero_active and slot == self.libero_slot:
            return Role.LIBERO
        return role

    def role_of(self, player_id: str) -> Role:
        return self.role_at(self.slot_of(player_id))

    def is_back_row(self, player_id: str) -> bool:
        return is_back_row_slot(self.slot_of(player_id))

    def roles(self) -> Tuple[Role, ...]:
        return tuple(self.role_at(slot) for slot in range(COURT_SLOTS))

    def players_by_role(self) -> Tuple[Tuple[Role, str], ...]:
        """
        Regular players ordered clockwise from the setter, with their base
        role. A middle blocker resting for the libero is still listed.
        """
        start = self.rotation_number
        return tuple(
            (ROLE_CYCLE[offset], self.slots[(start + offset) % COURT_SLOTS])
            for offset in range(COURT_SLOTS)
        )
