from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from volleyscout.exceptions import ConfigurationError, InvalidEventError


class Side(str, Enum):
    US = "us"
    THEM = "them"

    @property
    def opponent(self) -> "Side":
        return Side.THEM if self is Side.US else Side.US


class Role(str, Enum):
    SETTER = "setter"
    OUTSIDE_HITTER = "outside-hitter"
    MIDDLE_BLOCKER = "middle-blocker"
    OPPOSITE_HITTER = "opposite-hitter"
    LIBERO = "libero"


class EventKind(str, Enum):
    SERVICE = "service"
    POINT = "point"
    SUBSTITUTION = "substitution"
    TIMEOUT = "timeout"
    TECHNICAL = "technical"


# --- EVENTS ---

@dataclass(frozen=True)
class RallyEvent:
    """
    One entry of a set log.

    Events have no identity other than their position in the log.
    player_out / player_in are only meaningful for substitutions.
    """
    kind: EventKind
    side: Side
    player_out: Optional[str] = None
    player_in: Optional[str] = None
    note: str = ""

    @staticmethod
    def service(side: Side) -> "RallyEvent":
        return RallyEvent(kind=EventKind.SERVICE, side=side)

    @staticmethod
    def point(side: Side) -> "RallyEvent":
        return RallyEvent(kind=EventKind.POINT, side=side)

    @staticmethod
    def substitution(side: Side, player_out: str, player_in: str) -> "RallyEvent":
        return RallyEvent(
            kind=EventKind.SUBSTITUTION,
            side=side,
            player_out=player_out,
            player_in=player_in,
        )

    @staticmethod
    def timeout(side: Side) -> "RallyEvent":
        return RallyEvent(kind=EventKind.TIMEOUT, side=side)

    @staticmethod
    def technical(side: Side, note: str = "") -> "RallyEvent":
        return RallyEvent(kind=EventKind.TECHNICAL, side=side, note=note)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"kind": self.kind.value, "side": self.side.value}
        if self.player_out is not None:
            d["player_out"] = self.player_out
        if self.player_in is not None:
            d["player_in"] = self.player_in
        if self.note:
            d["note"] = self.note
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RallyEvent":
        if not isinstance(d, dict):
            raise InvalidEventError(f"invalid event {d!r}: not an object")

        try:
            kind = EventKind(d["kind"])
            side = Side(d["side"])
        except (KeyError, ValueError) as e:
            raise InvalidEventError(f"invalid event {d!r}: {e}") from e

        event = RallyEvent(
            kind=kind,
            side=side,
            player_out=d.get("player_out"),
            player_in=d.get("player_in"),
            note=str(d.get("note") or ""),
        )
        problems = validate_event(event)
        if problems:
            raise InvalidEventError(f"invalid event {d!r}: {', '.join(problems)}")
        return event


def validate_event(event: RallyEvent) -> List[str]:
    """
    Return list of shape problems (empty == valid).
    Replay consistency is checked later by the engine.
    """
    problems: List[str] = []

    if not isinstance(event.side, Side):
        problems.append(f"invalid side: {event.side}")

    if not isinstance(event.kind, EventKind):
        problems.append(f"invalid kind: {event.kind}")
        return problems

    if event.kind == EventKind.SUBSTITUTION:
        if not event.player_out or not event.player_in:
            problems.append("substitution requires player_out and player_in")
        elif event.player_out == event.player_in:
            problems.append("player_out and player_in must differ")
    elif event.player_out is not None or event.player_in is not None:
        problems.append(f"{event.kind.value} event cannot reference players")

    return problems


# --- LINEUPS ---

@dataclass(frozen=True)
class RotationConfig:
    """
    Starting lineup of one side.

    players[0] is the serving (back-right) slot at set start, the other
    slots follow clockwise.
    """
    players: Tuple[str, ...]
    setter: str
    libero: Optional[str] = None
    fallback_libero: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "players", tuple(self.players))
        self.validate()

    def validate(self):
        if len(self.players) != 6:
            raise ConfigurationError(
                f"a lineup needs exactly 6 players, got {len(self.players)}"
            )

        if len(set(self.players)) != 6:
            raise ConfigurationError("lineup players must be distinct")

        if self.setter not in self.players:
            raise ConfigurationError(f"setter {self.setter} is not in the lineup")

        if self.libero is not None and self.libero in self.players:
            raise ConfigurationError(f"libero {self.libero} cannot be in the lineup")

        if self.fallback_libero is not None:
            if self.libero is None:
                raise ConfigurationError("fallback libero requires a libero")
            if self.fallback_libero == self.libero or self.fallback_libero in self.players:
                raise ConfigurationError(
                    f"fallback libero {self.fallback_libero} must be a bench player"
                )

    @staticmethod
    def anonymous(prefix: str = "them") -> "RotationConfig":
        """Placeholder lineup for a side whose players are not tracked."""
        players = tuple(f"{prefix}-{i}" for i in range(1, 7))
        return RotationConfig(players=players, setter=players[0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "players": list(self.players),
            "setter": self.setter,
            "libero": self.libero,
            "fallback_libero": self.fallback_libero,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RotationConfig":
        if not isinstance(d, dict) or not isinstance(d.get("players"), (list, tuple)):
            raise ConfigurationError(f"invalid lineup: {d!r}")

        try:
            return RotationConfig(
                players=tuple(str(p) for p in d["players"]),
                setter=str(d["setter"]),
                libero=d.get("libero"),
                fallback_libero=d.get("fallback_libero"),
            )
        except KeyError as e:
            raise ConfigurationError(f"missing lineup field: {e}") from e


# --- ROSTER ---

@dataclass(frozen=True)
class Player:
    id: str
    name: str
    number: int = 0
    role: Optional[Role] = None
    deleted: bool = False


@dataclass(frozen=True)
class SubstitutionRecord:
    player_out: str
    player_in: str
