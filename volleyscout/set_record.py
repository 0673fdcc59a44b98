from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from volleyscout.config import MAX_SETS
from volleyscout.event_log import EventLog
from volleyscout.exceptions import ConfigurationError
from volleyscout.models import RotationConfig, Side


@dataclass
class SetRecord:
    """
    Starting configuration and event log of one set.

    A side missing from lineups was never initialized: replaying a point
    for it fails. Use SetRecord.start to create a playable set.
    """
    set_number: int
    serving: Side
    lineups: Dict[Side, RotationConfig]
    events: EventLog = field(default_factory=EventLog)

    def __post_init__(self):
        if not 1 <= self.set_number <= MAX_SETS:
            raise ConfigurationError(f"{self.set_number} is not a valid set number")

        if not isinstance(self.serving, Side):
            raise ConfigurationError(f"invalid serving side: {self.serving}")

        for side, config in self.lineups.items():
            if not isinstance(side, Side) or not isinstance(config, RotationConfig):
                raise ConfigurationError(f"invalid lineup entry for {side}")

    @staticmethod
    def start(
        set_number: int,
        serving: Side,
        us: RotationConfig,
        them: Optional[RotationConfig] = None,
    ) -> "SetRecord":
        lineups = {
            Side.US: us,
            Side.THEM: them if them is not None else RotationConfig.anonymous(),
        }
        return SetRecord(set_number=set_number, serving=serving, lineups=lineups)

    def lineup(self, side: Side) -> Optional[RotationConfig]:
        return self.lineups.get(side)

    def descriptor(self) -> Dict[str, Any]:
        return {
            "set_number": self.set_number,
            "serving": self.serving.value,
            "lineups": {side.value: cfg.to_dict() for side, cfg in self.lineups.items()},
        }

    @staticmethod
    def from_descriptor(d: Dict[str, Any], events: Optional[EventLog] = None) -> "SetRecord":
        if not isinstance(d, dict) or not isinstance(d.get("lineups") or {}, dict):
            raise ConfigurationError(f"invalid set descriptor: {d!r}")

        try:
            return SetRecord(
                set_number=int(d["set_number"]),
                serving=Side(d["serving"]),
                lineups={
                    Side(side): RotationConfig.from_dict(cfg)
                    for side, cfg in (d.get("lineups") or {}).items()
                },
                events=events if events is not None else EventLog(),
            )
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"invalid set descriptor: {e}") from e
