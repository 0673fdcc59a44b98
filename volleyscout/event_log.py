from typing import Iterable, Iterator, List, Optional, Tuple

from volleyscout.exceptions import InvalidEventError
from volleyscout.models import RallyEvent, validate_event


class EventLog:
    """
    Append-only event sequence of one set.

    The only mutations are append and remove_last; events are never
    rewritten in place.
    """

    def __init__(self, events: Optional[Iterable[RallyEvent]] = None):
        self._events: List[RallyEvent] = []
        for event in events or ():
            self.append(event)

    def append(self, event: RallyEvent) -> None:
        if not isinstance(event, RallyEvent):
            raise InvalidEventError(f"not a rally event: {event!r}")

        problems = validate_event(event)
        if problems:
            raise InvalidEventError(", ".join(problems))

        self._events.append(event)

    def remove_last(self) -> Optional[RallyEvent]:
        if not self._events:
            return None
        return self._events.pop()

    def read_all(self) -> Tuple[RallyEvent, ...]:
        return tuple(self._events)

    @property
    def last(self) -> Optional[RallyEvent]:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[RallyEvent]:
        return iter(tuple(self._events))

    def __repr__(self) -> str:
        return f"EventLog({len(self._events)} events)"
