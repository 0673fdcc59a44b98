from typing import Optional


class VolleyError(Exception):
    pass


class ConfigurationError(VolleyError):
    pass


class InvalidEventError(VolleyError):
    pass


class IntegrityError(VolleyError):
    pass


class MatchFinishedError(VolleyError):
    pass


class EventStoreError(VolleyError):
    pass


class EventRangeError(VolleyError, ValueError):
    pass


class PlayerNotOnCourtError(VolleyError, LookupError):

    def __init__(self, player_id: str):
        super().__init__(f"player {player_id} is not on court")
        self.player_id = player_id


class ReplayError(VolleyError):
    """
    Raised when a set log cannot be replayed.

    index is the position of the offending event in the log (None when
    the failure is not tied to a single event).
    """

    def __init__(self, message: str, index: Optional[int] = None, event=None):
        if index is not None:
            message = f"event #{index}: {message}"
        super().__init__(message)
        self.index = index
        self.event = event


class IllegalSubstitutionError(ReplayError):
    pass


class SetAlreadyDecidedError(ReplayError):
    pass
