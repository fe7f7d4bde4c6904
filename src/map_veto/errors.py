"""Error taxonomy for match setup and the map draft."""


class MatchError(Exception):
    """Base class for every error raised by the match core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidFormat(MatchError):
    """Unknown team format or match format."""


class RosterSizeMismatch(MatchError):
    """Roster size does not match the players required by the team format."""

    def __init__(self, required: int, actual: int):
        super().__init__(f"Team format requires {required} players, roster has {actual}")
        self.required = required
        self.actual = actual


class IllegalTransition(MatchError):
    """Requested step change is not an edge of the step graph."""


class IllegalAction(MatchError):
    """Intent is not valid for the current session state."""


class Forbidden(MatchError):
    """Actor is not allowed to perform the intent."""


class VersionConflict(MatchError):
    """Write was based on a session version that is no longer current."""

    def __init__(self, room_id: str, expected: int | None, actual: int | None):
        super().__init__(
            f"Match session {room_id} is at version {actual}, write expected {expected}"
        )
        self.room_id = room_id
        self.expected = expected
        self.actual = actual


class StoreUnavailable(MatchError):
    """Shared state store backend failed."""


class RoomNotFound(MatchError):
    """No room (or match session) exists for the given id."""


class BoardNotFound(MatchError):
    """No veto board exists for the given id."""
