"""Translate match errors into HTTP responses."""

from fastapi import HTTPException

from map_veto.errors import (
    BoardNotFound,
    Forbidden,
    IllegalAction,
    IllegalTransition,
    InvalidFormat,
    MatchError,
    RoomNotFound,
    RosterSizeMismatch,
    StoreUnavailable,
    VersionConflict,
)
from map_veto.models.match import MatchSession

STATUS_CODES: dict[type[MatchError], int] = {
    InvalidFormat: 400,
    RosterSizeMismatch: 400,
    IllegalAction: 400,
    Forbidden: 403,
    RoomNotFound: 404,
    BoardNotFound: 404,
    IllegalTransition: 409,
    VersionConflict: 409,
    StoreUnavailable: 503,
}


def http_error(err: MatchError, current: MatchSession | None = None) -> HTTPException:
    """HTTPException for a match error.

    Version conflicts carry the current session so the client can re-derive.
    """
    status_code = next(
        (code for cls, code in STATUS_CODES.items() if isinstance(err, cls)), 400
    )
    detail: dict = {"error": type(err).__name__, "message": err.message}
    if isinstance(err, VersionConflict):
        detail["expected_version"] = err.expected
        detail["current_version"] = err.actual
        if current is not None:
            detail["session"] = current.to_dict()
    if isinstance(err, RosterSizeMismatch):
        detail["required"] = err.required
        detail["actual"] = err.actual
    return HTTPException(status_code=status_code, detail=detail)
