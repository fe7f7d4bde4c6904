"""REST endpoints for a room's match session.

Every mutating endpoint accepts an optional `expected_version`; when given,
the intent is rejected with 409 unless it matches the current session.
"""

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel

from map_veto.api.errors import http_error
from map_veto.errors import MatchError, RoomNotFound
from map_veto.models.match import MatchSession
from map_veto.services.match_service import MatchService, build_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms/{room_id}/match", tags=["match"])


class VersionedRequest(BaseModel):
    expected_version: Optional[int] = None


class ConfigRequest(VersionedRequest):
    team_format: Optional[str] = None
    match_format: Optional[str] = None
    team_a_name: Optional[str] = None
    team_b_name: Optional[str] = None


class ActionRequest(VersionedRequest):
    map_id: str
    action: str


def _service(request: Request) -> MatchService:
    return request.app.state.match_service


def _respond(service: MatchService, room_id: str, session_id: Optional[str], session: MatchSession) -> dict:
    return {
        "session": session.to_dict(),
        "view": build_view(session, service.actor(room_id, session_id)),
    }


def _run(
    service: MatchService,
    room_id: str,
    session_id: Optional[str],
    intent: Callable[[], MatchSession],
) -> dict:
    try:
        session = intent()
    except MatchError as e:
        current = None
        if not isinstance(e, RoomNotFound):
            try:
                current = service.get_session(room_id)
            except MatchError:
                logger.warning(f"Could not read current session for room {room_id}")
        raise http_error(e, current) from e
    return _respond(service, room_id, session_id, session)


@router.get("")
def get_match(request: Request, room_id: str, x_session_id: Optional[str] = Header(default=None)):
    """Current session plus the view derived for the calling session."""
    try:
        return _service(request).get_view(room_id, x_session_id)
    except MatchError as e:
        raise http_error(e) from e


@router.patch("/config")
def configure_match(
    request: Request,
    room_id: str,
    body: ConfigRequest,
    x_session_id: Optional[str] = Header(default=None),
):
    service = _service(request)
    return _run(
        service,
        room_id,
        x_session_id,
        lambda: service.configure(
            room_id,
            x_session_id,
            team_format=body.team_format,
            match_format=body.match_format,
            team_a_name=body.team_a_name,
            team_b_name=body.team_b_name,
            expected_version=body.expected_version,
        ),
    )


@router.post("/teams")
def create_teams(
    request: Request,
    room_id: str,
    body: Optional[VersionedRequest] = None,
    x_session_id: Optional[str] = Header(default=None),
):
    """Form random teams from the room roster and elect captains."""
    service = _service(request)
    expected = body.expected_version if body else None
    return _run(
        service, room_id, x_session_id,
        lambda: service.create_teams(room_id, x_session_id, expected_version=expected),
    )


@router.post("/ban-phase")
def start_ban_phase(
    request: Request,
    room_id: str,
    body: Optional[VersionedRequest] = None,
    x_session_id: Optional[str] = Header(default=None),
):
    service = _service(request)
    expected = body.expected_version if body else None
    return _run(
        service, room_id, x_session_id,
        lambda: service.start_ban_phase(room_id, x_session_id, expected_version=expected),
    )


@router.post("/actions")
def submit_action(
    request: Request,
    room_id: str,
    body: ActionRequest,
    x_session_id: Optional[str] = Header(default=None),
):
    """Ban or pick a map for the team on turn."""
    service = _service(request)
    return _run(
        service, room_id, x_session_id,
        lambda: service.apply_action(
            room_id, x_session_id, body.map_id, body.action, expected_version=body.expected_version
        ),
    )


@router.post("/back")
def go_back(
    request: Request,
    room_id: str,
    body: Optional[VersionedRequest] = None,
    x_session_id: Optional[str] = Header(default=None),
):
    service = _service(request)
    expected = body.expected_version if body else None
    return _run(
        service, room_id, x_session_id,
        lambda: service.go_back(room_id, x_session_id, expected_version=expected),
    )


@router.post("/reset")
def reset_match(
    request: Request,
    room_id: str,
    body: Optional[VersionedRequest] = None,
    x_session_id: Optional[str] = Header(default=None),
):
    service = _service(request)
    expected = body.expected_version if body else None
    return _run(
        service, room_id, x_session_id,
        lambda: service.reset(room_id, x_session_id, expected_version=expected),
    )
