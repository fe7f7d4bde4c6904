"""REST endpoints for admin-driven veto boards."""

import uuid
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import BaseModel

from map_veto.api.errors import http_error
from map_veto.errors import MatchError
from map_veto.services.veto_board import VetoBoardManager

router = APIRouter(prefix="/api/veto/boards", tags=["veto"])


class CreateBoardRequest(BaseModel):
    match_format: str = "md1"
    team_a_name: str = "Team A"
    team_b_name: str = "Team B"


class SetStatusRequest(BaseModel):
    map_id: str
    status: str


class ConfigureBoardRequest(BaseModel):
    match_format: Optional[str] = None
    team_a_name: Optional[str] = None
    team_b_name: Optional[str] = None


def _boards(request: Request) -> VetoBoardManager:
    return request.app.state.veto_boards


def _require_session(session_id: Optional[str]) -> str:
    if not session_id:
        raise HTTPException(status_code=400, detail="X-Session-Id header is required")
    return session_id


@router.post("", status_code=201)
def create_board(
    request: Request,
    body: Optional[CreateBoardRequest] = None,
    x_session_id: Optional[str] = Header(default=None),
):
    """Create a board administered by the calling session."""
    body = body or CreateBoardRequest()
    session_id = x_session_id or uuid.uuid4().hex
    try:
        board = _boards(request).create_board(
            session_id,
            match_format=body.match_format,
            team_a_name=body.team_a_name,
            team_b_name=body.team_b_name,
        )
    except MatchError as e:
        raise http_error(e) from e
    return {"session_id": session_id, **board.to_dict()}


@router.get("/{board_id}")
def get_board(request: Request, board_id: str):
    try:
        board, lock = _boards(request).get_board_with_lock(board_id)
    except MatchError as e:
        raise http_error(e) from e
    with lock:
        return board.to_dict()


@router.post("/{board_id}/actions")
def set_map_status(
    request: Request,
    board_id: str,
    body: SetStatusRequest,
    x_session_id: Optional[str] = Header(default=None),
):
    """Ban a map or mark it picked by team A or B."""
    session_id = _require_session(x_session_id)
    try:
        board, lock = _boards(request).get_board_with_lock(board_id)
        with lock:
            board.set_status(session_id, body.map_id, body.status)
            return board.to_dict()
    except MatchError as e:
        raise http_error(e) from e


@router.patch("/{board_id}")
def configure_board(
    request: Request,
    board_id: str,
    body: ConfigureBoardRequest,
    x_session_id: Optional[str] = Header(default=None),
):
    """Change format or team names. Changing the format clears the board."""
    session_id = _require_session(x_session_id)
    try:
        board, lock = _boards(request).get_board_with_lock(board_id)
        with lock:
            board.configure(
                session_id,
                match_format=body.match_format,
                team_a_name=body.team_a_name,
                team_b_name=body.team_b_name,
            )
            return board.to_dict()
    except MatchError as e:
        raise http_error(e) from e


@router.post("/{board_id}/reset")
def reset_board(request: Request, board_id: str, x_session_id: Optional[str] = Header(default=None)):
    session_id = _require_session(x_session_id)
    try:
        board, lock = _boards(request).get_board_with_lock(board_id)
        with lock:
            board.reset(session_id)
            return board.to_dict()
    except MatchError as e:
        raise http_error(e) from e
