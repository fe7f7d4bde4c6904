"""REST endpoints for rooms and their rosters."""

import uuid
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import BaseModel

from map_veto.api.errors import http_error
from map_veto.errors import MatchError
from map_veto.repositories.room_repository import RoomRepository

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


class JoinRoomRequest(BaseModel):
    nickname: str


def _rooms(request: Request) -> RoomRepository:
    return request.app.state.rooms


def _serialize_room(rooms: RoomRepository, room_id: str, session_id: Optional[str]) -> dict:
    room = rooms.get_room(room_id)
    return {
        "room_id": room.room_id,
        "players": [p.to_dict() for p in rooms.list_players(room_id)],
        "is_admin": rooms.is_admin(room_id, session_id),
    }


@router.post("", status_code=201)
def create_room(request: Request, x_session_id: Optional[str] = Header(default=None)):
    """Create a room administered by the calling session.

    A session id is issued when the caller does not send one.
    """
    session_id = x_session_id or uuid.uuid4().hex
    rooms = _rooms(request)
    try:
        room = rooms.create_room(session_id)
        return {"session_id": session_id, **_serialize_room(rooms, room.room_id, session_id)}
    except MatchError as e:
        raise http_error(e) from e


@router.get("/{room_id}")
def get_room(request: Request, room_id: str, x_session_id: Optional[str] = Header(default=None)):
    try:
        return _serialize_room(_rooms(request), room_id, x_session_id)
    except MatchError as e:
        raise http_error(e) from e


@router.post("/{room_id}/players", status_code=201)
def join_room(
    request: Request,
    room_id: str,
    body: JoinRoomRequest,
    x_session_id: Optional[str] = Header(default=None),
):
    """Join (or rejoin with a new nickname) as the calling session."""
    if not x_session_id:
        raise HTTPException(status_code=400, detail="X-Session-Id header is required")
    try:
        player = _rooms(request).join(room_id, body.nickname, x_session_id)
    except MatchError as e:
        raise http_error(e) from e
    return player.to_dict()


@router.delete("/{room_id}/players/{player_id}")
def leave_room(
    request: Request,
    room_id: str,
    player_id: str,
    x_session_id: Optional[str] = Header(default=None),
):
    """Remove a player. Allowed for the player's own session and the admin."""
    rooms = _rooms(request)
    try:
        players = rooms.list_players(room_id)
        player = next((p for p in players if p.id == player_id), None)
        if player is None:
            raise HTTPException(status_code=404, detail=f"Player not found: {player_id}")
        if player.session_id != x_session_id and not rooms.is_admin(room_id, x_session_id):
            raise HTTPException(status_code=403, detail="Only the player or the admin can remove a player")
        rooms.leave(room_id, player_id)
    except MatchError as e:
        raise http_error(e) from e
    return {"status": "removed", "player_id": player_id}
