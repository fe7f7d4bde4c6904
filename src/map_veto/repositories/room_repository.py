"""In-memory room roster, the collaborator that owns players and admin."""

import logging
import secrets
import threading
import uuid
from dataclasses import dataclass, field

from map_veto.errors import IllegalAction, RoomNotFound
from map_veto.models.match import Player

logger = logging.getLogger(__name__)

# No look-alike characters (0/O, 1/I)
ROOM_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_room_id(length: int = 6) -> str:
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(length))


@dataclass
class Room:
    room_id: str
    admin_session_id: str
    players: list[Player] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "room_id": self.room_id,
            "admin_session_id": self.admin_session_id,
            "players": [p.to_dict() for p in self.players],
        }


class RoomRepository:
    """Rooms keyed by id with a thread-safe roster per room."""

    def __init__(self, room_id_length: int = 6):
        self._rooms: dict[str, Room] = {}
        self._lock = threading.Lock()
        self._room_id_length = room_id_length

    def create_room(self, admin_session_id: str) -> Room:
        if not admin_session_id:
            raise IllegalAction("A session id is required to create a room")
        with self._lock:
            room_id = generate_room_id(self._room_id_length)
            while room_id in self._rooms:
                room_id = generate_room_id(self._room_id_length)
            room = Room(room_id=room_id, admin_session_id=admin_session_id)
            self._rooms[room_id] = room
        logger.info(f"Created room {room_id}")
        return room

    def get_room(self, room_id: str) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(f"Room not found: {room_id}")
        return room

    def join(self, room_id: str, nickname: str, session_id: str) -> Player:
        """Add a player, or update the nickname of a session already in the room."""
        nickname = (nickname or "").strip()
        if not nickname or not session_id:
            raise IllegalAction("Nickname and session id are required to join")
        room = self.get_room(room_id)
        with self._lock:
            for player in room.players:
                if player.session_id == session_id:
                    player.nickname = nickname
                    return player
            player = Player(id=uuid.uuid4().hex[:12], nickname=nickname, session_id=session_id)
            room.players.append(player)
        logger.info(f"Player {player.id} joined room {room_id}")
        return player

    def leave(self, room_id: str, player_id: str) -> None:
        room = self.get_room(room_id)
        with self._lock:
            before = len(room.players)
            room.players = [p for p in room.players if p.id != player_id]
            removed = len(room.players) < before
        if not removed:
            raise IllegalAction(f"Player {player_id} is not in room {room_id}")
        logger.info(f"Player {player_id} left room {room_id}")

    def list_players(self, room_id: str) -> list[Player]:
        """Snapshot of the roster in join order."""
        room = self.get_room(room_id)
        with self._lock:
            return [Player(p.id, p.nickname, p.session_id) for p in room.players]

    def is_admin(self, room_id: str, session_id: str | None) -> bool:
        return bool(session_id) and self.get_room(room_id).admin_session_id == session_id
