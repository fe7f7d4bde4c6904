from map_veto.repositories.duckdb_session_store import DuckDBSessionStore
from map_veto.repositories.room_repository import Room, RoomRepository
from map_veto.repositories.session_store import (
    InMemorySessionStore,
    SessionStore,
    Subscription,
)

__all__ = [
    "DuckDBSessionStore",
    "InMemorySessionStore",
    "Room",
    "RoomRepository",
    "SessionStore",
    "Subscription",
]
