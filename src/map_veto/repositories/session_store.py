"""Shared state store for match sessions.

The store is the single writer of record. Sessions are kept in wire form
(plain JSON-ready dicts) and every accepted write bumps the session version;
writes may be conditioned on the version the writer last observed.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

from map_veto.errors import RoomNotFound, VersionConflict
from map_veto.models.match import STORE_OWNED_FIELDS, MatchSession

logger = logging.getLogger(__name__)

SessionListener = Callable[[MatchSession], None]

PATCHABLE_FIELDS = frozenset(
    {
        "team_format",
        "match_format",
        "current_step",
        "team_a",
        "team_b",
        "maps",
        "current_turn",
        "ban_history",
    }
)


def apply_patch(record: dict, patch: dict) -> dict:
    """Merge a top-level field patch into a wire record, returning a new dict.

    Raises:
        ValueError: If the patch touches store-owned or unknown fields.
    """
    owned = STORE_OWNED_FIELDS.intersection(patch)
    if owned:
        raise ValueError(f"Patch may not set store-owned fields: {sorted(owned)}")
    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown session fields in patch: {sorted(unknown)}")
    merged = dict(record)
    merged.update(patch)
    return merged


class Subscription:
    """Handle returned by `SessionStore.subscribe`."""

    def __init__(self, store: "SessionStore", room_id: str, listener: SessionListener):
        self._store = store
        self.room_id = room_id
        self.listener = listener
        self.active = True

    def close(self) -> None:
        if self.active:
            self._store._remove_listener(self.room_id, self.listener)
            self.active = False


class SessionStore(ABC):
    """Versioned read/create/write/subscribe access to match sessions."""

    def __init__(self):
        self._listeners: dict[str, list[SessionListener]] = {}
        self._listeners_lock = threading.RLock()

    @abstractmethod
    def read(self, room_id: str) -> MatchSession | None:
        """Current session for the room, or None if it was never created."""

    @abstractmethod
    def create(self, initial: MatchSession) -> MatchSession:
        """Store a new session at version 1.

        If another writer created the room first, the existing session is
        returned unchanged and no notification is sent.
        """

    @abstractmethod
    def write(
        self, room_id: str, patch: dict, expected_version: int | None = None
    ) -> MatchSession:
        """Apply a field patch and bump the version.

        Raises:
            RoomNotFound: No session exists for the room.
            VersionConflict: `expected_version` is not the current version.
            StoreUnavailable: The backend failed.
        """

    def subscribe(self, room_id: str, listener: SessionListener) -> Subscription:
        """Call `listener` with the new session after every accepted write."""
        with self._listeners_lock:
            self._listeners.setdefault(room_id, []).append(listener)
        return Subscription(self, room_id, listener)

    def _remove_listener(self, room_id: str, listener: SessionListener) -> None:
        with self._listeners_lock:
            listeners = self._listeners.get(room_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(room_id, None)

    def _notify(self, session: MatchSession) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners.get(session.room_id, []))
        for listener in listeners:
            try:
                listener(session)
            except Exception as e:
                logger.error(
                    f"Session listener failed for room {session.room_id} "
                    f"at version {session.version}: {e}"
                )

    @staticmethod
    def _check_version(room_id: str, current: int, expected: int | None) -> None:
        if expected is not None and expected != current:
            logger.warning(
                f"Version conflict on room {room_id}: expected {expected}, current {current}"
            )
            raise VersionConflict(room_id, expected, current)


class InMemorySessionStore(SessionStore):
    """Single-process store; notifications are delivered synchronously."""

    def __init__(self):
        super().__init__()
        self._records: dict[str, dict] = {}
        # Re-entrant so listeners may read back while being notified
        self._lock = threading.RLock()

    def read(self, room_id: str) -> MatchSession | None:
        with self._lock:
            record = self._records.get(room_id)
            return MatchSession.from_dict(record) if record else None

    def create(self, initial: MatchSession) -> MatchSession:
        with self._lock:
            existing = self._records.get(initial.room_id)
            if existing:
                return MatchSession.from_dict(existing)

            record = initial.to_dict()
            record["version"] = 1
            session = MatchSession.from_dict(record)
            self._records[initial.room_id] = record
            logger.info(f"Created match session for room {initial.room_id}")
            self._notify(session)
            return session

    def write(
        self, room_id: str, patch: dict, expected_version: int | None = None
    ) -> MatchSession:
        with self._lock:
            record = self._records.get(room_id)
            if record is None:
                raise RoomNotFound(f"No match session for room {room_id}")
            self._check_version(room_id, record["version"], expected_version)

            merged = apply_patch(record, patch)
            merged["version"] = record["version"] + 1
            session = MatchSession.from_dict(merged)
            self._records[room_id] = merged
            # Notify under the lock so listeners see writes in commit order
            self._notify(session)
            return session

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
