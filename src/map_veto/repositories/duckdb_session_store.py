"""DuckDB-backed shared state store."""

import json
import logging
import threading
from pathlib import Path

import duckdb

from map_veto.errors import RoomNotFound, StoreUnavailable, VersionConflict
from map_veto.models.match import MatchSession
from map_veto.repositories.session_store import SessionStore, apply_patch

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS match_sessions (
    room_id VARCHAR PRIMARY KEY,
    version INTEGER NOT NULL,
    payload VARCHAR NOT NULL,
    updated_at TIMESTAMP DEFAULT current_timestamp
)
"""


class DuckDBSessionStore(SessionStore):
    """Persists each session as one JSON row with its version.

    Writes are conditional on the stored version and serialized within the
    process; notifications go to in-process subscribers.
    """

    def __init__(self, database_path: str | Path):
        """Initialize the store, creating the database file and table if needed.

        Args:
            database_path: Path to the DuckDB file

        Raises:
            StoreUnavailable: If the database cannot be opened
        """
        super().__init__()
        self._db_path = Path(database_path)
        self._lock = threading.RLock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with duckdb.connect(str(self._db_path)) as conn:
                conn.execute(_SCHEMA)
        except duckdb.Error as e:
            raise StoreUnavailable(f"Cannot open session store at {self._db_path}: {e}") from e
        logger.info(f"DuckDBSessionStore: Using {self._db_path}")

    def _fetch(self, conn, room_id: str) -> tuple[int, dict] | None:
        row = conn.execute(
            "SELECT version, payload FROM match_sessions WHERE room_id = ?", [room_id]
        ).fetchone()
        if row is None:
            return None
        version, payload = row
        record = json.loads(payload)
        record["version"] = version
        return version, record

    def read(self, room_id: str) -> MatchSession | None:
        try:
            with self._lock, duckdb.connect(str(self._db_path)) as conn:
                found = self._fetch(conn, room_id)
        except duckdb.Error as e:
            logger.error(f"Session read failed for room {room_id}: {e}")
            raise StoreUnavailable(f"Session store read failed: {e}") from e
        return MatchSession.from_dict(found[1]) if found else None

    def create(self, initial: MatchSession) -> MatchSession:
        with self._lock:
            try:
                with duckdb.connect(str(self._db_path)) as conn:
                    found = self._fetch(conn, initial.room_id)
                    if found:
                        return MatchSession.from_dict(found[1])
                    record = initial.to_dict()
                    record["version"] = 1
                    conn.execute(
                        "INSERT INTO match_sessions (room_id, version, payload) VALUES (?, ?, ?)",
                        [initial.room_id, 1, json.dumps(record)],
                    )
            except duckdb.Error as e:
                logger.error(f"Session create failed for room {initial.room_id}: {e}")
                raise StoreUnavailable(f"Session store create failed: {e}") from e

            session = MatchSession.from_dict(record)
            logger.info(f"Created match session for room {initial.room_id}")
            self._notify(session)
            return session

    def write(
        self, room_id: str, patch: dict, expected_version: int | None = None
    ) -> MatchSession:
        with self._lock:
            try:
                with duckdb.connect(str(self._db_path)) as conn:
                    found = self._fetch(conn, room_id)
                    if found is None:
                        raise RoomNotFound(f"No match session for room {room_id}")
                    current_version, record = found
                    self._check_version(room_id, current_version, expected_version)

                    merged = apply_patch(record, patch)
                    merged["version"] = current_version + 1
                    session = MatchSession.from_dict(merged)
                    updated = conn.execute(
                        "UPDATE match_sessions "
                        "SET version = ?, payload = ?, updated_at = current_timestamp "
                        "WHERE room_id = ? AND version = ? "
                        "RETURNING version",
                        [merged["version"], json.dumps(merged), room_id, current_version],
                    ).fetchone()
                    if updated is None:
                        # Another writer committed between our read and the update.
                        latest = self._fetch(conn, room_id)
                        actual = latest[0] if latest else current_version
                        logger.warning(
                            f"Lost update on room {room_id}: read version {current_version}, "
                            f"store now at {actual}"
                        )
                        raise VersionConflict(room_id, current_version, actual)
            except duckdb.Error as e:
                logger.error(f"Session write failed for room {room_id}: {e}")
                raise StoreUnavailable(f"Session store write failed: {e}") from e

            self._notify(session)
            return session
