"""Admin-driven map veto without captain turns.

The board stores only what the admin set (active, banned, pick_a, pick_b).
The decider is never stored: it is derived from those statuses on every
read, so it cannot drift from the maps it depends on.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field

from map_veto.errors import BoardNotFound, Forbidden, IllegalAction
from map_veto.models.map_pool import map_ids
from map_veto.models.match import MapState, MapStatus, MatchFormat
from map_veto.services.draft_plan import DraftPlan, resolve_plan

logger = logging.getLogger(__name__)

SETTABLE_STATUSES = frozenset({MapStatus.BANNED, MapStatus.PICK_A, MapStatus.PICK_B})


def derive_statuses(raw: dict[str, MapStatus], plan: DraftPlan) -> dict[str, MapStatus]:
    """Raw board statuses plus the inferred decider.

    The last active map becomes the decider once the format's ban count and
    each team's share of the picks have been reached.
    """
    active = [map_id for map_id, status in raw.items() if status == MapStatus.ACTIVE]
    banned = sum(1 for s in raw.values() if s == MapStatus.BANNED)
    picks_a = sum(1 for s in raw.values() if s == MapStatus.PICK_A)
    picks_b = sum(1 for s in raw.values() if s == MapStatus.PICK_B)
    picks_per_team = plan.total_picks // 2

    derived = dict(raw)
    if (
        len(active) == 1
        and banned >= plan.total_bans
        and picks_a >= picks_per_team
        and picks_b >= picks_per_team
    ):
        derived[active[0]] = MapStatus.DECIDER
    return derived


@dataclass
class VetoBoard:
    board_id: str
    admin_session_id: str
    match_format: MatchFormat = MatchFormat.MD1
    team_a_name: str = "Team A"
    team_b_name: str = "Team B"
    raw_statuses: dict[str, MapStatus] = field(
        default_factory=lambda: {map_id: MapStatus.ACTIVE for map_id in map_ids()}
    )

    @property
    def plan(self) -> DraftPlan:
        return resolve_plan(self.match_format)

    @property
    def maps(self) -> list[MapState]:
        """Maps in pool order with derived statuses."""
        derived = derive_statuses(self.raw_statuses, self.plan)
        return [MapState(id=map_id, status=derived[map_id]) for map_id in map_ids()]

    @property
    def decider(self) -> str | None:
        return next((m.id for m in self.maps if m.status == MapStatus.DECIDER), None)

    @property
    def is_complete(self) -> bool:
        return self.decider is not None

    def result(self) -> list[str]:
        """Match maps once the veto is complete: picks alternating A/B, decider last."""
        if not self.is_complete:
            return []
        picks_a = [m for m in map_ids() if self.raw_statuses[m] == MapStatus.PICK_A]
        picks_b = [m for m in map_ids() if self.raw_statuses[m] == MapStatus.PICK_B]
        ordered: list[str] = []
        for i in range(max(len(picks_a), len(picks_b))):
            ordered.extend(picks_a[i:i + 1])
            ordered.extend(picks_b[i:i + 1])
        return ordered + [self.decider]

    def set_status(self, session_id: str, map_id: str, status: MapStatus | str) -> None:
        """Ban a map or mark it picked by a team.

        Raises:
            Forbidden: Caller is not the board admin.
            IllegalAction: Unknown map, map no longer active, or a status that
                cannot be set directly (active, decider, picked).
        """
        self._require_admin(session_id)
        try:
            status = MapStatus(status)
        except ValueError:
            raise IllegalAction(f"Unknown status: {status!r}") from None
        if status not in SETTABLE_STATUSES:
            raise IllegalAction(f"Status {status.value} cannot be set on a veto board")
        if map_id not in self.raw_statuses:
            raise IllegalAction(f"Unknown map: {map_id}")

        current = derive_statuses(self.raw_statuses, self.plan)[map_id]
        if current != MapStatus.ACTIVE:
            raise IllegalAction(f"Map {map_id} is already {current.value}")
        self.raw_statuses[map_id] = status

    def configure(
        self,
        session_id: str,
        match_format: MatchFormat | str | None = None,
        team_a_name: str | None = None,
        team_b_name: str | None = None,
    ) -> None:
        """Change format or team names. A format change restarts the veto."""
        self._require_admin(session_id)
        if match_format is not None:
            new_format = resolve_plan(match_format).match_format
            if new_format != self.match_format:
                self.match_format = new_format
                self._clear()
        if team_a_name is not None:
            self.team_a_name = team_a_name.strip() or "Team A"
        if team_b_name is not None:
            self.team_b_name = team_b_name.strip() or "Team B"

    def reset(self, session_id: str) -> None:
        self._require_admin(session_id)
        self._clear()

    def _clear(self) -> None:
        self.raw_statuses = {map_id: MapStatus.ACTIVE for map_id in map_ids()}

    def _require_admin(self, session_id: str) -> None:
        if session_id != self.admin_session_id:
            raise Forbidden("Only the board admin can change the veto")

    def to_dict(self) -> dict:
        return {
            "board_id": self.board_id,
            "match_format": self.match_format.value,
            "team_a_name": self.team_a_name,
            "team_b_name": self.team_b_name,
            "maps": [m.to_dict() for m in self.maps],
            "decider": self.decider,
            "is_complete": self.is_complete,
            "result": self.result(),
        }


class VetoBoardManager:
    """In-memory registry of veto boards."""

    def __init__(self):
        self._boards: dict[str, VetoBoard] = {}
        self._board_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def create_board(
        self,
        admin_session_id: str,
        match_format: MatchFormat | str = MatchFormat.MD1,
        team_a_name: str = "Team A",
        team_b_name: str = "Team B",
    ) -> VetoBoard:
        board = VetoBoard(
            board_id=f"veto_{uuid.uuid4().hex[:10]}",
            admin_session_id=admin_session_id,
            match_format=resolve_plan(match_format).match_format,
            team_a_name=team_a_name,
            team_b_name=team_b_name,
        )
        with self._lock:
            self._boards[board.board_id] = board
            self._board_locks[board.board_id] = threading.Lock()
        logger.info(f"Created veto board {board.board_id} ({board.match_format.value})")
        return board

    def get_board_with_lock(self, board_id: str) -> tuple[VetoBoard, threading.Lock]:
        """Fetch a board and the lock guarding its mutations."""
        with self._lock:
            board = self._boards.get(board_id)
            if board is None:
                raise BoardNotFound(f"Veto board not found: {board_id}")
            return board, self._board_locks[board_id]

    def remove_board(self, board_id: str) -> None:
        with self._lock:
            self._boards.pop(board_id, None)
            self._board_locks.pop(board_id, None)
