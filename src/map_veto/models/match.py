"""Match session state shared by every client of a room."""

from dataclasses import dataclass, field
from enum import Enum

from map_veto.models.map_pool import map_ids


class Step(str, Enum):
    """Lifecycle steps of a match session."""

    CONFIG = "config"
    TEAMS = "teams"
    BAN = "ban"
    RESULT = "result"


class TeamSide(str, Enum):
    TEAM_A = "team_a"
    TEAM_B = "team_b"

    @property
    def opponent(self) -> "TeamSide":
        return TeamSide.TEAM_B if self is TeamSide.TEAM_A else TeamSide.TEAM_A


class TeamFormat(str, Enum):
    TWO_V_TWO = "2v2"
    THREE_V_THREE = "3v3"
    FOUR_V_FOUR = "4v4"
    FIVE_V_FIVE = "5v5"


class MatchFormat(str, Enum):
    MD1 = "md1"
    MD3 = "md3"
    MD5 = "md5"


class ActionKind(str, Enum):
    BAN = "ban"
    PICK = "pick"


class MapStatus(str, Enum):
    """Map status vocabulary.

    The captain draft uses ACTIVE/BANNED/PICKED; the veto-only board uses
    ACTIVE/BANNED/PICK_A/PICK_B and derives DECIDER.
    """

    ACTIVE = "active"
    BANNED = "banned"
    PICKED = "picked"
    PICK_A = "pick_a"
    PICK_B = "pick_b"
    DECIDER = "decider"


@dataclass
class Player:
    """A player from the room roster. Read-only to the draft."""

    id: str
    nickname: str
    session_id: str

    def to_dict(self) -> dict:
        return {"id": self.id, "nickname": self.nickname, "session_id": self.session_id}

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        return cls(id=data["id"], nickname=data["nickname"], session_id=data["session_id"])


@dataclass
class Team:
    name: str
    players: list[Player] = field(default_factory=list)
    captain_id: str | None = None  # session_id of the captain

    @property
    def captain(self) -> Player | None:
        return next((p for p in self.players if p.session_id == self.captain_id), None)

    def has_member(self, session_id: str) -> bool:
        return any(p.session_id == session_id for p in self.players)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "players": [p.to_dict() for p in self.players],
            "captain_id": self.captain_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(
            name=data["name"],
            players=[Player.from_dict(p) for p in data.get("players", [])],
            captain_id=data.get("captain_id"),
        )


@dataclass
class MapState:
    id: str
    status: MapStatus = MapStatus.ACTIVE
    picked_by: TeamSide | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "picked_by": self.picked_by.value if self.picked_by else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MapState":
        picked_by = data.get("picked_by")
        return cls(
            id=data["id"],
            status=MapStatus(data["status"]),
            picked_by=TeamSide(picked_by) if picked_by else None,
        )


@dataclass
class BanHistoryEntry:
    """One accepted draft action, in occurrence order."""

    team: str  # team name at the time of the action
    map_name: str
    action: ActionKind

    def to_dict(self) -> dict:
        return {"team": self.team, "map_name": self.map_name, "action": self.action.value}

    @classmethod
    def from_dict(cls, data: dict) -> "BanHistoryEntry":
        return cls(
            team=data["team"],
            map_name=data["map_name"],
            action=ActionKind(data["action"]),
        )


def fresh_maps() -> list[MapState]:
    """All pool maps in pool order, every one active."""
    return [MapState(id=map_id) for map_id in map_ids()]


@dataclass
class MatchSession:
    """Root value of the shared state store for one room.

    `version` is assigned by the store; the core never bumps it.
    """

    room_id: str
    team_format: TeamFormat
    match_format: MatchFormat
    current_step: Step
    team_a: Team
    team_b: Team
    maps: list[MapState] = field(default_factory=fresh_maps)
    current_turn: TeamSide = TeamSide.TEAM_A
    ban_history: list[BanHistoryEntry] = field(default_factory=list)
    version: int = 0

    def team(self, side: TeamSide) -> Team:
        return self.team_a if side is TeamSide.TEAM_A else self.team_b

    def captain_side(self, session_id: str) -> TeamSide | None:
        """Side captained by the given session, if any."""
        if session_id and self.team_a.captain_id == session_id:
            return TeamSide.TEAM_A
        if session_id and self.team_b.captain_id == session_id:
            return TeamSide.TEAM_B
        return None

    def get_map(self, map_id: str) -> MapState | None:
        return next((m for m in self.maps if m.id == map_id), None)

    def count_status(self, status: MapStatus) -> int:
        return sum(1 for m in self.maps if m.status == status)

    @property
    def total_actions(self) -> int:
        """Draft actions taken so far, derived from map statuses."""
        return self.count_status(MapStatus.BANNED) + self.count_status(MapStatus.PICKED)

    def to_dict(self) -> dict:
        return {
            "room_id": self.room_id,
            "team_format": self.team_format.value,
            "match_format": self.match_format.value,
            "current_step": self.current_step.value,
            "team_a": self.team_a.to_dict(),
            "team_b": self.team_b.to_dict(),
            "maps": [m.to_dict() for m in self.maps],
            "current_turn": self.current_turn.value,
            "ban_history": [e.to_dict() for e in self.ban_history],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MatchSession":
        return cls(
            room_id=data["room_id"],
            team_format=TeamFormat(data["team_format"]),
            match_format=MatchFormat(data["match_format"]),
            current_step=Step(data["current_step"]),
            team_a=Team.from_dict(data["team_a"]),
            team_b=Team.from_dict(data["team_b"]),
            maps=[MapState.from_dict(m) for m in data["maps"]],
            current_turn=TeamSide(data["current_turn"]),
            ban_history=[BanHistoryEntry.from_dict(e) for e in data.get("ban_history", [])],
            version=data.get("version", 0),
        )


# Fields a write may never touch.
STORE_OWNED_FIELDS = frozenset({"room_id", "version"})


def diff_sessions(base: MatchSession, updated: MatchSession) -> dict:
    """Top-level wire fields of `updated` that differ from `base`."""
    before = base.to_dict()
    after = updated.to_dict()
    return {
        key: value
        for key, value in after.items()
        if key not in STORE_OWNED_FIELDS and before.get(key) != value
    }
