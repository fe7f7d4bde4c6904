"""Data models for match setup and the map draft."""

from map_veto.models.map_pool import MAP_POOL, MapInfo, get_map, map_ids
from map_veto.models.match import (
    ActionKind,
    BanHistoryEntry,
    MapState,
    MapStatus,
    MatchFormat,
    MatchSession,
    Player,
    Step,
    Team,
    TeamFormat,
    TeamSide,
)
from map_veto.models.events import (
    DraftComplete,
    MapBanned,
    MapPicked,
    MatchEvent,
    StepChanged,
    TeamsFormed,
)

__all__ = [
    "MAP_POOL",
    "MapInfo",
    "get_map",
    "map_ids",
    "ActionKind",
    "BanHistoryEntry",
    "MapState",
    "MapStatus",
    "MatchFormat",
    "MatchSession",
    "Player",
    "Step",
    "Team",
    "TeamFormat",
    "TeamSide",
    "DraftComplete",
    "MapBanned",
    "MapPicked",
    "MatchEvent",
    "StepChanged",
    "TeamsFormed",
]
