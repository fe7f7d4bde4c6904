"""Business logic services."""

from map_veto.services.action_resolver import apply_action, get_final_maps
from map_veto.services.draft_plan import DraftPlan, resolve_plan
from map_veto.services.draft_state_machine import Actor, DraftStateMachine, Transition
from map_veto.services.event_bus import EventBus
from map_veto.services.match_service import MatchService, build_view
from map_veto.services.match_sync import MatchSynchronizer
from map_veto.services.team_formation import form_teams
from map_veto.services.veto_board import VetoBoard, VetoBoardManager

__all__ = [
    "apply_action",
    "get_final_maps",
    "DraftPlan",
    "resolve_plan",
    "Actor",
    "DraftStateMachine",
    "Transition",
    "EventBus",
    "MatchService",
    "build_view",
    "MatchSynchronizer",
    "form_teams",
    "VetoBoard",
    "VetoBoardManager",
]
