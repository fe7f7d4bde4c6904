"""Apply ban/pick actions to a match session and derive the final map list."""

import copy
import logging

from map_veto.models.events import DraftComplete, MapBanned, MapPicked
from map_veto.models.map_pool import MAP_POOL, get_map
from map_veto.models.match import (
    ActionKind,
    BanHistoryEntry,
    MapState,
    MapStatus,
    MatchSession,
    Step,
)
from map_veto.services.draft_plan import resolve_plan
from map_veto.services.draft_state_machine import (
    Actor,
    Transition,
    move_to_step,
    validate_action,
)

logger = logging.getLogger(__name__)

_MAP_IDS_BY_NAME = {m.display_name: m.id for m in MAP_POOL}


def apply_action(
    session: MatchSession,
    map_id: str,
    kind: ActionKind | str,
    actor: Actor,
) -> Transition:
    """Apply one draft action on behalf of the team holding the turn.

    The map is banned or picked, the action is appended to the history and the
    turn flips to the other team. When the action consumes the last slot of the
    plan, every map still active is relabeled as picked (the deciders, in pool
    order) and the session moves to result.

    Args:
        session: Last observed session; not mutated
        map_id: Map to ban or pick
        kind: "ban" or "pick", must match the plan's next action
        actor: Admin or captain of the team on turn

    Returns:
        Transition with the new session and MapBanned/MapPicked events, plus
        StepChanged and DraftComplete on the terminal action.

    Raises:
        Forbidden: Actor may not act for the team on turn.
        IllegalAction: The action is not legal in the current state.
    """
    validate_action(session, actor, map_id, kind)
    kind = ActionKind(kind)
    plan = resolve_plan(session.match_format)

    updated = copy.deepcopy(session)
    acting_side = updated.current_turn
    target = updated.get_map(map_id)

    if kind is ActionKind.BAN:
        target.status = MapStatus.BANNED
        target.picked_by = None
        events = [MapBanned(room_id=session.room_id, team=acting_side, map_id=map_id)]
    else:
        target.status = MapStatus.PICKED
        target.picked_by = acting_side
        events = [MapPicked(room_id=session.room_id, team=acting_side, map_id=map_id)]

    updated.ban_history.append(
        BanHistoryEntry(
            team=updated.team(acting_side).name,
            map_name=get_map(map_id).display_name,
            action=kind,
        )
    )
    updated.current_turn = acting_side.opponent

    if updated.total_actions < len(plan.action_order):
        return Transition(updated, events)

    for map_state in updated.maps:
        if map_state.status == MapStatus.ACTIVE:
            map_state.status = MapStatus.PICKED
            map_state.picked_by = None
    events.append(move_to_step(updated, Step.RESULT))

    final_maps = get_final_maps(updated)
    events.append(DraftComplete(room_id=session.room_id, final_maps=final_maps))
    logger.info(
        f"Draft complete for room {session.room_id}: {[m.id for m in final_maps]}"
    )
    return Transition(updated, events)


def get_final_maps(session: MatchSession) -> list[MapState]:
    """Published match-map order: team picks in pick order, then deciders.

    Picks are ordered by their position in the action history. Deciders are
    the maps picked by nobody (or still active before the draft ends), in pool
    order. The list is capped at the plan's final map count, so for md1 it is
    the single surviving map.
    """
    plan = resolve_plan(session.match_format)

    pick_order = [
        _MAP_IDS_BY_NAME.get(entry.map_name)
        for entry in session.ban_history
        if entry.action is ActionKind.PICK
    ]
    team_picks = [
        m for m in session.maps if m.status == MapStatus.PICKED and m.picked_by is not None
    ]
    team_picks.sort(
        key=lambda m: pick_order.index(m.id) if m.id in pick_order else len(pick_order)
    )

    deciders = [
        m
        for m in session.maps
        if m.status in (MapStatus.ACTIVE, MapStatus.DECIDER)
        or (m.status == MapStatus.PICKED and m.picked_by is None)
    ]
    return [copy.copy(m) for m in (team_picks + deciders)[: plan.final_map_count]]


def remaining_actions(session: MatchSession) -> int:
    """Draft actions left in the plan."""
    plan = resolve_plan(session.match_format)
    return max(0, len(plan.action_order) - session.total_actions)
