"""Step lifecycle, turn model and legality checks for a match session.

Every transition is pure: it takes the last observed session plus an intent
and returns a new session value together with the events it produced. The
input session is never mutated; persisting the result is the caller's job.
"""

import copy
import random
from dataclasses import dataclass, field

from map_veto.errors import Forbidden, IllegalAction, IllegalTransition
from map_veto.models.events import MatchEvent, StepChanged, TeamsFormed
from map_veto.models.map_pool import get_map
from map_veto.models.match import (
    ActionKind,
    MapStatus,
    MatchFormat,
    MatchSession,
    Player,
    Step,
    Team,
    TeamFormat,
    TeamSide,
    fresh_maps,
)
from map_veto.services.draft_plan import resolve_plan
from map_veto.services.team_formation import form_teams, parse_team_format

STEP_TRANSITIONS: dict[Step, frozenset[Step]] = {
    Step.CONFIG: frozenset({Step.TEAMS}),
    Step.TEAMS: frozenset({Step.BAN, Step.CONFIG}),
    Step.BAN: frozenset({Step.RESULT, Step.TEAMS}),
    Step.RESULT: frozenset({Step.CONFIG}),
}

BACK_EDGES: dict[Step, Step] = {
    Step.TEAMS: Step.CONFIG,
    Step.BAN: Step.TEAMS,
}


@dataclass(frozen=True)
class Actor:
    """The session issuing an intent."""

    session_id: str
    is_admin: bool = False


@dataclass
class Transition:
    """New session value plus the events the change produced."""

    session: MatchSession
    events: list[MatchEvent] = field(default_factory=list)


def move_to_step(session: MatchSession, target: Step) -> StepChanged:
    """Set `session.current_step` to `target` if the step graph allows it.

    Mutates `session`; callers pass their own working copy.

    Raises:
        IllegalTransition: If `target` is not reachable from the current step.
    """
    source = session.current_step
    if target not in STEP_TRANSITIONS[source]:
        raise IllegalTransition(f"Cannot move from {source.value} to {target.value}")
    session.current_step = target
    return StepChanged(room_id=session.room_id, from_step=source, to_step=target)


def current_action(session: MatchSession) -> ActionKind | None:
    """Action the plan requires next, or None outside an unfinished ban step."""
    if session.current_step != Step.BAN:
        return None
    return resolve_plan(session.match_format).action_at(session.total_actions)


def can_act(session: MatchSession, actor: Actor) -> bool:
    """Whether the actor may take the current draft turn."""
    if actor.is_admin:
        return True
    return session.captain_side(actor.session_id) == session.current_turn


def validate_action(
    session: MatchSession, actor: Actor, map_id: str, kind: ActionKind
) -> None:
    """Reject a ban/pick intent that is not legal right now.

    Raises:
        Forbidden: Actor is neither admin nor captain of the team on turn.
        IllegalAction: Wrong step, unknown or non-active map, or the plan
            requires the other action kind.
    """
    if not can_act(session, actor):
        raise Forbidden(
            f"Session {actor.session_id} may not act for {session.current_turn.value}"
        )
    if session.current_step != Step.BAN:
        raise IllegalAction(f"Draft actions need step ban, session is in {session.current_step.value}")

    map_state = session.get_map(map_id)
    if get_map(map_id) is None or map_state is None:
        raise IllegalAction(f"Unknown map: {map_id}")
    if map_state.status != MapStatus.ACTIVE:
        raise IllegalAction(f"Map {map_id} is already {map_state.status.value}")

    try:
        kind = ActionKind(kind)
    except ValueError:
        raise IllegalAction(f"Unknown action: {kind!r}") from None
    required = current_action(session)
    if required is None:
        raise IllegalAction("Draft plan is already complete")
    if kind != required:
        raise IllegalAction(f"Current action is {required.value}, not {kind.value}")


class DraftStateMachine:
    """Transitions for the config -> teams -> ban -> result lifecycle.

    Draft actions themselves live in the action resolver; this class owns
    configuration, team formation and step navigation.
    """

    def __init__(
        self,
        team_a_name: str = "Team A",
        team_b_name: str = "Team B",
        default_team_format: TeamFormat | str = TeamFormat.FIVE_V_FIVE,
        default_match_format: MatchFormat | str = MatchFormat.MD1,
        rng: random.Random | None = None,
    ):
        self.team_a_name = team_a_name
        self.team_b_name = team_b_name
        self.default_team_format = parse_team_format(default_team_format)
        self.default_match_format = resolve_plan(default_match_format).match_format
        self._rng = rng

    def new_session(
        self,
        room_id: str,
        team_format: TeamFormat | str | None = None,
        match_format: MatchFormat | str | None = None,
    ) -> MatchSession:
        """Fresh session in step config."""
        return MatchSession(
            room_id=room_id,
            team_format=parse_team_format(team_format or self.default_team_format),
            match_format=resolve_plan(match_format or self.default_match_format).match_format,
            current_step=Step.CONFIG,
            team_a=Team(name=self.team_a_name),
            team_b=Team(name=self.team_b_name),
            maps=fresh_maps(),
            current_turn=TeamSide.TEAM_A,
            ban_history=[],
        )

    # ====================
    # Configuration
    # ====================

    def set_team_format(
        self, session: MatchSession, actor: Actor, team_format: TeamFormat | str
    ) -> Transition:
        self._require_admin(actor, "change the team format")
        self._require_step(session, Step.CONFIG, "change the team format")
        updated = copy.deepcopy(session)
        updated.team_format = parse_team_format(team_format)
        return Transition(updated)

    def set_match_format(
        self, session: MatchSession, actor: Actor, match_format: MatchFormat | str
    ) -> Transition:
        self._require_admin(actor, "change the match format")
        self._require_step(session, Step.CONFIG, "change the match format")
        updated = copy.deepcopy(session)
        updated.match_format = resolve_plan(match_format).match_format
        return Transition(updated)

    def rename_team(
        self, session: MatchSession, actor: Actor, side: TeamSide | str, name: str | None
    ) -> Transition:
        """Rename a team; blank names fall back to the default name."""
        self._require_admin(actor, "rename teams")
        if session.current_step not in (Step.CONFIG, Step.TEAMS):
            raise IllegalAction(f"Teams cannot be renamed in step {session.current_step.value}")
        try:
            side = TeamSide(side)
        except ValueError:
            raise IllegalAction(f"Unknown team: {side!r}") from None

        default = self.team_a_name if side is TeamSide.TEAM_A else self.team_b_name
        updated = copy.deepcopy(session)
        updated.team(side).name = (name or "").strip() or default
        return Transition(updated)

    # ====================
    # Step transitions
    # ====================

    def create_teams(
        self,
        session: MatchSession,
        actor: Actor,
        roster: list[Player],
        rng: random.Random | None = None,
    ) -> Transition:
        """Form both teams from the roster snapshot and move config -> teams."""
        self._require_admin(actor, "create teams")
        if session.current_step != Step.CONFIG:
            raise IllegalTransition(
                f"Teams are formed from step config, session is in {session.current_step.value}"
            )

        team_a, team_b = form_teams(
            roster,
            session.team_format,
            session.team_a.name,
            session.team_b.name,
            rng=rng or self._rng,
        )
        updated = copy.deepcopy(session)
        updated.team_a = team_a
        updated.team_b = team_b
        step_event = move_to_step(updated, Step.TEAMS)
        return Transition(
            updated,
            [step_event, TeamsFormed(room_id=session.room_id, team_a=team_a, team_b=team_b)],
        )

    def start_ban_phase(self, session: MatchSession, actor: Actor) -> Transition:
        """Enter the draft: all maps active, history cleared, team A on turn."""
        self._require_admin(actor, "start the ban phase")
        updated = copy.deepcopy(session)
        step_event = move_to_step(updated, Step.BAN)
        updated.maps = fresh_maps()
        updated.ban_history = []
        updated.current_turn = TeamSide.TEAM_A
        return Transition(updated, [step_event])

    def go_back(self, session: MatchSession, actor: Actor) -> Transition:
        """Admin step back: teams -> config or ban -> teams."""
        self._require_admin(actor, "go back")
        target = BACK_EDGES.get(session.current_step)
        if target is None:
            raise IllegalTransition(f"Cannot go back from step {session.current_step.value}")
        updated = copy.deepcopy(session)
        return Transition(updated, [move_to_step(updated, target)])

    def reset(self, session: MatchSession, actor: Actor) -> Transition:
        """Full reset from result back to config.

        Team and match formats are kept; everything else matches a fresh
        session for the same room.
        """
        self._require_admin(actor, "reset the match")
        if session.current_step != Step.RESULT:
            raise IllegalTransition(
                f"Reset is only available from step result, session is in {session.current_step.value}"
            )
        updated = self.new_session(session.room_id, session.team_format, session.match_format)
        updated.version = session.version
        # new_session starts in config; record the edge that was taken
        event = StepChanged(room_id=session.room_id, from_step=Step.RESULT, to_step=Step.CONFIG)
        return Transition(updated, [event])

    # ====================
    # Helpers
    # ====================

    @staticmethod
    def _require_admin(actor: Actor, what: str) -> None:
        if not actor.is_admin:
            raise Forbidden(f"Only the admin can {what}")

    @staticmethod
    def _require_step(session: MatchSession, step: Step, what: str) -> None:
        if session.current_step != step:
            raise IllegalAction(
                f"Cannot {what} in step {session.current_step.value}, needs {step.value}"
            )
