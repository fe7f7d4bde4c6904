"""Application facade: resolves actors, runs intents, publishes events."""

import logging
import random
import threading

from map_veto.errors import MatchError
from map_veto.models.match import ActionKind, MatchSession, Step, TeamSide
from map_veto.repositories.room_repository import RoomRepository
from map_veto.repositories.session_store import SessionListener, SessionStore, Subscription
from map_veto.services.action_resolver import apply_action, get_final_maps, remaining_actions
from map_veto.services.draft_plan import resolve_plan
from map_veto.services.draft_state_machine import (
    Actor,
    DraftStateMachine,
    Transition,
    can_act,
    current_action,
)
from map_veto.services.event_bus import EventBus
from map_veto.services.match_sync import Derive, MatchSynchronizer

logger = logging.getLogger(__name__)


def build_view(session: MatchSession, actor: Actor) -> dict:
    """Values clients derive from the session for the requesting actor."""
    action = current_action(session)
    side = session.captain_side(actor.session_id)
    in_result = session.current_step == Step.RESULT
    return {
        "current_action": action.value if action else None,
        "plan": resolve_plan(session.match_format).to_dict(),
        "remaining_actions": remaining_actions(session),
        "can_act": action is not None and can_act(session, actor),
        "is_admin": actor.is_admin,
        "captain_of": side.value if side else None,
        "final_maps": [m.to_dict() for m in get_final_maps(session)] if in_result else [],
    }


class MatchService:
    """Runs match intents for rooms against the shared state store.

    One synchronizer is kept per room. Events are published on the bus only
    after the store has committed the write that produced them.
    """

    def __init__(
        self,
        store: SessionStore,
        rooms: RoomRepository,
        event_bus: EventBus | None = None,
        state_machine: DraftStateMachine | None = None,
        max_retries: int = 0,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.rooms = rooms
        self.event_bus = event_bus or EventBus()
        self.state_machine = state_machine or DraftStateMachine()
        self.max_retries = max_retries
        self._rng = rng
        self._synchronizers: dict[str, MatchSynchronizer] = {}
        self._lock = threading.Lock()

    def _synchronizer(self, room_id: str) -> MatchSynchronizer:
        self.rooms.get_room(room_id)
        with self._lock:
            sync = self._synchronizers.get(room_id)
            if sync is None:
                sync = MatchSynchronizer(self.store, room_id, self.state_machine.new_session)
                self._synchronizers[room_id] = sync
        if not sync.started:
            sync.start()
        return sync

    def actor(self, room_id: str, session_id: str | None) -> Actor:
        return Actor(session_id=session_id or "", is_admin=self.rooms.is_admin(room_id, session_id))

    def get_session(self, room_id: str) -> MatchSession:
        return self._synchronizer(room_id).current

    def get_view(self, room_id: str, session_id: str | None) -> dict:
        session = self.get_session(room_id)
        return {"session": session.to_dict(), "view": build_view(session, self.actor(room_id, session_id))}

    def subscribe(self, room_id: str, listener: SessionListener) -> Subscription:
        """Receive every committed session of the room."""
        self._synchronizer(room_id)
        return self.store.subscribe(room_id, listener)

    # ====================
    # Intents
    # ====================

    def configure(
        self,
        room_id: str,
        session_id: str | None,
        team_format: str | None = None,
        match_format: str | None = None,
        team_a_name: str | None = None,
        team_b_name: str | None = None,
        expected_version: int | None = None,
    ) -> MatchSession:
        """Apply any combination of format changes and team renames."""
        actor = self.actor(room_id, session_id)
        sm = self.state_machine

        def derive(base: MatchSession) -> Transition:
            transition = Transition(base)
            if team_format is not None:
                transition = sm.set_team_format(transition.session, actor, team_format)
            if match_format is not None:
                transition = sm.set_match_format(transition.session, actor, match_format)
            if team_a_name is not None:
                transition = sm.rename_team(transition.session, actor, TeamSide.TEAM_A, team_a_name)
            if team_b_name is not None:
                transition = sm.rename_team(transition.session, actor, TeamSide.TEAM_B, team_b_name)
            return transition

        return self._submit(room_id, derive, expected_version)

    def create_teams(
        self, room_id: str, session_id: str | None, expected_version: int | None = None
    ) -> MatchSession:
        actor = self.actor(room_id, session_id)
        roster = self.rooms.list_players(room_id)
        return self._submit(
            room_id,
            lambda base: self.state_machine.create_teams(base, actor, roster, rng=self._rng),
            expected_version,
        )

    def start_ban_phase(
        self, room_id: str, session_id: str | None, expected_version: int | None = None
    ) -> MatchSession:
        actor = self.actor(room_id, session_id)
        return self._submit(
            room_id, lambda base: self.state_machine.start_ban_phase(base, actor), expected_version
        )

    def apply_action(
        self,
        room_id: str,
        session_id: str | None,
        map_id: str,
        action: ActionKind | str,
        expected_version: int | None = None,
    ) -> MatchSession:
        actor = self.actor(room_id, session_id)
        return self._submit(
            room_id, lambda base: apply_action(base, map_id, action, actor), expected_version
        )

    def go_back(
        self, room_id: str, session_id: str | None, expected_version: int | None = None
    ) -> MatchSession:
        actor = self.actor(room_id, session_id)
        return self._submit(
            room_id, lambda base: self.state_machine.go_back(base, actor), expected_version
        )

    def reset(
        self, room_id: str, session_id: str | None, expected_version: int | None = None
    ) -> MatchSession:
        actor = self.actor(room_id, session_id)
        return self._submit(
            room_id, lambda base: self.state_machine.reset(base, actor), expected_version
        )

    def close(self) -> None:
        with self._lock:
            synchronizers = list(self._synchronizers.values())
            self._synchronizers.clear()
        for sync in synchronizers:
            sync.close()

    def _submit(self, room_id: str, derive: Derive, expected_version: int | None) -> MatchSession:
        sync = self._synchronizer(room_id)
        try:
            session, events = sync.submit(
                derive, expected_version=expected_version, max_retries=self.max_retries
            )
        except MatchError as e:
            logger.warning(f"Rejected intent on room {room_id}: {type(e).__name__}: {e.message}")
            raise
        logger.info(
            f"Room {room_id} at version {session.version} "
            f"({session.current_step.value}): {[e.type for e in events]}"
        )
        self.event_bus.publish_all(events)
        return session
