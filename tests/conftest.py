"""Shared fixtures for match tests."""

import random

import pytest

from map_veto.main import app
from map_veto.models.match import MatchFormat, Player, TeamFormat
from map_veto.repositories.room_repository import RoomRepository
from map_veto.repositories.session_store import InMemorySessionStore
from map_veto.services.draft_state_machine import Actor, DraftStateMachine
from map_veto.services.event_bus import EventBus
from map_veto.services.match_service import MatchService
from map_veto.services.veto_board import VetoBoardManager


def _roster(size: int) -> list[Player]:
    return [Player(id=f"p{i}", nickname=f"Player{i}", session_id=f"s{i}") for i in range(1, size + 1)]


@pytest.fixture
def make_roster():
    """Factory for rosters p1..pN with session ids s1..sN."""
    return _roster


@pytest.fixture
def admin():
    return Actor(session_id="admin", is_admin=True)


@pytest.fixture
def machine():
    """State machine with seeded team formation."""
    return DraftStateMachine(rng=random.Random(7))


@pytest.fixture
def ban_session(machine, admin):
    """Factory for a 2v2 session already in the ban step."""

    def _build(match_format: MatchFormat | str = MatchFormat.MD1, room_id: str = "ROOM01"):
        session = machine.new_session(room_id, TeamFormat.TWO_V_TWO, match_format)
        session = machine.create_teams(session, admin, _roster(4)).session
        return machine.start_ban_phase(session, admin).session

    return _build


@pytest.fixture
def app_state():
    """Fresh collaborators on app.state (mimics lifespan startup)."""
    app.state.store = InMemorySessionStore()
    app.state.rooms = RoomRepository()
    app.state.event_bus = EventBus()
    app.state.match_service = MatchService(
        app.state.store,
        app.state.rooms,
        event_bus=app.state.event_bus,
        rng=random.Random(3),
    )
    app.state.veto_boards = VetoBoardManager()
    yield app.state
    app.state.match_service.close()
