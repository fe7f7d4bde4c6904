"""Tests for the match service facade."""

import random
import threading
from unittest.mock import MagicMock

import pytest

from map_veto.errors import Forbidden, RoomNotFound, VersionConflict
from map_veto.models.events import DraftComplete, StepChanged, TeamsFormed
from map_veto.models.match import Step
from map_veto.repositories.room_repository import RoomRepository
from map_veto.repositories.session_store import InMemorySessionStore
from map_veto.services.event_bus import EventBus
from map_veto.services.match_service import MatchService, build_view


@pytest.fixture
def rooms():
    return RoomRepository()


@pytest.fixture
def room_id(rooms, make_roster):
    room = rooms.create_room("admin")
    for player in make_roster(4):
        rooms.join(room.room_id, player.nickname, player.session_id)
    return room.room_id


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def service(store, rooms, bus):
    svc = MatchService(store, rooms, event_bus=bus, rng=random.Random(11))
    yield svc
    svc.close()


def _to_ban_step(service, room_id):
    service.configure(room_id, "admin", team_format="2v2")
    service.create_teams(room_id, "admin")
    return service.start_ban_phase(room_id, "admin")


class TestIntents:
    def test_get_session_creates_on_first_access(self, service, room_id, store):
        session = service.get_session(room_id)
        assert session.version == 1
        assert session.current_step == Step.CONFIG
        assert store.read(room_id) == session

    def test_unknown_room(self, service):
        with pytest.raises(RoomNotFound):
            service.get_session("ZZZZZZ")

    def test_configure_combines_changes_in_one_write(self, service, room_id):
        session = service.configure(
            room_id, "admin", team_format="2v2", match_format="md3", team_a_name="Wolves"
        )
        assert session.version == 2
        assert session.team_a.name == "Wolves"
        assert session.match_format.value == "md3"

    def test_non_admin_cannot_configure(self, service, room_id):
        with pytest.raises(Forbidden):
            service.configure(room_id, "s1", match_format="md3")

    def test_full_md1_draft(self, service, room_id):
        session = _to_ban_step(service, room_id)
        for map_id in ["mirage", "inferno", "nuke", "overpass", "ancient", "anubis"]:
            captain_id = session.team(session.current_turn).captain_id
            session = service.apply_action(room_id, captain_id, map_id, "ban")

        assert session.current_step == Step.RESULT
        view = service.get_view(room_id, "admin")["view"]
        assert [m["id"] for m in view["final_maps"]] == ["vertigo"]
        assert view["current_action"] is None

        session = service.reset(room_id, "admin")
        assert session.current_step == Step.CONFIG
        assert session.team_format.value == "2v2"

    def test_stale_expected_version(self, service, room_id):
        service.configure(room_id, "admin", team_format="2v2")
        with pytest.raises(VersionConflict):
            service.create_teams(room_id, "admin", expected_version=1)


class TestEvents:
    def test_events_published_after_commit(self, service, room_id, store, bus):
        service.configure(room_id, "admin", team_format="2v2")
        committed_versions = []
        bus.subscribe(lambda event: committed_versions.append(store.read(room_id).version))
        handler = MagicMock()
        bus.subscribe(handler)

        session = service.create_teams(room_id, "admin")

        published = [call.args[0] for call in handler.call_args_list]
        assert [type(e) for e in published] == [StepChanged, TeamsFormed]
        assert committed_versions == [session.version, session.version]

    def test_rejected_intent_publishes_nothing(self, service, room_id, bus):
        handler = MagicMock()
        bus.subscribe(handler)
        with pytest.raises(Forbidden):
            service.start_ban_phase(room_id, "s2")
        handler.assert_not_called()

    def test_draft_complete_event(self, service, room_id, bus):
        handler = MagicMock()
        session = _to_ban_step(service, room_id)
        bus.subscribe(handler)
        for map_id in ["mirage", "inferno", "nuke", "overpass", "ancient", "anubis"]:
            session = service.apply_action(room_id, "admin", map_id, "ban")
        assert isinstance(handler.call_args_list[-1].args[0], DraftComplete)


class TestView:
    def test_captain_view(self, service, room_id):
        session = _to_ban_step(service, room_id)
        captain_a = session.team_a.captain_id
        view = build_view(session, service.actor(room_id, captain_a))
        assert view["can_act"] is True
        assert view["captain_of"] == "team_a"
        assert view["current_action"] == "ban"
        assert view["remaining_actions"] == 6

        other = build_view(session, service.actor(room_id, session.team_b.captain_id))
        assert other["can_act"] is False

    def test_roster_collaborator_double(self, store, bus, make_roster):
        rooms = MagicMock()
        rooms.list_players.return_value = make_roster(4)
        rooms.is_admin.side_effect = lambda room_id, session_id: session_id == "admin"
        service = MatchService(store, rooms, event_bus=bus)

        service.configure("ROOM01", "admin", team_format="2v2")
        session = service.create_teams("ROOM01", "admin")

        rooms.list_players.assert_called_once_with("ROOM01")
        assert len(session.team_a.players) == 2
        service.close()


class TestConcurrentAccess:
    def test_first_requests_share_one_store_listener(self, service, room_id, store):
        barrier = threading.Barrier(8)
        versions = []

        def first_request():
            barrier.wait()
            versions.append(service.get_session(room_id).version)

        threads = [threading.Thread(target=first_request) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert versions == [1] * 8
        assert len(store._listeners[room_id]) == 1

        service.close()
        assert room_id not in store._listeners
