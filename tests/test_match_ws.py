"""Tests for the match WebSocket endpoint."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from map_veto.main import app

ADMIN = {"X-Session-Id": "admin"}


@pytest.fixture
def client(app_state):
    return TestClient(app)


@pytest.fixture
def room_id(client):
    room_id = client.post("/api/rooms", headers=ADMIN).json()["room_id"]
    for i in range(1, 5):
        client.post(
            f"/api/rooms/{room_id}/players",
            json={"nickname": f"Player{i}"},
            headers={"X-Session-Id": f"s{i}"},
        )
    return room_id


def test_initial_state_and_ping(client, room_id):
    with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
        message = ws.receive_json()
        assert message["type"] == "match_state"
        assert message["session"]["room_id"] == room_id

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_committed_writes_and_events_are_pushed(client, room_id):
    with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
        ws.receive_json()

        client.patch(f"/api/rooms/{room_id}/match/config", json={"team_format": "2v2"}, headers=ADMIN)
        message = ws.receive_json()
        assert message["type"] == "match_state"
        assert message["session"]["team_format"] == "2v2"

        client.post(f"/api/rooms/{room_id}/match/teams", headers=ADMIN)
        state = ws.receive_json()
        assert state["session"]["current_step"] == "teams"
        events = [ws.receive_json()["event"]["type"] for _ in range(2)]
        assert events == ["StepChanged", "TeamsFormed"]


def test_write_during_connect_reaches_client(client, room_id, app_state, monkeypatch):
    service = app_state.match_service
    service.get_session(room_id)
    read_session = service.get_session
    reads = []

    def read_then_other_client_writes(rid):
        session = read_session(rid)
        if not reads:
            reads.append(session.version)
            service.configure(rid, "admin", match_format="md3")
        return session

    monkeypatch.setattr(service, "get_session", read_then_other_client_writes)

    with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
        message = ws.receive_json()
        if message["session"]["version"] == 1:
            message = ws.receive_json()
        assert message["type"] == "match_state"
        assert message["session"]["version"] == 2
        assert message["session"]["match_format"] == "md3"

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_repeated_state_is_not_resent(client, room_id, app_state):
    with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
        assert ws.receive_json()["session"]["version"] == 1
        client.patch(f"/api/rooms/{room_id}/match/config", json={"match_format": "md5"}, headers=ADMIN)
        assert ws.receive_json()["session"]["version"] == 2

        # A commit delivered twice is only sent once
        app_state.store._notify(app_state.store.read(room_id))
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_unknown_room_is_closed(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/rooms/ZZZZZZ") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4004
