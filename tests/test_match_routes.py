"""Tests for room, match and veto API routes."""

from unittest.mock import MagicMock

import httpx
import pytest

from map_veto.errors import StoreUnavailable
from map_veto.main import app

pytestmark = pytest.mark.anyio

ADMIN = {"X-Session-Id": "admin"}


@pytest.fixture
async def client(app_state):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def create_room_with_players(client, count=4) -> str:
    response = await client.post("/api/rooms", headers=ADMIN)
    room_id = response.json()["room_id"]
    for i in range(1, count + 1):
        await client.post(
            f"/api/rooms/{room_id}/players",
            json={"nickname": f"Player{i}"},
            headers={"X-Session-Id": f"s{i}"},
        )
    return room_id


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestRooms:
    async def test_create_room(self, client):
        response = await client.post("/api/rooms", headers=ADMIN)
        assert response.status_code == 201
        data = response.json()
        assert data["session_id"] == "admin"
        assert data["is_admin"] is True
        assert len(data["room_id"]) == 6

    async def test_create_room_issues_session_id(self, client):
        response = await client.post("/api/rooms")
        assert response.json()["session_id"]

    async def test_join_and_get(self, client):
        room_id = await create_room_with_players(client, 2)
        response = await client.get(f"/api/rooms/{room_id}", headers={"X-Session-Id": "s1"})
        data = response.json()
        assert [p["nickname"] for p in data["players"]] == ["Player1", "Player2"]
        assert data["is_admin"] is False
        assert "admin_session_id" not in data

    async def test_join_requires_session(self, client):
        room_id = await create_room_with_players(client, 0)
        response = await client.post(f"/api/rooms/{room_id}/players", json={"nickname": "x"})
        assert response.status_code == 400

    async def test_unknown_room(self, client):
        response = await client.get("/api/rooms/ZZZZZZ")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "RoomNotFound"

    async def test_leave_permissions(self, client):
        room_id = await create_room_with_players(client, 2)
        players = (await client.get(f"/api/rooms/{room_id}")).json()["players"]
        target = players[0]["id"]

        response = await client.delete(
            f"/api/rooms/{room_id}/players/{target}", headers={"X-Session-Id": "s2"}
        )
        assert response.status_code == 403

        response = await client.delete(f"/api/rooms/{room_id}/players/{target}", headers=ADMIN)
        assert response.status_code == 200


class TestMatch:
    async def test_get_match_creates_session(self, client):
        room_id = await create_room_with_players(client)
        response = await client.get(f"/api/rooms/{room_id}/match", headers=ADMIN)
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["current_step"] == "config"
        assert data["session"]["version"] == 1
        assert data["view"]["is_admin"] is True

    async def test_full_draft_over_http(self, client):
        room_id = await create_room_with_players(client)
        base = f"/api/rooms/{room_id}/match"

        response = await client.patch(
            f"{base}/config", json={"team_format": "2v2", "match_format": "md3"}, headers=ADMIN
        )
        assert response.status_code == 200

        response = await client.post(f"{base}/teams", headers=ADMIN)
        assert response.json()["session"]["current_step"] == "teams"

        response = await client.post(f"{base}/ban-phase", headers=ADMIN)
        session = response.json()["session"]
        assert session["current_step"] == "ban"

        moves = [
            ("mirage", "ban"), ("inferno", "ban"), ("nuke", "ban"),
            ("overpass", "ban"), ("ancient", "pick"), ("anubis", "pick"),
        ]
        for map_id, action in moves:
            captain = session[session["current_turn"]]["captain_id"]
            response = await client.post(
                f"{base}/actions",
                json={"map_id": map_id, "action": action, "expected_version": session["version"]},
                headers={"X-Session-Id": captain},
            )
            assert response.status_code == 200, response.text
            session = response.json()["session"]

        data = response.json()
        assert data["session"]["current_step"] == "result"
        assert [m["id"] for m in data["view"]["final_maps"]] == ["ancient", "anubis", "vertigo"]

        response = await client.post(f"{base}/reset", headers=ADMIN)
        assert response.json()["session"]["current_step"] == "config"
        assert response.json()["session"]["match_format"] == "md3"

    async def test_non_admin_forbidden(self, client):
        room_id = await create_room_with_players(client)
        response = await client.patch(
            f"/api/rooms/{room_id}/match/config",
            json={"match_format": "md3"},
            headers={"X-Session-Id": "s1"},
        )
        assert response.status_code == 403

    async def test_invalid_format(self, client):
        room_id = await create_room_with_players(client)
        response = await client.patch(
            f"/api/rooms/{room_id}/match/config", json={"match_format": "md2"}, headers=ADMIN
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidFormat"

    async def test_roster_mismatch(self, client):
        room_id = await create_room_with_players(client, 3)
        response = await client.post(f"/api/rooms/{room_id}/match/teams", headers=ADMIN)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["required"] == 10
        assert detail["actual"] == 3

    async def test_illegal_transition(self, client):
        room_id = await create_room_with_players(client)
        response = await client.post(f"/api/rooms/{room_id}/match/ban-phase", headers=ADMIN)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "IllegalTransition"

    async def test_version_conflict_returns_current_session(self, client):
        room_id = await create_room_with_players(client)
        base = f"/api/rooms/{room_id}/match"
        await client.patch(f"{base}/config", json={"team_format": "2v2"}, headers=ADMIN)

        response = await client.post(f"{base}/teams", json={"expected_version": 1}, headers=ADMIN)
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["error"] == "VersionConflict"
        assert detail["session"]["version"] == 2
        assert detail["session"]["team_format"] == "2v2"

    async def test_store_outage_returns_503(self, client):
        room_id = await create_room_with_players(client)
        base = f"/api/rooms/{room_id}/match"
        await client.get(base, headers=ADMIN)
        app.state.store.write = MagicMock(side_effect=StoreUnavailable("store offline"))

        response = await client.patch(f"{base}/config", json={"match_format": "md3"}, headers=ADMIN)
        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "StoreUnavailable"

        response = await client.get(base, headers=ADMIN)
        assert response.json()["session"]["version"] == 1
        assert response.json()["session"]["match_format"] == "md1"

    async def test_go_back(self, client):
        room_id = await create_room_with_players(client)
        base = f"/api/rooms/{room_id}/match"
        await client.patch(f"{base}/config", json={"team_format": "2v2"}, headers=ADMIN)
        await client.post(f"{base}/teams", headers=ADMIN)
        response = await client.post(f"{base}/back", headers=ADMIN)
        assert response.json()["session"]["current_step"] == "config"


class TestVeto:
    async def test_veto_board_flow(self, client):
        response = await client.post("/api/veto/boards", json={"match_format": "md1"}, headers=ADMIN)
        assert response.status_code == 201
        board_id = response.json()["board_id"]

        for map_id in ["mirage", "inferno", "nuke", "overpass", "ancient", "anubis"]:
            response = await client.post(
                f"/api/veto/boards/{board_id}/actions",
                json={"map_id": map_id, "status": "banned"},
                headers=ADMIN,
            )
            assert response.status_code == 200

        data = response.json()
        assert data["decider"] == "vertigo"
        assert data["is_complete"] is True
        assert data["result"] == ["vertigo"]

        response = await client.post(f"/api/veto/boards/{board_id}/reset", headers=ADMIN)
        assert response.json()["decider"] is None

    async def test_only_board_admin_changes_maps(self, client):
        board_id = (await client.post("/api/veto/boards", headers=ADMIN)).json()["board_id"]
        response = await client.post(
            f"/api/veto/boards/{board_id}/actions",
            json={"map_id": "mirage", "status": "banned"},
            headers={"X-Session-Id": "s1"},
        )
        assert response.status_code == 403

    async def test_configure_board(self, client):
        board_id = (await client.post("/api/veto/boards", headers=ADMIN)).json()["board_id"]
        response = await client.patch(
            f"/api/veto/boards/{board_id}",
            json={"match_format": "md3", "team_b_name": "Owls"},
            headers=ADMIN,
        )
        data = response.json()
        assert data["match_format"] == "md3"
        assert data["team_b_name"] == "Owls"

    async def test_missing_board(self, client):
        response = await client.get("/api/veto/boards/veto_missing")
        assert response.status_code == 404
