import random
from uuid import uuid4

import pytest

pytest.importorskip("httpx", reason="httpx requis pour les tests client FastAPI")

from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from impostor.config.settings import settings
from impostor.deps.rooms import build_room_service
from impostor.main import app
from impostor.services.room_store import MemoryRoomBackend
from impostor.services.ws_manager import WS


@pytest.fixture
def client():
    previous = app.state.room_service
    app.state.room_service = build_room_service(
        backend=MemoryRoomBackend(),
        rng=random.Random(2),
        word_source=lambda language: "comet",
    )
    with TestClient(app) as test_client:
        yield test_client
    app.state.room_service = previous


def _create(client):
    data = client.post("/rooms", json={"playerName": "Alice"}).json()
    return data["roomId"], data["playerId"]


def test_subscribe_receives_snapshot_then_events(client):
    room_id, alice = _create(client)

    with client.websocket_connect(f"/ws/rooms/{room_id}?player_id={alice}") as ws:
        subscribed = ws.receive_json()
        assert subscribed == {"type": "subscribed", "room_id": room_id, "player_id": alice}

        snapshot = ws.receive_json()
        assert snapshot["type"] == "room-updated"
        assert [p["id"] for p in snapshot["payload"]["room"]["players"]] == [alice]

        bob = client.post(f"/rooms/{room_id}/join", json={"playerName": "Bob"}).json()["playerId"]
        joined = ws.receive_json()
        assert joined["type"] == "player-joined"
        assert joined["payload"]["player"] == {"id": bob, "name": "Bob", "isHost": False}

        client.post(f"/rooms/{room_id}/start", json={"playerId": alice})
        started = ws.receive_json()
        assert started["type"] == "game-started"
        room = started["payload"]["room"]
        me = [p for p in room["players"] if p["id"] == alice][0]
        assert ("word" in room) is (me["isImpostor"] is False)
        assert all("isImpostor" not in p for p in room["players"] if p["id"] != alice)

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_unknown_room_reports_error(client):
    with client.websocket_connect(f"/ws/rooms/{uuid4()}") as ws:
        assert ws.receive_json()["type"] == "subscribed"
        assert ws.receive_json() == {"type": "error", "error": "room_not_found"}


def test_identify_binds_socket_to_player(client):
    room_id, alice = _create(client)

    with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
        ws.receive_json()
        ws.receive_json()
        ws.send_json({"type": "identify", "player_id": alice})
        assert ws.receive_json() == {"type": "identified", "player_id": alice}
        assert WS.player_connected(room_id, alice)

        ws.send_json({"type": "identify"})
        assert ws.receive_json() == {"type": "error", "error": "missing player_id"}


def test_kicked_player_socket_is_dropped(client):
    room_id, alice = _create(client)
    bob = client.post(f"/rooms/{room_id}/join", json={"playerName": "Bob"}).json()["playerId"]

    with client.websocket_connect(f"/ws/rooms/{room_id}?player_id={bob}") as ws:
        ws.receive_json()
        ws.receive_json()
        client.post(f"/rooms/{room_id}/kick", json={"playerId": bob, "hostId": alice})
        kicked = ws.receive_json()
        assert kicked["type"] == "player-kicked"
        assert kicked["payload"]["kickedPlayerId"] == bob
        assert not WS.player_connected(room_id, bob)


def test_remove_on_disconnect(client, monkeypatch):
    monkeypatch.setattr(settings, "REMOVE_ON_DISCONNECT", True)
    room_id, alice = _create(client)
    bob = client.post(f"/rooms/{room_id}/join", json={"playerName": "Bob"}).json()["playerId"]

    with client.websocket_connect(f"/ws/rooms/{room_id}?player_id={alice}") as ws:
        ws.receive_json()
        ws.receive_json()

    players = client.get(f"/rooms/{room_id}").json()["players"]
    assert [(p["id"], p["isHost"]) for p in players] == [(bob, True)]


def test_uppercase_room_id_joins_canonical_channel(client):
    room_id, alice = _create(client)

    with client.websocket_connect(f"/ws/rooms/{room_id.upper()}?player_id={alice}") as ws:
        assert ws.receive_json() == {"type": "subscribed", "room_id": room_id, "player_id": alice}
        assert ws.receive_json()["type"] == "room-updated"
        assert WS.player_connected(room_id, alice)

        client.post(f"/rooms/{room_id}/join", json={"playerName": "Bob"})
        assert ws.receive_json()["type"] == "player-joined"


def test_malformed_room_id_is_refused(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/rooms/not-a-uuid") as ws:
            ws.receive_json()
