import asyncio
from unittest.mock import Mock

import pytest
import requests

from impostor.client.gateway import HttpRoomGateway, LocalRoomGateway, RoomGateway
from impostor.services.errors import (
    RoomConflict,
    RoomForbidden,
    RoomNotFound,
    StorageUnavailable,
)


def _response(status_code=200, payload=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def gateway(session):
    return HttpRoomGateway("http://rooms.local/", session=session)


def test_create_room_posts_camel_case_body(gateway, session):
    session.request.return_value = _response(payload={"roomId": "r1", "playerId": "p1"})

    result = asyncio.run(gateway.create_room("Alice", "fr", True))

    assert (result.room_id, result.player_id) == ("r1", "p1")
    session.request.assert_called_once_with(
        "POST",
        "http://rooms.local/rooms",
        json={"playerName": "Alice", "language": "fr", "disallowImpostorStart": True},
        params=None,
        timeout=gateway.timeout,
    )


def test_get_room_passes_player_query(gateway, session):
    session.request.return_value = _response(
        payload={
            "id": "r1",
            "status": "playing",
            "gameCount": 2,
            "language": "en",
            "word": "anchor",
            "players": [{"id": "p1", "name": "Alice", "isHost": True, "isPlaying": True, "isImpostor": False}],
        }
    )

    view = asyncio.run(gateway.get_room("r1", "p1"))

    assert view.word == "anchor"
    assert view.find_player("p1").is_impostor is False
    args, kwargs = session.request.call_args
    assert args == ("GET", "http://rooms.local/rooms/r1")
    assert kwargs["params"] == {"player_id": "p1"}


@pytest.mark.parametrize(
    "status, error",
    [(404, RoomNotFound), (403, RoomForbidden), (409, RoomConflict), (503, StorageUnavailable)],
)
def test_error_status_maps_to_room_error(gateway, session, status, error):
    session.request.return_value = _response(status, {"detail": "nope"}, reason="Err")

    with pytest.raises(error) as err:
        asyncio.run(gateway.start_game("r1", "p1"))
    assert err.value.detail == "nope"


def test_error_without_json_body_uses_reason(gateway, session):
    session.request.return_value = _response(502, ValueError("no json"), reason="Bad Gateway")

    with pytest.raises(StorageUnavailable) as err:
        asyncio.run(gateway.leave_room("r1", "p1"))
    assert err.value.detail == "Bad Gateway"


def test_transport_failure_is_storage_unavailable(gateway, session):
    session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(StorageUnavailable):
        asyncio.run(gateway.join_room("r1", "Bob"))


def test_default_session_retries_only_get():
    gateway = HttpRoomGateway("http://rooms.local")
    retry = gateway.session.get_adapter("http://rooms.local").max_retries
    assert retry.total == 3
    assert set(retry.allowed_methods) == {"GET"}
    assert 503 in retry.status_forcelist


def test_gateway_contract_cannot_be_instantiated():
    with pytest.raises(TypeError):
        RoomGateway()

    class Partial(RoomGateway):
        async def get_room(self, room_id, player_id=None):
            return None

    with pytest.raises(TypeError):
        Partial()

    assert issubclass(HttpRoomGateway, RoomGateway)
    assert issubclass(LocalRoomGateway, RoomGateway)
