"""
Dépendances FastAPI du service de salons.

- `build_room_service()` : assemble store (backend choisi par les settings) + publication WS.
- `get_room_service` : dependency utilisable en HTTP comme en WebSocket ; lit
  `app.state.room_service` (remplaçable dans les tests).
"""
from __future__ import annotations

from typing import Optional

from fastapi.requests import HTTPConnection

from impostor.services.room_service import RoomPublisher, RoomService
from impostor.services.room_store import ExpiringKeyValue, RoomStore, build_backend
from impostor.services.ws_manager import WS


def build_room_service(
    backend: Optional[ExpiringKeyValue] = None,
    publisher: Optional[RoomPublisher] = None,
    **store_options,
) -> RoomService:
    store = RoomStore(backend or build_backend(), **store_options)
    return RoomService(store, publisher or WS)


def get_room_service(connection: HTTPConnection) -> RoomService:
    return connection.app.state.room_service
