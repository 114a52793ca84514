"""
Passerelles vers l'API des salons, consommées par `SessionController`.

- `LocalRoomGateway` : appelle directement un `RoomService` (même processus).
- `HttpRoomGateway`  : client HTTP (requests + retries urllib3) vers les routes `/rooms`.
  Les appels bloquants passent par `anyio.to_thread.run_sync`.

Les deux lèvent les mêmes `RoomError` (404 → RoomNotFound, 403 → RoomForbidden…).
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import anyio
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from impostor.models.room import Language
from impostor.models.room_view import JoinResult, RoomView
from impostor.services.errors import StorageUnavailable, error_for_status
from impostor.services.room_service import RoomService

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Tuple[float, float] = (5.0, 15.0)  # connect, read


class RoomGateway(ABC):
    @abstractmethod
    async def create_room(self, player_name: str, language: Language = "en", disallow_impostor_start: bool = False) -> JoinResult:
        raise NotImplementedError

    @abstractmethod
    async def join_room(self, room_id: str, player_name: str) -> JoinResult:
        raise NotImplementedError

    @abstractmethod
    async def leave_room(self, room_id: str, player_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def start_game(self, room_id: str, player_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def kick_player(self, room_id: str, player_id: str, host_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_room(self, room_id: str, player_id: Optional[str] = None) -> RoomView:
        raise NotImplementedError


class LocalRoomGateway(RoomGateway):
    def __init__(self, service: RoomService) -> None:
        self.service = service

    async def create_room(self, player_name, language="en", disallow_impostor_start=False):
        return await self.service.create_room(player_name, language, disallow_impostor_start)

    async def join_room(self, room_id, player_name):
        return await self.service.join_room(room_id, player_name)

    async def leave_room(self, room_id, player_id):
        await self.service.leave_room(room_id, player_id)

    async def start_game(self, room_id, player_id):
        await self.service.start_game(room_id, player_id)

    async def kick_player(self, room_id, player_id, host_id):
        await self.service.kick_player(room_id, player_id, host_id)

    async def get_room(self, room_id, player_id=None):
        return await self.service.get_room_view(room_id, player_id)


class HttpRoomGateway(RoomGateway):
    """
    Client HTTP centralisé pour l'API des salons.
    - Retries avec backoff exponentiel sur les GET et les erreurs de passerelle.
    - Les mutations (POST) ne sont pas rejouées automatiquement : un join rejoué
      créerait un second joueur.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or self._build_session()
        self.timeout = timeout

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset({"GET"}),
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _request(self, method: str, path: str, *, json: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("room api request failed", exc_info=True, extra={"url": url})
            raise StorageUnavailable("Room service unreachable") from exc

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = None
            if not isinstance(detail, str):
                detail = response.reason or f"HTTP {response.status_code}"
            logger.debug("room api error", extra={"url": url, "status": response.status_code})
            raise error_for_status(response.status_code, detail)
        return response.json()

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return await anyio.to_thread.run_sync(lambda: self._request(method, path, **kwargs))

    async def create_room(self, player_name, language="en", disallow_impostor_start=False):
        data = await self._call(
            "POST",
            "/rooms",
            json={"playerName": player_name, "language": language, "disallowImpostorStart": disallow_impostor_start},
        )
        return JoinResult.model_validate(data)

    async def join_room(self, room_id, player_name):
        data = await self._call("POST", f"/rooms/{room_id}/join", json={"playerName": player_name})
        return JoinResult.model_validate(data)

    async def leave_room(self, room_id, player_id):
        await self._call("POST", f"/rooms/{room_id}/leave", json={"playerId": player_id})

    async def start_game(self, room_id, player_id):
        await self._call("POST", f"/rooms/{room_id}/start", json={"playerId": player_id})

    async def kick_player(self, room_id, player_id, host_id):
        await self._call("POST", f"/rooms/{room_id}/kick", json={"playerId": player_id, "hostId": host_id})

    async def get_room(self, room_id, player_id=None):
        params = {"player_id": player_id} if player_id else None
        data = await self._call("GET", f"/rooms/{room_id}", params=params)
        return RoomView.model_validate(data)
