"""
Service: room_service.py
Rôle:
- Frontière "RPC" au-dessus du `RoomStore` : traduit les absences (`None`) en
  erreurs métier lisibles et diffuse l'événement temps réel après chaque mutation.

Événements:
- join  → player-joined {room, player}
- leave / disconnect → player-left {room, playerId, playerName}
- start → game-started {room}
- kick  → player-kicked {room, kickedPlayerId, kickedPlayerName}
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from impostor.models.room import Language, Room, RoomStatus
from impostor.models.room_view import JoinResult, RoomEvent, RoomView
from .errors import RoomConflict, RoomForbidden, RoomNotFound
from .room_store import RoomStore
from .room_view import project_room

logger = logging.getLogger(__name__)


class RoomPublisher(Protocol):
    async def publish(self, room: Room, event: str, extra: Optional[Dict[str, Any]] = None) -> int:
        ...

    async def drop_player(self, room_id: str, player_id: str) -> int:
        ...


class RoomService:
    def __init__(self, store: RoomStore, publisher: RoomPublisher) -> None:
        self.store = store
        self.publisher = publisher

    async def _require_room(self, room_id: str) -> Room:
        room = await self.store.get_room(room_id)
        if room is None:
            raise RoomNotFound("Room not found")
        return room

    async def create_room(
        self,
        player_name: str,
        language: Language = "en",
        disallow_impostor_start: bool = False,
    ) -> JoinResult:
        room, player_id = await self.store.create_room(player_name, language, disallow_impostor_start)
        return JoinResult(room_id=room.id, player_id=player_id)

    async def join_room(self, room_id: str, player_name: str) -> JoinResult:
        result = await self.store.add_player_to_room(room_id, player_name)
        if result is None:
            raise RoomNotFound("Room not found or game already finished")
        room, player_id = result
        player = room.find_player(player_id)
        await self.publisher.publish(
            room,
            RoomEvent.PLAYER_JOINED.value,
            {"player": {"id": player.id, "name": player.name, "isHost": player.is_host}},
        )
        return JoinResult(room_id=room.id, player_id=player_id)

    async def leave_room(self, room_id: str, player_id: str) -> None:
        room = await self._require_room(room_id)
        player = room.find_player(player_id)
        if player is None:
            raise RoomNotFound("Player not found in room")
        updated = await self.store.remove_player_from_room(room_id, player_id)
        if updated is None:
            # retiré entre-temps (kick / départ concurrent)
            raise RoomNotFound("Player not found in room")
        await self.publisher.publish(
            updated,
            RoomEvent.PLAYER_LEFT.value,
            {"playerId": player_id, "playerName": player.name},
        )
        logger.info("player left", extra={"room_id": room_id, "player_id": player_id})

    async def handle_disconnect(self, room_id: str, player_id: str) -> Dict[str, Any]:
        """Départ sur déconnexion : jamais d'erreur levée, un drapeau de succès."""
        try:
            await self.leave_room(room_id, player_id)
        except RoomNotFound as exc:
            return {"success": False, "error": exc.detail}
        return {"success": True}

    async def start_game(self, room_id: str, player_id: str, min_players: Optional[int] = None) -> None:
        required = self.store.min_players if min_players is None else min_players
        room = await self.store.start_game(room_id, player_id, min_players=required)
        if room is None:
            raise await self._start_failure(room_id, player_id, required)
        await self.publisher.publish(room, RoomEvent.GAME_STARTED.value)
        logger.info(
            "game started",
            extra={"room_id": room_id, "game_count": room.game_count, "players": len(room.players)},
        )

    async def _start_failure(self, room_id: str, player_id: str, required: int) -> Exception:
        """Diagnostic après coup, uniquement pour le message d'erreur."""
        room = await self.store.get_room(room_id)
        if room is None:
            return RoomNotFound("Room not found")
        if not room.is_host(player_id):
            return RoomForbidden("Failed to start game. Make sure you are the host.")
        if room.status == RoomStatus.FINISHED:
            return RoomConflict("Failed to start game. The game is already finished.")
        return RoomConflict(
            f"Failed to start game. Make sure you have at least {required} players."
        )

    async def kick_player(self, room_id: str, player_id: str, host_id: str) -> None:
        room = await self._require_room(room_id)
        player = room.find_player(player_id)
        if player is None:
            raise RoomNotFound("Player not found in room")
        updated = await self.store.kick_player(room_id, player_id, host_id)
        if updated is None:
            current = await self.store.get_room(room_id)
            if current is None:
                raise RoomNotFound("Room not found")
            if current.find_player(player_id) is None:
                # parti entre-temps (départ / kick concurrent)
                raise RoomNotFound("Player not found in room")
            raise RoomForbidden("Failed to kick player. Make sure you are the host.")
        await self.publisher.publish(
            updated,
            RoomEvent.PLAYER_KICKED.value,
            {"kickedPlayerId": player_id, "kickedPlayerName": player.name},
        )
        # l'expulsé a reçu player-kicked ; il ne reçoit plus rien du salon ensuite
        await self.publisher.drop_player(room_id, player_id)
        logger.info("player kicked", extra={"room_id": room_id, "player_id": player_id})

    async def get_room_view(self, room_id: str, player_id: Optional[str] = None) -> RoomView:
        room = await self._require_room(room_id)
        return project_room(room, player_id)
