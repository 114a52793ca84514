"""
Models / room_view.py
Rôle:
- Vues "client" d'un salon (forme fixe, champs optionnels) et charges utiles des
  événements temps réel.

Les champs optionnels à None sont absents du JSON envoyé (`to_payload`).
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from .room import CamelModel, Language, RoomStatus


class PlayerView(CamelModel):
    id: str
    name: str
    is_host: bool
    is_playing: bool = False
    # présent uniquement pour le joueur qui consulte
    is_impostor: Optional[bool] = None


class RoomView(CamelModel):
    id: str
    status: RoomStatus
    game_count: int
    language: Language
    disallow_impostor_start: bool = False
    starting_player_id: Optional[str] = None
    word: Optional[str] = None
    players: List[PlayerView]

    def has_player(self, player_id: Optional[str]) -> bool:
        return any(p.id == player_id for p in self.players) if player_id else False

    def find_player(self, player_id: Optional[str]) -> Optional[PlayerView]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RoomEvent(str, Enum):
    ROOM_UPDATED = "room-updated"
    PLAYER_JOINED = "player-joined"
    PLAYER_LEFT = "player-left"
    GAME_STARTED = "game-started"
    PLAYER_KICKED = "player-kicked"


class JoinedPlayer(CamelModel):
    id: str
    name: str
    is_host: bool


class RoomSnapshot(CamelModel):
    """room-updated / game-started"""
    room: RoomView


class PlayerJoined(CamelModel):
    room: RoomView
    player: JoinedPlayer


class PlayerLeft(CamelModel):
    room: RoomView
    player_id: str
    player_name: str


class PlayerKicked(CamelModel):
    room: RoomView
    kicked_player_id: str
    kicked_player_name: str


EVENT_PAYLOADS = {
    RoomEvent.ROOM_UPDATED: RoomSnapshot,
    RoomEvent.GAME_STARTED: RoomSnapshot,
    RoomEvent.PLAYER_JOINED: PlayerJoined,
    RoomEvent.PLAYER_LEFT: PlayerLeft,
    RoomEvent.PLAYER_KICKED: PlayerKicked,
}


class JoinResult(CamelModel):
    room_id: str
    player_id: str
