"""
Projection d'un salon vers la vue envoyée à un client donné.

Règles:
- `word` n'est inclus que pour un participant non-imposteur d'une manche en cours
  (un joueur arrivé en cours de manche, `is_impostor` absent, ne le voit pas).
- `isImpostor` n'est inclus que pour le joueur qui consulte.
- Sans `player_id` (observateur), aucune information de rôle.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from impostor.models.room import Room, RoomStatus
from impostor.models.room_view import PlayerView, RoomView


def _can_see_word(room: Room, player_id: Optional[str]) -> bool:
    if room.status != RoomStatus.PLAYING:
        return False
    viewer = room.find_player(player_id)
    return bool(viewer and viewer.is_playing and viewer.is_impostor is False)


def project_room(room: Room, player_id: Optional[str] = None) -> RoomView:
    return RoomView(
        id=room.id,
        status=room.status,
        game_count=room.game_count,
        language=room.language,
        disallow_impostor_start=room.disallow_impostor_start,
        starting_player_id=room.starting_player_id,
        word=room.word if _can_see_word(room, player_id) else None,
        players=[
            PlayerView(
                id=p.id,
                name=p.name,
                is_host=p.is_host,
                is_playing=p.is_playing,
                is_impostor=p.is_impostor if player_id and p.id == player_id else None,
            )
            for p in room.players
        ],
    )


def event_message(
    room: Room,
    event: str,
    recipient_id: Optional[str],
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Charge utile d'un événement temps réel, projetée pour un destinataire."""
    payload: Dict[str, Any] = {"room": project_room(room, recipient_id).to_payload()}
    if extra:
        payload.update(extra)
    return payload
