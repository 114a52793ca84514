"""
Abonnement temps réel d'un client à un salon.

`SubscriptionManager` est construit avec un transport, un salon, le joueur local et
des handlers typés ; il n'accède à aucun client temps réel global. Chaque message
entrant est validé puis routé vers le handler de son type.

Transport attendu (ex. `LocalTransport`):
- subscribe(room_id, player_id, callback(event, payload))
- unsubscribe(room_id)
- is_subscribed(room_id) -> bool
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from impostor.models.room_view import (
    EVENT_PAYLOADS,
    PlayerJoined,
    PlayerKicked,
    PlayerLeft,
    RoomEvent,
    RoomSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass
class RoomEventHandlers:
    on_room_updated: Optional[Callable[[RoomSnapshot], None]] = None
    on_player_joined: Optional[Callable[[PlayerJoined], None]] = None
    on_player_left: Optional[Callable[[PlayerLeft], None]] = None
    on_game_started: Optional[Callable[[RoomSnapshot], None]] = None
    on_player_kicked: Optional[Callable[[PlayerKicked], None]] = None

    def for_event(self, event: RoomEvent) -> Optional[Callable[[Any], None]]:
        return {
            RoomEvent.ROOM_UPDATED: self.on_room_updated,
            RoomEvent.PLAYER_JOINED: self.on_player_joined,
            RoomEvent.PLAYER_LEFT: self.on_player_left,
            RoomEvent.GAME_STARTED: self.on_game_started,
            RoomEvent.PLAYER_KICKED: self.on_player_kicked,
        }[event]


class SubscriptionManager:
    def __init__(self, transport: Any, room_id: str, player_id: Optional[str], handlers: RoomEventHandlers) -> None:
        self.transport = transport
        self.room_id = room_id
        self.player_id = player_id
        self.handlers = handlers

    @property
    def active(self) -> bool:
        return self.transport.is_subscribed(self.room_id)

    def subscribe(self) -> None:
        """Idempotent : ne fait rien si le canal est déjà ouvert."""
        if self.active:
            logger.debug("already subscribed", extra={"room_id": self.room_id})
            return
        self.transport.subscribe(self.room_id, self.player_id, self.dispatch)
        logger.debug("subscribed", extra={"room_id": self.room_id, "player_id": self.player_id})

    def resubscribe(self) -> None:
        """Ferme puis rouvre le canal (récupère un canal "zombie" silencieusement mort)."""
        self.transport.unsubscribe(self.room_id)
        self.transport.subscribe(self.room_id, self.player_id, self.dispatch)

    def unsubscribe(self) -> None:
        self.transport.unsubscribe(self.room_id)

    def dispatch(self, event: str, payload: Dict[str, Any]) -> None:
        try:
            kind = RoomEvent(event)
        except ValueError:
            logger.debug("ignoring unknown event", extra={"event": event})
            return
        handler = self.handlers.for_event(kind)
        if handler is None:
            return
        try:
            message = EVENT_PAYLOADS[kind].model_validate(payload)
        except ValidationError:
            logger.warning("malformed room event", exc_info=True, extra={"event": event})
            return
        handler(message)
