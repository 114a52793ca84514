"""
Canal temps réel en mémoire (même processus).

- Côté serveur : même contrat de publication que `WSManager.publish`.
- Côté client : chaque `hub.connect()` renvoie un `LocalTransport` avec ses propres
  abonnements (subscribe / unsubscribe / is_subscribed), consommé par
  `SubscriptionManager`.

Utile pour un contrôleur de session côté passerelle et pour les tests.
"""
from __future__ import annotations

import inspect
import logging
from itertools import count
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

from impostor.models.room import Room
from .room_view import event_message

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, Dict[str, Any]], Any]


class LocalChannelHub:
    def __init__(self) -> None:
        self._lock = RLock()
        # room_id -> {transport_id: (player_id, callback)}
        self._channels: Dict[str, Dict[int, Tuple[Optional[str], MessageCallback]]] = {}
        self._ids = count(1)

    def connect(self) -> "LocalTransport":
        return LocalTransport(self, next(self._ids))

    def _bind(self, transport_id: int, room_id: str, player_id: Optional[str], callback: MessageCallback) -> None:
        with self._lock:
            self._channels.setdefault(room_id, {})[transport_id] = (player_id, callback)

    def _unbind(self, transport_id: int, room_id: str) -> None:
        with self._lock:
            bucket = self._channels.get(room_id)
            if bucket is None:
                return
            bucket.pop(transport_id, None)
            if not bucket:
                self._channels.pop(room_id, None)

    def _is_bound(self, transport_id: int, room_id: str) -> bool:
        with self._lock:
            return transport_id in (self._channels.get(room_id) or {})

    def subscriber_count(self, room_id: str) -> int:
        with self._lock:
            return len(self._channels.get(room_id) or {})

    async def publish(self, room: Room, event: str, extra: Optional[Dict[str, Any]] = None) -> int:
        with self._lock:
            targets: List[Tuple[Optional[str], MessageCallback]] = list((self._channels.get(room.id) or {}).values())
        for player_id, callback in targets:
            result = callback(event, event_message(room, event, player_id, extra))
            if inspect.isawaitable(result):
                await result
        return len(targets)

    async def drop_player(self, room_id: str, player_id: str) -> int:
        with self._lock:
            bucket = self._channels.get(room_id) or {}
            dropped = [tid for tid, (pid, _) in bucket.items() if pid == player_id]
            for tid in dropped:
                bucket.pop(tid, None)
            if not bucket:
                self._channels.pop(room_id, None)
        return len(dropped)


class LocalTransport:
    """Connexion d'un client au hub : un abonnement au plus par salon."""

    def __init__(self, hub: LocalChannelHub, transport_id: int) -> None:
        self.hub = hub
        self.transport_id = transport_id

    def subscribe(self, room_id: str, player_id: Optional[str], callback: MessageCallback) -> None:
        self.hub._bind(self.transport_id, room_id, player_id, callback)

    def unsubscribe(self, room_id: str) -> None:
        self.hub._unbind(self.transport_id, room_id)

    def is_subscribed(self, room_id: str) -> bool:
        return self.hub._is_bound(self.transport_id, room_id)
