# impostor/services/ws_manager.py
"""
Service: ws_manager.py
- Un canal par salon : room_id -> {socket: player_id | None}.
- Identification idempotente (une socket peut annoncer son player_id après coup).
- Snapshots immuables pour éviter "dictionary changed size during iteration".
- publish(): chaque socket reçoit la vue du salon projetée pour SON joueur
  (mot et rôle jamais diffusés à tous).
- Admin: stats(), drop_player(), close_all().
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple

from starlette.websockets import WebSocket

from impostor.models.room import Room
from .room_view import event_message

logger = logging.getLogger(__name__)


@dataclass
class WSManager:
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    # room_id -> {WebSocket: player_id}
    channels: Dict[str, Dict[WebSocket, Optional[str]]] = field(default_factory=dict)

    async def connect(self, ws: WebSocket, room_id: str, player_id: Optional[str] = None) -> None:
        """Accepte la connexion WS et l'abonne au canal du salon."""
        await ws.accept()
        with self._lock:
            self.channels.setdefault(room_id, {})[ws] = player_id or None

    def identify(self, ws: WebSocket, room_id: str, player_id: str) -> None:
        """Associe (ou réassocie) une socket du canal à un player_id."""
        with self._lock:
            self.channels.setdefault(room_id, {})[ws] = player_id

    def _unlink(self, ws: WebSocket, room_id: str) -> Optional[str]:
        """Retire 'ws' du canal ; renvoie le player_id qui lui était associé."""
        with self._lock:
            bucket = self.channels.get(room_id)
            if not bucket or ws not in bucket:
                return None
            player_id = bucket.pop(ws)
            if not bucket:
                self.channels.pop(room_id, None)
            return player_id

    async def disconnect(self, ws: WebSocket, room_id: str) -> Optional[str]:
        """Ferme proprement la connexion et nettoie le canal."""
        player_id = self._unlink(ws, room_id)
        try:
            await ws.close()
        except Exception:
            # socket déjà fermée côté client
            pass
        return player_id

    def player_connected(self, room_id: str, player_id: str) -> bool:
        with self._lock:
            return player_id in (self.channels.get(room_id) or {}).values()

    async def _send_json_one(self, ws: WebSocket, room_id: str, payload: Any) -> bool:
        """Envoie à un WS; renvoie True si succès, sinon False (et retire le WS mort)."""
        try:
            data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
            await ws.send_text(data)
            return True
        except Exception:
            logger.debug("dropping dead socket", extra={"room_id": room_id})
            self._unlink(ws, room_id)
            return False

    async def send_json(self, ws: WebSocket, room_id: str, payload: Any) -> bool:
        return await self._send_json_one(ws, room_id, payload)

    # ---------- snapshots immuables ----------
    def _snapshot_channel(self, room_id: str) -> List[Tuple[WebSocket, Optional[str]]]:
        with self._lock:
            return list((self.channels.get(room_id) or {}).items())

    # ---------- envois ----------
    async def publish(self, room: Room, event: str, extra: Optional[Dict[str, Any]] = None) -> int:
        """Diffuse un événement du salon, projeté pour chaque destinataire."""
        conns = self._snapshot_channel(room.id)
        success = 0
        for ws, player_id in conns:
            message = {"type": event, "payload": event_message(room, event, player_id, extra)}
            if await self._send_json_one(ws, room.id, message):
                success += 1
        logger.debug(
            "room event published",
            extra={"room_id": room.id, "event": event, "delivered": success, "sockets": len(conns)},
        )
        return success

    async def send_snapshot(self, ws: WebSocket, room: Room, player_id: Optional[str]) -> bool:
        """Snapshot initial (room-updated) pour une socket qui vient de s'abonner."""
        message = {"type": "room-updated", "payload": event_message(room, "room-updated", player_id)}
        return await self._send_json_one(ws, room.id, message)

    # ---------- admin ----------
    def stats(self) -> dict:
        with self._lock:
            rooms = {rid: len(bucket) for rid, bucket in self.channels.items()}
            return {"rooms": rooms, "sockets_total": sum(rooms.values())}

    async def drop_player(self, room_id: str, player_id: str) -> int:
        """Ferme toutes les sockets d'un joueur sur un salon (après un kick)."""
        conns = [ws for ws, pid in self._snapshot_channel(room_id) if pid == player_id]
        for ws in conns:
            await self.disconnect(ws, room_id)
        return len(conns)

    async def close_all(self) -> dict:
        with self._lock:
            conns = [(rid, ws) for rid, bucket in self.channels.items() for ws in bucket]
        for room_id, ws in conns:
            await self.disconnect(ws, room_id)
        return self.stats()


WS = WSManager()
