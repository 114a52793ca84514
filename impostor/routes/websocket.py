# impostor/routes/websocket.py
"""
WebSocket endpoint.

- /ws/rooms/{room_id}?player_id=... : canal temps réel d'un salon.
  `room_id` doit être un UUID ; il est ramené à sa forme canonique.
  - à l'abonnement : {"type":"subscribed"} puis un snapshot `room-updated` projeté ;
  - {"type":"identify","player_id": "..."} pour (ré)associer la socket à un joueur ;
  - ping/pong pour le heartbeat, ACK générique pour le reste.
- Si `REMOVE_ON_DISCONNECT` : quand la dernière socket d'un joueur se ferme, il est
  retiré du salon (player-left diffusé).
"""
from __future__ import annotations

import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from impostor.config.settings import settings
from impostor.deps.rooms import get_room_service
from impostor.services.room_service import RoomService
from impostor.services.ws_manager import WS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/rooms/{room_id}")
async def room_channel(
    ws: WebSocket,
    room_id: UUID,
    player_id: Optional[str] = Query(default=None),
    service: RoomService = Depends(get_room_service),
):
    # forme canonique (minuscules) : même canal que les routes HTTP
    channel = str(room_id)
    await WS.connect(ws, channel, player_id)
    await WS.send_json(ws, channel, {"type": "subscribed", "room_id": channel, "player_id": player_id})

    room = await service.store.get_room(channel)
    if room is not None:
        await WS.send_snapshot(ws, room, player_id)
    else:
        await WS.send_json(ws, channel, {"type": "error", "error": "room_not_found"})

    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                # Message non JSON -> ignore
                continue
            if not isinstance(msg, dict):
                continue

            mtype = msg.get("type")
            if mtype == "identify":
                payload = msg.get("payload") or {}
                pid = (msg.get("player_id") or payload.get("player_id") or "").strip()
                if pid:
                    WS.identify(ws, channel, pid)
                    await WS.send_json(ws, channel, {"type": "identified", "player_id": pid})
                else:
                    await WS.send_json(ws, channel, {"type": "error", "error": "missing player_id"})
            elif mtype == "ping":
                await WS.send_json(ws, channel, {"type": "pong"})
            else:
                await WS.send_json(ws, channel, {"type": "ack", "received": msg})
    except WebSocketDisconnect:
        pass
    finally:
        left_pid = await WS.disconnect(ws, channel)
        if settings.REMOVE_ON_DISCONNECT and left_pid and not WS.player_connected(channel, left_pid):
            result = await service.handle_disconnect(channel, left_pid)
            logger.info(
                "player removed on disconnect",
                extra={"room_id": channel, "player_id": left_pid, "removed": result["success"]},
            )
