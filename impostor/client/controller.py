"""
Contrôleur de session client
============================

Rôle
----
- Garder l'état local du client (salon, joueur, nom, erreurs/notices) aligné sur
  l'état autoritaire du serveur.
- Persister la session (`SessionStorage`) dès qu'un triplet salon/joueur/nom est établi.
- Rejouer la reconnexion :
  - *resume* : le joueur est toujours membre → on reprend son état ;
  - *rejoin* : le salon existe sans lui → nouveau joueur avec le nom sauvegardé ;
  - salon disparu → échec, session effacée, notice visible.

Concurrence
-----------
- Les reconnexions sont sérialisées (verrou) et revérifient toujours l'appartenance,
  en essayant d'abord le dernier player_id connu pour ce salon : deux appels
  rapprochés ne créent jamais deux entrées pour le même utilisateur.
- Chaque tentative porte le numéro d'époque courant ; un départ, un kick ou une
  nouvelle arrivée pendant la tentative incrémente l'époque et le résultat est jeté.
- Tout snapshot temps réel remplace l'état du salon (pas de fusion).
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import anyio

from impostor.models.room import Language
from impostor.models.room_view import PlayerKicked, PlayerView, RoomView
from impostor.services.errors import RoomConflict, RoomError, RoomNotFound
from .gateway import RoomGateway
from .session_storage import SessionRecord, SessionStorage
from .subscription import RoomEventHandlers, SubscriptionManager

logger = logging.getLogger(__name__)

KICKED_MESSAGE = "You have been kicked from the room."
ROOM_GONE_MESSAGE = "The room no longer exists."
RESUMED_NOTICE = "Game resumed"
REJOINED_NOTICE = "Rejoined the room as a new player"


class SessionController:
    def __init__(self, gateway: RoomGateway, storage: SessionStorage, transport: Any) -> None:
        self.gateway = gateway
        self.storage = storage
        self.transport = transport

        self.room: Optional[RoomView] = None
        self.player_id: Optional[str] = None
        self.player_name: Optional[str] = None
        self.is_connecting = False
        self.error: Optional[str] = None
        self.notice: Optional[str] = None

        self._subscription: Optional[SubscriptionManager] = None
        self._reconnect_lock = anyio.Lock()
        self._epoch = 0

    # -----------------------------
    # Lecture d'état
    # -----------------------------
    def current_player(self) -> Optional[PlayerView]:
        if self.room is None or not self.player_id:
            return None
        return self.room.find_player(self.player_id)

    def is_host(self) -> bool:
        player = self.current_player()
        return bool(player and player.is_host)

    @property
    def subscribed(self) -> bool:
        return bool(self._subscription and self._subscription.active)

    # -----------------------------
    # Session persistée
    # -----------------------------
    def save_session(self) -> Optional[SessionRecord]:
        if self.room and self.player_id and self.player_name:
            return self.storage.save(self.room.id, self.player_id, self.player_name)
        return None

    def load_session(self) -> Optional[SessionRecord]:
        return self.storage.load()

    def clear_session(self) -> None:
        self.storage.clear()

    # -----------------------------
    # Actions joueur
    # -----------------------------
    async def create_room(
        self,
        player_name: str,
        language: Language = "en",
        disallow_impostor_start: bool = False,
    ) -> Optional[str]:
        self.error = None
        try:
            result = await self.gateway.create_room(player_name, language, disallow_impostor_start)
            room = await self.gateway.get_room(result.room_id, result.player_id)
        except RoomError:
            logger.warning("create room failed", exc_info=True)
            self.error = "Failed to create room. Please try again."
            return None
        self._epoch += 1
        self._adopt(room, result.player_id, player_name)
        return result.room_id

    async def join_room(self, room_id: str, player_name: str) -> bool:
        self.error = None
        try:
            result = await self.gateway.join_room(room_id, player_name)
            room = await self.gateway.get_room(room_id, result.player_id)
        except RoomError:
            logger.warning("join room failed", exc_info=True, extra={"room_id": room_id})
            self.error = "Failed to join room. It may not exist or the game has already started."
            return False
        self._epoch += 1
        self._adopt(room, result.player_id, player_name)
        return True

    async def leave_room(self) -> bool:
        if self.room is None or not self.player_id:
            return False
        self.error = None
        room_id, player_id = self.room.id, self.player_id
        self._epoch += 1
        try:
            await self.gateway.leave_room(room_id, player_id)
        except RoomError:
            logger.warning("leave room failed", exc_info=True, extra={"room_id": room_id})
            self.error = "Failed to leave room. Please try again."
            return False
        self._unsubscribe()
        self.room, self.player_id, self.player_name = None, None, None
        self.clear_session()
        return True

    async def start_game(self) -> bool:
        if self.room is None or not self.player_id or not self.is_host():
            return False
        self.error = None
        try:
            await self.gateway.start_game(self.room.id, self.player_id)
        except RoomError as exc:
            logger.warning("start game failed: %s", exc.detail, extra={"room_id": self.room.id})
            self.error = exc.detail
            return False
        return True

    async def kick_player(self, player_id: str) -> bool:
        if self.room is None or not self.player_id or not self.is_host():
            return False
        self.error = None
        try:
            await self.gateway.kick_player(self.room.id, player_id, self.player_id)
        except RoomError:
            logger.warning("kick failed", exc_info=True, extra={"room_id": self.room.id})
            self.error = "Failed to kick player. Make sure you are the host."
            return False
        return True

    async def fetch_room(self) -> Optional[RoomView]:
        if self.room is None:
            return None
        try:
            room = await self.gateway.get_room(self.room.id, self.player_id)
        except RoomError:
            logger.warning("fetch room failed", exc_info=True)
            self.error = "Failed to fetch room details."
            return None
        self.room = room
        return room

    # -----------------------------
    # Reconnexion
    # -----------------------------
    async def restore_session(self) -> bool:
        """Au montage : recharge la session sauvegardée et tente la reconnexion."""
        record = self.load_session()
        if record is None:
            return False
        return await self.attempt_reconnection(record.room_id, record.player_id, record.player_name)

    async def attempt_reconnection(self, room_id: str, player_id: str, player_name: str) -> bool:
        async with self._reconnect_lock:
            ticket = self._epoch
            self.is_connecting = True
            self.error = None
            try:
                return await self._reconcile(ticket, room_id, player_id, player_name)
            except (RoomNotFound, RoomConflict) as exc:
                # salon expiré / terminé : rien à reprendre
                logger.info("reconnection failed: %s", exc.detail, extra={"room_id": room_id})
                if ticket == self._epoch:
                    self._unsubscribe()
                    self.room = None
                    self.player_id = None
                    self.notice = ROOM_GONE_MESSAGE
                    self.clear_session()
                return False
            except RoomError:
                # panne transport/stockage : la session est gardée pour un prochain essai
                logger.warning("reconnection aborted", exc_info=True, extra={"room_id": room_id})
                return False
            finally:
                self.is_connecting = False

    async def _reconcile(self, ticket: int, room_id: str, player_id: str, player_name: str) -> bool:
        candidates = []
        if self.room is not None and self.room.id == room_id and self.player_id:
            candidates.append(self.player_id)
        if player_id not in candidates:
            candidates.append(player_id)

        room = await self.gateway.get_room(room_id, candidates[0])
        member = next((pid for pid in candidates if room.has_player(pid)), None)

        if member is not None:
            mode = "resume"
            if member != candidates[0]:
                room = await self.gateway.get_room(room_id, member)
        else:
            mode = "rejoin"
            joined = await self.gateway.join_room(room_id, player_name)
            member = joined.player_id
            room = await self.gateway.get_room(room_id, member)

        if ticket != self._epoch:
            logger.info("stale reconnection discarded", extra={"room_id": room_id, "mode": mode})
            if mode == "rejoin":
                await self._abandon(room_id, member)
            return False

        self._adopt(room, member, player_name, resubscribe=True)
        self.notice = RESUMED_NOTICE if mode == "resume" else REJOINED_NOTICE
        logger.info("reconnected", extra={"room_id": room_id, "player_id": member, "mode": mode})
        return True

    async def _abandon(self, room_id: str, player_id: str) -> None:
        """Retire un joueur créé par une tentative devenue obsolète."""
        try:
            await self.gateway.leave_room(room_id, player_id)
        except RoomError:
            logger.warning("could not remove orphan player", exc_info=True, extra={"room_id": room_id})

    def _adopt(self, room: RoomView, player_id: str, player_name: str, resubscribe: bool = False) -> None:
        self.room = room
        self.player_id = player_id
        self.player_name = player_name
        self._subscribe(room.id, resubscribe=resubscribe)
        self.save_session()

    # -----------------------------
    # Temps réel
    # -----------------------------
    def _handlers(self) -> RoomEventHandlers:
        return RoomEventHandlers(
            on_room_updated=self._on_snapshot,
            on_player_joined=self._on_snapshot,
            on_player_left=self._on_snapshot,
            on_game_started=self._on_snapshot,
            on_player_kicked=self._on_player_kicked,
        )

    def _subscribe(self, room_id: str, resubscribe: bool = False) -> None:
        sub = self._subscription
        if sub is not None and sub.room_id == room_id and sub.player_id == self.player_id:
            if resubscribe:
                sub.resubscribe()
            else:
                sub.subscribe()
            return
        if sub is not None:
            sub.unsubscribe()
        self._subscription = SubscriptionManager(self.transport, room_id, self.player_id, self._handlers())
        self._subscription.subscribe()

    def _unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_snapshot(self, message: Any) -> None:
        self.room = message.room

    def _on_player_kicked(self, message: PlayerKicked) -> None:
        if message.kicked_player_id != self.player_id:
            self.room = message.room
            return
        logger.info("kicked from room", extra={"room_id": message.room.id})
        self._epoch += 1
        self._unsubscribe()
        self.room = None
        self.player_id = None
        self.error = KICKED_MESSAGE
        self.clear_session()
