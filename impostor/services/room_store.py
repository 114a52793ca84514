"""
Room store
==========

Seul écrivain des salons. Chaque opération est un read-modify-write sérialisé par
`room_id` (un `anyio.Lock` par salon) : deux arrivées simultanées ou un kick qui
croise un départ ne perdent jamais de mise à jour. Les salons distincts avancent
en parallèle.

Stockage:
- contrat clé/valeur à expiration : clé `room:<room_id>`, TTL rafraîchi à chaque écriture ;
- `JsonRoomBackend` (un fichier orjson par clé sous `DATA_DIR/rooms/`) ou
  `MemoryRoomBackend` (dict en mémoire, tests / dev).

Échecs:
- précondition non remplie → `None` ;
- persistance injoignable → `StorageUnavailable`.
"""
from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

import anyio
import orjson

from impostor.config.settings import settings
from impostor.models.room import Language, Room
from . import room_machine
from .errors import StorageUnavailable
from .io_utils import read_json, remove_file, write_json
from .words import random_word

logger = logging.getLogger(__name__)

ROOM_PREFIX = "room:"
Clock = Callable[[], float]
Transition = Callable[[Room], Optional[Room]]


def room_key(room_id: str) -> str:
    return f"{ROOM_PREFIX}{room_id}"


# -----------------------------
# Backends clé/valeur à expiration
# -----------------------------
class ExpiringKeyValue:
    """
    Contrat commun : une entrée est `{"expires_at": ts, "value": ...}` ;
    une clé expirée est supprimée à la lecture et n'est jamais renvoyée.
    """

    blocking = False

    def __init__(self, clock: Clock = time.time) -> None:
        self.clock = clock

    # --- à fournir par les sous-classes ---
    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def _write(self, key: str, entry: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    def _keys(self) -> Iterable[str]:
        raise NotImplementedError

    # --- API ---
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._read(key)
        if not isinstance(entry, dict):
            return None
        if float(entry.get("expires_at", 0)) <= self.clock():
            self._delete(key)
            return None
        return entry.get("value")

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: float) -> None:
        self._write(key, {"expires_at": self.clock() + ttl_seconds, "value": value})

    def delete(self, key: str) -> None:
        self._delete(key)

    def purge_expired(self) -> List[str]:
        """Supprime les clés expirées ; renvoie la liste des clés retirées."""
        removed: List[str] = []
        now = self.clock()
        for key in list(self._keys()):
            entry = self._read(key)
            if not isinstance(entry, dict) or float(entry.get("expires_at", 0)) <= now:
                self._delete(key)
                removed.append(key)
        return removed


class MemoryRoomBackend(ExpiringKeyValue):
    def __init__(self, clock: Clock = time.time) -> None:
        super().__init__(clock)
        self._lock = RLock()
        self._entries: Dict[str, Dict[str, Any]] = {}

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            # copie : un appelant ne doit jamais muter l'entrée stockée
            return orjson.loads(orjson.dumps(entry)) if entry is not None else None

    def _write(self, key: str, entry: Dict[str, Any]) -> None:
        with self._lock:
            self._entries[key] = orjson.loads(orjson.dumps(entry))

    def _delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def _keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._entries.keys())


class JsonRoomBackend(ExpiringKeyValue):
    """Un fichier par clé : `room:<id>` → `<directory>/room__<id>.json`."""

    blocking = True
    SUFFIX = ".json"

    def __init__(self, directory: Path, clock: Clock = time.time) -> None:
        super().__init__(clock)
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (key.replace(":", "__") + self.SUFFIX)

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            return read_json(self._path(key))
        except (OSError, orjson.JSONDecodeError) as exc:
            raise StorageUnavailable(f"cannot read {key}") from exc

    def _write(self, key: str, entry: Dict[str, Any]) -> None:
        try:
            write_json(self._path(key), entry)
        except OSError as exc:
            raise StorageUnavailable(f"cannot write {key}") from exc

    def _delete(self, key: str) -> None:
        try:
            remove_file(self._path(key))
        except OSError as exc:
            raise StorageUnavailable(f"cannot delete {key}") from exc

    def _keys(self) -> Iterable[str]:
        if not self.directory.exists():
            return []
        return [
            path.name[: -len(self.SUFFIX)].replace("__", ":")
            for path in self.directory.iterdir()
            if path.is_file() and path.name.endswith(self.SUFFIX)
        ]


def build_backend(clock: Clock = time.time) -> ExpiringKeyValue:
    """Backend choisi par `settings.STORE_BACKEND`."""
    if settings.STORE_BACKEND == "memory":
        return MemoryRoomBackend(clock=clock)
    return JsonRoomBackend(Path(settings.DATA_DIR) / "rooms", clock=clock)


# -----------------------------
# Store
# -----------------------------
class RoomStore:
    def __init__(
        self,
        backend: ExpiringKeyValue,
        *,
        ttl_seconds: Optional[float] = None,
        min_players: Optional[int] = None,
        rng: Optional[random.Random] = None,
        word_source: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.ROOM_TTL_SECONDS
        self.min_players = min_players if min_players is not None else settings.START_MIN_PLAYERS
        self.rng = rng
        self.word_source = word_source or (lambda language: random_word(language, self.rng))
        self._locks: Dict[str, anyio.Lock] = {}

    @property
    def clock(self) -> Clock:
        return self.backend.clock

    def _lock_for(self, room_id: str) -> anyio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = anyio.Lock()
        return lock

    def _forget_lock(self, room_id: str) -> None:
        """Oublie le verrou d'un salon absent, sauf s'il est tenu ou attendu."""
        lock = self._locks.get(room_id)
        if lock is None:
            return
        stats = lock.statistics()
        if not stats.locked and stats.tasks_waiting == 0:
            self._locks.pop(room_id, None)

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Appelle le backend ; les backends bloquants (fichiers) passent par un thread."""
        try:
            if self.backend.blocking:
                return await anyio.to_thread.run_sync(fn, *args)
            return fn(*args)
        except StorageUnavailable:
            logger.error("room storage unavailable", exc_info=True)
            raise
        except OSError as exc:
            logger.error("room storage unavailable", exc_info=True)
            raise StorageUnavailable("room storage unavailable") from exc

    async def _load(self, room_id: str) -> Optional[Room]:
        raw = await self._call(self.backend.get, room_key(room_id))
        if raw is None:
            return None
        return Room.model_validate(raw)

    async def _save(self, room: Room) -> None:
        room.updated_at = self.clock()
        await self._call(self.backend.set, room_key(room.id), room.to_storage(), self.ttl_seconds)

    async def _mutate(self, room_id: str, transition: Transition) -> Optional[Room]:
        async with self._lock_for(room_id):
            room = await self._load(room_id)
            updated = transition(room) if room is not None else None
            if updated is not None:
                await self._save(updated)
        if room is None:
            self._forget_lock(room_id)
        return updated

    # -----------------------------
    # Opérations publiques
    # -----------------------------
    async def create_room(
        self,
        host_name: str,
        language: Language = "en",
        disallow_impostor_start: bool = False,
    ) -> Tuple[Room, str]:
        room_id, player_id = str(uuid4()), str(uuid4())
        room = room_machine.new_room(
            room_id, player_id, host_name, language, disallow_impostor_start, now=self.clock()
        )
        async with self._lock_for(room_id):
            await self._save(room)
        logger.info("room created", extra={"room_id": room_id, "player_id": player_id})
        return room, player_id

    async def get_room(self, room_id: str) -> Optional[Room]:
        return await self._load(room_id)

    async def add_player_to_room(self, room_id: str, player_name: str) -> Optional[Tuple[Room, str]]:
        player_id = str(uuid4())
        room = await self._mutate(
            room_id, lambda r: room_machine.add_player(r, player_id, player_name)
        )
        if room is None:
            return None
        logger.info("player joined", extra={"room_id": room_id, "player_id": player_id})
        return room, player_id

    async def remove_player_from_room(self, room_id: str, player_id: str) -> Optional[Room]:
        room = await self._mutate(room_id, lambda r: room_machine.remove_player(r, player_id))
        if room is not None and not room.players:
            logger.info("room is now empty but preserved for reconnection", extra={"room_id": room_id})
        return room

    async def start_game(
        self,
        room_id: str,
        host_id: str,
        min_players: Optional[int] = None,
    ) -> Optional[Room]:
        required = self.min_players if min_players is None else min_players
        return await self._mutate(
            room_id,
            lambda r: room_machine.start_round(
                r, host_id, self.word_source, min_players=required, rng=self.rng
            ),
        )

    async def kick_player(self, room_id: str, player_id: str, host_id: str) -> Optional[Room]:
        return await self._mutate(
            room_id, lambda r: room_machine.kick_player(r, player_id, host_id)
        )

    async def purge_expired(self) -> List[str]:
        """Retire les salons expirés et oublie leurs verrous."""
        removed = await self._call(self.backend.purge_expired)
        for key in removed:
            self._forget_lock(key[len(ROOM_PREFIX):] if key.startswith(ROOM_PREFIX) else key)
        if removed:
            logger.info("expired rooms purged", extra={"count": len(removed)})
        return removed


async def purge_periodically(store: RoomStore, interval_seconds: float) -> None:
    """Boucle de fond : purge les salons expirés toutes les `interval_seconds`."""
    while True:
        await anyio.sleep(interval_seconds)
        try:
            await store.purge_expired()
        except StorageUnavailable:
            # stockage momentanément injoignable : on retentera au prochain tour
            logger.warning("periodic room purge failed", exc_info=True)
