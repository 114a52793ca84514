"""
Stockage local de la session client : `{roomId, playerId, playerName, timestamp}`.

- Un fichier JSON (orjson) par client ; l'équivalent d'un localStorage navigateur.
- `load()` ignore et efface un enregistrement plus vieux que l'âge max (aligné sur
  le TTL des salons) ou illisible.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

import orjson
from pydantic import ValidationError

from impostor.config.settings import settings
from impostor.models.room import CamelModel
from impostor.services.io_utils import read_json, remove_file, write_json

logger = logging.getLogger(__name__)


class SessionRecord(CamelModel):
    room_id: str
    player_id: str
    player_name: str
    timestamp: float


class SessionStorage:
    def __init__(
        self,
        path: Path,
        *,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.max_age_seconds = (
            max_age_seconds if max_age_seconds is not None else settings.SESSION_MAX_AGE_SECONDS
        )
        self.clock = clock

    def save(self, room_id: str, player_id: str, player_name: str) -> SessionRecord:
        record = SessionRecord(
            room_id=room_id, player_id=player_id, player_name=player_name, timestamp=self.clock()
        )
        write_json(self.path, record.model_dump(by_alias=True))
        logger.debug("session saved", extra={"room_id": room_id, "player_id": player_id})
        return record

    def load(self) -> Optional[SessionRecord]:
        try:
            raw = read_json(self.path)
        except (OSError, orjson.JSONDecodeError):
            logger.error("unreadable session record, discarding", exc_info=True)
            self.clear()
            return None
        if raw is None:
            return None
        try:
            record = SessionRecord.model_validate(raw)
        except ValidationError:
            logger.error("invalid session record, discarding", exc_info=True)
            self.clear()
            return None
        if self.clock() - record.timestamp > self.max_age_seconds:
            logger.info("session expired", extra={"room_id": record.room_id})
            self.clear()
            return None
        return record

    def clear(self) -> None:
        remove_file(self.path)
