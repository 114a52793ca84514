"""
Models / room.py
Rôle:
- Structure persistée d'un salon et de ses joueurs (modèles Pydantic).
- Les clés JSON sont en camelCase (`isHost`, `gameCount`…) pour coller au contrat client.

Champs clés:
- Player.is_impostor: None tant que le joueur n'a pas été inclus dans une manche.
- Room.word: mot secret de la manche en cours (jamais projeté vers l'imposteur).
- Room.updated_at: rafraîchi à chaque écriture, pilote l'expiration.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Language = Literal["en", "fr"]


class RoomStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    # modélisé mais aucune opération n'y mène pour l'instant
    FINISHED = "finished"


class CamelModel(BaseModel):
    """Base: alias camelCase en sortie, noms Python acceptés en entrée."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Player(CamelModel):
    id: str
    name: str
    is_host: bool = False
    is_playing: bool = False
    is_impostor: Optional[bool] = None


class Room(CamelModel):
    id: str
    players: List[Player] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.WAITING
    game_count: int = Field(1, ge=1)
    language: Language = "en"
    disallow_impostor_start: bool = False
    word: Optional[str] = None
    starting_player_id: Optional[str] = None
    created_at: float
    updated_at: float

    def find_player(self, player_id: Optional[str]) -> Optional[Player]:
        if not player_id:
            return None
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def is_host(self, player_id: Optional[str]) -> bool:
        player = self.find_player(player_id)
        return bool(player and player.is_host)

    def impostor(self) -> Optional[Player]:
        for player in self.players:
            if player.is_impostor:
                return player
        return None

    def to_storage(self) -> dict:
        """Sérialisation JSON-compatible (clés camelCase) pour le stockage clé/valeur."""
        return self.model_dump(mode="json", by_alias=True)
