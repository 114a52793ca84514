"""
Service: room_machine.py
Rôle:
- Transitions pures sur un `Room` : adhésion, succession d'hôte, tirage des rôles,
  du mot et du joueur qui commence.
- Aucune I/O : le store charge, applique une transition, puis persiste.

Convention:
- Chaque transition travaille sur une copie profonde et renvoie le nouveau salon,
  ou `None` si une précondition échoue (le salon d'origine n'est jamais modifié).

Statuts:
- waiting → playing (start), playing → playing (restart, gameCount += 1).
- finished est modélisé mais aucune transition n'y mène ; playing → waiting n'existe pas.
"""
from __future__ import annotations

import random
from typing import Callable, List, Optional

from impostor.models.room import Language, Player, Room, RoomStatus

WordSource = Callable[[str], str]

STARTABLE_STATUSES = (RoomStatus.WAITING, RoomStatus.PLAYING)

_rng = random.SystemRandom()


def new_room(
    room_id: str,
    host_id: str,
    host_name: str,
    language: Language = "en",
    disallow_impostor_start: bool = False,
    *,
    now: float,
) -> Room:
    """Salon initial : un seul joueur (hôte, pas encore en jeu), statut waiting, gameCount=1."""
    host = Player(id=host_id, name=host_name, is_host=True, is_playing=False)
    return Room(
        id=room_id,
        players=[host],
        status=RoomStatus.WAITING,
        game_count=1,
        language=language,
        disallow_impostor_start=disallow_impostor_start,
        created_at=now,
        updated_at=now,
    )


def ensure_host(room: Room) -> Room:
    """Promeut le premier joueur restant si plus personne n'est hôte."""
    if room.players and not any(p.is_host for p in room.players):
        room.players[0].is_host = True
    return room


def add_player(room: Room, player_id: str, name: str) -> Optional[Room]:
    """
    Ajoute un joueur en fin de liste.
    - Refusé si le salon est terminé.
    - Hôte seulement si le salon était vide.
    - Pas de `is_impostor` même si une manche est en cours : il sera tiré au prochain start.
    """
    if room.status == RoomStatus.FINISHED:
        return None
    updated = room.model_copy(deep=True)
    updated.players.append(
        Player(id=player_id, name=name, is_host=not updated.players, is_playing=False)
    )
    return updated


def remove_player(room: Room, player_id: str) -> Optional[Room]:
    """Retire un joueur ; le salon vide est conservé, sinon l'hôte est réattribué au besoin."""
    if room.find_player(player_id) is None:
        return None
    updated = room.model_copy(deep=True)
    updated.players = [p for p in updated.players if p.id != player_id]
    return ensure_host(updated)


def kick_player(room: Room, target_id: str, host_id: str) -> Optional[Room]:
    """L'hôte retire un autre joueur. L'hôte ne peut pas s'expulser lui-même."""
    if not room.is_host(host_id):
        return None
    if room.find_player(target_id) is None:
        return None
    if target_id == host_id:
        return None
    updated = room.model_copy(deep=True)
    updated.players = [p for p in updated.players if p.id != target_id]
    return updated


def choose_starting_player(
    players: List[Player],
    disallow_impostor_start: bool,
    rng: Optional[random.Random] = None,
) -> Player:
    """
    Tirage uniforme du joueur qui commence.
    Avec `disallow_impostor_start`, l'imposteur est exclu ; si personne d'autre
    n'est éligible (salon d'un seul joueur), on retombe sur l'ensemble des joueurs.
    """
    rng = rng or _rng
    if disallow_impostor_start:
        eligible = [p for p in players if not p.is_impostor]
        if eligible:
            return rng.choice(eligible)
    return rng.choice(players)


def start_round(
    room: Room,
    host_id: str,
    word_source: WordSource,
    *,
    min_players: int = 1,
    rng: Optional[random.Random] = None,
) -> Optional[Room]:
    """
    Lance (ou relance) une manche.

    Préconditions:
    - statut waiting ou playing,
    - le demandeur est l'hôte courant,
    - au moins `min_players` joueurs (1 = pas de contrainte).

    Effets:
    - tous les joueurs passent `is_playing`, y compris ceux arrivés en cours de manche,
    - un imposteur tiré uniformément, les autres à False,
    - mot tiré dans la langue du salon, joueur de départ recalculé,
    - gameCount incrémenté seulement pour une relance (statut déjà playing).
    """
    if room.status not in STARTABLE_STATUSES:
        return None
    if not room.is_host(host_id):
        return None
    if not room.players or len(room.players) < max(1, min_players):
        return None

    rng = rng or _rng
    updated = room.model_copy(deep=True)
    impostor_index = rng.randrange(len(updated.players))
    for index, player in enumerate(updated.players):
        player.is_impostor = index == impostor_index
        player.is_playing = True

    updated.word = word_source(updated.language)
    starter = choose_starting_player(updated.players, updated.disallow_impostor_start, rng)
    updated.starting_player_id = starter.id

    if room.status == RoomStatus.PLAYING:
        updated.game_count += 1
    updated.status = RoomStatus.PLAYING
    return updated
