"""
Routes de gestion des salons.

Objectifs :
- Création / arrivée / départ / expulsion / lancement de manche.
- Lecture d'un salon, projetée pour le joueur demandeur (`?player_id=`).
- Départ sur déconnexion (webhook de présence) : répond toujours 200 avec un drapeau.

Les erreurs métier (`RoomError`) deviennent des `HTTPException` avec le même
message ; le client HTTP reconstruit l'exception à partir du code.
"""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field

from impostor.deps.rooms import get_room_service
from impostor.models.room import CamelModel, Language
from impostor.models.room_view import JoinResult
from impostor.services.errors import RoomError
from impostor.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["rooms"])


# ---------------------------------------------------------------------------
# Modèles Pydantic
# ---------------------------------------------------------------------------
class CreateRoomPayload(CamelModel):
    player_name: str = Field(..., min_length=1, max_length=20)
    language: Language = "en"
    disallow_impostor_start: bool = False


class JoinRoomPayload(CamelModel):
    player_name: str = Field(..., min_length=1, max_length=20)


class PlayerPayload(CamelModel):
    player_id: UUID


class KickPayload(CamelModel):
    player_id: UUID = Field(..., description="Joueur à expulser")
    host_id: UUID = Field(..., description="Doit être l'hôte")


class SuccessResponse(CamelModel):
    success: bool
    error: Optional[str] = None


def _http_error(exc: RoomError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("", response_model=JoinResult, response_model_by_alias=True)
async def create_room(payload: CreateRoomPayload, service: RoomService = Depends(get_room_service)):
    """Crée un salon et renvoie {roomId, playerId} de l'hôte."""
    try:
        return await service.create_room(
            payload.player_name.strip(), payload.language, payload.disallow_impostor_start
        )
    except RoomError as exc:
        raise _http_error(exc) from exc


@router.post("/{room_id}/join", response_model=JoinResult, response_model_by_alias=True)
async def join_room(room_id: UUID, payload: JoinRoomPayload, service: RoomService = Depends(get_room_service)):
    try:
        return await service.join_room(str(room_id), payload.player_name.strip())
    except RoomError as exc:
        raise _http_error(exc) from exc


@router.post("/{room_id}/leave", response_model=SuccessResponse, response_model_exclude_none=True)
async def leave_room(room_id: UUID, payload: PlayerPayload, service: RoomService = Depends(get_room_service)):
    try:
        await service.leave_room(str(room_id), str(payload.player_id))
    except RoomError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse(success=True)


@router.post("/{room_id}/start", response_model=SuccessResponse, response_model_exclude_none=True)
async def start_game(room_id: UUID, payload: PlayerPayload, service: RoomService = Depends(get_room_service)):
    """Lance (ou relance) la manche ; réservé à l'hôte."""
    try:
        await service.start_game(str(room_id), str(payload.player_id))
    except RoomError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse(success=True)


@router.post("/{room_id}/kick", response_model=SuccessResponse, response_model_exclude_none=True)
async def kick_player(room_id: UUID, payload: KickPayload, service: RoomService = Depends(get_room_service)):
    try:
        await service.kick_player(str(room_id), str(payload.player_id), str(payload.host_id))
    except RoomError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse(success=True)


@router.post("/{room_id}/disconnect", response_model=SuccessResponse, response_model_exclude_none=True)
async def player_disconnected(room_id: UUID, payload: PlayerPayload, service: RoomService = Depends(get_room_service)):
    """Webhook de présence : retire le joueur, `success=false` si déjà absent."""
    try:
        result = await service.handle_disconnect(str(room_id), str(payload.player_id))
    except RoomError as exc:
        raise _http_error(exc) from exc
    return SuccessResponse(**result)


@router.get("/{room_id}")
async def get_room(
    room_id: UUID,
    player_id: Optional[UUID] = Query(default=None, description="Joueur demandeur (visibilité du rôle)"),
    service: RoomService = Depends(get_room_service),
) -> Dict[str, Any]:
    """Vue du salon : mot et rôle uniquement pour le joueur demandeur."""
    try:
        view = await service.get_room_view(str(room_id), str(player_id) if player_id else None)
    except RoomError as exc:
        raise _http_error(exc) from exc
    return view.to_payload()
