"""
Erreurs métier des salons.

Le store signale un échec de précondition par `None` ; la couche service
(frontière RPC) traduit ces absences en exceptions typées ci-dessous, que les
routes convertissent en `HTTPException` et que le client HTTP reconstruit.
"""
from __future__ import annotations


class RoomError(RuntimeError):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class RoomNotFound(RoomError):
    """Salon ou joueur introuvable (expiré, jamais créé, déjà retiré)."""
    status_code = 404


class RoomForbidden(RoomError):
    """Action réservée à l'hôte, ou hôte qui tente de s'expulser."""
    status_code = 403


class RoomConflict(RoomError):
    """Précondition non remplie (salon terminé, pas assez de joueurs…)."""
    status_code = 409


class InvalidRoomRequest(RoomError):
    status_code = 422


class StorageUnavailable(RoomError):
    """Persistance ou transport injoignable : fatal pour l'appel, jamais réessayé par le store."""
    status_code = 503


_BY_STATUS = {
    cls.status_code: cls
    for cls in (RoomNotFound, RoomForbidden, RoomConflict, InvalidRoomRequest, StorageUnavailable)
}


def error_for_status(status_code: int, detail: str) -> RoomError:
    """Reconstruit l'exception correspondant à un code HTTP (5xx → StorageUnavailable)."""
    if status_code >= 500:
        return StorageUnavailable(detail)
    cls = _BY_STATUS.get(status_code, RoomError)
    error = cls(detail)
    if cls is RoomError:
        error.status_code = status_code
    return error
