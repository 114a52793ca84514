"""
Module routes/health.py
Rôle:
- Endpoint de santé (service OK + état des canaux temps réel).
"""
from fastapi import APIRouter

from impostor.config.settings import settings
from impostor.services.ws_manager import WS

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    """Renvoie un OK minimal avec le nom de service configuré."""
    return {"ok": True, "service": settings.APP_NAME, "realtime": WS.stats()}
