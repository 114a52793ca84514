"""
Application FastAPI — Point d'entrée
====================================

Rôle
----
- Instancie l'app FastAPI, configure le CORS pour le front,
- Monte les routeurs (REST salons + WebSocket + santé),
- Assemble le service de salons (`app.state.room_service`) et purge les salons
  expirés au démarrage puis toutes les `PURGE_INTERVAL_SECONDS`.

Notes
-----
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.
- Les tests remplacent `app.state.room_service` par un service en mémoire.
"""
import asyncio
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from impostor.config.settings import settings
from impostor.deps.rooms import build_room_service
from impostor.routes.health import router as health_router
from impostor.routes.rooms import router as rooms_router
from impostor.routes.websocket import router as ws_router
from impostor.services.room_store import purge_periodically

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("impostor")

app = FastAPI(title="Impostor Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)
app.include_router(ws_router)  # WebSocket endpoint (/ws/rooms/{room_id})
app.include_router(health_router)

app.state.room_service = build_room_service()


@app.get("/")
async def root():
    """Ping basique : permet de vérifier que l'app tourne."""
    return {"ok": True, "service": "impostor-backend"}


@app.on_event("startup")
async def purge_expired_rooms():
    """Purge immédiate puis tâche de fond périodique."""
    store = app.state.room_service.store
    removed = await store.purge_expired()
    logger.info("startup: %d expired room(s) purged, backend=%s", len(removed), settings.STORE_BACKEND)
    app.state.purge_task = asyncio.create_task(purge_periodically(store, settings.PURGE_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def stop_purge_task():
    task = getattr(app.state, "purge_task", None)
    app.state.purge_task = None
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


def run() -> None:
    """Lance le serveur (`impostor-server` ou `python -m impostor.main`)."""
    uvicorn.run("impostor.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
