"""
Surveillance de la santé de connexion.

Un canal temps réel peut mourir sans erreur visible (onglet en arrière-plan, veille,
réseau coupé puis rétabli). À chaque retour au premier plan, on relance la
réconciliation avec l'état courant du contrôleur ; au montage, on repart de la
session sauvegardée.
"""
from __future__ import annotations

import logging

from .controller import SessionController

logger = logging.getLogger(__name__)

VISIBLE = "visible"
HIDDEN = "hidden"


class ConnectionMonitor:
    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.visibility = VISIBLE

    async def start(self) -> bool:
        """Montage du client : reprise depuis la session persistée."""
        return await self.controller.restore_session()

    async def on_visibility_change(self, visibility: str) -> bool:
        previous, self.visibility = self.visibility, visibility
        if visibility != VISIBLE:
            return False
        c = self.controller
        if c.room is None or not c.player_id or not c.player_name:
            return False
        logger.info("context visible again, reconciling", extra={"was": previous, "room_id": c.room.id})
        return await c.attempt_reconnection(c.room.id, c.player_id, c.player_name)
