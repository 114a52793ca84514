"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres du serveur de salons (nom, host/port, stockage, TTL…).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from impostor.config.settings import settings`.

Exemples de `.env`
------------------
APP_NAME="Impostor Backend (Staging)"
PORT=8080
STORE_BACKEND="json"
DATA_DIR="/var/opt/impostor/data"
START_MIN_PLAYERS=3
REMOVE_ON_DISCONNECT=true
"""
from typing import List, Literal
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

THREE_HOURS = 3 * 60 * 60


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "Impostor Backend"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Frontends autorisés (CORS)
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Stockage des salons : "json" (un fichier par salon) ou "memory"
    STORE_BACKEND: Literal["json", "memory"] = "json"
    # Par défaut: <repo>/impostor/data
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")

    # Un salon inactif expire après ce délai (TTL rafraîchi à chaque écriture)
    ROOM_TTL_SECONDS: int = THREE_HOURS
    # Âge max d'une session client ; aligné sur le TTL des salons
    SESSION_MAX_AGE_SECONDS: int = THREE_HOURS

    # Intervalle de la purge périodique des salons expirés
    PURGE_INTERVAL_SECONDS: int = 10 * 60

    # Nombre minimum de joueurs pour lancer une manche (1 = aucune restriction)
    START_MIN_PLAYERS: int = 1

    # Retirer un joueur quand sa dernière socket du salon se ferme
    REMOVE_ON_DISCONNECT: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Instance unique importable partout : `settings`
settings = Settings()
