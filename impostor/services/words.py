"""
Service: words.py
- Charge les listes de mots secrets (`data/words/<langue>.json`) une seule fois par langue.
- random_word(language): tirage uniforme dans la liste de la langue du salon.
"""
from __future__ import annotations

import random
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional

from .io_utils import read_json

WORDS_DIR = Path(__file__).resolve().parent.parent / "data" / "words"

_CACHE: Dict[str, List[str]] = {}
_LOCK = RLock()
_rng = random.SystemRandom()


class WordListError(RuntimeError):
    """Liste de mots absente ou invalide pour une langue."""


def load_words(language: str, words_dir: Optional[Path] = None) -> List[str]:
    with _LOCK:
        cached = _CACHE.get(language)
        if cached is not None:
            return cached
        path = (words_dir or WORDS_DIR) / f"{language}.json"
        words = read_json(path)
        if not isinstance(words, list) or not words:
            raise WordListError(f"no word list for language {language!r} ({path})")
        cleaned = [str(w).strip() for w in words if str(w).strip()]
        _CACHE[language] = cleaned
        return cleaned


def random_word(language: str, rng: Optional[random.Random] = None) -> str:
    """Tire un mot au hasard dans la liste de la langue demandée."""
    return (rng or _rng).choice(load_words(language))
