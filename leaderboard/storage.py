"""
Local high-score persistence (single JSON file)
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from game.galaga.config import HIGHSCORE_PATH

logger = logging.getLogger(__name__)


class HighScoreStore:
    """Keeps the best local score and the last used username"""

    def __init__(self, path: str = HIGHSCORE_PATH):
        self.path = path
        self.high_score = 0
        self.username: Optional[str] = None
        self.load()

    def load(self) -> int:
        """Read the file; a missing or corrupt file counts as 0"""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.high_score = max(0, int(data.get("high_score", 0)))
            self.username = data.get("username") or None
        except FileNotFoundError:
            self.high_score = 0
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable high score file %s: %s", self.path, e)
            self.high_score = 0
        return self.high_score

    def save_high_score(self, score: int) -> int:
        """Store max(current, score); returns the stored value"""
        if score > self.high_score:
            self.high_score = int(score)
            self._write()
        return self.high_score

    def save_username(self, username: str):
        self.username = username
        self._write()

    def _write(self) -> bool:
        """Persist; on I/O failure the in-memory values stay authoritative"""
        tmp = self.path + ".tmp"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump({"high_score": self.high_score, "username": self.username}, f)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning("Could not write high score file %s: %s", self.path, e)
            return False
        return True
