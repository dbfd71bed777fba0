"""
Session-facing leaderboard boundary.

`submit` validates locally and hands the network call to a worker thread;
results come back through a queue that the game session drains between
ticks, so the simulation is only ever mutated on its own thread.
"""

from __future__ import annotations

import logging
import queue
from typing import List, Optional, Tuple

from .client import InvalidUsername, LeaderboardClient, SubmitResult, sanitize_username

logger = logging.getLogger(__name__)


class LeaderboardAdapter:

    def __init__(self, client: Optional[LeaderboardClient] = None):
        self.client = client or LeaderboardClient()
        self._results: "queue.Queue[Tuple[int, SubmitResult]]" = queue.Queue()

    def submit(self, username: str, score: int, level: int, generation: int = 0) -> bool:
        """Start a submission; returns False if it was rejected locally"""
        try:
            sanitize_username(username)
        except InvalidUsername as e:
            self._results.put((generation, SubmitResult(success=False, error=str(e))))
            return False

        if not self.client.configured:
            logger.info("Leaderboard not configured; keeping score local")
            self._results.put((generation, SubmitResult(success=False, error="Leaderboard unavailable")))
            return False

        self.client.submit_score_async(
            username,
            score,
            level,
            callback=lambda result: self._results.put((generation, result)),
        )
        return True

    def poll(self) -> List[Tuple[int, SubmitResult]]:
        """Everything that has resolved since the last poll"""
        out = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except queue.Empty:
                return out
