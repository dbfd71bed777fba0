"""
Leaderboard REST client
-----------------------
Talks to a PostgREST-style `scores` table (id, username, score, level,
created_at). Every public call catches network and service errors as well
as malformed payloads, logs them and returns a safe default, so callers
never have to.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from game.galaga.config import LEADERBOARD_CONFIG

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")


class LeaderboardError(Exception):
    """The score service answered with an error or unusable payload"""


class InvalidUsername(ValueError):
    """Username does not survive sanitization"""


# network failures, error responses and malformed payloads
_SERVICE_ERRORS = (requests.RequestException, LeaderboardError, ValueError, TypeError, KeyError, AttributeError)


@dataclass(frozen=True)
class ScoreEntry:
    username: str
    score: int
    level: int
    timestamp: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ScoreEntry":
        return cls(
            username=row.get("username", ""),
            score=int(row.get("score", 0)),
            level=int(row.get("level", 1) or 1),
            timestamp=row.get("created_at"),
            id=row.get("id"),
        )


@dataclass(frozen=True)
class UserBest:
    best: ScoreEntry
    rank: int


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    rank: Optional[int] = None
    is_personal_best: Optional[bool] = None
    message: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class LeaderboardStats:
    total_games: int = 0
    total_players: int = 0
    highest_score: int = 0
    average_score: int = 0


def sanitize_username(
    username: str,
    min_len: int = LEADERBOARD_CONFIG["username_min"],
    max_len: int = LEADERBOARD_CONFIG["username_max"],
) -> str:
    """Trim, truncate, strip to [A-Z0-9_] and upper-case"""
    clean = _INVALID_CHARS.sub("", (username or "").strip()[:max_len]).upper()
    if len(clean) < min_len:
        raise InvalidUsername(f"Username must be {min_len}-{max_len} characters")
    return clean


def validate_username(username: str) -> bool:
    try:
        sanitize_username(username)
    except InvalidUsername:
        return False
    return True


class LeaderboardClient:
    """Synchronous client; see `submit_score_async` for the threaded path"""

    def __init__(
        self,
        base_url: str = LEADERBOARD_CONFIG["base_url"],
        api_key: str = LEADERBOARD_CONFIG["api_key"],
        table: str = LEADERBOARD_CONFIG["table"],
        timeout: float = LEADERBOARD_CONFIG["timeout"],
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.table = table
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        })

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    # ----------------------------
    # Transport
    # ----------------------------

    def _url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _request(self, method: str, params: Optional[dict] = None, json: Any = None, headers: Optional[dict] = None):
        if not self.configured:
            raise LeaderboardError("Leaderboard URL is not configured")
        response = self.session.request(
            method,
            self._url(),
            params=params,
            json=json,
            headers=headers,
            timeout=self.timeout,
        )
        if not response.ok:
            try:
                detail = response.json().get("message")
            except ValueError:
                detail = None
            raise LeaderboardError(detail or f"HTTP {response.status_code}")
        if not response.text:
            return None
        return response.json()

    def _count_above(self, score: int) -> int:
        rows = self._request("GET", params={"score": f"gt.{int(score)}", "select": "id"})
        return len(rows or [])

    # ----------------------------
    # Queries
    # ----------------------------

    def fetch_leaderboard(self, limit: int = LEADERBOARD_CONFIG["default_limit"]) -> List[ScoreEntry]:
        """Top `limit` scores, best first; [] on failure"""
        try:
            rows = self._request("GET", params={
                "select": "id,username,score,level,created_at",
                "order": "score.desc",
                "limit": int(limit),
            })
            return [ScoreEntry.from_row(r) for r in rows or []]
        except _SERVICE_ERRORS as e:
            logger.warning("Error fetching leaderboard: %s", e)
            return []

    def fetch_user_best(self, username: str) -> Optional[UserBest]:
        """User's best entry and its rank; None when absent or on failure"""
        try:
            rows = self._request("GET", params={
                "username": f"eq.{username}",
                "order": "score.desc",
                "limit": 1,
            })
            if not rows:
                return None
            best = ScoreEntry.from_row(rows[0])
            return UserBest(best=best, rank=self._count_above(best.score) + 1)
        except _SERVICE_ERRORS as e:
            logger.warning("Error fetching user score: %s", e)
            return None

    def submit_score(self, username: str, score: int, level: int = 1) -> SubmitResult:
        """Validate, insert and rank a score"""
        try:
            clean = sanitize_username(username)
        except InvalidUsername as e:
            return SubmitResult(success=False, error=str(e))
        if score < 0 or level < 1:
            return SubmitResult(success=False, error="Score must be >= 0 and level >= 1")

        score = int(score)
        try:
            previous = self.fetch_user_best(clean)
            inserted = self._request("POST", json={"username": clean, "score": score, "level": int(level)})
            if not inserted:
                raise LeaderboardError("Insert failed")
            rank = self._count_above(score) + 1
        except _SERVICE_ERRORS as e:
            logger.warning("Error submitting score: %s", e)
            return SubmitResult(success=False, error="Failed to submit score")

        is_personal_best = previous is None or score > previous.best.score
        return SubmitResult(
            success=True,
            rank=rank,
            is_personal_best=is_personal_best,
            message="New personal best!" if is_personal_best else "Score recorded",
        )

    def submit_score_async(
        self,
        username: str,
        score: int,
        level: int = 1,
        callback: Optional[Callable[[SubmitResult], None]] = None,
    ) -> threading.Thread:
        """Submit on a daemon thread; `callback` receives the SubmitResult"""
        def _submit():
            try:
                result = self.submit_score(username, score, level)
            except Exception:
                logger.exception("Score submission crashed")
                result = SubmitResult(success=False, error="Failed to submit score")
            if callback is not None:
                callback(result)

        thread = threading.Thread(target=_submit, name="leaderboard-submit", daemon=True)
        thread.start()
        return thread

    def fetch_stats(self) -> Optional[LeaderboardStats]:
        try:
            rows = self._request("GET", params={"select": "score,username"}) or []
            if not rows:
                return LeaderboardStats()
            scores = [int(r["score"]) for r in rows]
            players = {r["username"] for r in rows}
        except _SERVICE_ERRORS as e:
            logger.warning("Error fetching stats: %s", e)
            return None
        return LeaderboardStats(
            total_games=len(rows),
            total_players=len(players),
            highest_score=max(scores),
            average_score=round(sum(scores) / len(scores)),
        )

    def check_health(self) -> bool:
        try:
            self._request("GET", params={"select": "id", "limit": 1})
        except _SERVICE_ERRORS:
            return False
        return True
