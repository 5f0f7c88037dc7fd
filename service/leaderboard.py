"""
Per-quiz leaderboards, kept to the top N scores.

Ordering: score descending, then earliest timestamp first for ties.
"""
from __future__ import annotations
import logging
from typing import List, Optional

from db.base import Repository
from models.base import as_utc, utcnow
from models.leaderboard import LeaderboardEntry, QuizLeaderboard

logger = logging.getLogger(__name__)


def rank_entries(entries: List[LeaderboardEntry], size: int) -> List[LeaderboardEntry]:
    ordered = sorted(entries, key=lambda e: (-e.score, as_utc(e.timestamp)))[:size]
    for index, entry in enumerate(ordered):
        entry.rank = index + 1
    return ordered


def get_user_rank(board: Optional[QuizLeaderboard], user_id: str) -> Optional[int]:
    if board is None:
        return None
    entry = next((e for e in board.scores if e.user_id == user_id), None)
    return entry.rank if entry else None


def would_make_top(board: Optional[QuizLeaderboard], score: float, size: int) -> bool:
    if board is None or len(board.scores) < size:
        return True
    return score >= board.scores[-1].score


class LeaderboardService:
    def __init__(self, repo: Repository, size: int = 20) -> None:
        self._repo = repo
        self._size = size

    @property
    def size(self) -> int:
        return self._size

    async def update_leaderboard(self, quiz_id: str, user_id: str, user_name: str, score: float) -> QuizLeaderboard:
        board = await self._repo.get_leaderboard(quiz_id) or QuizLeaderboard(quiz_id=quiz_id)
        entry = LeaderboardEntry(user_id=user_id, user_name=user_name, score=score, timestamp=utcnow())
        board.scores = rank_entries(board.scores + [entry], self._size)
        board.last_updated = utcnow()
        await self._repo.save_leaderboard(board)
        logger.info("Leaderboard updated for quiz %s (%d entries)", quiz_id, len(board.scores))
        return board

    async def get_leaderboard(self, quiz_id: str) -> Optional[QuizLeaderboard]:
        return await self._repo.get_leaderboard(quiz_id)
