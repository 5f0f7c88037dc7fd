"""
Tests for per-quiz top-N leaderboards.
"""
from datetime import timedelta

import pytest

from models.base import utcnow
from models.leaderboard import LeaderboardEntry, QuizLeaderboard
from service.leaderboard import LeaderboardService, get_user_rank, rank_entries, would_make_top


def test_ties_keep_earliest_first():
    now = utcnow()
    entries = [
        LeaderboardEntry(user_id="late", user_name="Late", score=90, timestamp=now),
        LeaderboardEntry(user_id="early", user_name="Early", score=90, timestamp=now - timedelta(minutes=5)),
        LeaderboardEntry(user_id="top", user_name="Top", score=95, timestamp=now),
    ]
    ranked = rank_entries(entries, size=20)
    assert [e.user_id for e in ranked] == ["top", "early", "late"]
    assert [e.rank for e in ranked] == [1, 2, 3]


class TestLeaderboardService:

    @pytest.mark.asyncio
    async def test_keeps_top_n(self, repo):
        service = LeaderboardService(repo, size=3)
        for i, score in enumerate([50, 80, 70, 90, 60]):
            await service.update_leaderboard("quiz", f"u{i}", f"User {i}", score)
        board = await service.get_leaderboard("quiz")
        assert [e.score for e in board.scores] == [90, 80, 70]
        assert [e.rank for e in board.scores] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_missing_board(self, repo):
        assert await LeaderboardService(repo).get_leaderboard("none") is None


class TestHelpers:

    def _board(self, scores):
        return QuizLeaderboard(
            quiz_id="q",
            scores=rank_entries(
                [LeaderboardEntry(user_id=f"u{i}", user_name="n", score=s) for i, s in enumerate(scores)], 20
            ),
        )

    def test_user_rank(self):
        board = self._board([10, 30, 20])
        assert get_user_rank(board, "u1") == 1
        assert get_user_rank(board, "u0") == 3
        assert get_user_rank(board, "ghost") is None
        assert get_user_rank(None, "u0") is None

    def test_would_make_top(self):
        assert would_make_top(None, 0, 2)
        assert would_make_top(self._board([50]), 10, 2)
        full = self._board([50, 40])
        assert would_make_top(full, 40, 2)
        assert not would_make_top(full, 39, 2)
