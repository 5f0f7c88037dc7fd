"""In-memory repository (development and tests; swap for Prisma in production)."""
from __future__ import annotations
import asyncio
from typing import Dict, List, Optional, Sequence

from db.base import Repository
from models.leaderboard import QuizLeaderboard
from models.live_quiz import LiveQuiz, LiveQuizResult, LiveQuizStatus
from models.quiz import Quiz
from models.result import Result
from models.team import CollaborationInvitation, InvitationStatus, QuizShare, Team
from models.user import User


class MemoryRepository(Repository):
    """
    Dict-backed store. Records are deep-copied on the way in and out so callers
    never share state with the store, which mirrors a real database round trip.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._users: Dict[str, User] = {}
        self._quizzes: Dict[str, Quiz] = {}
        self._results: Dict[str, Result] = {}
        self._live_quizzes: Dict[str, LiveQuiz] = {}
        self._live_results: List[LiveQuizResult] = []
        self._leaderboards: Dict[str, QuizLeaderboard] = {}
        self._teams: Dict[str, Team] = {}
        self._shares: Dict[str, QuizShare] = {}
        self._invitations: Dict[str, CollaborationInvitation] = {}

    # -------- Users --------

    async def get_user(self, uid: str) -> Optional[User]:
        user = self._users.get(uid)
        return user.model_copy(deep=True) if user else None

    async def save_user(self, user: User) -> User:
        async with self._lock:
            self._users[user.uid] = user.model_copy(deep=True)
        return user

    # -------- Quizzes --------

    async def create_quiz(self, quiz: Quiz) -> Quiz:
        async with self._lock:
            self._quizzes[quiz.id] = quiz.model_copy(deep=True)
        return quiz

    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        quiz = self._quizzes.get(quiz_id)
        return quiz.model_copy(deep=True) if quiz else None

    async def save_quiz(self, quiz: Quiz) -> Quiz:
        async with self._lock:
            self._quizzes[quiz.id] = quiz.model_copy(deep=True)
        return quiz

    async def delete_quiz(self, quiz_id: str) -> bool:
        async with self._lock:
            return self._quizzes.pop(quiz_id, None) is not None

    def _filter_quizzes(self, created_by: str, published: Optional[bool], subject: Optional[str]) -> List[Quiz]:
        rows = [q for q in self._quizzes.values() if q.created_by == created_by]
        if published is not None:
            rows = [q for q in rows if q.is_published == published]
        if subject:
            needle = subject.lower()
            rows = [q for q in rows if needle in q.subject.lower()]
        return sorted(rows, key=lambda q: q.created_at, reverse=True)

    async def list_quizzes(
        self,
        created_by: str,
        published: Optional[bool] = None,
        subject: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Quiz]:
        rows = self._filter_quizzes(created_by, published, subject)
        end = None if limit is None else skip + limit
        return [q.model_copy(deep=True) for q in rows[skip:end]]

    async def count_quizzes(
        self, created_by: str, published: Optional[bool] = None, subject: Optional[str] = None
    ) -> int:
        return len(self._filter_quizzes(created_by, published, subject))

    # -------- Results --------

    async def create_result(self, result: Result) -> Result:
        async with self._lock:
            self._results[result.id] = result.model_copy(deep=True)
        return result

    def _filter_results(self, user_id: Optional[str], quiz_id: Optional[str]) -> List[Result]:
        rows = list(self._results.values())
        if user_id is not None:
            rows = [r for r in rows if r.user_id == user_id]
        if quiz_id is not None:
            rows = [r for r in rows if r.quiz_id == quiz_id]
        return sorted(rows, key=lambda r: r.completed_at, reverse=True)

    async def list_results(
        self,
        user_id: Optional[str] = None,
        quiz_id: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Result]:
        rows = self._filter_results(user_id, quiz_id)
        end = None if limit is None else skip + limit
        return [r.model_copy(deep=True) for r in rows[skip:end]]

    async def count_results(self, user_id: Optional[str] = None, quiz_id: Optional[str] = None) -> int:
        return len(self._filter_results(user_id, quiz_id))

    # -------- Live quizzes --------

    async def create_live_quiz(self, quiz: LiveQuiz) -> LiveQuiz:
        async with self._lock:
            self._live_quizzes[quiz.id] = quiz.model_copy(deep=True)
        return quiz

    async def get_live_quiz(self, quiz_id: str) -> Optional[LiveQuiz]:
        quiz = self._live_quizzes.get(quiz_id)
        return quiz.model_copy(deep=True) if quiz else None

    async def list_live_quizzes(self, statuses: Optional[Sequence[LiveQuizStatus]] = None) -> List[LiveQuiz]:
        rows = list(self._live_quizzes.values())
        if statuses is not None:
            wanted = set(statuses)
            rows = [q for q in rows if q.status in wanted]
        rows.sort(key=lambda q: q.created_at, reverse=True)
        return [q.model_copy(deep=True) for q in rows]

    async def save_live_quiz(self, quiz: LiveQuiz, expected_version: int) -> bool:
        async with self._lock:
            stored = self._live_quizzes.get(quiz.id)
            if stored is None or stored.version != expected_version:
                return False
            self._live_quizzes[quiz.id] = quiz.model_copy(deep=True)
            return True

    async def add_live_results(self, results: List[LiveQuizResult]) -> None:
        async with self._lock:
            self._live_results.extend(r.model_copy(deep=True) for r in results)

    async def list_live_results(self, participant_id: Optional[str] = None) -> List[LiveQuizResult]:
        rows = self._live_results
        if participant_id is not None:
            rows = [r for r in rows if r.participant_id == participant_id]
        rows = sorted(rows, key=lambda r: r.date, reverse=True)
        return [r.model_copy(deep=True) for r in rows]

    # -------- Leaderboards --------

    async def get_leaderboard(self, quiz_id: str) -> Optional[QuizLeaderboard]:
        board = self._leaderboards.get(quiz_id)
        return board.model_copy(deep=True) if board else None

    async def save_leaderboard(self, board: QuizLeaderboard) -> QuizLeaderboard:
        async with self._lock:
            self._leaderboards[board.quiz_id] = board.model_copy(deep=True)
        return board

    # -------- Teams & sharing --------

    async def create_team(self, team: Team) -> Team:
        async with self._lock:
            self._teams[team.id] = team.model_copy(deep=True)
        return team

    async def get_team(self, team_id: str) -> Optional[Team]:
        team = self._teams.get(team_id)
        return team.model_copy(deep=True) if team else None

    async def save_team(self, team: Team) -> Team:
        async with self._lock:
            self._teams[team.id] = team.model_copy(deep=True)
        return team

    async def list_teams(self, member_id: str) -> List[Team]:
        rows = [t for t in self._teams.values() if t.find_member(member_id) is not None]
        rows.sort(key=lambda t: t.created_at, reverse=True)
        return [t.model_copy(deep=True) for t in rows]

    async def create_share(self, share: QuizShare) -> QuizShare:
        async with self._lock:
            self._shares[share.id] = share.model_copy(deep=True)
        return share

    async def list_shares(self, quiz_id: Optional[str] = None, shared_with: Optional[str] = None) -> List[QuizShare]:
        rows = list(self._shares.values())
        if quiz_id is not None:
            rows = [s for s in rows if s.quiz_id == quiz_id]
        if shared_with is not None:
            rows = [s for s in rows if shared_with in s.shared_with]
        rows.sort(key=lambda s: s.created_at, reverse=True)
        return [s.model_copy(deep=True) for s in rows]

    async def create_invitation(self, invitation: CollaborationInvitation) -> CollaborationInvitation:
        async with self._lock:
            self._invitations[invitation.id] = invitation.model_copy(deep=True)
        return invitation

    async def get_invitation(self, invitation_id: str) -> Optional[CollaborationInvitation]:
        invitation = self._invitations.get(invitation_id)
        return invitation.model_copy(deep=True) if invitation else None

    async def save_invitation(self, invitation: CollaborationInvitation) -> CollaborationInvitation:
        async with self._lock:
            self._invitations[invitation.id] = invitation.model_copy(deep=True)
        return invitation

    async def list_invitations(
        self, to_user_id: str, status: Optional[InvitationStatus] = None
    ) -> List[CollaborationInvitation]:
        rows = [i for i in self._invitations.values() if i.to_user_id == to_user_id]
        if status is not None:
            rows = [i for i in rows if i.status == status]
        rows.sort(key=lambda i: i.created_at, reverse=True)
        return [i.model_copy(deep=True) for i in rows]
