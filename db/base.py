"""
Repository interface shared by the storage backends.

Services only talk to a Repository; the backend (in-memory or Prisma) is
picked once at startup by db/factory.py.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from errors import ConcurrentUpdateError, NotFoundError
from models.leaderboard import QuizLeaderboard
from models.live_quiz import LiveQuiz, LiveQuizResult, LiveQuizStatus
from models.quiz import Quiz
from models.result import Result
from models.team import CollaborationInvitation, InvitationStatus, QuizShare, Team
from models.user import User

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


class Repository(ABC):

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None

    # -------- Users --------

    @abstractmethod
    async def get_user(self, uid: str) -> Optional[User]: ...

    @abstractmethod
    async def save_user(self, user: User) -> User: ...

    # -------- Quizzes --------

    @abstractmethod
    async def create_quiz(self, quiz: Quiz) -> Quiz: ...

    @abstractmethod
    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]: ...

    @abstractmethod
    async def save_quiz(self, quiz: Quiz) -> Quiz: ...

    @abstractmethod
    async def delete_quiz(self, quiz_id: str) -> bool: ...

    @abstractmethod
    async def list_quizzes(
        self,
        created_by: str,
        published: Optional[bool] = None,
        subject: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Quiz]:
        """Owner's quizzes, newest first. `subject` is a case-insensitive substring."""

    @abstractmethod
    async def count_quizzes(
        self, created_by: str, published: Optional[bool] = None, subject: Optional[str] = None
    ) -> int: ...

    # -------- Results --------

    @abstractmethod
    async def create_result(self, result: Result) -> Result: ...

    @abstractmethod
    async def list_results(
        self,
        user_id: Optional[str] = None,
        quiz_id: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Result]:
        """Results newest first (by completed_at)."""

    @abstractmethod
    async def count_results(self, user_id: Optional[str] = None, quiz_id: Optional[str] = None) -> int: ...

    # -------- Live quizzes --------

    @abstractmethod
    async def create_live_quiz(self, quiz: LiveQuiz) -> LiveQuiz: ...

    @abstractmethod
    async def get_live_quiz(self, quiz_id: str) -> Optional[LiveQuiz]: ...

    @abstractmethod
    async def list_live_quizzes(self, statuses: Optional[Sequence[LiveQuizStatus]] = None) -> List[LiveQuiz]:
        """Live quizzes newest first (by created_at), optionally filtered by status."""

    @abstractmethod
    async def save_live_quiz(self, quiz: LiveQuiz, expected_version: int) -> bool:
        """Persist `quiz` only if the stored version still equals `expected_version`."""

    @abstractmethod
    async def add_live_results(self, results: List[LiveQuizResult]) -> None: ...

    @abstractmethod
    async def list_live_results(self, participant_id: Optional[str] = None) -> List[LiveQuizResult]:
        """Live quiz results newest first (by date)."""

    # -------- Leaderboards --------

    @abstractmethod
    async def get_leaderboard(self, quiz_id: str) -> Optional[QuizLeaderboard]: ...

    @abstractmethod
    async def save_leaderboard(self, board: QuizLeaderboard) -> QuizLeaderboard: ...

    # -------- Teams & sharing --------

    @abstractmethod
    async def create_team(self, team: Team) -> Team: ...

    @abstractmethod
    async def get_team(self, team_id: str) -> Optional[Team]: ...

    @abstractmethod
    async def save_team(self, team: Team) -> Team: ...

    @abstractmethod
    async def list_teams(self, member_id: str) -> List[Team]:
        """Teams the user belongs to, newest first."""

    @abstractmethod
    async def create_share(self, share: QuizShare) -> QuizShare: ...

    @abstractmethod
    async def list_shares(self, quiz_id: Optional[str] = None, shared_with: Optional[str] = None) -> List[QuizShare]:
        """Quiz shares newest first, optionally filtered by quiz and recipient."""

    @abstractmethod
    async def create_invitation(self, invitation: CollaborationInvitation) -> CollaborationInvitation: ...

    @abstractmethod
    async def get_invitation(self, invitation_id: str) -> Optional[CollaborationInvitation]: ...

    @abstractmethod
    async def save_invitation(self, invitation: CollaborationInvitation) -> CollaborationInvitation: ...

    @abstractmethod
    async def list_invitations(
        self, to_user_id: str, status: Optional[InvitationStatus] = None
    ) -> List[CollaborationInvitation]:
        """Invitations addressed to the user, newest first."""

    # -------- Transactions --------

    async def mutate_live_quiz(
        self,
        quiz_id: str,
        mutate: Callable[[LiveQuiz], None],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> LiveQuiz:
        """
        Read-modify-write a live quiz document.

        `mutate` edits the quiz in place and may raise to abort. The write is
        guarded by the version read; on conflict the whole cycle is re-run.
        """
        for attempt in range(1, max_retries + 1):
            quiz = await self.get_live_quiz(quiz_id)
            if quiz is None:
                raise NotFoundError("Quiz not found")
            expected = quiz.version
            mutate(quiz)
            quiz.version = expected + 1
            if await self.save_live_quiz(quiz, expected_version=expected):
                return quiz
            logger.warning("Version conflict on live quiz %s (attempt %d/%d)", quiz_id, attempt, max_retries)
        raise ConcurrentUpdateError("Quiz is busy, please retry")
