"""
Prisma-backed repository.

Each table keeps the columns we filter or sort on, plus the full record as a
JSON `document` (participants, answers and questions stay nested, the way a
document database would hold them). See schema.prisma.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

from prisma import Json
from pydantic import BaseModel

from db.base import Repository
from db.client import db
from models.leaderboard import QuizLeaderboard
from models.live_quiz import LiveQuiz, LiveQuizResult, LiveQuizStatus
from models.quiz import Quiz
from models.result import Result
from models.team import CollaborationInvitation, InvitationStatus, QuizShare, Team
from models.user import User


def _doc(record: BaseModel) -> Json:
    return Json(record.model_dump(mode="json"))


def _quiz_where(created_by: str, published: Optional[bool], subject: Optional[str]) -> Dict[str, Any]:
    where: Dict[str, Any] = {"createdBy": created_by}
    if published is not None:
        where["isPublished"] = published
    if subject:
        where["subject"] = {"contains": subject, "mode": "insensitive"}
    return where


def _result_where(user_id: Optional[str], quiz_id: Optional[str]) -> Dict[str, Any]:
    where: Dict[str, Any] = {}
    if user_id is not None:
        where["userId"] = user_id
    if quiz_id is not None:
        where["quizId"] = quiz_id
    return where


class PrismaRepository(Repository):

    async def connect(self) -> None:
        if not db.is_connected():
            await db.connect()

    async def disconnect(self) -> None:
        if db.is_connected():
            await db.disconnect()

    # -------- Users --------

    async def get_user(self, uid: str) -> Optional[User]:
        row = await db.user.find_unique(where={"uid": uid})
        return User.model_validate(row.document) if row else None

    async def save_user(self, user: User) -> User:
        await db.user.upsert(
            where={"uid": user.uid},
            data={
                "create": {"uid": user.uid, "email": user.email, "document": _doc(user)},
                "update": {"email": user.email, "document": _doc(user)},
            },
        )
        return user

    # -------- Quizzes --------

    @staticmethod
    def _quiz_columns(quiz: Quiz) -> Dict[str, Any]:
        return {
            "createdBy": quiz.created_by,
            "subject": quiz.subject,
            "isPublished": quiz.is_published,
            "isPublic": quiz.is_public,
            "createdAt": quiz.created_at,
            "updatedAt": quiz.updated_at,
            "document": _doc(quiz),
        }

    async def create_quiz(self, quiz: Quiz) -> Quiz:
        await db.quiz.create(data={"id": quiz.id, **self._quiz_columns(quiz)})
        return quiz

    async def get_quiz(self, quiz_id: str) -> Optional[Quiz]:
        row = await db.quiz.find_unique(where={"id": quiz_id})
        return Quiz.model_validate(row.document) if row else None

    async def save_quiz(self, quiz: Quiz) -> Quiz:
        await db.quiz.update(where={"id": quiz.id}, data=self._quiz_columns(quiz))
        return quiz

    async def delete_quiz(self, quiz_id: str) -> bool:
        row = await db.quiz.delete(where={"id": quiz_id})
        return row is not None

    async def list_quizzes(
        self,
        created_by: str,
        published: Optional[bool] = None,
        subject: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Quiz]:
        rows = await db.quiz.find_many(
            where=_quiz_where(created_by, published, subject),
            order={"createdAt": "desc"},
            skip=skip,
            take=limit,
        )
        return [Quiz.model_validate(r.document) for r in rows]

    async def count_quizzes(
        self, created_by: str, published: Optional[bool] = None, subject: Optional[str] = None
    ) -> int:
        return await db.quiz.count(where=_quiz_where(created_by, published, subject))

    # -------- Results --------

    async def create_result(self, result: Result) -> Result:
        await db.result.create(
            data={
                "id": result.id,
                "quizId": result.quiz_id,
                "userId": result.user_id,
                "score": result.score,
                "completedAt": result.completed_at,
                "document": _doc(result),
            }
        )
        return result

    async def list_results(
        self,
        user_id: Optional[str] = None,
        quiz_id: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Result]:
        rows = await db.result.find_many(
            where=_result_where(user_id, quiz_id),
            order={"completedAt": "desc"},
            skip=skip,
            take=limit,
        )
        return [Result.model_validate(r.document) for r in rows]

    async def count_results(self, user_id: Optional[str] = None, quiz_id: Optional[str] = None) -> int:
        return await db.result.count(where=_result_where(user_id, quiz_id))

    # -------- Live quizzes --------

    async def create_live_quiz(self, quiz: LiveQuiz) -> LiveQuiz:
        await db.livequiz.create(
            data={
                "id": quiz.id,
                "status": quiz.status.value,
                "scheduledAt": quiz.scheduled_at,
                "createdAt": quiz.created_at,
                "version": quiz.version,
                "document": _doc(quiz),
            }
        )
        return quiz

    async def get_live_quiz(self, quiz_id: str) -> Optional[LiveQuiz]:
        row = await db.livequiz.find_unique(where={"id": quiz_id})
        return LiveQuiz.model_validate(row.document) if row else None

    async def list_live_quizzes(self, statuses: Optional[Sequence[LiveQuizStatus]] = None) -> List[LiveQuiz]:
        where: Dict[str, Any] = {}
        if statuses is not None:
            where["status"] = {"in": [s.value for s in statuses]}
        rows = await db.livequiz.find_many(where=where, order={"createdAt": "desc"})
        return [LiveQuiz.model_validate(r.document) for r in rows]

    async def save_live_quiz(self, quiz: LiveQuiz, expected_version: int) -> bool:
        # update_many lets the version check ride along in the WHERE clause
        count = await db.livequiz.update_many(
            where={"id": quiz.id, "version": expected_version},
            data={
                "status": quiz.status.value,
                "scheduledAt": quiz.scheduled_at,
                "version": quiz.version,
                "document": _doc(quiz),
            },
        )
        return count == 1

    async def add_live_results(self, results: List[LiveQuizResult]) -> None:
        if not results:
            return
        await db.livequizresult.create_many(
            data=[
                {
                    "id": r.id,
                    "quizId": r.quiz_id,
                    "participantId": r.participant_id,
                    "participantName": r.participant_name,
                    "score": r.score,
                    "date": r.date,
                    "document": _doc(r),
                }
                for r in results
            ]
        )

    async def list_live_results(self, participant_id: Optional[str] = None) -> List[LiveQuizResult]:
        where: Dict[str, Any] = {}
        if participant_id is not None:
            where["participantId"] = participant_id
        rows = await db.livequizresult.find_many(where=where, order={"date": "desc"})
        return [LiveQuizResult.model_validate(r.document) for r in rows]

    # -------- Leaderboards --------

    async def get_leaderboard(self, quiz_id: str) -> Optional[QuizLeaderboard]:
        row = await db.quizleaderboard.find_unique(where={"quizId": quiz_id})
        return QuizLeaderboard.model_validate(row.document) if row else None

    async def save_leaderboard(self, board: QuizLeaderboard) -> QuizLeaderboard:
        await db.quizleaderboard.upsert(
            where={"quizId": board.quiz_id},
            data={
                "create": {"quizId": board.quiz_id, "document": _doc(board)},
                "update": {"document": _doc(board)},
            },
        )
        return board

    # -------- Teams & sharing --------

    @staticmethod
    def _team_columns(team: Team) -> Dict[str, Any]:
        return {
            "ownerId": team.owner_id,
            "memberIds": team.member_ids,
            "updatedAt": team.updated_at,
            "document": _doc(team),
        }

    async def create_team(self, team: Team) -> Team:
        await db.team.create(data={"id": team.id, "createdAt": team.created_at, **self._team_columns(team)})
        return team

    async def get_team(self, team_id: str) -> Optional[Team]:
        row = await db.team.find_unique(where={"id": team_id})
        return Team.model_validate(row.document) if row else None

    async def save_team(self, team: Team) -> Team:
        await db.team.update(where={"id": team.id}, data=self._team_columns(team))
        return team

    async def list_teams(self, member_id: str) -> List[Team]:
        rows = await db.team.find_many(where={"memberIds": {"has": member_id}}, order={"createdAt": "desc"})
        return [Team.model_validate(r.document) for r in rows]

    async def create_share(self, share: QuizShare) -> QuizShare:
        await db.quizshare.create(
            data={
                "id": share.id,
                "quizId": share.quiz_id,
                "sharedBy": share.shared_by,
                "sharedWith": share.shared_with,
                "createdAt": share.created_at,
                "document": _doc(share),
            }
        )
        return share

    async def list_shares(self, quiz_id: Optional[str] = None, shared_with: Optional[str] = None) -> List[QuizShare]:
        where: Dict[str, Any] = {}
        if quiz_id is not None:
            where["quizId"] = quiz_id
        if shared_with is not None:
            where["sharedWith"] = {"has": shared_with}
        rows = await db.quizshare.find_many(where=where, order={"createdAt": "desc"})
        return [QuizShare.model_validate(r.document) for r in rows]

    async def create_invitation(self, invitation: CollaborationInvitation) -> CollaborationInvitation:
        await db.collaborationinvitation.create(
            data={
                "id": invitation.id,
                "toUserId": invitation.to_user_id,
                "status": invitation.status.value,
                "createdAt": invitation.created_at,
                "document": _doc(invitation),
            }
        )
        return invitation

    async def get_invitation(self, invitation_id: str) -> Optional[CollaborationInvitation]:
        row = await db.collaborationinvitation.find_unique(where={"id": invitation_id})
        return CollaborationInvitation.model_validate(row.document) if row else None

    async def save_invitation(self, invitation: CollaborationInvitation) -> CollaborationInvitation:
        await db.collaborationinvitation.update(
            where={"id": invitation.id},
            data={"status": invitation.status.value, "document": _doc(invitation)},
        )
        return invitation

    async def list_invitations(
        self, to_user_id: str, status: Optional[InvitationStatus] = None
    ) -> List[CollaborationInvitation]:
        where: Dict[str, Any] = {"toUserId": to_user_id}
        if status is not None:
            where["status"] = status.value
        rows = await db.collaborationinvitation.find_many(where=where, order={"createdAt": "desc"})
        return [CollaborationInvitation.model_validate(r.document) for r in rows]
