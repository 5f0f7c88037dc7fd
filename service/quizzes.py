"""
Quiz authoring: CRUD with ownership rules, plus import from the JSON upload format.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from db.base import Repository
from errors import ForbiddenError, NotFoundError, QuizValidationError
from models.base import new_id, utcnow
from models.live_quiz import QuizJSONFormat
from models.quiz import Question, QuestionType, Quiz
from models.team import SharePermission, resolve_quiz_access
from models.user import User

logger = logging.getLogger(__name__)

_EDIT_ACCESS = ("owner", SharePermission.EDIT.value, SharePermission.ADMIN.value)


@dataclass
class Page:
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def as_dict(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def validation_message(err: ValidationError) -> str:
    first = err.errors()[0]
    where = ".".join(str(p) for p in first.get("loc", ()))
    return f"{where}: {first['msg']}" if where else first["msg"]


class QuizService:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    async def list_quizzes(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        published: Optional[bool] = None,
        subject: Optional[str] = None,
    ) -> Tuple[List[Quiz], Page]:
        page = max(page, 1)
        limit = max(limit, 1)
        skip = (page - 1) * limit
        quizzes = await self._repo.list_quizzes(user_id, published=published, subject=subject, skip=skip, limit=limit)
        total = await self._repo.count_quizzes(user_id, published=published, subject=subject)
        return quizzes, Page(page=page, limit=limit, total=total)

    async def create_quiz(self, user_id: str, data: Dict[str, Any]) -> Quiz:
        payload = {k: v for k, v in data.items() if k not in ("id", "created_by", "stats", "created_at", "updated_at")}
        try:
            quiz = Quiz(id=new_id(), created_by=user_id, **payload)
        except ValidationError as e:
            raise QuizValidationError(validation_message(e)) from e
        await self._repo.create_quiz(quiz)
        await self._bump_user_quiz_count(user_id)
        logger.info("Quiz created: %s by %s", quiz.title, user_id)
        return quiz

    async def get_quiz(self, quiz_id: str, user_id: str) -> Quiz:
        """Readable by its owner, by anyone when public, and by users it is shared with."""
        quiz = await self._require(quiz_id)
        if quiz.is_public or await self._access(quiz, user_id) is not None:
            return quiz
        raise ForbiddenError("Access denied")

    async def update_quiz(self, quiz_id: str, user_id: str, changes: Dict[str, Any]) -> Quiz:
        quiz = await self._require(quiz_id)
        if await self._access(quiz, user_id) not in _EDIT_ACCESS:
            raise ForbiddenError("Access denied")
        protected = ("id", "created_by", "stats", "created_at", "total_points")
        merged = quiz.model_dump()
        merged.update({k: v for k, v in changes.items() if k not in protected})
        merged["updated_at"] = utcnow()
        try:
            updated = Quiz.model_validate(merged)
        except ValidationError as e:
            raise QuizValidationError(validation_message(e)) from e
        await self._repo.save_quiz(updated)
        logger.info("Quiz updated: %s by %s", updated.title, user_id)
        return updated

    async def delete_quiz(self, quiz_id: str, user_id: str) -> None:
        quiz = await self._require_owned(quiz_id, user_id)
        await self._repo.delete_quiz(quiz_id)
        logger.info("Quiz deleted: %s by %s", quiz.title, user_id)

    async def import_quiz(self, user_id: str, data: Dict[str, Any], time_limit: int = 60) -> Quiz:
        """Create a draft quiz from the JSON upload format (every question is 1-point multiple choice)."""
        try:
            parsed = QuizJSONFormat.model_validate(data)
        except ValidationError as e:
            raise QuizValidationError(f"Invalid quiz format: {validation_message(e)}") from e
        for q in parsed.questions:
            if q.correct_answer not in q.options:
                raise QuizValidationError(f"Question {q.id}: correct answer is not one of the options")
        questions = [
            Question(
                id=q.id,
                text=q.text,
                type=QuestionType.MULTIPLE_CHOICE,
                options=q.options,
                correct_answer=q.correct_answer,
                points=1,
            )
            for q in parsed.questions
        ]
        return await self.create_quiz(
            user_id,
            {
                "title": parsed.title,
                "description": parsed.description or parsed.title,
                "subject": parsed.category or "General",
                "questions": [q.model_dump() for q in questions],
                "time_limit": time_limit,
            },
        )

    # ---- internals -----------------------------------------------------------

    async def _require(self, quiz_id: str) -> Quiz:
        quiz = await self._repo.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        return quiz

    async def _access(self, quiz: Quiz, user_id: str) -> Optional[str]:
        if quiz.created_by == user_id:
            return "owner"
        shares = await self._repo.list_shares(quiz_id=quiz.id, shared_with=user_id)
        return resolve_quiz_access(quiz.created_by, shares, user_id)

    async def _require_owned(self, quiz_id: str, user_id: str) -> Quiz:
        quiz = await self._require(quiz_id)
        if quiz.created_by != user_id:
            raise ForbiddenError("Access denied")
        return quiz

    async def _bump_user_quiz_count(self, user_id: str) -> None:
        user: Optional[User] = await self._repo.get_user(user_id)
        if user is None:
            return
        user.stats.total_quizzes += 1
        user.updated_at = utcnow()
        await self._repo.save_user(user)
