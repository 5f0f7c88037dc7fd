"""
Result submission and grading.

Grading rules:
- multiple-choice / true-false: exact match (multi-answer lists compared as sets)
- short-answer: case-insensitive, whitespace-trimmed match
Answers for unknown question ids are skipped.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List, Optional, Tuple, Union

from db.base import Repository
from errors import ForbiddenError, NotFoundError
from models.base import new_id, round_half_up, utcnow
from models.quiz import Question, QuestionType, Quiz
from models.result import Answer, Result, ResultMetadata, ResultStatus
from service.quizzes import Page

logger = logging.getLogger(__name__)

AnswerValue = Union[str, List[str]]


@dataclass
class SubmittedAnswer:
    question_id: str
    user_answer: AnswerValue
    time_spent: float = 0.0


@dataclass
class QuizResultStats:
    total_attempts: int
    average_score: float
    average_time: float
    best_score: int
    lowest_score: int


def _normalize(value: AnswerValue) -> Union[str, FrozenSet[str]]:
    if isinstance(value, list):
        return frozenset(v.strip() for v in value)
    return value.strip()


def is_answer_correct(question: Question, user_answer: AnswerValue) -> bool:
    if question.type == QuestionType.SHORT_ANSWER:
        expected = question.correct_answer
        if isinstance(expected, list):
            given = user_answer if isinstance(user_answer, str) else " ".join(user_answer)
            return given.strip().lower() in {e.strip().lower() for e in expected}
        return str(user_answer).strip().lower() == expected.strip().lower()
    return _normalize(user_answer) == _normalize(question.correct_answer)


def grade(quiz: Quiz, submitted: List[SubmittedAnswer]) -> Tuple[List[Answer], int, int]:
    """Returns (processed answers, correct count, earned points)."""
    processed: List[Answer] = []
    correct = 0
    earned = 0
    for answer in submitted:
        question = quiz.find_question(answer.question_id)
        if question is None:
            continue
        ok = is_answer_correct(question, answer.user_answer)
        points = question.points if ok else 0
        correct += 1 if ok else 0
        earned += points
        processed.append(Answer(
            question_id=answer.question_id,
            user_answer=answer.user_answer,
            is_correct=ok,
            points=points,
            time_spent=answer.time_spent,
        ))
    return processed, correct, earned


def _running_mean(previous_mean: float, previous_count: int, value: float) -> float:
    return (previous_mean * previous_count + value) / (previous_count + 1)


class ResultService:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    async def submit(
        self,
        user_id: str,
        quiz_id: str,
        answers: List[SubmittedAnswer],
        time_taken: float,
        started_at: datetime,
        feedback: Optional[str] = None,
        metadata: Optional[ResultMetadata] = None,
    ) -> Result:
        quiz = await self._repo.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        if not quiz.is_published:
            raise ForbiddenError("Quiz is not available")
        await self._check_attempts(user_id, quiz)

        processed, correct, earned = grade(quiz, answers)
        score = round_half_up(earned / quiz.total_points * 100)

        result = Result(
            id=new_id(),
            quiz_id=quiz.id,
            user_id=user_id,
            score=score,
            total_questions=len(quiz.questions),
            correct_answers=correct,
            total_points=quiz.total_points,
            earned_points=earned,
            time_taken=time_taken,
            answers=processed,
            passing_score=quiz.passing_score,
            started_at=started_at,
            completed_at=utcnow(),
            status=ResultStatus.COMPLETED,
            feedback=feedback,
            metadata=metadata or ResultMetadata(),
            quiz_title=quiz.title,
            quiz_subject=quiz.subject,
        )
        await self._repo.create_result(result)
        await self._update_quiz_stats(quiz, score, time_taken)
        await self._update_user_stats(user_id, score, time_taken)
        logger.info("Result submitted: score %d%% on %s by %s", score, quiz.id, user_id)
        return result

    async def list_results(
        self, user_id: str, page: int = 1, limit: int = 10, quiz_id: Optional[str] = None
    ) -> Tuple[List[Result], Page]:
        page = max(page, 1)
        limit = max(limit, 1)
        rows = await self._repo.list_results(user_id=user_id, quiz_id=quiz_id, skip=(page - 1) * limit, limit=limit)
        total = await self._repo.count_results(user_id=user_id, quiz_id=quiz_id)
        return rows, Page(page=page, limit=limit, total=total)

    async def quiz_stats(self, quiz_id: str) -> QuizResultStats:
        results = await self._repo.list_results(quiz_id=quiz_id)
        if not results:
            return QuizResultStats(0, 0.0, 0.0, 0, 0)
        scores = [r.score for r in results]
        return QuizResultStats(
            total_attempts=len(results),
            average_score=sum(scores) / len(scores),
            average_time=sum(r.time_taken for r in results) / len(results),
            best_score=max(scores),
            lowest_score=min(scores),
        )

    # ---- internals -----------------------------------------------------------

    async def _check_attempts(self, user_id: str, quiz: Quiz) -> None:
        attempts = await self._repo.count_results(user_id=user_id, quiz_id=quiz.id)
        if attempts and not quiz.allow_retakes:
            raise ForbiddenError("Retakes are not allowed for this quiz")
        if attempts >= quiz.max_attempts:
            raise ForbiddenError("Maximum attempts reached")

    async def _update_quiz_stats(self, quiz: Quiz, score: int, time_taken: float) -> None:
        # stats are applied to the latest stored copy of the quiz
        current = await self._repo.get_quiz(quiz.id) or quiz
        stats = current.stats
        stats.average_score = _running_mean(stats.average_score, stats.total_attempts, score)
        stats.average_time = _running_mean(stats.average_time, stats.total_attempts, time_taken)
        stats.total_attempts += 1
        await self._repo.save_quiz(current)

    async def _update_user_stats(self, user_id: str, score: int, time_taken: float) -> None:
        user = await self._repo.get_user(user_id)
        if user is None:
            return
        stats = user.stats
        stats.average_score = _running_mean(stats.average_score, stats.total_results, score)
        stats.total_results += 1
        stats.total_time_spent += time_taken
        user.updated_at = utcnow()
        await self._repo.save_user(user)
