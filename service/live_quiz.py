"""
Live quiz lifecycle: authoring, status transitions, registration, scoring and results.

Status flow: draft -> published -> live <-> paused -> completed.
Registration and answer submission are read-modify-write cycles on the quiz
document and go through Repository.mutate_live_quiz.
"""
from __future__ import annotations
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from db.base import Repository
from errors import InvalidTransitionError, NotFoundError, QuizValidationError, RegistrationError
from models.base import as_utc, new_id, round_half_up, utcnow
from models.live_quiz import (
    DashboardSummary,
    GlobalLeaderboardEntry,
    LiveQuiz,
    LiveQuizParticipant,
    LiveQuizResult,
    LiveQuizStats,
    LiveQuizStatus,
    ParticipantAnswer,
    QuizJSONFormat,
    ScoringConfig,
    UserDashboard,
    calculate_accuracy,
    calculate_average_time,
    calculate_rank,
    can_transition,
    generate_shareable_link,
)
from service.quizzes import validation_message

logger = logging.getLogger(__name__)


def _require_transition(quiz: LiveQuiz, target: LiveQuizStatus) -> None:
    if quiz.status == target:
        return
    if not can_transition(quiz.status, target):
        raise InvalidTransitionError(f"Cannot change quiz status from {quiz.status.value} to {target.value}")


def _rerank(participants: List[LiveQuizParticipant]) -> None:
    for p in participants:
        p.rank = calculate_rank(participants, p.score)


class LiveQuizService:
    def __init__(
        self,
        repo: Repository,
        public_app_url: str = "http://localhost:3000",
        global_leaderboard_size: int = 20,
        max_retries: int = 5,
    ) -> None:
        self._repo = repo
        self._public_app_url = public_app_url
        self._global_leaderboard_size = global_leaderboard_size
        self._max_retries = max_retries

    # ---- Authoring -------------------------------------------------------------

    async def create_live_quiz(self, data: Dict[str, Any], user_id: str) -> LiveQuiz:
        try:
            body = QuizJSONFormat.model_validate(data)
            scoring = ScoringConfig.model_validate(data.get("scoring_config") or {})
        except ValidationError as e:
            raise QuizValidationError(f"Invalid quiz format: {validation_message(e)}") from e

        for key in ("scheduled_at", "duration", "max_participants"):
            if data.get(key) is None:
                raise QuizValidationError(f"Invalid quiz format: {key} is required")

        question_ids = [q.id for q in body.questions]
        if len(set(question_ids)) != len(question_ids):
            raise QuizValidationError("Invalid quiz format: question ids must be unique")

        quiz_id = new_id()
        try:
            quiz = LiveQuiz(
                id=quiz_id,
                title=body.title,
                description=body.description,
                category=body.category,
                scheduled_at=data["scheduled_at"],
                duration=data["duration"],
                max_participants=data["max_participants"],
                questions=body.questions,
                scoring_config=scoring,
                shareable_link=generate_shareable_link(self._public_app_url, quiz_id),
                created_by=user_id,
            )
        except ValidationError as e:
            raise QuizValidationError(f"Invalid quiz format: {validation_message(e)}") from e
        await self._repo.create_live_quiz(quiz)
        logger.info("Live quiz created: %s (%s) by %s", quiz.title, quiz.id, user_id)
        return quiz

    # ---- Queries ----------------------------------------------------------------

    async def get_live_quiz(self, quiz_id: str) -> Optional[LiveQuiz]:
        return await self._repo.get_live_quiz(quiz_id)

    async def require_live_quiz(self, quiz_id: str) -> LiveQuiz:
        quiz = await self._repo.get_live_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        return quiz

    async def get_all_live_quizzes(self) -> List[LiveQuiz]:
        return await self._repo.list_live_quizzes()

    async def get_scheduled_quizzes(self) -> List[LiveQuiz]:
        """Quizzes the schedule checker has to look at."""
        return await self._repo.list_live_quizzes(
            [LiveQuizStatus.PUBLISHED, LiveQuizStatus.LIVE, LiveQuizStatus.PAUSED]
        )

    async def get_upcoming_quizzes(self, now: Optional[datetime] = None) -> List[LiveQuiz]:
        now = now or utcnow()
        rows = await self._repo.list_live_quizzes([LiveQuizStatus.PUBLISHED, LiveQuizStatus.LIVE])
        upcoming = [q for q in rows if as_utc(q.scheduled_at) > now]
        return sorted(upcoming, key=lambda q: as_utc(q.scheduled_at))

    async def get_live_quizzes(self) -> List[LiveQuiz]:
        rows = await self._repo.list_live_quizzes([LiveQuizStatus.LIVE])
        return sorted(rows, key=lambda q: as_utc(q.scheduled_at), reverse=True)

    # ---- Status transitions -----------------------------------------------------

    async def update_quiz_status(self, quiz_id: str, status: LiveQuizStatus) -> LiveQuiz:
        if status == LiveQuizStatus.COMPLETED:
            return await self.complete_quiz(quiz_id)

        def apply(quiz: LiveQuiz) -> None:
            _require_transition(quiz, status)
            now = utcnow()
            if status == LiveQuizStatus.PUBLISHED and quiz.status != status:
                quiz.published_at = now
            elif status == LiveQuizStatus.LIVE:
                if quiz.status == LiveQuizStatus.PAUSED:
                    quiz.resumed_at = now
                elif quiz.status != status:
                    quiz.started_at = now
                    quiz.current_question_index = 0
            elif status == LiveQuizStatus.PAUSED and quiz.status != status:
                quiz.paused_at = now
            quiz.status = status

        quiz = await self._mutate(quiz_id, apply)
        logger.info("Live quiz %s is now %s", quiz_id, quiz.status.value)
        return quiz

    async def publish_quiz(self, quiz_id: str) -> LiveQuiz:
        return await self.update_quiz_status(quiz_id, LiveQuizStatus.PUBLISHED)

    async def start_quiz(self, quiz_id: str) -> LiveQuiz:
        return await self._transition_from(quiz_id, LiveQuizStatus.PUBLISHED, LiveQuizStatus.LIVE)

    async def pause_quiz(self, quiz_id: str) -> LiveQuiz:
        return await self.update_quiz_status(quiz_id, LiveQuizStatus.PAUSED)

    async def resume_quiz(self, quiz_id: str) -> LiveQuiz:
        return await self._transition_from(quiz_id, LiveQuizStatus.PAUSED, LiveQuizStatus.LIVE)

    async def stop_quiz(self, quiz_id: str) -> LiveQuiz:
        return await self.complete_quiz(quiz_id)

    async def complete_quiz(self, quiz_id: str) -> LiveQuiz:
        """Mark the quiz completed and write one result per participant who answered."""
        already_completed = False

        def apply(quiz: LiveQuiz) -> None:
            nonlocal already_completed
            already_completed = quiz.status == LiveQuizStatus.COMPLETED
            if already_completed:
                return
            _require_transition(quiz, LiveQuizStatus.COMPLETED)
            quiz.status = LiveQuizStatus.COMPLETED
            quiz.ended_at = utcnow()

        quiz = await self._mutate(quiz_id, apply)
        if already_completed:
            return quiz

        date = utcnow()
        results = [
            LiveQuizResult(
                id=new_id(),
                quiz_id=quiz.id,
                quiz_title=quiz.title,
                category=quiz.category,
                date=date,
                participant_id=p.user_id,
                participant_name=p.name,
                score=p.score,
                rank=p.rank,
                total_participants=len(quiz.participants),
                duration=quiz.duration,
                accuracy=calculate_accuracy(p.answers),
                average_time_per_question=calculate_average_time(p.answers),
            )
            for p in quiz.participants
            if p.answers
        ]
        await self._repo.add_live_results(results)
        logger.info("Live quiz %s completed, %d results saved", quiz_id, len(results))
        return quiz

    async def set_current_question(self, quiz_id: str, index: int) -> LiveQuiz:
        def apply(quiz: LiveQuiz) -> None:
            if not 0 <= index < len(quiz.questions):
                raise QuizValidationError("Question index out of range")
            quiz.current_question_index = index

        return await self._mutate(quiz_id, apply)

    # ---- Participants -----------------------------------------------------------

    async def register_participant(self, quiz_id: str, user_id: str, name: str) -> LiveQuiz:
        def apply(quiz: LiveQuiz) -> None:
            if quiz.status != LiveQuizStatus.PUBLISHED:
                raise RegistrationError("Quiz is not open for registration")
            if quiz.current_participants >= quiz.max_participants:
                raise RegistrationError("Quiz is full")
            if quiz.find_participant(user_id) is not None:
                raise RegistrationError("Already registered for this quiz")
            quiz.participants.append(LiveQuizParticipant(user_id=user_id, name=name))
            quiz.current_participants += 1

        quiz = await self._mutate(quiz_id, apply)
        logger.info("Participant %s registered for live quiz %s", user_id, quiz_id)
        return quiz

    async def submit_answer(
        self,
        quiz_id: str,
        user_id: str,
        question_id: str,
        selected_answer: str,
        time_taken: float,
    ) -> LiveQuizParticipant:
        def apply(quiz: LiveQuiz) -> None:
            if quiz.status != LiveQuizStatus.LIVE:
                raise QuizValidationError("Quiz is not live")
            participant = quiz.find_participant(user_id)
            if participant is None:
                raise NotFoundError("Participant not found")
            question = quiz.find_question(question_id)
            if question is None:
                raise NotFoundError("Question not found")
            if participant.has_answered(question_id):
                raise RegistrationError("Question already answered")

            is_correct = selected_answer == question.correct_answer
            points = quiz.scoring_config.correct_points if is_correct else quiz.scoring_config.incorrect_points
            participant.answers.append(ParticipantAnswer(
                question_id=question_id,
                selected_answer=selected_answer,
                is_correct=is_correct,
                time_taken=time_taken,
                points=points,
            ))
            participant.score = sum(a.points for a in participant.answers)
            if len(participant.answers) == len(quiz.questions):
                participant.completed_at = utcnow()
            _rerank(quiz.participants)

        quiz = await self._mutate(quiz_id, apply)
        participant = quiz.find_participant(user_id)
        if participant is None:
            raise NotFoundError("Participant not found")
        return participant

    # ---- Results & stats --------------------------------------------------------

    async def get_user_results(self, user_id: str) -> List[LiveQuizResult]:
        return await self._repo.list_live_results(participant_id=user_id)

    async def get_all_completed_quizzes(self) -> List[LiveQuizResult]:
        return await self._repo.list_live_results()

    async def get_global_leaderboard(self) -> List[GlobalLeaderboardEntry]:
        totals: "OrderedDict[str, GlobalLeaderboardEntry]" = OrderedDict()
        for result in await self._repo.list_live_results():
            entry = totals.get(result.participant_name)
            if entry is None:
                totals[result.participant_name] = GlobalLeaderboardEntry(
                    name=result.participant_name, score=result.score, tests=1
                )
            else:
                entry.score += result.score
                entry.tests += 1
        ranked = sorted(totals.values(), key=lambda e: e.score, reverse=True)
        return ranked[: self._global_leaderboard_size]

    async def get_live_quiz_stats(self, now: Optional[datetime] = None) -> LiveQuizStats:
        all_quizzes = await self.get_all_live_quizzes()
        upcoming = await self.get_upcoming_quizzes(now)
        live = await self.get_live_quizzes()
        results = await self._repo.list_live_results()
        average = sum(r.score for r in results) / len(results) if results else 0
        return LiveQuizStats(
            total_quizzes=len(all_quizzes),
            active_participants=sum(q.current_participants for q in live),
            total_participants=sum(q.current_participants for q in all_quizzes),
            average_score=round_half_up(average),
            upcoming_quizzes=len(upcoming),
            live_quizzes=len(live),
        )

    async def get_user_dashboard(self, user_id: str, name: str) -> UserDashboard:
        completed = await self.get_user_results(user_id)
        if completed:
            summary = DashboardSummary(
                total_tests=len(completed),
                average_score=sum(r.score for r in completed) / len(completed),
                best_rank=min(r.rank for r in completed),
                total_participants=sum(r.total_participants for r in completed),
                total_points=sum(r.score for r in completed),
            )
        else:
            summary = DashboardSummary(
                total_tests=0, average_score=0, best_rank=0, total_participants=0, total_points=0
            )
        return UserDashboard(user_id=user_id, name=name, completed_tests=completed, summary=summary)

    # ---- internals ---------------------------------------------------------------

    async def _transition_from(self, quiz_id: str, source: LiveQuizStatus, target: LiveQuizStatus) -> LiveQuiz:
        quiz = await self.require_live_quiz(quiz_id)
        if quiz.status != source:
            raise InvalidTransitionError(
                f"Cannot change quiz status from {quiz.status.value} to {target.value}"
            )
        return await self.update_quiz_status(quiz_id, target)

    async def _mutate(self, quiz_id: str, apply) -> LiveQuiz:
        return await self._repo.mutate_live_quiz(quiz_id, apply, max_retries=self._max_retries)
