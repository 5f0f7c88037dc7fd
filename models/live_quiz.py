"""
Live quiz records and the small pure helpers used to score them.

A live quiz is stored as one document: questions, the participant roster and
every participant's answers live inside it. `version` is bumped on each write
so concurrent read-modify-write cycles can detect conflicts.
"""
from __future__ import annotations
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from models.base import as_utc, utcnow


class LiveQuizStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    LIVE = "live"
    PAUSED = "paused"
    COMPLETED = "completed"


STATUS_TRANSITIONS: Dict[LiveQuizStatus, FrozenSet[LiveQuizStatus]] = {
    LiveQuizStatus.DRAFT: frozenset({LiveQuizStatus.PUBLISHED}),
    LiveQuizStatus.PUBLISHED: frozenset({LiveQuizStatus.LIVE, LiveQuizStatus.DRAFT, LiveQuizStatus.COMPLETED}),
    LiveQuizStatus.LIVE: frozenset({LiveQuizStatus.PAUSED, LiveQuizStatus.COMPLETED}),
    LiveQuizStatus.PAUSED: frozenset({LiveQuizStatus.LIVE, LiveQuizStatus.COMPLETED}),
    LiveQuizStatus.COMPLETED: frozenset(),
}


def can_transition(current: LiveQuizStatus, target: LiveQuizStatus) -> bool:
    return target in STATUS_TRANSITIONS[current]


QUIZ_CATEGORIES = (
    "Finance & Accounting",
    "Marketing & Sales",
    "Operations & Supply Chain",
    "Human Resources",
    "Information Technology",
    "International Business",
    "Business Analytics",
    "General Business",
)


class ScoringConfig(BaseModel):
    correct_points: float = Field(default=1, validation_alias=AliasChoices("correct_points", "correctPoints"))
    incorrect_points: float = Field(default=0, validation_alias=AliasChoices("incorrect_points", "incorrectPoints"))

    @model_validator(mode="after")
    def _check(self) -> "ScoringConfig":
        if not validate_scoring_config(self):
            raise ValueError("correct_points must be >= 0 and incorrect_points <= correct_points")
        return self


def validate_scoring_config(config: ScoringConfig) -> bool:
    return config.correct_points >= 0 and config.incorrect_points <= config.correct_points


class LiveQuizQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    options: List[str]
    correct_answer: str = Field(validation_alias=AliasChoices("correct_answer", "correctAnswer"))
    time_limit: Optional[int] = Field(default=None, ge=1)   # seconds per question


class QuizJSONFormat(BaseModel):
    """The JSON upload format: title, description, category, questions."""
    title: str = Field(min_length=1)
    description: str
    category: str
    questions: List[LiveQuizQuestion] = Field(min_length=1)


class ParticipantAnswer(BaseModel):
    question_id: str
    selected_answer: str
    is_correct: bool
    time_taken: float = Field(ge=0)              # seconds
    points: float
    answered_at: datetime = Field(default_factory=utcnow)


class LiveQuizParticipant(BaseModel):
    user_id: str
    name: str
    score: float = 0
    rank: int = 0
    answers: List[ParticipantAnswer] = Field(default_factory=list)
    joined_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    is_active: bool = True

    def has_answered(self, question_id: str) -> bool:
        return any(a.question_id == question_id for a in self.answers)


class LiveQuiz(BaseModel):
    id: str
    title: str
    description: str = ""
    category: str = ""
    scheduled_at: datetime
    duration: int = Field(ge=1)                  # minutes
    max_participants: int = Field(ge=1)
    current_participants: int = 0
    status: LiveQuizStatus = LiveQuizStatus.DRAFT
    current_question_index: int = 0
    questions: List[LiveQuizQuestion]
    participants: List[LiveQuizParticipant] = Field(default_factory=list)
    scoring_config: ScoringConfig = Field(default_factory=ScoringConfig)
    shareable_link: str = ""
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
    published_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    version: int = 0

    @property
    def ends_at(self) -> datetime:
        return as_utc(self.scheduled_at) + timedelta(minutes=self.duration)

    def find_participant(self, user_id: str) -> Optional[LiveQuizParticipant]:
        return next((p for p in self.participants if p.user_id == user_id), None)

    def find_question(self, question_id: str) -> Optional[LiveQuizQuestion]:
        return next((q for q in self.questions if q.id == question_id), None)


class LiveQuizResult(BaseModel):
    id: str
    quiz_id: str
    quiz_title: str
    category: str
    date: datetime = Field(default_factory=utcnow)
    participant_id: str
    participant_name: str
    score: float
    rank: int
    total_participants: int
    duration: int
    accuracy: float
    average_time_per_question: float


class LiveQuizStats(BaseModel):
    total_quizzes: int
    active_participants: int
    total_participants: int
    average_score: int
    upcoming_quizzes: int
    live_quizzes: int


class DashboardSummary(BaseModel):
    total_tests: int
    average_score: float
    best_rank: int
    total_participants: int
    total_points: float


class UserDashboard(BaseModel):
    user_id: str
    name: str
    completed_tests: List[LiveQuizResult]
    summary: DashboardSummary


class GlobalLeaderboardEntry(BaseModel):
    name: str
    score: float
    tests: int


# ---- Helpers -------------------------------------------------------------------

def generate_shareable_link(base_url: str, quiz_id: str) -> str:
    return f"{base_url.rstrip('/')}/live-quiz/{quiz_id}"


def calculate_rank(participants: List[LiveQuizParticipant], score: float) -> int:
    """Competition ranking: tied scores share the rank of the first holder."""
    ordered = sorted(participants, key=lambda p: p.score, reverse=True)
    for index, participant in enumerate(ordered):
        if participant.score == score:
            return index + 1
    return 0


def calculate_accuracy(answers: List[ParticipantAnswer]) -> float:
    if not answers:
        return 0.0
    correct = sum(1 for a in answers if a.is_correct)
    return correct / len(answers) * 100


def calculate_average_time(answers: List[ParticipantAnswer]) -> float:
    if not answers:
        return 0.0
    return sum(a.time_taken for a in answers) / len(answers)
