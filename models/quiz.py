"""
Quiz and question records.

total_points is derived from the questions every time a Quiz is validated,
so building a Quiz from merged data (create or update) keeps it in sync.
"""
from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from models.base import utcnow


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Question(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    text: str = Field(min_length=1)
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: Optional[List[str]] = None
    correct_answer: Union[str, List[str]]
    points: int = Field(default=1, ge=1)
    explanation: Optional[str] = None
    image: Optional[str] = None


class QuizStats(BaseModel):
    total_attempts: int = 0
    average_score: float = 0.0
    completion_rate: float = 0.0
    average_time: float = 0.0


class Quiz(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    subject: str = Field(min_length=1, max_length=100)
    questions: List[Question] = Field(min_length=1)
    time_limit: int = Field(default=60, ge=1, le=480)      # minutes
    passing_score: int = Field(default=70, ge=0, le=100)   # percentage
    total_points: int = 0
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: List[str] = Field(default_factory=list)
    created_by: str
    is_published: bool = False
    is_public: bool = False
    allow_retakes: bool = True
    max_attempts: int = Field(default=3, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    stats: QuizStats = Field(default_factory=QuizStats)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, v: List[str]) -> List[str]:
        return [t.strip().lower() for t in v if t.strip()]

    @model_validator(mode="after")
    def _derive_total_points(self) -> "Quiz":
        self.total_points = sum(q.points for q in self.questions)
        return self

    @computed_field
    @property
    def question_count(self) -> int:
        return len(self.questions)

    @computed_field
    @property
    def estimated_time(self) -> int:
        # 2 minutes per question on average
        return len(self.questions) * 2

    def find_question(self, question_id: str) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)
