from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, computed_field

from models.base import round_half_up, utcnow


class ResultStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    TIMEOUT = "timeout"


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"


class Answer(BaseModel):
    question_id: str
    user_answer: Union[str, List[str]]
    is_correct: bool
    points: int = Field(ge=0)
    time_spent: float = Field(default=0, ge=0)   # seconds


class ResultMetadata(BaseModel):
    user_agent: str = ""
    ip_address: Optional[str] = None
    device_type: DeviceType = DeviceType.DESKTOP


class Result(BaseModel):
    id: str
    quiz_id: str
    user_id: str
    score: int = Field(ge=0, le=100)             # percentage
    total_questions: int = Field(ge=1)
    correct_answers: int = Field(ge=0)
    total_points: int = Field(ge=1)
    earned_points: int = Field(ge=0)
    time_taken: float = Field(ge=0)              # seconds
    answers: List[Answer] = Field(default_factory=list)
    passing_score: int = 70
    started_at: datetime
    completed_at: datetime = Field(default_factory=utcnow)
    status: ResultStatus = ResultStatus.COMPLETED
    feedback: Optional[str] = Field(default=None, max_length=1000)
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    quiz_title: Optional[str] = None
    quiz_subject: Optional[str] = None

    @computed_field
    @property
    def is_passed(self) -> bool:
        return self.score >= self.passing_score

    @computed_field
    @property
    def average_time_per_question(self) -> int:
        return round_half_up(self.time_taken / self.total_questions) if self.total_questions > 0 else 0
