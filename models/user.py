from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from models.base import utcnow


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class UserSettings(BaseModel):
    theme: Theme = Theme.LIGHT
    notifications: bool = True
    timezone: str = "UTC"
    language: str = "en"


class UserStats(BaseModel):
    total_quizzes: int = 0
    total_results: int = 0
    average_score: float = 0.0
    total_time_spent: float = 0.0


class User(BaseModel):
    uid: str                                     # auth provider id
    email: str
    first_name: str = Field(default="", max_length=50)
    last_name: str = Field(default="", max_length=50)
    avatar: Optional[str] = None
    settings: UserSettings = Field(default_factory=UserSettings)
    stats: UserStats = Field(default_factory=UserStats)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
