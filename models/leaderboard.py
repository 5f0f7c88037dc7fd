from __future__ import annotations
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from models.base import utcnow


class LeaderboardEntry(BaseModel):
    user_id: str
    user_name: str
    score: float
    timestamp: datetime = Field(default_factory=utcnow)
    rank: int = 0


class QuizLeaderboard(BaseModel):
    quiz_id: str
    scores: List[LeaderboardEntry] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)
