"""
Shared fixtures. The environment is pinned before any project module reads it.
"""
import os

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["GEMINI_API_KEY"] = ""
os.environ["SCHEDULE_CHECKER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_UIDS"] = ""

from datetime import timedelta  # noqa: E402
from typing import Any, Dict, List  # noqa: E402

import pytest  # noqa: E402

from db.memory import MemoryRepository  # noqa: E402
from engine.adapter import GeminiAdapter  # noqa: E402
from models.base import utcnow  # noqa: E402
from service.registry import build_services  # noqa: E402


def quiz_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Finance Basics",
        "description": "Core finance terms",
        "subject": "Finance & Accounting",
        "questions": [
            {
                "id": "q1",
                "text": "What does ROI stand for?",
                "type": "multiple-choice",
                "options": ["Return on Investment", "Rate of Interest", "Risk of Inflation", "Revenue over Income"],
                "correct_answer": "Return on Investment",
                "points": 2,
            },
            {
                "id": "q2",
                "text": "Assets equal liabilities plus equity.",
                "type": "true-false",
                "options": ["True", "False"],
                "correct_answer": "True",
                "points": 1,
            },
            {
                "id": "q3",
                "text": "Name the statement that lists revenues and expenses.",
                "type": "short-answer",
                "correct_answer": "Income Statement",
                "points": 1,
            },
        ],
        "is_published": True,
    }
    payload.update(overrides)
    return payload


def live_quiz_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Friday Business Blitz",
        "description": "Weekly live quiz",
        "category": "General Business",
        "questions": [
            {"id": "l1", "text": "2 + 2?", "options": ["3", "4", "5"], "correctAnswer": "4"},
            {"id": "l2", "text": "Capital of France?", "options": ["Paris", "Rome"], "correctAnswer": "Paris"},
        ],
        "scheduled_at": (utcnow() + timedelta(hours=1)).isoformat(),
        "duration": 30,
        "max_participants": 3,
    }
    payload.update(overrides)
    return payload


def live_questions() -> List[Dict[str, Any]]:
    return live_quiz_payload()["questions"]


@pytest.fixture
def repo() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def services(repo):
    return build_services(repo, adapter=GeminiAdapter(api_key=""))
