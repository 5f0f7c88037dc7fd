"""
analytics.py

Dashboard analytics for one user, computed with pandas over their results.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from db.base import Repository
from errors import NotFoundError
from models.result import Result

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
SUBJECT_LIMIT = 5
MONTH_LIMIT = 6
NO_DATA = "No data"


def improvement_rate(scores: List[float]) -> float:
    """
    Percentage gain of the mean of the later half of `scores` over the earlier half.

    `scores` must be in chronological order. Returns 0 when there are fewer than
    two scores or the later half is not better.
    """
    if len(scores) < 2:
        return 0.0
    mid = len(scores) // 2
    first = sum(scores[:mid]) / mid
    second = sum(scores[mid:]) / (len(scores) - mid)
    if second <= first or first == 0:
        return 0.0
    return round((second - first) / first * 100, 2)


def improvement_trend(rate: float) -> str:
    if rate > 0:
        return "Improving"
    if rate < 0:
        return "Declining"
    return "Stable"


def _results_frame(results: List[Result], subjects: Dict[str, Optional[str]]) -> pd.DataFrame:
    rows = [
        {
            "score": r.score,
            "time_taken": r.time_taken,
            "completed_at": pd.Timestamp(r.completed_at),
            "subject": r.quiz_subject or subjects.get(r.quiz_id),
        }
        for r in results
    ]
    df = pd.DataFrame(rows, columns=["score", "time_taken", "completed_at", "subject"])
    if not df.empty:
        df["completed_at"] = pd.to_datetime(df["completed_at"], utc=True)
    return df


def _performance(df: pd.DataFrame) -> Dict[str, float]:
    if df.empty:
        return {
            "total_attempts": 0,
            "average_score": 0,
            "best_score": 0,
            "total_time_spent": 0,
            "average_time_per_quiz": 0,
        }
    return {
        "total_attempts": int(len(df)),
        "average_score": float(df["score"].mean()),
        "best_score": int(df["score"].max()),
        "total_time_spent": float(df["time_taken"].sum()),
        "average_time_per_quiz": float(df["time_taken"].mean()),
    }


def _subject_performance(df: pd.DataFrame) -> List[Dict[str, Any]]:
    known = df.dropna(subset=["subject"]) if not df.empty else df
    if known.empty:
        return []
    grouped = (
        known.groupby("subject")["score"]
        .agg(attempts="count", average_score="mean", best_score="max")
        .reset_index()
        .sort_values(["attempts", "subject"], ascending=[False, True])
        .head(SUBJECT_LIMIT)
    )
    return [
        {
            "subject": row.subject,
            "attempts": int(row.attempts),
            "average_score": round(float(row.average_score), 2),
            "best_score": int(row.best_score),
        }
        for row in grouped.itertuples(index=False)
    ]


def _monthly_activity(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Newest month first, at most MONTH_LIMIT months with activity."""
    if df.empty:
        return []
    months = df["completed_at"].dt.strftime("%Y-%m")
    grouped = (
        df.assign(month=months)
        .groupby("month")["score"]
        .agg(attempts="count", average_score="mean")
        .reset_index()
        .sort_values("month", ascending=False)
        .head(MONTH_LIMIT)
    )
    return [
        {"month": row.month, "attempts": int(row.attempts), "average_score": round(float(row.average_score), 2)}
        for row in grouped.itertuples(index=False)
    ]


def _most_active_month(monthly: List[Dict[str, Any]]) -> str:
    if not monthly:
        return NO_DATA
    # monthly is newest first, so max() keeps the most recent month on ties
    return max(monthly, key=lambda m: m["attempts"])["month"]


class AnalyticsService:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    async def dashboard(self, user_id: str) -> Dict[str, Any]:
        user = await self._repo.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        results = await self._repo.list_results(user_id=user_id)
        recent_quizzes = await self._repo.list_quizzes(user_id, limit=RECENT_LIMIT)

        subjects: Dict[str, Optional[str]] = {}
        for quiz_id in {r.quiz_id for r in results if not r.quiz_subject}:
            quiz = await self._repo.get_quiz(quiz_id)
            subjects[quiz_id] = quiz.subject if quiz else None

        df = _results_frame(results, subjects)
        chronological = df.sort_values("completed_at")["score"].tolist() if not df.empty else []
        rate = improvement_rate(chronological)
        subject_perf = _subject_performance(df)
        monthly = _monthly_activity(df)

        logger.debug("Dashboard for %s built from %d results", user_id, len(results))
        return {
            "user": {
                "id": user.uid,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "full_name": user.full_name,
                "stats": user.stats.model_dump(),
            },
            "overview": {
                "total_quizzes": user.stats.total_quizzes,
                "total_results": user.stats.total_results,
                "average_score": user.stats.average_score,
                "total_time_spent": user.stats.total_time_spent,
                "improvement_rate": rate,
            },
            "performance": _performance(df),
            "recent_quizzes": [
                {
                    "id": q.id,
                    "title": q.title,
                    "subject": q.subject,
                    "created_at": q.created_at.isoformat(),
                    "stats": q.stats.model_dump(),
                }
                for q in recent_quizzes
            ],
            "recent_results": [r.model_dump(mode="json") for r in results[:RECENT_LIMIT]],
            "subject_performance": subject_perf,
            "monthly_activity": monthly,
            "insights": {
                "top_subject": subject_perf[0]["subject"] if subject_perf else NO_DATA,
                "most_active_month": _most_active_month(monthly),
                "improvement_trend": improvement_trend(rate),
            },
        }
