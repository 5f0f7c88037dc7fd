"""
Schedule checker: starts published quizzes when their window opens and
completes them when it closes.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from errors import QuizServiceError
from models.base import as_utc, utcnow
from models.live_quiz import LiveQuizStatus
from service.live_quiz import LiveQuizService

logger = logging.getLogger(__name__)


async def check_scheduled_quizzes(service: LiveQuizService, now: Optional[datetime] = None) -> List[str]:
    """One tick. Returns "<quiz id>:<new status>" for every transition made."""
    now = now or utcnow()
    changes: List[str] = []
    for quiz in await service.get_scheduled_quizzes():
        start = as_utc(quiz.scheduled_at)
        end = quiz.ends_at
        try:
            if quiz.status == LiveQuizStatus.PUBLISHED and start <= now < end:
                await service.start_quiz(quiz.id)
                logger.info("Auto-started live quiz: %s (%s)", quiz.title, quiz.id)
                changes.append(f"{quiz.id}:{LiveQuizStatus.LIVE.value}")
            elif now >= end:
                await service.complete_quiz(quiz.id)
                logger.info("Auto-completed live quiz: %s (%s)", quiz.title, quiz.id)
                changes.append(f"{quiz.id}:{LiveQuizStatus.COMPLETED.value}")
        except QuizServiceError as e:
            logger.warning("Schedule check skipped quiz %s: %s", quiz.id, e)
        except Exception:
            logger.exception("Schedule check failed for quiz %s", quiz.id)
    return changes


class ScheduleChecker:
    def __init__(self, service: LiveQuizService, interval_seconds: float = 30) -> None:
        self._service = service
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = asyncio.create_task(self._run())
        logger.info("Schedule checker started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Schedule checker stopped")

    async def _run(self) -> None:
        while True:
            try:
                await check_scheduled_quizzes(self._service)
            except Exception:
                logger.exception("Schedule check tick failed")
            await asyncio.sleep(self._interval)
