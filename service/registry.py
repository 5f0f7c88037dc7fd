"""
Wires the services to one repository; main.py builds this once per app.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from config import Settings, settings as default_settings
from db.base import Repository
from engine.adapter import GeminiAdapter
from service.analytics import AnalyticsService
from service.answer_analysis import AnswerAnalysisService
from service.chat import ChatService
from service.leaderboard import LeaderboardService
from service.live_quiz import LiveQuizService
from service.pdf_quiz import PdfQuizService
from service.quizzes import QuizService
from service.rate_limit import RateLimiter
from service.results import ResultService
from service.scheduler import ScheduleChecker
from service.teams import TeamService


@dataclass
class Services:
    repo: Repository
    quizzes: QuizService
    results: ResultService
    leaderboards: LeaderboardService
    live_quizzes: LiveQuizService
    analytics: AnalyticsService
    pdf_quiz: PdfQuizService
    answer_analysis: AnswerAnalysisService
    teams: TeamService
    chat: ChatService
    rate_limiter: RateLimiter
    scheduler: ScheduleChecker
    adapter: GeminiAdapter
    cfg: Settings


def build_services(
    repo: Repository,
    cfg: Optional[Settings] = None,
    adapter: Optional[GeminiAdapter] = None,
) -> Services:
    cfg = cfg or default_settings
    adapter = adapter or GeminiAdapter(
        api_key=cfg.gemini_api_key,
        api_url=cfg.gemini_api_url,
        model=cfg.gemini_model,
        timeout=cfg.ai_timeout_seconds,
    )
    live = LiveQuizService(
        repo,
        public_app_url=cfg.public_app_url,
        global_leaderboard_size=cfg.global_leaderboard_size,
        max_retries=cfg.live_quiz_max_retries,
    )
    return Services(
        repo=repo,
        quizzes=QuizService(repo),
        results=ResultService(repo),
        leaderboards=LeaderboardService(repo, size=cfg.leaderboard_size),
        live_quizzes=live,
        analytics=AnalyticsService(repo),
        pdf_quiz=PdfQuizService(adapter),
        answer_analysis=AnswerAnalysisService(adapter),
        teams=TeamService(repo),
        chat=ChatService(adapter),
        rate_limiter=RateLimiter(cfg.rate_limit_max, cfg.rate_limit_window_seconds),
        scheduler=ScheduleChecker(live, interval_seconds=cfg.schedule_poll_seconds),
        adapter=adapter,
        cfg=cfg,
    )
