"""
FastAPI routes, mounted under /api.

Every JSON response uses the envelope {success, data, message}. Domain
errors from the service layer are mapped to status codes by _raise_http.
"""
from __future__ import annotations
import logging
from dataclasses import asdict
from datetime import timedelta
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile

from auth import Principal, get_current_user, require_admin
from errors import (
    AIConfigurationError,
    ConcurrentUpdateError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    QuizServiceError,
    QuizValidationError,
    RegistrationError,
)
from importers.question_bank import DatasetLoadError, DatasetValidationError, export_quiz, load_question_bank, remove_duplicates
from models.base import utcnow
from models.result import ResultMetadata
from models.user import User
from schemas import (
    AnalyzeRequest,
    ChatRequest,
    CurrentQuestionRequest,
    InvitationRequest,
    LeaderboardSubmitRequest,
    LiveAnswerRequest,
    PdfToQuizRequest,
    ProfileUpdateRequest,
    QuestionAnalyzeRequest,
    RegisterRequest,
    ResultSubmitRequest,
    ShareQuizRequest,
    TeamCreateRequest,
    TeamMemberRequest,
    ok,
)
from service.analyzer import QuestionInput, analyze_quiz, generate_improvement_suggestions
from service.chat import ChatAttachment
from service.leaderboard import get_user_rank, would_make_top
from service.registry import Services
from service.results import SubmittedAnswer

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_CODES = (
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (RegistrationError, 409),
    (ConcurrentUpdateError, 409),
    (QuizValidationError, 400),
    (InvalidTransitionError, 400),
    (AIConfigurationError, 503),
)


def _raise_http(e: Exception) -> NoReturn:
    for exc_type, status in _STATUS_CODES:
        if isinstance(e, exc_type):
            raise HTTPException(status_code=status, detail=str(e)) from e
    if isinstance(e, (QuizServiceError, ValueError)):
        raise HTTPException(status_code=400, detail=str(e)) from e
    raise e


def get_services(request: Request) -> Services:
    return request.app.state.services


def _check_rate_limit(services: Services, user: Principal) -> None:
    if not services.cfg.rate_limit_enabled:
        return
    if not services.rate_limiter.check(user.uid):
        retry_after = services.rate_limiter.retry_after(user.uid)
        raise HTTPException(
            status_code=429,
            detail={
                "message": f"You have exceeded the limit of {services.rate_limiter.max_requests} requests per hour. Please try again later.",
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json")


# ---- Health ----

@router.get("/health")
async def health(services: Services = Depends(get_services)) -> Dict[str, Any]:
    cfg = services.cfg
    return ok({"status": "healthy", "service": cfg.service_name, "version": cfg.version,
               "timestamp": utcnow().isoformat()})


# ---- Quizzes ----

@router.get("/quizzes")
async def list_quizzes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    published: Optional[bool] = None,
    subject: Optional[str] = None,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    quizzes, pager = await services.quizzes.list_quizzes(user.uid, page, limit, published, subject)
    return ok({"quizzes": [_dump(q) for q in quizzes], "pagination": pager.as_dict()})


@router.post("/quizzes", status_code=201)
async def create_quiz(
    body: Dict[str, Any] = Body(...),
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        quiz = await services.quizzes.create_quiz(user.uid, body)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz), "Quiz created successfully")


@router.post("/quizzes/import", status_code=201)
async def import_quiz(
    body: Dict[str, Any] = Body(...),
    time_limit: int = Query(60, ge=1, le=480),
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        quiz = await services.quizzes.import_quiz(user.uid, body, time_limit=time_limit)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz), "Quiz imported successfully")


@router.get("/quizzes/{quiz_id}")
async def get_quiz(
    quiz_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    try:
        quiz = await services.quizzes.get_quiz(quiz_id, user.uid)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz))


@router.put("/quizzes/{quiz_id}")
async def update_quiz(
    quiz_id: str,
    body: Dict[str, Any] = Body(...),
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        quiz = await services.quizzes.update_quiz(quiz_id, user.uid, body)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz), "Quiz updated successfully")


@router.delete("/quizzes/{quiz_id}")
async def delete_quiz(
    quiz_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    try:
        await services.quizzes.delete_quiz(quiz_id, user.uid)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(None, "Quiz deleted successfully")


@router.get("/quizzes/{quiz_id}/stats")
async def quiz_stats(
    quiz_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    try:
        await services.quizzes.get_quiz(quiz_id, user.uid)
    except QuizServiceError as e:
        _raise_http(e)
    stats = await services.results.quiz_stats(quiz_id)
    return ok(asdict(stats))


@router.get("/quizzes/{quiz_id}/export")
async def export(
    quiz_id: str,
    format: str = Query("json"),
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Response:
    try:
        quiz = await services.quizzes.get_quiz(quiz_id, user.uid)
        body, media_type = export_quiz(quiz, format)
    except (QuizServiceError, ValueError) as e:
        _raise_http(e)
    extension = {"text/csv": "csv", "application/json": "json", "text/markdown": "md"}[media_type]
    headers = {"Content-Disposition": f'attachment; filename="quiz-{quiz.id}.{extension}"'}
    return Response(content=body, media_type=media_type, headers=headers)


# ---- Results ----

@router.get("/results")
async def list_results(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    quiz_id: Optional[str] = Query(None, alias="quizId"),
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    results, pager = await services.results.list_results(user.uid, page, limit, quiz_id)
    return ok({"results": [_dump(r) for r in results], "pagination": pager.as_dict()})


@router.post("/results", status_code=201)
async def submit_result(
    payload: ResultSubmitRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    started_at = payload.started_at or utcnow() - timedelta(seconds=payload.time_taken)
    metadata = ResultMetadata(**payload.metadata.model_dump()) if payload.metadata else None
    answers = [SubmittedAnswer(a.question_id, a.user_answer, a.time_spent) for a in payload.answers]
    try:
        result = await services.results.submit(
            user.uid, payload.quiz_id, answers, payload.time_taken, started_at, payload.feedback, metadata
        )
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(result), "Result submitted successfully")


# ---- Analytics & profile ----

@router.get("/analytics/dashboard")
async def analytics_dashboard(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    try:
        data = await services.analytics.dashboard(user.uid)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(data, "Dashboard analytics retrieved successfully")


@router.get("/user/profile")
async def get_profile(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    profile = await services.repo.get_user(user.uid)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok(_dump(profile))


@router.put("/user/profile")
async def update_profile(
    payload: ProfileUpdateRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    profile = await services.repo.get_user(user.uid)
    if profile is None:
        email = payload.email or user.email
        if not email:
            raise HTTPException(status_code=400, detail="Email is required")
        profile = User(uid=user.uid, email=email)

    first_name = payload.first_name if payload.first_name is not None else payload.name
    if first_name is not None:
        profile.first_name = first_name
    if payload.last_name is not None:
        profile.last_name = payload.last_name
    if payload.avatar is not None:
        profile.avatar = payload.avatar
    if payload.settings is not None:
        profile.settings = profile.settings.model_copy(update=payload.settings.model_dump(exclude_none=True))
    profile.updated_at = utcnow()

    saved = await services.repo.save_user(profile)
    logger.info("Profile updated for %s", user.uid)
    return ok(_dump(saved), "Profile updated successfully")


# ---- Leaderboards ----

@router.get("/leaderboards/{quiz_id}")
async def get_leaderboard(
    quiz_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    board = await services.leaderboards.get_leaderboard(quiz_id)
    return ok({
        "leaderboard": _dump(board) if board else None,
        "user_rank": get_user_rank(board, user.uid),
    })


@router.post("/leaderboards/{quiz_id}")
async def submit_leaderboard_score(
    quiz_id: str,
    payload: LeaderboardSubmitRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    current = await services.leaderboards.get_leaderboard(quiz_id)
    if not would_make_top(current, payload.score, services.leaderboards.size):
        return ok({"leaderboard": _dump(current), "user_rank": get_user_rank(current, user.uid)},
                  "Score did not make the leaderboard")
    board = await services.leaderboards.update_leaderboard(
        quiz_id, user.uid, payload.user_name or user.display_name, payload.score
    )
    return ok({"leaderboard": _dump(board), "user_rank": get_user_rank(board, user.uid)}, "Leaderboard updated")


# ---- Live quizzes ----
# Fixed paths are declared before /live-quizzes/{quiz_id}.

@router.get("/live-quizzes")
async def list_live_quizzes(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return ok([_dump(q) for q in await services.live_quizzes.get_all_live_quizzes()])


@router.post("/live-quizzes", status_code=201)
async def create_live_quiz(
    body: Dict[str, Any] = Body(...),
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        quiz = await services.live_quizzes.create_live_quiz(body, admin.uid)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz), "Live quiz created successfully")


@router.get("/live-quizzes/upcoming")
async def upcoming_live_quizzes(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return ok([_dump(q) for q in await services.live_quizzes.get_upcoming_quizzes()])


@router.get("/live-quizzes/live")
async def running_live_quizzes(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return ok([_dump(q) for q in await services.live_quizzes.get_live_quizzes()])


@router.get("/live-quizzes/stats")
async def live_quiz_stats(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return ok(_dump(await services.live_quizzes.get_live_quiz_stats()))


@router.get("/live-quizzes/leaderboard")
async def global_leaderboard(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return ok([_dump(e) for e in await services.live_quizzes.get_global_leaderboard()])


@router.get("/live-quizzes/results")
async def live_quiz_results(
    all_results: bool = Query(False, alias="all"),
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    if all_results:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Access denied")
        results = await services.live_quizzes.get_all_completed_quizzes()
    else:
        results = await services.live_quizzes.get_user_results(user.uid)
    return ok([_dump(r) for r in results])


@router.get("/live-quizzes/dashboard")
async def live_quiz_dashboard(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return ok(_dump(await services.live_quizzes.get_user_dashboard(user.uid, user.display_name)))


@router.get("/live-quizzes/{quiz_id}")
async def get_live_quiz(
    quiz_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    try:
        quiz = await services.live_quizzes.require_live_quiz(quiz_id)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz))


@router.post("/live-quizzes/{quiz_id}/register")
async def register_for_live_quiz(
    quiz_id: str,
    payload: Optional[RegisterRequest] = None,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    name = (payload.name if payload and payload.name else None) or user.display_name
    try:
        quiz = await services.live_quizzes.register_participant(quiz_id, user.uid, name)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz), "Registered successfully")


@router.post("/live-quizzes/{quiz_id}/answers")
async def submit_live_answer(
    quiz_id: str,
    payload: LiveAnswerRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        participant = await services.live_quizzes.submit_answer(
            quiz_id, user.uid, payload.question_id, payload.selected_answer, payload.time_taken
        )
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(participant), "Answer submitted")


_ACTIONS = {
    "publish": "publish_quiz",
    "start": "start_quiz",
    "pause": "pause_quiz",
    "resume": "resume_quiz",
    "stop": "stop_quiz",
    "complete": "complete_quiz",
}


@router.post("/live-quizzes/{quiz_id}/{action}")
async def live_quiz_action(
    quiz_id: str,
    action: str,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    if action not in _ACTIONS:
        raise HTTPException(status_code=404, detail="Not Found")
    try:
        quiz = await getattr(services.live_quizzes, _ACTIONS[action])(quiz_id)
    except QuizServiceError as e:
        _raise_http(e)
    logger.info("Live quiz %s: %s by %s", quiz_id, action, admin.uid)
    return ok(_dump(quiz), f"Quiz status is now {quiz.status.value}")


@router.put("/live-quizzes/{quiz_id}/current-question")
async def set_current_question(
    quiz_id: str,
    payload: CurrentQuestionRequest,
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        quiz = await services.live_quizzes.set_current_question(quiz_id, payload.index)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(quiz))


# ---- AI ----

@router.post("/pdf-to-quiz")
async def pdf_to_quiz(
    payload: PdfToQuizRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    _check_rate_limit(services, user)
    try:
        template = await services.pdf_quiz.convert(payload.pdf_text, payload.title, payload.question_count)
    except (QuizServiceError, ValueError) as e:
        _raise_http(e)
    return ok(template.to_dict(), "Quiz template generated successfully")


@router.get("/pdf-to-quiz")
async def pdf_to_quiz_info(services: Services = Depends(get_services)) -> Dict[str, Any]:
    method = "AI generation with template fallback" if services.adapter.configured else "Template-based conversion"
    return ok({"status": "healthy", "service": "PDF to Quiz Converter", "method": method,
               "timestamp": utcnow().isoformat()})


@router.post("/analyze")
async def analyze_answers(
    payload: AnalyzeRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    _check_rate_limit(services, user)
    try:
        analysis = await services.answer_analysis.analyze(payload.answers)
    except (QuizServiceError, ValueError) as e:
        _raise_http(e)
    return ok(analysis.to_dict())


@router.get("/analyze")
async def analyze_info(services: Services = Depends(get_services)) -> Dict[str, Any]:
    cfg = services.cfg
    return ok({
        "status": "healthy",
        "service": "Quiz Analysis API",
        "model": cfg.gemini_model if services.adapter.configured else "local",
        "rate_limit": f"{cfg.rate_limit_max}/{cfg.rate_limit_window_seconds}s" if cfg.rate_limit_enabled else "disabled",
        "timestamp": utcnow().isoformat(),
    })


@router.post("/questions/analyze")
async def analyze_questions(
    payload: QuestionAnalyzeRequest, user: Principal = Depends(get_current_user)
) -> Dict[str, Any]:
    questions = [QuestionInput(id=q.id, text=q.text, options=q.options) for q in payload.questions]
    data = asdict(analyze_quiz(questions))
    if payload.include_suggestions:
        data["improvements"] = {q.id: generate_improvement_suggestions(q) for q in questions}
    return ok(data)


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    _check_rate_limit(services, user)
    files = [ChatAttachment(name=f.name, type=f.type) for f in payload.files]
    try:
        reply = await services.chat.reply(payload.message, payload.model, files)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(reply.to_dict())


@router.get("/chat")
async def chat_info(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return ok({"message": "Chat API is running", "available_models": services.chat.available_models,
               "timestamp": utcnow().isoformat()})


# ---- Teams & sharing ----

@router.get("/teams")
async def list_teams(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    teams = await services.teams.get_user_teams(user.uid)
    return ok([_dump(t) for t in teams])


@router.post("/teams", status_code=201)
async def create_team(
    payload: TeamCreateRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        team = await services.teams.create_team(
            user.uid, payload.name, payload.description, display_name=user.display_name, email=user.email
        )
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(team), "Team created successfully")


@router.get("/teams/{team_id}")
async def get_team(
    team_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    try:
        team = await services.teams.get_team(team_id, user.uid)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(team))


@router.post("/teams/{team_id}/members", status_code=201)
async def add_team_member(
    team_id: str,
    payload: TeamMemberRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        team = await services.teams.add_member(
            team_id, user.uid, payload.user_id, payload.role, payload.display_name, payload.email
        )
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(team), "Team member added successfully")


@router.delete("/teams/{team_id}/members/{member_id}")
async def remove_team_member(
    team_id: str,
    member_id: str,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        team = await services.teams.remove_member(team_id, user.uid, member_id)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(team), "Team member removed successfully")


@router.post("/quizzes/{quiz_id}/share", status_code=201)
async def share_quiz(
    quiz_id: str,
    payload: ShareQuizRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        share = await services.teams.share_quiz(
            quiz_id, user.uid, payload.shared_with, payload.permissions, payload.message, payload.expires_at
        )
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(share), "Quiz shared successfully")


@router.get("/quizzes/{quiz_id}/access")
async def quiz_access(
    quiz_id: str, user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    access = await services.teams.check_quiz_access(quiz_id, user.uid)
    return ok(access.to_dict())


@router.get("/shared-quizzes")
async def shared_quizzes(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    shares = await services.teams.get_shared_quizzes(user.uid)
    return ok([_dump(s) for s in shares])


@router.get("/invitations")
async def list_invitations(
    user: Principal = Depends(get_current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    invitations = await services.teams.get_user_invitations(user.uid)
    return ok([_dump(i) for i in invitations])


@router.post("/invitations", status_code=201)
async def send_invitation(
    payload: InvitationRequest,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    try:
        invitation = await services.teams.send_invitation(
            user.uid, payload.type, payload.target_id, payload.to_user_id, payload.role, payload.message
        )
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(invitation), "Invitation sent successfully")


@router.post("/invitations/{invitation_id}/{action}")
async def answer_invitation(
    invitation_id: str,
    action: str,
    user: Principal = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    if action not in ("accept", "decline"):
        raise HTTPException(status_code=404, detail="Not Found")
    try:
        if action == "accept":
            invitation = await services.teams.accept_invitation(
                invitation_id, user.uid, display_name=user.display_name, email=user.email
            )
        else:
            invitation = await services.teams.decline_invitation(invitation_id, user.uid)
    except QuizServiceError as e:
        _raise_http(e)
    return ok(_dump(invitation), f"Invitation {invitation.status.value}")


# ---- Admin ----

@router.get("/admin/verify")
async def admin_verify(admin: Principal = Depends(require_admin)) -> Dict[str, Any]:
    return ok({"uid": admin.uid, "email": admin.email, "display_name": admin.display_name})


@router.post("/bank/import")
async def import_question_bank(
    files: List[UploadFile] = File(...),
    title: Optional[str] = Form(None),
    subject: str = Form("General"),
    description: Optional[str] = Form(None),
    skip_invalid: bool = Form(False),
    admin: Principal = Depends(require_admin),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    banks = []
    skipped: Dict[str, List[int]] = {}
    for upload in files:
        raw = await upload.read()
        try:
            report = load_question_bank(raw, filename=upload.filename, skip_invalid=skip_invalid)
        except (DatasetLoadError, DatasetValidationError) as e:
            raise HTTPException(status_code=400, detail=f"{upload.filename}: {e}") from e
        banks.append(report.questions)
        if report.skipped_rows:
            skipped[upload.filename or ""] = report.skipped_rows

    questions, duplicates = remove_duplicates(banks)
    data: Dict[str, Any] = {
        "questions": [_dump(q) for q in questions],
        "skipped_rows": skipped,
        "duplicates": duplicates,
        "quiz": None,
    }
    if title and questions:
        try:
            quiz = await services.quizzes.create_quiz(admin.uid, {
                "title": title,
                "description": description or title,
                "subject": subject,
                "questions": [q.model_dump() for q in questions],
            })
        except QuizServiceError as e:
            _raise_http(e)
        data["quiz"] = _dump(quiz)
    return ok(data, f"Imported {len(questions)} questions")
