"""
Pydantic models for the HTTP API.

Quiz and live-quiz bodies are taken as plain dicts and validated by the
service layer; everything else is declared here.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from models.result import DeviceType
from models.team import InvitationRole, InvitationType, SharePermission, TeamRole
from models.user import Theme


# ---- Envelope ----

class Envelope(BaseModel):
    success: bool = True
    data: Any = None
    message: Optional[str] = None


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "message": message}


# ---- Results ----

class AnswerIn(BaseModel):
    question_id: str = Field(validation_alias=AliasChoices("question_id", "questionId"))
    user_answer: Union[str, List[str]] = Field(validation_alias=AliasChoices("user_answer", "userAnswer"))
    time_spent: float = Field(default=0, ge=0, validation_alias=AliasChoices("time_spent", "timeSpent"))


class MetadataIn(BaseModel):
    user_agent: str = ""
    ip_address: Optional[str] = None
    device_type: DeviceType = DeviceType.DESKTOP


class ResultSubmitRequest(BaseModel):
    quiz_id: str = Field(validation_alias=AliasChoices("quiz_id", "quizId"))
    answers: List[AnswerIn]
    time_taken: float = Field(ge=0, validation_alias=AliasChoices("time_taken", "timeTaken"))
    started_at: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("started_at", "startedAt"))
    feedback: Optional[str] = Field(default=None, max_length=1000)
    metadata: Optional[MetadataIn] = None


# ---- Profile ----

class SettingsIn(BaseModel):
    theme: Optional[Theme] = None
    notifications: Optional[bool] = None
    timezone: Optional[str] = None
    language: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)   # first name shorthand
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = None
    avatar: Optional[str] = None
    settings: Optional[SettingsIn] = None


# ---- Leaderboards ----

class LeaderboardSubmitRequest(BaseModel):
    score: float = Field(ge=0, le=100)
    user_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("user_name", "userName"))


# ---- Live quizzes ----

class RegisterRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)


class LiveAnswerRequest(BaseModel):
    question_id: str = Field(validation_alias=AliasChoices("question_id", "questionId"))
    selected_answer: str = Field(validation_alias=AliasChoices("selected_answer", "selectedAnswer"))
    time_taken: float = Field(default=0, ge=0, validation_alias=AliasChoices("time_taken", "timeTaken"))


class CurrentQuestionRequest(BaseModel):
    index: int = Field(ge=0)


# ---- AI ----

class PdfToQuizRequest(BaseModel):
    pdf_text: str = Field(min_length=1, validation_alias=AliasChoices("pdf_text", "pdfText"))
    title: str = "Generated Quiz"
    question_count: int = Field(default=10, ge=1, le=50, validation_alias=AliasChoices("question_count", "questionCount"))


class AnalyzeRequest(BaseModel):
    answers: str


class QuestionIn(BaseModel):
    id: str
    text: str = Field(min_length=1)
    options: List[str] = Field(default_factory=list)


class QuestionAnalyzeRequest(BaseModel):
    questions: List[QuestionIn] = Field(min_length=1)
    include_suggestions: bool = False


class ChatFileIn(BaseModel):
    name: str
    type: str = ""


class ChatRequest(BaseModel):
    message: str = Field(default="", max_length=10000)
    model: str = "auto"
    files: List[ChatFileIn] = Field(default_factory=list)


# ---- Teams & sharing ----

class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)


class TeamMemberRequest(BaseModel):
    user_id: str = Field(min_length=1, validation_alias=AliasChoices("user_id", "userId"))
    role: TeamRole = TeamRole.MEMBER
    display_name: str = Field(default="", validation_alias=AliasChoices("display_name", "displayName"))
    email: str = ""


class ShareQuizRequest(BaseModel):
    shared_with: List[str] = Field(min_length=1, validation_alias=AliasChoices("shared_with", "sharedWith"))
    permissions: SharePermission = SharePermission.VIEW
    message: Optional[str] = Field(default=None, max_length=500)
    expires_at: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("expires_at", "expiresAt"))


class InvitationRequest(BaseModel):
    type: InvitationType
    target_id: str = Field(min_length=1, validation_alias=AliasChoices("target_id", "targetId"))
    to_user_id: str = Field(min_length=1, validation_alias=AliasChoices("to_user_id", "toUserId"))
    role: InvitationRole = InvitationRole.MEMBER
    message: Optional[str] = Field(default=None, max_length=500)
