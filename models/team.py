"""
Team collaboration records: teams, quiz shares and invitations.

A quiz share grants the listed users access to someone else's quiz; an
invitation is a pending offer to join a team or a quiz's collaborators and
lapses after INVITATION_TTL.
"""
from __future__ import annotations
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.base import as_utc, utcnow

INVITATION_TTL = timedelta(days=7)


class TeamRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class SharePermission(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


class InvitationType(str, Enum):
    TEAM = "team"
    QUIZ = "quiz"


class InvitationRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class TeamMember(BaseModel):
    user_id: str
    role: TeamRole = TeamRole.MEMBER
    display_name: str = ""
    email: str = ""
    joined_at: datetime = Field(default_factory=utcnow)


class Team(BaseModel):
    id: str
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    owner_id: str
    members: List[TeamMember] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_member(self, user_id: str) -> Optional[TeamMember]:
        return next((m for m in self.members if m.user_id == user_id), None)

    def can_manage(self, user_id: str) -> bool:
        member = self.find_member(user_id)
        return member is not None and member.role in (TeamRole.OWNER, TeamRole.ADMIN)

    @property
    def member_ids(self) -> List[str]:
        return [m.user_id for m in self.members]


class QuizShare(BaseModel):
    id: str
    quiz_id: str
    shared_by: str
    shared_with: List[str] = Field(min_length=1)
    permissions: SharePermission = SharePermission.VIEW
    message: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return True
        return as_utc(self.expires_at) > as_utc(now or utcnow())


class CollaborationInvitation(BaseModel):
    id: str
    type: InvitationType
    target_id: str
    from_user_id: str
    to_user_id: str
    role: InvitationRole = InvitationRole.MEMBER
    message: Optional[str] = Field(default=None, max_length=500)
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(default_factory=lambda: utcnow() + INVITATION_TTL)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return as_utc(self.expires_at) <= as_utc(now or utcnow())


# Access a user holds on a quiz: "owner", a share permission, or None.
def resolve_quiz_access(
    created_by: str, shares: List[QuizShare], user_id: str, now: Optional[datetime] = None
) -> Optional[str]:
    if created_by == user_id:
        return "owner"
    for share in shares:
        if user_id in share.shared_with and share.is_active(now):
            return share.permissions.value
    return None
