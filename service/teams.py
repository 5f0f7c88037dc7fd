"""
Team collaboration: teams and their members, quiz sharing, invitations.

Team owners and admins manage membership. A quiz can be shared by its owner
(or by anyone holding an admin share) with a list of users; shares may carry
an expiry. Invitations lapse after seven days and accepting one applies it:
a team invitation adds the member, a quiz invitation creates a share.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from db.base import Repository
from errors import ForbiddenError, NotFoundError, QuizValidationError, RegistrationError
from models.base import as_utc, new_id, utcnow
from models.team import (
    INVITATION_TTL,
    CollaborationInvitation,
    InvitationRole,
    InvitationStatus,
    InvitationType,
    QuizShare,
    SharePermission,
    Team,
    TeamMember,
    TeamRole,
    resolve_quiz_access,
)
from service.quizzes import validation_message

logger = logging.getLogger(__name__)

_SHARE_FOR_ROLE = {
    InvitationRole.VIEWER: SharePermission.VIEW,
    InvitationRole.MEMBER: SharePermission.EDIT,
    InvitationRole.ADMIN: SharePermission.ADMIN,
}

_TEAM_ROLE_FOR_ROLE = {
    InvitationRole.VIEWER: TeamRole.MEMBER,
    InvitationRole.MEMBER: TeamRole.MEMBER,
    InvitationRole.ADMIN: TeamRole.ADMIN,
}


@dataclass
class QuizAccess:
    has_access: bool
    permissions: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"has_access": self.has_access, "permissions": self.permissions}


class TeamService:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    # ---- Teams --------------------------------------------------------------

    async def create_team(
        self, owner_id: str, name: str, description: str = "", display_name: str = "", email: str = ""
    ) -> Team:
        try:
            team = Team(
                id=new_id(),
                name=name.strip(),
                description=description.strip(),
                owner_id=owner_id,
                members=[TeamMember(user_id=owner_id, role=TeamRole.OWNER, display_name=display_name, email=email)],
            )
        except ValidationError as e:
            raise QuizValidationError(validation_message(e)) from e
        await self._repo.create_team(team)
        logger.info("Team created: %s by %s", team.name, owner_id)
        return team

    async def get_team(self, team_id: str, user_id: str) -> Team:
        team = await self._require_team(team_id)
        if team.find_member(user_id) is None:
            raise ForbiddenError("Access denied")
        return team

    async def get_user_teams(self, user_id: str) -> List[Team]:
        return await self._repo.list_teams(user_id)

    async def add_member(
        self,
        team_id: str,
        actor_id: str,
        user_id: str,
        role: TeamRole = TeamRole.MEMBER,
        display_name: str = "",
        email: str = "",
    ) -> Team:
        team = await self._require_team(team_id)
        if not team.can_manage(actor_id):
            raise ForbiddenError("Only team owners and admins can add members")
        return await self._add_member(team, user_id, role, display_name, email)

    async def remove_member(self, team_id: str, actor_id: str, user_id: str) -> Team:
        """Managers remove anyone but the owner; members may remove themselves."""
        team = await self._require_team(team_id)
        member = team.find_member(user_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.role == TeamRole.OWNER:
            raise QuizValidationError("The team owner cannot be removed")
        if actor_id != user_id and not team.can_manage(actor_id):
            raise ForbiddenError("Only team owners and admins can remove members")
        team.members = [m for m in team.members if m.user_id != user_id]
        team.updated_at = utcnow()
        await self._repo.save_team(team)
        logger.info("Team %s: %s removed by %s", team.id, user_id, actor_id)
        return team

    # ---- Sharing ------------------------------------------------------------

    async def share_quiz(
        self,
        quiz_id: str,
        actor_id: str,
        shared_with: List[str],
        permissions: SharePermission = SharePermission.VIEW,
        message: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> QuizShare:
        await self._require_share_rights(quiz_id, actor_id)
        recipients = list(dict.fromkeys(uid for uid in shared_with if uid and uid != actor_id))
        if expires_at is not None and as_utc(expires_at) <= utcnow():
            raise QuizValidationError("Share expiry must be in the future")
        try:
            share = QuizShare(
                id=new_id(),
                quiz_id=quiz_id,
                shared_by=actor_id,
                shared_with=recipients,
                permissions=permissions,
                message=message,
                expires_at=expires_at,
            )
        except ValidationError as e:
            raise QuizValidationError(validation_message(e)) from e
        await self._repo.create_share(share)
        logger.info("Quiz %s shared by %s with %d user(s)", quiz_id, actor_id, len(recipients))
        return share

    async def get_shared_quizzes(self, user_id: str) -> List[QuizShare]:
        now = utcnow()
        return [s for s in await self._repo.list_shares(shared_with=user_id) if s.is_active(now)]

    async def check_quiz_access(self, quiz_id: str, user_id: str) -> QuizAccess:
        quiz = await self._repo.get_quiz(quiz_id)
        if quiz is None:
            return QuizAccess(has_access=False)
        shares = await self._repo.list_shares(quiz_id=quiz_id, shared_with=user_id)
        permissions = resolve_quiz_access(quiz.created_by, shares, user_id)
        return QuizAccess(has_access=permissions is not None, permissions=permissions)

    # ---- Invitations --------------------------------------------------------

    async def send_invitation(
        self,
        from_user_id: str,
        type: InvitationType,
        target_id: str,
        to_user_id: str,
        role: InvitationRole = InvitationRole.MEMBER,
        message: Optional[str] = None,
    ) -> CollaborationInvitation:
        if to_user_id == from_user_id:
            raise QuizValidationError("You cannot invite yourself")
        if type == InvitationType.TEAM:
            team = await self._require_team(target_id)
            if not team.can_manage(from_user_id):
                raise ForbiddenError("Only team owners and admins can invite members")
            if team.find_member(to_user_id) is not None:
                raise RegistrationError("User is already a team member")
        else:
            await self._require_share_rights(target_id, from_user_id)
        now = utcnow()
        try:
            invitation = CollaborationInvitation(
                id=new_id(),
                created_at=now,
                expires_at=now + INVITATION_TTL,
                type=type,
                target_id=target_id,
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                role=role,
                message=message,
            )
        except ValidationError as e:
            raise QuizValidationError(validation_message(e)) from e
        await self._repo.create_invitation(invitation)
        logger.info("Invitation %s sent: %s %s -> %s", invitation.id, type.value, target_id, to_user_id)
        return invitation

    async def get_user_invitations(self, user_id: str) -> List[CollaborationInvitation]:
        """Pending invitations that have not yet lapsed."""
        now = utcnow()
        pending = await self._repo.list_invitations(user_id, status=InvitationStatus.PENDING)
        return [i for i in pending if not i.is_expired(now)]

    async def accept_invitation(
        self, invitation_id: str, user_id: str, display_name: str = "", email: str = ""
    ) -> CollaborationInvitation:
        invitation = await self._open_invitation(invitation_id, user_id)
        if invitation.type == InvitationType.TEAM:
            team = await self._require_team(invitation.target_id)
            if team.find_member(user_id) is None:
                await self._add_member(team, user_id, _TEAM_ROLE_FOR_ROLE[invitation.role], display_name, email)
        else:
            if await self._repo.get_quiz(invitation.target_id) is None:
                raise NotFoundError("Quiz not found")
            await self._repo.create_share(QuizShare(
                id=new_id(),
                quiz_id=invitation.target_id,
                shared_by=invitation.from_user_id,
                shared_with=[user_id],
                permissions=_SHARE_FOR_ROLE[invitation.role],
                message=invitation.message,
            ))
        return await self._close_invitation(invitation, InvitationStatus.ACCEPTED)

    async def decline_invitation(self, invitation_id: str, user_id: str) -> CollaborationInvitation:
        invitation = await self._open_invitation(invitation_id, user_id)
        return await self._close_invitation(invitation, InvitationStatus.DECLINED)

    # ---- internals ----------------------------------------------------------

    async def _require_team(self, team_id: str) -> Team:
        team = await self._repo.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    async def _require_share_rights(self, quiz_id: str, user_id: str) -> None:
        access = await self.check_quiz_access(quiz_id, user_id)
        if access.permissions in ("owner", SharePermission.ADMIN.value):
            return
        if await self._repo.get_quiz(quiz_id) is None:
            raise NotFoundError("Quiz not found")
        raise ForbiddenError("Only the quiz owner can share it")

    async def _add_member(self, team: Team, user_id: str, role: TeamRole, display_name: str, email: str) -> Team:
        if role == TeamRole.OWNER:
            raise QuizValidationError("A team has exactly one owner")
        if team.find_member(user_id) is not None:
            raise RegistrationError("User is already a team member")
        team.members.append(TeamMember(user_id=user_id, role=role, display_name=display_name, email=email))
        team.updated_at = utcnow()
        await self._repo.save_team(team)
        logger.info("Team %s: %s joined as %s", team.id, user_id, role.value)
        return team

    async def _open_invitation(self, invitation_id: str, user_id: str) -> CollaborationInvitation:
        invitation = await self._repo.get_invitation(invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        if invitation.to_user_id != user_id:
            raise ForbiddenError("Access denied")
        if invitation.status != InvitationStatus.PENDING:
            raise QuizValidationError(f"Invitation already {invitation.status.value}")
        if invitation.is_expired():
            await self._close_invitation(invitation, InvitationStatus.EXPIRED)
            raise QuizValidationError("Invitation has expired")
        return invitation

    async def _close_invitation(
        self, invitation: CollaborationInvitation, status: InvitationStatus
    ) -> CollaborationInvitation:
        invitation.status = status
        invitation.updated_at = utcnow()
        await self._repo.save_invitation(invitation)
        logger.info("Invitation %s %s", invitation.id, status.value)
        return invitation
