"""
Tests for teams, quiz sharing, invitations and shared quiz access.
"""
from datetime import timedelta

import pytest

from conftest import quiz_payload
from errors import ForbiddenError, NotFoundError, QuizValidationError, RegistrationError
from models.base import utcnow
from models.team import (
    InvitationRole,
    InvitationStatus,
    InvitationType,
    QuizShare,
    SharePermission,
    TeamRole,
    resolve_quiz_access,
)
from service.quizzes import QuizService
from service.teams import TeamService


@pytest.fixture
def teams(repo):
    return TeamService(repo)


async def _private_quiz(repo, owner="author"):
    return await QuizService(repo).create_quiz(owner, quiz_payload(is_public=False))


class TestTeams:

    @pytest.mark.asyncio
    async def test_creator_is_owner(self, teams):
        team = await teams.create_team("u1", "  Finance Tutors ", "Weekly prep", display_name="Ann")
        assert team.name == "Finance Tutors"
        assert [(m.user_id, m.role) for m in team.members] == [("u1", TeamRole.OWNER)]
        assert [t.id for t in await teams.get_user_teams("u1")] == [team.id]
        assert await teams.get_user_teams("u2") == []

    @pytest.mark.asyncio
    async def test_blank_name(self, teams):
        with pytest.raises(QuizValidationError):
            await teams.create_team("u1", "   ")

    @pytest.mark.asyncio
    async def test_membership_rules(self, teams):
        team = await teams.create_team("u1", "Tutors")
        await teams.add_member(team.id, "u1", "u2", TeamRole.ADMIN)
        await teams.add_member(team.id, "u2", "u3")
        with pytest.raises(ForbiddenError):
            await teams.add_member(team.id, "u3", "u4")
        with pytest.raises(RegistrationError):
            await teams.add_member(team.id, "u1", "u3")
        with pytest.raises(QuizValidationError):
            await teams.add_member(team.id, "u1", "u5", TeamRole.OWNER)

        assert [t.id for t in await teams.get_user_teams("u3")] == [team.id]
        assert (await teams.get_team(team.id, "u3")).name == "Tutors"
        with pytest.raises(ForbiddenError):
            await teams.get_team(team.id, "stranger")

    @pytest.mark.asyncio
    async def test_remove_member(self, teams):
        team = await teams.create_team("u1", "Tutors")
        await teams.add_member(team.id, "u1", "u2")
        await teams.add_member(team.id, "u1", "u3")
        with pytest.raises(ForbiddenError):
            await teams.remove_member(team.id, "u2", "u3")
        left = await teams.remove_member(team.id, "u2", "u2")
        assert left.member_ids == ["u1", "u3"]
        with pytest.raises(QuizValidationError, match="owner"):
            await teams.remove_member(team.id, "u1", "u1")
        with pytest.raises(NotFoundError):
            await teams.remove_member(team.id, "u1", "ghost")
        with pytest.raises(NotFoundError):
            await teams.remove_member("nope", "u1", "u3")


class TestSharing:

    @pytest.mark.asyncio
    async def test_share_grants_read_access(self, teams, repo):
        quiz = await _private_quiz(repo)
        quizzes = QuizService(repo)
        with pytest.raises(ForbiddenError):
            await quizzes.get_quiz(quiz.id, "u2")

        share = await teams.share_quiz(quiz.id, "author", ["u2", "u2", "author"], message="Have a look")
        assert share.shared_with == ["u2"]
        assert (await quizzes.get_quiz(quiz.id, "u2")).id == quiz.id
        assert [s.quiz_id for s in await teams.get_shared_quizzes("u2")] == [quiz.id]

        access = await teams.check_quiz_access(quiz.id, "u2")
        assert access.has_access and access.permissions == "view"
        assert (await teams.check_quiz_access(quiz.id, "author")).permissions == "owner"
        assert not (await teams.check_quiz_access(quiz.id, "u3")).has_access
        assert not (await teams.check_quiz_access("nope", "author")).has_access

    @pytest.mark.asyncio
    async def test_view_share_cannot_edit(self, teams, repo):
        quiz = await _private_quiz(repo)
        quizzes = QuizService(repo)
        await teams.share_quiz(quiz.id, "author", ["viewer"])
        await teams.share_quiz(quiz.id, "author", ["editor"], SharePermission.EDIT)
        with pytest.raises(ForbiddenError):
            await quizzes.update_quiz(quiz.id, "viewer", {"title": "Mine now"})
        updated = await quizzes.update_quiz(quiz.id, "editor", {"title": "Edited"})
        assert updated.title == "Edited" and updated.created_by == "author"
        with pytest.raises(ForbiddenError):
            await quizzes.delete_quiz(quiz.id, "editor")

    @pytest.mark.asyncio
    async def test_only_owner_or_admin_share_can_share(self, teams, repo):
        quiz = await _private_quiz(repo)
        await teams.share_quiz(quiz.id, "author", ["viewer"])
        with pytest.raises(ForbiddenError):
            await teams.share_quiz(quiz.id, "viewer", ["u9"])
        await teams.share_quiz(quiz.id, "author", ["co"], SharePermission.ADMIN)
        reshared = await teams.share_quiz(quiz.id, "co", ["u9"])
        assert reshared.shared_by == "co"
        with pytest.raises(NotFoundError):
            await teams.share_quiz("nope", "author", ["u2"])
        with pytest.raises(QuizValidationError):
            await teams.share_quiz(quiz.id, "author", ["author"])

    @pytest.mark.asyncio
    async def test_expired_share_is_ignored(self, teams, repo):
        quiz = await _private_quiz(repo)
        with pytest.raises(QuizValidationError, match="future"):
            await teams.share_quiz(quiz.id, "author", ["u2"], expires_at=utcnow() - timedelta(minutes=1))

        await repo.create_share(QuizShare(
            id="old", quiz_id=quiz.id, shared_by="author", shared_with=["u2"],
            expires_at=utcnow() - timedelta(days=1),
        ))
        assert await teams.get_shared_quizzes("u2") == []
        with pytest.raises(ForbiddenError):
            await QuizService(repo).get_quiz(quiz.id, "u2")

    def test_resolve_access(self):
        now = utcnow()
        shares = [
            QuizShare(id="a", quiz_id="q", shared_by="o", shared_with=["u1"], permissions=SharePermission.EDIT,
                      expires_at=now - timedelta(hours=1)),
            QuizShare(id="b", quiz_id="q", shared_by="o", shared_with=["u1", "u2"]),
        ]
        assert resolve_quiz_access("o", shares, "o", now) == "owner"
        assert resolve_quiz_access("o", shares, "u1", now) == "view"
        assert resolve_quiz_access("o", shares, "u3", now) is None


class TestInvitations:

    @pytest.mark.asyncio
    async def test_team_invitation_accepted(self, teams):
        team = await teams.create_team("u1", "Tutors")
        invitation = await teams.send_invitation("u1", InvitationType.TEAM, team.id, "u2", InvitationRole.ADMIN)
        assert invitation.status == InvitationStatus.PENDING
        assert invitation.expires_at - invitation.created_at == timedelta(days=7)
        assert [i.id for i in await teams.get_user_invitations("u2")] == [invitation.id]

        with pytest.raises(ForbiddenError):
            await teams.accept_invitation(invitation.id, "u3")
        accepted = await teams.accept_invitation(invitation.id, "u2", display_name="Bob")
        assert accepted.status == InvitationStatus.ACCEPTED
        member = (await teams.get_team(team.id, "u2")).find_member("u2")
        assert member.role == TeamRole.ADMIN and member.display_name == "Bob"
        assert await teams.get_user_invitations("u2") == []
        with pytest.raises(QuizValidationError, match="already accepted"):
            await teams.decline_invitation(invitation.id, "u2")

    @pytest.mark.asyncio
    async def test_quiz_invitation_creates_share(self, teams, repo):
        quiz = await _private_quiz(repo)
        invitation = await teams.send_invitation("author", InvitationType.QUIZ, quiz.id, "u2", InvitationRole.VIEWER)
        await teams.accept_invitation(invitation.id, "u2")
        assert (await teams.check_quiz_access(quiz.id, "u2")).permissions == "view"

    @pytest.mark.asyncio
    async def test_decline(self, teams):
        team = await teams.create_team("u1", "Tutors")
        invitation = await teams.send_invitation("u1", InvitationType.TEAM, team.id, "u2")
        declined = await teams.decline_invitation(invitation.id, "u2")
        assert declined.status == InvitationStatus.DECLINED
        with pytest.raises(ForbiddenError):
            await teams.get_team(team.id, "u2")

    @pytest.mark.asyncio
    async def test_expired_invitation(self, teams, repo):
        team = await teams.create_team("u1", "Tutors")
        invitation = await teams.send_invitation("u1", InvitationType.TEAM, team.id, "u2")
        invitation.expires_at = utcnow() - timedelta(seconds=1)
        await repo.save_invitation(invitation)

        assert await teams.get_user_invitations("u2") == []
        with pytest.raises(QuizValidationError, match="expired"):
            await teams.accept_invitation(invitation.id, "u2")
        assert (await repo.get_invitation(invitation.id)).status == InvitationStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_sender_rules(self, teams, repo):
        team = await teams.create_team("u1", "Tutors")
        await teams.add_member(team.id, "u1", "u2")
        with pytest.raises(ForbiddenError):
            await teams.send_invitation("u2", InvitationType.TEAM, team.id, "u3")
        with pytest.raises(RegistrationError):
            await teams.send_invitation("u1", InvitationType.TEAM, team.id, "u2")
        with pytest.raises(QuizValidationError):
            await teams.send_invitation("u1", InvitationType.TEAM, team.id, "u1")
        with pytest.raises(NotFoundError):
            await teams.send_invitation("u1", InvitationType.TEAM, "nope", "u3")

        quiz = await _private_quiz(repo)
        with pytest.raises(ForbiddenError):
            await teams.send_invitation("u1", InvitationType.QUIZ, quiz.id, "u3")
        with pytest.raises(NotFoundError):
            await teams.send_invitation("u1", InvitationType.QUIZ, "nope", "u3")
        with pytest.raises(NotFoundError):
            await teams.accept_invitation("nope", "u3")
