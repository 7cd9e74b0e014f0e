import pytest

from apps.core.exceptions import Conflict, Forbidden, NotFound, ValidationError
from apps.core.membership_service import membership_service
from apps.core.models import BoardMembership, Role, Team, TeamMembership
from apps.core.permissions import MembershipAuthority


def test_admin_adds_member_by_email(board, admin_user, outsider):
    membership = membership_service.add_member(admin_user.pk, board, 'OUTSIDER@example.com', 'viewer')

    assert membership.user == outsider
    assert MembershipAuthority.resolve_role(outsider.pk, board) == Role.VIEWER


def test_add_member_default_role_is_member(team, owner, outsider):
    membership_service.add_member(owner.pk, team, outsider.email)
    assert MembershipAuthority.resolve_role(outsider.pk, team) == Role.MEMBER


def test_add_member_unknown_email(board, owner):
    with pytest.raises(NotFound) as exc:
        membership_service.add_member(owner.pk, board, 'ninguem@example.com')
    assert exc.value.code == 'USER_NOT_FOUND'


def test_add_existing_member_conflicts(board, owner, member_user):
    with pytest.raises(Conflict) as exc:
        membership_service.add_member(owner.pk, board, member_user.email)
    assert exc.value.code == 'ALREADY_MEMBER'


def test_team_owner_is_already_member(team, admin_user, owner):
    with pytest.raises(Conflict):
        membership_service.add_member(admin_user.pk, team, owner.email)


def test_member_cannot_add_members(board, member_user, outsider):
    with pytest.raises(Forbidden) as exc:
        membership_service.add_member(member_user.pk, board, outsider.email)
    assert exc.value.code == 'INSUFFICIENT_ROLE'


def test_cannot_add_as_owner(board, owner, outsider):
    with pytest.raises(Forbidden) as exc:
        membership_service.add_member(owner.pk, board, outsider.email, 'owner')
    assert exc.value.code == 'CANNOT_MODIFY_OWNER'


def test_invalid_role_is_validation_error(board, owner, outsider):
    with pytest.raises(ValidationError):
        membership_service.add_member(owner.pk, board, outsider.email, 'superuser')


def test_remove_member(board, admin_user, member_user):
    membership_service.remove_member(admin_user.pk, board, member_user.pk)
    assert not BoardMembership.objects.filter(board=board, user=member_user).exists()


def test_remove_non_member(board, admin_user, outsider):
    with pytest.raises(NotFound) as exc:
        membership_service.remove_member(admin_user.pk, board, outsider.pk)
    assert exc.value.code == 'NOT_A_MEMBER'


def test_member_leaves_by_self_removal(team, viewer_user):
    membership_service.remove_member(viewer_user.pk, team, viewer_user.pk)
    assert MembershipAuthority.resolve_role(viewer_user.pk, team) is None


def test_owner_cannot_leave_without_transfer(team, owner):
    with pytest.raises(Forbidden) as exc:
        membership_service.remove_member(owner.pk, team, owner.pk)
    assert exc.value.code == 'CANNOT_MODIFY_OWNER'


def test_change_role(team, admin_user, viewer_user):
    membership = membership_service.change_role(admin_user.pk, team, viewer_user.pk, 'member')

    assert membership.role == Role.MEMBER
    assert TeamMembership.objects.get(team=team, user=viewer_user).role == Role.MEMBER


def test_change_role_requires_role(team, admin_user, viewer_user):
    with pytest.raises(ValidationError):
        membership_service.change_role(admin_user.pk, team, viewer_user.pk, None)


def test_change_role_detects_concurrent_change(team, admin_user, viewer_user, monkeypatch):
    """Se o papel mudou entre a leitura e o update condicional, nada é sobrescrito"""
    original_first = type(TeamMembership.objects.all()).first

    def stale_first(queryset):
        result = original_first(queryset)
        if isinstance(result, TeamMembership) and result.user_id == viewer_user.pk:
            # Outra requisição troca o papel logo depois da leitura
            TeamMembership.objects.filter(pk=result.pk).update(role=Role.ADMIN)
        return result

    monkeypatch.setattr(type(TeamMembership.objects.all()), 'first', stale_first)

    with pytest.raises(Conflict) as exc:
        membership_service.change_role(admin_user.pk, team, viewer_user.pk, 'member')

    monkeypatch.undo()
    assert exc.value.code == 'MEMBERSHIP_CHANGED'
    assert TeamMembership.objects.get(team=team, user=viewer_user).role == Role.ADMIN


def test_transfer_team_ownership(team, owner, admin_user):
    membership_service.transfer_ownership(owner.pk, team, admin_user.pk)
    team = Team.objects.get(pk=team.pk)

    assert team.owner == admin_user
    assert MembershipAuthority.resolve_role(admin_user.pk, team) == Role.OWNER
    assert MembershipAuthority.resolve_role(owner.pk, team) == Role.ADMIN
    assert not TeamMembership.objects.filter(team=team, user=admin_user).exists()


def test_transfer_board_ownership(board, owner, member_user):
    membership_service.transfer_ownership(owner.pk, board, member_user.pk)

    assert MembershipAuthority.resolve_role(member_user.pk, board) == Role.OWNER
    assert MembershipAuthority.resolve_role(owner.pk, board) == Role.ADMIN
    assert BoardMembership.objects.filter(board=board, role=Role.OWNER).count() == 1


def test_transfer_requires_owner(board, admin_user, member_user):
    with pytest.raises(Forbidden):
        membership_service.transfer_ownership(admin_user.pk, board, member_user.pk)


def test_transfer_to_non_member(board, owner, outsider):
    with pytest.raises(NotFound):
        membership_service.transfer_ownership(owner.pk, board, outsider.pk)


def test_share_reports_each_email(board, owner, outsider, member_user):
    result = membership_service.share(
        owner.pk, board, [outsider.email, member_user.email, 'ninguem@example.com'], 'viewer'
    )

    assert result == {
        'added': [outsider.email],
        'already_member': [member_user.email],
        'not_found': ['ninguem@example.com'],
    }


def test_share_requires_manage_members(board, member_user, outsider):
    with pytest.raises(Forbidden):
        membership_service.share(member_user.pk, board, [outsider.email])


def test_team_members_list_starts_with_owner(team, owner, viewer_user):
    members = membership_service.list_members(viewer_user.pk, team)

    assert members[0].user == owner
    assert members[0].role == Role.OWNER
    assert len(members) == 4


@pytest.mark.parametrize('bad', [5, '', '   ', None])
def test_share_rejects_invalid_entry_before_adding_anyone(board, owner, outsider, bad):
    with pytest.raises(ValidationError) as exc:
        membership_service.share(owner.pk, board, [outsider.email, bad])

    assert exc.value.details == {'invalid': [bad]}
    assert not BoardMembership.objects.filter(board=board, user=outsider).exists()
