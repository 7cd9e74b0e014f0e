# apps/teams/views.py

from apps.core.membership_service import membership_service
from apps.core.permissions import MembershipAuthority
from apps.core.utils import api_view, members_to_list, ok, parse_body, parse_int, team_to_dict

from .services import team_service


@api_view(['GET', 'POST'])
def teams_view(request):
    """GET: times do usuário | POST: cria time"""
    if request.method == 'POST':
        team = team_service.create_team(request.principal_id, parse_body(request))
        return ok(team_to_dict(team), status=201, message='Time criado com sucesso')

    teams = [team_to_dict(team) for team in team_service.list_teams(request.principal_id)]
    return ok(teams, count=len(teams))


@api_view(['GET'])
def search_teams_view(request):
    teams = team_service.search_teams(request.principal_id, request.GET.get('query'))
    teams = [team_to_dict(team) for team in teams]
    return ok(teams, count=len(teams))


@api_view(['GET'], auth=False)
def team_exists_view(request, team_id):
    return ok(exists=team_service.team_exists(team_id))


@api_view(['GET'])
def my_teams_view(request):
    """Times do usuário com o papel dele em cada um"""
    data = []
    for team in team_service.list_teams(request.principal_id):
        item = team_to_dict(team)
        item['role'] = MembershipAuthority.resolve_role(request.principal_id, team)
        data.append(item)
    return ok(data, count=len(data))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
def team_detail_view(request, team_id):
    if request.method == 'DELETE':
        removed = team_service.delete_team(request.principal_id, team_id)
        return ok(message='Time excluído com sucesso', deleted=removed)

    if request.method in ('PUT', 'PATCH'):
        team = team_service.update_team(request.principal_id, team_id, parse_body(request))
        return ok(team_to_dict(team))

    team = team_service.get_team(request.principal_id, team_id)
    members = members_to_list(membership_service.members_of(team))
    return ok(team_to_dict(team, members=members))


@api_view(['GET', 'POST'])
def team_members_view(request, team_id):
    team = team_service.get_team(request.principal_id, team_id)

    if request.method == 'POST':
        data = parse_body(request)
        membership_service.add_member(request.principal_id, team, data.get('email'), data.get('role'))
        return ok(members_to_list(membership_service.members_of(team)), message='Membro adicionado')

    return ok(members_to_list(membership_service.list_members(request.principal_id, team)))


@api_view(['DELETE'])
def team_member_detail_view(request, team_id, user_id):
    team = team_service.get_team(request.principal_id, team_id)
    membership_service.remove_member(request.principal_id, team, user_id)
    return ok(message='Membro removido')


@api_view(['PATCH', 'PUT'])
def team_member_role_view(request, team_id, user_id):
    team = team_service.get_team(request.principal_id, team_id)
    membership = membership_service.change_role(
        request.principal_id, team, user_id, parse_body(request).get('role')
    )
    return ok({'user': user_id, 'role': membership.role}, message='Papel atualizado')


@api_view(['POST'])
def team_transfer_view(request, team_id):
    team = team_service.get_team(request.principal_id, team_id)
    new_owner_id = parse_int(parse_body(request).get('userId'), 'userId')
    team = membership_service.transfer_ownership(request.principal_id, team, new_owner_id)
    return ok(team_to_dict(team), message='Posse transferida')
