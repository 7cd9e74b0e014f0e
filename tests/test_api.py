from unittest import mock

import pytest
from django.db import OperationalError

from apps.core.models import Board, Column, Task, Team

JSON = 'application/json'


@pytest.fixture
def scenario(make_user, api):
    """Team{owner=U1} -> Board{U2: member} -> Column -> Task, montado via API"""
    u1, u2 = make_user('u1'), make_user('u2')
    c1 = api(u1)

    team = c1.post('/api/teams/', {'name': 'Time'}, content_type=JSON).json()['data']
    board = c1.post('/api/boards/', {'team': team['id'], 'title': 'Board'}, content_type=JSON).json()['data']
    c1.post(f"/api/boards/{board['id']}/members/", {'email': u2.email, 'role': 'member'}, content_type=JSON)
    column = c1.post(f"/api/boards/{board['id']}/columns/", {'title': 'Coluna'}, content_type=JSON).json()['data']
    task = c1.post(
        f"/api/boards/{board['id']}/columns/{column['id']}/tasks/", {'title': 'Tarefa'}, content_type=JSON
    ).json()['data']

    return {'u1': u1, 'u2': u2, 'board': board, 'column': column, 'task': task}


def test_member_cannot_delete_board_but_owner_can(scenario, api):
    board_id = scenario['board']['id']

    denied = api(scenario['u2']).delete(f'/api/boards/{board_id}/')
    assert denied.status_code == 403
    assert denied.json()['error'] == 'INSUFFICIENT_ROLE'

    response = api(scenario['u1']).delete(f'/api/boards/{board_id}/')
    assert response.status_code == 200
    assert response.json()['deleted'] == {
        'tasks': [scenario['task']['id']],
        'columns': [scenario['column']['id']],
        'boards': [board_id],
    }
    assert not Board.objects.filter(pk=board_id).exists()
    assert not Column.objects.filter(pk=scenario['column']['id']).exists()
    assert not Task.objects.filter(pk=scenario['task']['id']).exists()


def test_retried_task_delete_returns_ok(scenario, api):
    client = api(scenario['u1'])
    url = f"/api/tasks/{scenario['task']['id']}/"

    assert client.delete(url).status_code == 200

    retry = client.delete(url)
    assert retry.status_code == 200
    assert retry.json()['deleted'] == {}


def test_member_creates_task_via_tasks_endpoint(scenario, api):
    response = api(scenario['u2']).post(
        '/api/tasks/', {'column': scenario['column']['id'], 'title': 'Do membro'}, content_type=JSON
    )

    assert response.status_code == 201
    assert response.json()['data']['position'] == 1


def test_create_task_in_missing_column(scenario, api):
    response = api(scenario['u1']).post('/api/tasks/', {'column': 9999, 'title': 'x'}, content_type=JSON)

    assert response.status_code == 404
    assert response.json()['error'] == 'PARENT_NOT_FOUND'


def test_requests_without_token_are_rejected(api, db):
    response = api().get('/api/boards/')

    assert response.status_code == 401
    assert response.json()['error'] == 'UNAUTHENTICATED'


def test_wrong_method_returns_405(scenario, api):
    response = api(scenario['u1']).delete('/api/tasks/all/')

    assert response.status_code == 405
    assert response['Allow'] == 'GET'


def test_invalid_json_body(scenario, api):
    response = api(scenario['u1']).post('/api/teams/', 'não é json', content_type=JSON)

    assert response.status_code == 400


def test_team_name_conflict(scenario, api):
    response = api(scenario['u1']).post('/api/teams/', {'name': 'TIME'}, content_type=JSON)

    assert response.status_code == 409
    assert response.json()['error'] == 'TEAM_EXISTS'


def test_team_exists_is_public(scenario, api):
    team_id = Team.objects.get(owner=scenario['u1']).pk

    assert api().get(f'/api/teams/exists/{team_id}/').json()['exists'] is True
    assert api().get('/api/teams/exists/abc/').json()['exists'] is False


def test_my_teams_include_role(scenario, api):
    data = api(scenario['u1']).get('/api/teams/me/').json()['data']

    assert [(team['name'], team['role']) for team in data] == [('Time', 'owner')]


def test_board_is_not_visible_to_team_only_members(scenario, api, make_user):
    u3 = make_user('u3')
    team_id = Team.objects.get(owner=scenario['u1']).pk
    api(scenario['u1']).post(f'/api/teams/{team_id}/members/', {'email': u3.email}, content_type=JSON)

    response = api(u3).get(f"/api/boards/{scenario['board']['id']}/")

    assert response.status_code == 403
    assert response.json()['error'] == 'NOT_A_MEMBER'


def test_board_detail_has_columns_and_members(scenario, api):
    data = api(scenario['u2']).get(f"/api/boards/{scenario['board']['id']}/").json()['data']

    assert [column['title'] for column in data['columns']] == ['Coluna']
    assert data['columns'][0]['tasks'][0]['title'] == 'Tarefa'
    assert {member['role'] for member in data['members']} == {'owner', 'member'}


def test_boards_complete(scenario, api):
    data = api(scenario['u2']).get('/api/boards/complete/').json()['data']

    assert data[0]['columns'][0]['tasks'][0]['id'] == scenario['task']['id']


def test_owner_cannot_leave_board(scenario, api):
    u1 = scenario['u1']
    response = api(u1).delete(f"/api/boards/{scenario['board']['id']}/members/{u1.pk}/")

    assert response.status_code == 403
    assert response.json()['error'] == 'CANNOT_MODIFY_OWNER'


def test_share_board(scenario, api, make_user):
    guest = make_user('guest')
    response = api(scenario['u1']).post(
        f"/api/boards/{scenario['board']['id']}/share/",
        {'emails': [guest.email, scenario['u2'].email], 'role': 'viewer'},
        content_type=JSON,
    )

    assert response.status_code == 200
    assert response.json()['data']['added'] == [guest.email]
    assert response.json()['data']['already_member'] == [scenario['u2'].email]


def test_move_complete_and_assign_endpoints(scenario, api):
    client = api(scenario['u2'])
    board_id = scenario['board']['id']
    target = client.post(f'/api/boards/{board_id}/columns/', {'title': 'Feito'}, content_type=JSON).json()['data']
    task_id = scenario['task']['id']

    moved = client.patch(f'/api/tasks/{task_id}/move/', {'column': target['id']}, content_type=JSON)
    assert moved.json()['data']['column'] == target['id']

    completed = client.patch(f'/api/tasks/{task_id}/complete/')
    assert completed.json()['data']['status'] == 'completed'
    assert client.patch(f'/api/tasks/{task_id}/complete/').status_code == 409

    assigned = client.patch(f'/api/tasks/{task_id}/assign/', {'userId': scenario['u2'].pk}, content_type=JSON)
    assert assigned.json()['data']['assignee'] == scenario['u2'].pk

    mine = client.get(f"/api/tasks/user/{scenario['u2'].pk}/").json()
    assert mine['count'] == 1


def test_store_timeout_is_retryable(scenario, api):
    with mock.patch('apps.board.views.board_service.list_boards', side_effect=OperationalError('timeout')):
        response = api(scenario['u1']).get('/api/boards/')

    assert response.status_code == 503
    assert response.json()['error'] == 'STORE_UNAVAILABLE'
    assert response.json()['retryable'] is True
