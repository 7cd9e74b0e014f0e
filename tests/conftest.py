"""Fixtures compartilhadas: usuários por papel, hierarquia Time -> Board -> Coluna -> Tarefa e cliente HTTP autenticado."""

import pytest
from django.core.cache import cache
from django.test import Client

from apps.board.services import board_service
from apps.board.task_service import task_service
from apps.core.identity import get_identity_resolver
from apps.core.models import BoardMembership, Role, Team, TeamMembership, User

PASSWORD = 'senha-segura-123'


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(username, **extra):
        return User.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password=PASSWORD,
            **extra
        )
    return _make


@pytest.fixture
def owner(make_user):
    return make_user('owner')


@pytest.fixture
def admin_user(make_user):
    return make_user('admin')


@pytest.fixture
def member_user(make_user):
    return make_user('member')


@pytest.fixture
def viewer_user(make_user):
    return make_user('viewer')


@pytest.fixture
def outsider(make_user):
    return make_user('outsider')


@pytest.fixture
def team(owner, admin_user, member_user, viewer_user):
    team = Team.objects.create(name='Produto', owner=owner)
    TeamMembership.objects.create(team=team, user=admin_user, role=Role.ADMIN)
    TeamMembership.objects.create(team=team, user=member_user, role=Role.MEMBER)
    TeamMembership.objects.create(team=team, user=viewer_user, role=Role.VIEWER)
    return team


@pytest.fixture
def board(team, owner, admin_user, member_user, viewer_user):
    board = board_service.create_board(owner.pk, team.pk, {'title': 'Sprint 1'})
    BoardMembership.objects.create(board=board, user=admin_user, role=Role.ADMIN)
    BoardMembership.objects.create(board=board, user=member_user, role=Role.MEMBER)
    BoardMembership.objects.create(board=board, user=viewer_user, role=Role.VIEWER)
    return board


@pytest.fixture
def column(board, owner):
    return board_service.create_column(owner.pk, board.pk, {'title': 'A fazer'})


@pytest.fixture
def task(column, owner):
    return task_service.create_task(owner.pk, column.pk, {'title': 'Primeira tarefa'})


@pytest.fixture
def api(db):
    """api(user) -> Client com Authorization: Bearer <access token>; api() -> anônimo"""
    def _client(user=None):
        if user is None:
            return Client()
        token = get_identity_resolver().issue(user.pk).access_token
        return Client(HTTP_AUTHORIZATION=f'Bearer {token}')
    return _client
