import pytest
from django.db import DatabaseError
from django.test import override_settings

from apps.board.services import CascadeDeleter, board_service
from apps.board.task_service import task_service
from apps.core.exceptions import Forbidden, NotFound, PartialFailure
from apps.core.models import Board, BoardMembership, Column, Role, Task, Team
from apps.teams.services import team_service


@pytest.fixture
def populated_board(board, owner):
    """Board com 3 colunas e 5 tarefas"""
    columns = [board_service.create_column(owner.pk, board.pk, {'title': f'Coluna {i}', 'position': i})
               for i in range(3)]
    for i, column in enumerate(columns):
        for j in range(i + 1 if i < 2 else 2):
            task_service.create_task(owner.pk, column.pk, {'title': f'Tarefa {i}.{j}'})
    return board


def test_create_board_makes_creator_owner(team, member_user):
    board = board_service.create_board(member_user.pk, team.pk, {'name': 'Roadmap'})

    assert board.title == 'Roadmap'
    assert BoardMembership.objects.get(board=board, user=member_user).role == Role.OWNER


def test_create_board_requires_member_on_team(team, viewer_user):
    with pytest.raises(Forbidden) as exc:
        board_service.create_board(viewer_user.pk, team.pk, {'title': 'Novo'})
    assert exc.value.code == 'INSUFFICIENT_ROLE'


def test_create_board_in_missing_team(owner):
    with pytest.raises(NotFound) as exc:
        board_service.create_board(owner.pk, 9999, {'title': 'Novo'})
    assert exc.value.code == 'PARENT_NOT_FOUND'


@override_settings(TASKTREK_DEFAULT_COLUMNS=['A fazer', 'Fazendo', 'Feito'])
def test_create_board_with_default_columns(team, owner):
    board = board_service.create_board(owner.pk, team.pk, {'title': 'Com colunas'})

    assert list(board.columns.values_list('title', 'position')) == [
        ('A fazer', 0), ('Fazendo', 1), ('Feito', 2),
    ]


def test_create_column_in_missing_board(owner):
    with pytest.raises(NotFound) as exc:
        board_service.create_column(owner.pk, 9999, {'title': 'X'})
    assert exc.value.code == 'PARENT_NOT_FOUND'


def test_columns_without_position_keep_insertion_order(board, owner):
    first = board_service.create_column(owner.pk, board.pk, {'title': 'Primeira'})
    second = board_service.create_column(owner.pk, board.pk, {'title': 'Segunda'})

    assert first.position == second.position == 0
    assert list(board_service.board_columns(board)) == [first, second]


def test_create_task_in_missing_column(owner):
    with pytest.raises(NotFound) as exc:
        task_service.create_task(owner.pk, 9999, {'title': 'x'})
    assert exc.value.code == 'PARENT_NOT_FOUND'


def test_create_task_column_from_other_board(team, owner, column):
    other = board_service.create_board(owner.pk, team.pk, {'title': 'Outro'})

    with pytest.raises(NotFound) as exc:
        task_service.create_task(owner.pk, column.pk, {'title': 'x'}, board_id=other.pk)
    assert exc.value.code == 'PARENT_NOT_FOUND'


def test_member_creates_task_but_cannot_delete_board(board, column, member_user):
    task = task_service.create_task(member_user.pk, column.pk, {'title': 'Minha'})
    assert task.created_by == member_user

    with pytest.raises(Forbidden) as exc:
        board_service.delete_board(member_user.pk, board.pk)
    assert exc.value.code == 'INSUFFICIENT_ROLE'


def test_delete_board_removes_all_descendants(populated_board, owner):
    board_id = populated_board.pk
    column_ids = list(Column.objects.filter(board_id=board_id).values_list('pk', flat=True))
    task_count = Task.objects.filter(column_id__in=column_ids).count()
    assert (len(column_ids), task_count) == (3, 5)

    removed = board_service.delete_board(owner.pk, board_id)

    assert removed['boards'] == [board_id]
    assert len(removed['columns']) == 3
    assert len(removed['tasks']) == 5
    assert not Board.objects.filter(pk=board_id).exists()
    assert not Column.objects.filter(board_id=board_id).exists()
    assert not Task.objects.filter(column_id__in=column_ids).exists()
    assert not BoardMembership.objects.filter(board_id=board_id).exists()


def test_delete_board_partial_failure_then_retry(populated_board, owner, monkeypatch):
    board_id = populated_board.pk
    original = CascadeDeleter._delete_document
    calls = {'count': 0}

    def flaky_delete(self, model, pk):
        calls['count'] += 1
        if calls['count'] == 4:
            raise DatabaseError('conexão perdida')
        return original(self, model, pk)

    monkeypatch.setattr(CascadeDeleter, '_delete_document', flaky_delete)

    with pytest.raises(PartialFailure) as exc:
        board_service.delete_board(owner.pk, board_id)

    failure = exc.value
    assert failure.code == 'PARTIAL_DELETE'
    deleted_count = sum(len(pks) for pks in failure.deleted.values())
    remaining_count = sum(len(pks) for pks in failure.remaining.values())
    assert deleted_count == 3
    assert remaining_count == 3 + 5 + 1 - 3
    assert failure.remaining['boards'] == [board_id]
    assert Board.objects.filter(pk=board_id).exists()

    monkeypatch.setattr(CascadeDeleter, '_delete_document', original)
    board_service.delete_board(owner.pk, board_id)

    assert not Board.objects.filter(pk=board_id).exists()
    assert not Column.objects.filter(board_id=board_id).exists()


def test_delete_column_cascades_tasks(column, task, admin_user):
    removed = board_service.delete_column(admin_user.pk, column.pk)

    assert removed == {'tasks': [task.pk], 'columns': [column.pk]}
    assert not Task.objects.filter(pk=task.pk).exists()


def test_delete_team_cascades_boards(team, populated_board, owner):
    removed = team_service.delete_team(owner.pk, team.pk)

    assert removed['teams'] == [team.pk]
    assert removed['boards'] == [populated_board.pk]
    assert not Team.objects.filter(pk=team.pk).exists()
    assert not Column.objects.filter(board_id=populated_board.pk).exists()


def test_orphan_board_reads_as_not_found(team, board, owner):
    # Simula cascata interrompida: o time sumiu, o board ficou
    Team.objects.filter(pk=team.pk).delete()

    with pytest.raises(NotFound):
        board_service.get_board(owner.pk, board.pk)
    assert list(board_service.list_boards(owner.pk)) == []


def test_orphan_task_reads_as_not_found(task, column, owner):
    Column.objects.filter(pk=column.pk).delete()

    with pytest.raises(NotFound):
        task_service.get_task(owner.pk, task.pk)
    assert list(task_service.visible_tasks(owner.pk)) == []


def test_repeated_deletes_are_noops(board, column, task, owner):
    assert task_service.delete_task(owner.pk, task.pk) == {'tasks': [task.pk]}
    assert task_service.delete_task(owner.pk, task.pk) == {}

    assert board_service.delete_column(owner.pk, column.pk) == {'columns': [column.pk]}
    assert board_service.delete_column(owner.pk, column.pk) == {}

    assert board_service.delete_board(owner.pk, board.pk) == {'boards': [board.pk]}
    assert board_service.delete_board(owner.pk, board.pk) == {}


def test_repeated_team_delete_is_noop(team, owner):
    team_service.delete_team(owner.pk, team.pk)

    assert team_service.delete_team(owner.pk, team.pk) == {}


def test_retry_on_descendant_removed_by_interrupted_cascade(populated_board, owner, monkeypatch):
    original = CascadeDeleter._delete_document
    calls = {'count': 0}

    def flaky_delete(self, model, pk):
        calls['count'] += 1
        if calls['count'] == 2:
            raise DatabaseError('conexão perdida')
        return original(self, model, pk)

    monkeypatch.setattr(CascadeDeleter, '_delete_document', flaky_delete)
    with pytest.raises(PartialFailure) as exc:
        board_service.delete_board(owner.pk, populated_board.pk)
    monkeypatch.setattr(CascadeDeleter, '_delete_document', original)

    deleted_task = exc.value.deleted['tasks'][0]
    assert task_service.delete_task(owner.pk, deleted_task) == {}


def test_delete_still_checks_role_on_existing_rows(task, viewer_user):
    with pytest.raises(Forbidden):
        task_service.delete_task(viewer_user.pk, task.pk)
    assert Task.objects.filter(pk=task.pk).exists()


def test_delete_with_malformed_id_is_not_found(owner):
    with pytest.raises(NotFound):
        task_service.delete_task(owner.pk, 'abc')
