# apps/board/views.py

from apps.core.membership_service import membership_service
from apps.core.utils import (
    api_view, board_to_dict, column_to_dict, members_to_list, ok, parse_body, parse_int, task_to_dict
)

from .services import board_service
from .task_service import task_service


def _board_completo(board):
    """Board com membros, colunas e tarefas"""
    columns = [column_to_dict(column, column.tasks.all()) for column in board_service.board_columns(board)]
    members = members_to_list(membership_service.members_of(board))
    return board_to_dict(board, members=members, columns=columns)


# =================== BOARDS ===================

@api_view(['GET', 'POST'])
def boards_view(request):
    """GET: boards do usuário | POST: cria board no time informado"""
    if request.method == 'POST':
        board = board_service.create_board(request.principal_id, None, parse_body(request))
        return ok(board_to_dict(board), status=201, message='Board criado com sucesso')

    boards = [board_to_dict(board) for board in board_service.list_boards(request.principal_id)]
    return ok(boards, count=len(boards))


@api_view(['GET'])
def boards_complete_view(request):
    boards = []
    for board in board_service.list_boards_complete(request.principal_id):
        columns = [column_to_dict(column, column.tasks.all()) for column in board.columns.all()]
        boards.append(board_to_dict(board, columns=columns))
    return ok(boards, count=len(boards))


@api_view(['GET'])
def boards_by_team_view(request, team_id):
    boards = [board_to_dict(board) for board in board_service.list_boards_by_team(request.principal_id, team_id)]
    return ok(boards, count=len(boards))


@api_view(['GET', 'PATCH', 'PUT', 'DELETE'])
def board_detail_view(request, board_id):
    if request.method == 'DELETE':
        removed = board_service.delete_board(request.principal_id, board_id)
        return ok(message='Board excluído com sucesso', deleted=removed)

    if request.method in ('PATCH', 'PUT'):
        board = board_service.update_board(request.principal_id, board_id, parse_body(request))
        return ok(board_to_dict(board))

    return ok(_board_completo(board_service.get_board(request.principal_id, board_id)))


# =================== MEMBROS DO BOARD ===================

@api_view(['GET', 'POST'])
def board_members_view(request, board_id):
    board = board_service.get_board(request.principal_id, board_id)

    if request.method == 'POST':
        data = parse_body(request)
        membership_service.add_member(request.principal_id, board, data.get('email'), data.get('role'))
        return ok(members_to_list(membership_service.members_of(board)), message='Membro adicionado')

    return ok(members_to_list(membership_service.list_members(request.principal_id, board)))


@api_view(['DELETE'])
def board_member_detail_view(request, board_id, user_id):
    board = board_service.get_board(request.principal_id, board_id)
    membership_service.remove_member(request.principal_id, board, user_id)
    return ok(message='Membro removido')


@api_view(['PATCH', 'PUT'])
def board_member_role_view(request, board_id, user_id):
    board = board_service.get_board(request.principal_id, board_id)
    membership = membership_service.change_role(
        request.principal_id, board, user_id, parse_body(request).get('role')
    )
    return ok({'user': user_id, 'role': membership.role}, message='Papel atualizado')


@api_view(['POST'])
def board_transfer_view(request, board_id):
    board = board_service.get_board(request.principal_id, board_id)
    new_owner_id = parse_int(parse_body(request).get('userId'), 'userId')
    membership_service.transfer_ownership(request.principal_id, board, new_owner_id)
    return ok(members_to_list(membership_service.members_of(board)), message='Posse transferida')


@api_view(['POST'])
def board_share_view(request, board_id):
    board = board_service.get_board(request.principal_id, board_id)
    data = parse_body(request)
    result = membership_service.share(request.principal_id, board, data.get('emails'), data.get('role'))
    return ok(result, message='Board compartilhado')


# =================== COLUNAS ===================

@api_view(['POST'])
def columns_view(request, board_id):
    column = board_service.create_column(request.principal_id, board_id, parse_body(request))
    return ok(column_to_dict(column), status=201, message='Coluna criada')


@api_view(['PATCH', 'PUT', 'DELETE'])
def column_detail_view(request, board_id, column_id):
    if request.method == 'DELETE':
        removed = board_service.delete_column(request.principal_id, column_id, board_id=board_id)
        return ok(message='Coluna excluída', deleted=removed)

    column = board_service.update_column(request.principal_id, column_id, parse_body(request), board_id=board_id)
    return ok(column_to_dict(column))


@api_view(['POST'])
def column_tasks_view(request, board_id, column_id):
    task = task_service.create_task(request.principal_id, column_id, parse_body(request), board_id=board_id)
    return ok(task_to_dict(task), status=201, message='Tarefa criada')


# =================== TAREFAS ===================

@api_view(['GET'])
def all_tasks_view(request):
    tasks = [task_to_dict(task) for task in task_service.visible_tasks(request.principal_id)]
    return ok(tasks, count=len(tasks))


@api_view(['GET'])
def tasks_by_column_view(request, column_id):
    tasks = [task_to_dict(task) for task in task_service.list_by_column(request.principal_id, column_id)]
    return ok(tasks, count=len(tasks))


@api_view(['GET'])
def tasks_by_user_view(request, user_id):
    tasks = [task_to_dict(task) for task in task_service.list_by_user(request.principal_id, user_id)]
    return ok(tasks, count=len(tasks))


@api_view(['POST'])
def create_task_view(request):
    """Cria tarefa com a coluna no corpo ({"column": id, ...})"""
    task = task_service.create_task(request.principal_id, None, parse_body(request))
    return ok(task_to_dict(task), status=201, message='Tarefa criada')


@api_view(['GET', 'PATCH', 'PUT', 'DELETE'])
def task_detail_view(request, task_id):
    if request.method == 'DELETE':
        removed = task_service.delete_task(request.principal_id, task_id)
        return ok(message='Tarefa excluída', deleted=removed)

    if request.method in ('PATCH', 'PUT'):
        task = task_service.update_task(request.principal_id, task_id, parse_body(request))
    else:
        task = task_service.get_task(request.principal_id, task_id)
    return ok(task_to_dict(task))


@api_view(['PATCH'])
def move_task_view(request, task_id):
    data = parse_body(request)
    task = task_service.move_task(
        request.principal_id, task_id,
        data.get('column') or data.get('columnId'),
        data.get('position'),
    )
    return ok(task_to_dict(task))


@api_view(['PATCH'])
def complete_task_view(request, task_id):
    return ok(task_to_dict(task_service.complete_task(request.principal_id, task_id)))


@api_view(['PATCH'])
def reopen_task_view(request, task_id):
    return ok(task_to_dict(task_service.reopen_task(request.principal_id, task_id)))


@api_view(['PATCH'])
def assign_task_view(request, task_id):
    task = task_service.assign_task(request.principal_id, task_id, parse_body(request).get('userId'))
    return ok(task_to_dict(task))


@api_view(['PATCH'])
def unassign_task_view(request, task_id):
    return ok(task_to_dict(task_service.unassign_task(request.principal_id, task_id)))
