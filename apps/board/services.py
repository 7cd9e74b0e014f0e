# apps/board/services.py

"""
Serviço de hierarquia: Boards e Colunas

Toda criação valida que o pai existe (PARENT_NOT_FOUND) e passa pelo
MutationGate no escopo mais próximo antes de gravar. Exclusões seguem
um plano explícito, das folhas para a raiz, e relatam interrupções
como PartialFailure em vez de fingir sucesso.
"""

import logging
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Exists, OuterRef, Prefetch

from apps.core.exceptions import NotFound, PartialFailure
from apps.core.models import Board, BoardMembership, Column, Role, Task, Team
from apps.core.permissions import MutationGate, Operation
from apps.core.utils import clean_text, get_or_not_found, parse_int

logger = logging.getLogger(__name__)


# =================== CARREGAMENTO COM VERIFICAÇÃO DE ÓRFÃOS ===================

def existing_teams():
    return Team.objects.filter(pk=OuterRef('team_id'))


def load_team(team_id, code='NOT_FOUND') -> Team:
    return get_or_not_found(Team, team_id, code, 'Time não encontrado')


def load_board(board_id, code='NOT_FOUND') -> Board:
    """Board cujo time não existe mais é tratado como inexistente"""
    board = get_or_not_found(Board, board_id, code, 'Board não encontrado')
    if not Team.objects.filter(pk=board.team_id).exists():
        raise NotFound(code, 'Board não encontrado')
    return board


def load_column(column_id, code='NOT_FOUND', board_id=None) -> Column:
    """Coluna com toda a cadeia (board, time) existente; opcionalmente do board informado"""
    column = get_or_not_found(Column, column_id, code, 'Coluna não encontrada')
    if board_id is not None and str(column.board_id) != str(board_id):
        raise NotFound(code, 'Coluna não pertence a este board')
    load_board(column.board_id, code)
    return column


def load_task(task_id, code='NOT_FOUND') -> Task:
    task = get_or_not_found(Task, task_id, code, 'Tarefa não encontrada')
    load_column(task.column_id, code)
    return task


def already_deleted(model, pk) -> bool:
    """
    True quando o id é válido mas o documento não existe mais

    Usado pelas exclusões: repetir um delete (retry após PartialFailure
    ou após timeout) é sucesso sem efeito, não NotFound. Ids malformados
    nunca existiram e continuam caindo em NotFound no load_*.
    """
    try:
        pk = int(pk)
    except (TypeError, ValueError):
        return False
    return not model.objects.filter(pk=pk).exists()


# =================== EXCLUSÃO EM CASCATA ===================

class CascadeDeleter:
    """
    Exclusão em cascata por plano explícito

    O plano lista os documentos das folhas para a raiz (tarefas, colunas,
    boards, time). Cada passo é uma exclusão independente; se um passo
    falhar, a execução para e levanta PartialFailure com o que já foi
    removido e o que ficou. Repetir a operação é seguro: documentos já
    removidos são ignorados.
    """

    LABELS = {
        Task: 'tasks',
        Column: 'columns',
        Board: 'boards',
        Team: 'teams',
    }

    def plan_column(self, column_id) -> List[Tuple]:
        steps = [(Task, pk) for pk in Task.objects.filter(column_id=column_id).values_list('pk', flat=True)]
        steps.append((Column, column_id))
        return steps

    def plan_board(self, board_id) -> List[Tuple]:
        steps = []
        for column_id in Column.objects.filter(board_id=board_id).values_list('pk', flat=True):
            steps.extend(self.plan_column(column_id))
        steps.append((Board, board_id))
        return steps

    def plan_team(self, team_id) -> List[Tuple]:
        steps = []
        for board_id in Board.objects.filter(team_id=team_id).values_list('pk', flat=True):
            steps.extend(self.plan_board(board_id))
        steps.append((Team, team_id))
        return steps

    def execute(self, steps: List[Tuple]) -> Dict:
        deleted = []
        for index, (model, pk) in enumerate(steps):
            try:
                self._delete_document(model, pk)
            except DatabaseError:
                remaining = steps[index:]
                logger.error(
                    "Exclusão em cascata interrompida em %s=%s: %d removidos, %d restantes",
                    model.__name__, pk, len(deleted), len(remaining), exc_info=True
                )
                raise PartialFailure(deleted=self._group(deleted), remaining=self._group(remaining))
            deleted.append((model, pk))

        return self._group(deleted)

    def _delete_document(self, model, pk):
        # Vínculos de membros são apagados junto com o board/time (on_delete=CASCADE)
        model.objects.filter(pk=pk).delete()

    def _group(self, steps) -> Dict:
        grouped = {label: [] for label in self.LABELS.values()}
        for model, pk in steps:
            grouped[self.LABELS[model]].append(pk)
        return {label: pks for label, pks in grouped.items() if pks}


# =================== BOARDS E COLUNAS ===================

class BoardService:
    """Operações de Board e Coluna"""

    def __init__(self, cascade: Optional[CascadeDeleter] = None):
        self.cascade = cascade or CascadeDeleter()

    # === BOARDS ===

    def create_board(self, principal_id, team_id, data: Dict) -> Board:
        """
        Cria board no time; o criador vira owner do board

        Aceita 'title' ou 'name' (compatibilidade com clientes antigos).
        """
        if team_id is None:
            team_id = data.get('team') or data.get('teamId')
        if team_id is None:
            raise NotFound('PARENT_NOT_FOUND', 'Informe o time do board')

        team = load_team(team_id, 'PARENT_NOT_FOUND')
        MutationGate.require(principal_id, team, Operation.CREATE_CHILD)

        title = clean_text(data, 'title', max_length=200) or clean_text(data, 'name', required=True, max_length=200)
        description = clean_text(data, 'description', default='')

        with transaction.atomic():
            board = Board.objects.create(
                title=title,
                description=description,
                team=team,
                created_by_id=principal_id,
            )
            BoardMembership.objects.create(board=board, user_id=principal_id, role=Role.OWNER)

            for position, column_title in enumerate(getattr(settings, 'TASKTREK_DEFAULT_COLUMNS', [])):
                Column.objects.create(title=column_title, board=board, position=position)

        logger.info("Board criado: board=%s team=%s por %s", board.pk, team.pk, principal_id)
        return board

    def list_boards(self, principal_id):
        """Boards onde o usuário é membro"""
        return (
            Board.objects
            .filter(memberships__user_id=principal_id)
            .filter(Exists(existing_teams()))
            .distinct()
        )

    def list_boards_complete(self, principal_id):
        """Boards do usuário com colunas e tarefas já ordenadas"""
        tasks = Prefetch('tasks', queryset=Task.objects.order_by('position', 'id'))
        columns = Prefetch(
            'columns',
            queryset=Column.objects.order_by('position', 'id').prefetch_related(tasks)
        )
        return self.list_boards(principal_id).prefetch_related(columns)

    def list_boards_by_team(self, principal_id, team_id):
        team = load_team(team_id)
        MutationGate.require(principal_id, team, Operation.READ)
        return team.boards.all()

    def get_board(self, principal_id, board_id) -> Board:
        board = load_board(board_id)
        MutationGate.require(principal_id, board, Operation.READ)
        return board

    def board_columns(self, board: Board):
        """Colunas do board com as tarefas, na ordem de exibição"""
        tasks = Prefetch('tasks', queryset=Task.objects.order_by('position', 'id'))
        return board.columns.order_by('position', 'id').prefetch_related(tasks)

    def update_board(self, principal_id, board_id, data: Dict) -> Board:
        board = load_board(board_id)
        MutationGate.require(principal_id, board, Operation.UPDATE)

        title = clean_text(data, 'title', max_length=200) or clean_text(data, 'name', max_length=200)
        if title:
            board.title = title
        description = clean_text(data, 'description')
        if description is not None:
            board.description = description

        board.save()
        return board

    def delete_board(self, principal_id, board_id) -> Dict:
        if already_deleted(Board, board_id):
            logger.info("Board %s já excluído; nada a fazer", board_id)
            return {}

        board = load_board(board_id)
        MutationGate.require(principal_id, board, Operation.DELETE)

        removed = self.cascade.execute(self.cascade.plan_board(board.pk))
        logger.info("Board excluído: board=%s por %s (%s)", board.pk, principal_id, removed)
        return removed

    # === COLUNAS ===

    def create_column(self, principal_id, board_id, data: Dict) -> Column:
        board = load_board(board_id, 'PARENT_NOT_FOUND')
        MutationGate.require(principal_id, board, Operation.CREATE_CHILD)

        return Column.objects.create(
            title=clean_text(data, 'title', required=True, max_length=100),
            board=board,
            position=parse_int(data.get('position'), 'position', minimum=0) or 0,
        )

    def update_column(self, principal_id, column_id, data: Dict, board_id=None) -> Column:
        column = load_column(column_id, board_id=board_id)
        MutationGate.require(principal_id, column, Operation.UPDATE)

        title = clean_text(data, 'title', max_length=100)
        if title:
            column.title = title
        position = parse_int(data.get('position'), 'position', minimum=0)
        if position is not None:
            column.position = position

        column.save()
        return column

    def delete_column(self, principal_id, column_id, board_id=None) -> Dict:
        if already_deleted(Column, column_id):
            logger.info("Coluna %s já excluída; nada a fazer", column_id)
            return {}

        column = load_column(column_id, board_id=board_id)
        MutationGate.require(principal_id, column, Operation.DELETE)

        removed = self.cascade.execute(self.cascade.plan_column(column.pk))
        logger.info("Coluna excluída: column=%s por %s (%s)", column.pk, principal_id, removed)
        return removed


# Instância global do serviço
board_service = BoardService()
