# apps/board/task_service.py

"""
Serviço de Tarefas

Criação, edição, movimentação entre colunas, conclusão/reabertura e
atribuição. O escopo de permissão de uma tarefa é o board da sua coluna.
"""

import logging
from typing import Dict, Optional

from django.db import transaction
from django.db.models import Exists, F, Max, OuterRef
from django.utils import timezone

from apps.core.exceptions import Conflict, NotFound, ValidationError
from apps.core.models import Task, Team, User
from apps.core.permissions import MutationGate, Operation
from apps.core.utils import clean_text, get_or_not_found, parse_due_date, parse_int

from .services import CascadeDeleter, already_deleted, load_column, load_task

logger = logging.getLogger(__name__)

PRIORITIES = [value for value, _ in Task.PRIORITY_CHOICES]


def parse_priority(value, default: Optional[str] = 'medium') -> Optional[str]:
    if value is None:
        return default
    if value not in PRIORITIES:
        raise ValidationError('VALIDATION_ERROR', f'Prioridade inválida: {value}. Use um de {PRIORITIES}')
    return value


class TaskService:

    def __init__(self, cascade: Optional[CascadeDeleter] = None):
        self.cascade = cascade or CascadeDeleter()

    # === CONSULTAS ===

    def visible_tasks(self, principal_id):
        """Tarefas de boards onde o usuário é membro (órfãs ficam de fora)"""
        return (
            Task.objects
            .filter(column__board__memberships__user_id=principal_id)
            .filter(Exists(Team.objects.filter(pk=OuterRef('column__board__team_id'))))
            .distinct()
            .order_by('column_id', 'position', 'id')
        )

    def list_by_column(self, principal_id, column_id):
        column = load_column(column_id)
        MutationGate.require(principal_id, column, Operation.READ)
        return column.tasks.order_by('position', 'id')

    def list_by_user(self, principal_id, user_id):
        user = get_or_not_found(User, user_id, 'USER_NOT_FOUND', 'Usuário não encontrado')
        return self.visible_tasks(principal_id).filter(assignee=user)

    def get_task(self, principal_id, task_id) -> Task:
        task = load_task(task_id)
        MutationGate.require(principal_id, task, Operation.READ)
        return task

    # === MUTAÇÕES ===

    def create_task(self, principal_id, column_id, data: Dict, board_id=None) -> Task:
        if column_id is None:
            column_id = data.get('column') or data.get('columnId')
        if column_id is None:
            raise NotFound('PARENT_NOT_FOUND', 'Informe a coluna da tarefa')

        column = load_column(column_id, 'PARENT_NOT_FOUND', board_id=board_id)
        MutationGate.require(principal_id, column, Operation.CREATE_CHILD)

        title = clean_text(data, 'title', required=True, max_length=200)
        assignee = self._load_assignee(data.get('assignee'))
        position = parse_int(data.get('position'), 'position', minimum=0)

        with transaction.atomic():
            task = Task(
                title=title,
                description=clean_text(data, 'description', default=''),
                column=column,
                priority=parse_priority(data.get('priority')),
                due_date=parse_due_date(data.get('due_date')),
                assignee=assignee,
                created_by_id=principal_id,
            )
            task.position = self._claim_position(column.pk, position)
            task.save()

        logger.info("Tarefa criada: task=%s column=%s por %s", task.pk, column.pk, principal_id)
        return task

    def update_task(self, principal_id, task_id, data: Dict) -> Task:
        task = load_task(task_id)
        MutationGate.require(principal_id, task, Operation.UPDATE)

        title = clean_text(data, 'title', max_length=200)
        if title:
            task.title = title
        description = clean_text(data, 'description')
        if description is not None:
            task.description = description
        if 'priority' in data:
            task.priority = parse_priority(data['priority'])
        if 'due_date' in data:
            task.due_date = parse_due_date(data['due_date'])

        task.save()
        return task

    def move_task(self, principal_id, task_id, target_column_id, target_position=None) -> Task:
        """
        Move a tarefa para outra coluna (ou reordena na mesma)

        Sem posição: vai para o fim (maior posição + 1). Com posição:
        ocupa a posição e empurra +1 as tarefas da coluna destino a
        partir dela. A coluna de origem não é renumerada.
        """
        task = load_task(task_id)
        MutationGate.require(principal_id, task, Operation.UPDATE)

        if target_column_id is None:
            raise ValidationError('VALIDATION_ERROR', 'Campo column é obrigatório')
        target = load_column(target_column_id, 'PARENT_NOT_FOUND')
        MutationGate.require(principal_id, target, Operation.CREATE_CHILD)

        position = parse_int(target_position, 'position', minimum=0)

        # Mesma coluna e mesma posição: nada a fazer
        if task.column_id == target.pk and position is not None and task.position == position:
            return task

        with transaction.atomic():
            source_column_id = task.column_id
            task.position = self._claim_position(target.pk, position, exclude_pk=task.pk)
            task.column = target
            task.save(update_fields=['column', 'position', 'updated_at'])

        logger.info("Tarefa movida: task=%s coluna %s -> %s posição %s",
                    task.pk, source_column_id, target.pk, task.position)
        return task

    def complete_task(self, principal_id, task_id) -> Task:
        return self._transition(principal_id, task_id, completed=True)

    def reopen_task(self, principal_id, task_id) -> Task:
        return self._transition(principal_id, task_id, completed=False)

    def assign_task(self, principal_id, task_id, user_id) -> Task:
        task = load_task(task_id)
        MutationGate.require(principal_id, task, Operation.UPDATE)

        if user_id is None:
            raise ValidationError('VALIDATION_ERROR', 'Campo userId é obrigatório')
        task.assignee = self._load_assignee(user_id)
        task.save(update_fields=['assignee', 'updated_at'])
        return task

    def unassign_task(self, principal_id, task_id) -> Task:
        task = load_task(task_id)
        MutationGate.require(principal_id, task, Operation.UPDATE)

        task.assignee = None
        task.save(update_fields=['assignee', 'updated_at'])
        return task

    def delete_task(self, principal_id, task_id) -> Dict:
        if already_deleted(Task, task_id):
            return {}

        task = load_task(task_id)
        MutationGate.require(principal_id, task, Operation.DELETE)
        return self.cascade.execute([(Task, task.pk)])

    # =================== MÉTODOS PRIVADOS ===================

    def _transition(self, principal_id, task_id, completed: bool) -> Task:
        """
        Máquina de estados Open <-> Completed

        O responsável pela tarefa pode concluir/reabrir mesmo sem papel no
        board; os demais precisam ser ao menos member.
        """
        task = load_task(task_id)
        if task.assignee_id != principal_id:
            MutationGate.require(principal_id, task, Operation.UPDATE)

        now = timezone.now()
        updated = Task.objects.filter(pk=task.pk, completed=not completed).update(
            completed=completed,
            completed_at=now if completed else None,
            updated_at=now,
        )
        if not updated:
            state = 'concluída' if completed else 'aberta'
            raise Conflict('INVALID_TRANSITION', f'A tarefa já está {state}')

        task.refresh_from_db()
        return task

    def _claim_position(self, column_id, position: Optional[int], exclude_pk=None) -> int:
        """Reserva uma posição na coluna (fim da fila ou inserção com deslocamento)"""
        siblings = Task.objects.filter(column_id=column_id)
        if exclude_pk is not None:
            siblings = siblings.exclude(pk=exclude_pk)

        if position is None:
            top = siblings.aggregate(top=Max('position'))['top']
            return 0 if top is None else top + 1

        siblings.filter(position__gte=position).update(position=F('position') + 1)
        return position

    def _load_assignee(self, user_id) -> Optional[User]:
        if user_id in (None, ''):
            return None
        return get_or_not_found(User, user_id, 'USER_NOT_FOUND', 'Usuário não encontrado')


# Instância global do serviço
task_service = TaskService()
