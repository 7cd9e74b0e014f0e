# apps/core/signals.py

"""
Notificações disparadas por mudanças nos modelos

Os emails só saem depois do commit da transação que gravou a mudança;
se a escrita for desfeita, nada é enviado.
"""

from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Board, BoardMembership, Role, Task, TeamMembership
from .notifier import MEMBER_ADDED, TASK_ASSIGNED, NotificationEvent, notifier


def notificar_apos_commit(event: NotificationEvent):
    transaction.on_commit(lambda: notifier.notify(event))


@receiver(post_save, sender=TeamMembership)
@receiver(post_save, sender=BoardMembership)
def notificar_novo_membro(sender, instance, created, raw=False, **kwargs):
    """
    Avisa o usuário quando ele entra em um time ou board
    """
    # O criador do board entra como owner e não precisa ser avisado
    if not created or raw or instance.role == Role.OWNER:
        return
    # Vínculo criado por transferência de posse: o usuário já fazia parte
    if getattr(instance, '_sem_notificacao', False):
        return

    target = instance.team if sender is TeamMembership else instance.board
    label = f'o time {target.name}' if sender is TeamMembership else f'o board {target.title}'

    notificar_apos_commit(NotificationEvent(
        MEMBER_ADDED,
        [instance.user.email],
        {'name': instance.user.name, 'target': label, 'role': instance.role},
    ))


@receiver(pre_save, sender=Task)
def marcar_troca_responsavel(sender, instance, raw=False, **kwargs):
    """
    Marca a tarefa quando o responsável muda (notificação sai no post_save)
    """
    if raw or instance.assignee_id is None:
        instance._responsavel_alterado = False
        return

    if instance.pk is None:
        instance._responsavel_alterado = True
        return

    anterior = sender.objects.filter(pk=instance.pk).values_list('assignee_id', flat=True).first()
    instance._responsavel_alterado = anterior != instance.assignee_id


@receiver(post_save, sender=Task)
def notificar_responsavel(sender, instance, raw=False, **kwargs):
    if raw or not getattr(instance, '_responsavel_alterado', False):
        return

    instance._responsavel_alterado = False
    assignee = instance.assignee
    board_title = Board.objects.filter(columns__pk=instance.column_id).values_list('title', flat=True).first()

    notificar_apos_commit(NotificationEvent(
        TASK_ASSIGNED,
        [assignee.email],
        {'name': assignee.name, 'task': instance.title, 'board': board_title or '-'},
    ))
