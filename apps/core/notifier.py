# apps/core/notifier.py

"""
Notificações por email (fire-and-forget)

Falhas de envio são registradas no log e nunca chegam a quem
disparou a mutação.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


WELCOME = 'welcome'
PASSWORD_RESET = 'password_reset'
PASSWORD_RESET_CONFIRMATION = 'password_reset_confirmation'
MEMBER_ADDED = 'member_added'
TASK_ASSIGNED = 'task_assigned'


TEMPLATES = {
    WELCOME: (
        'Bem-vindo ao TaskTrek, {name}!',
        "Olá {name},\n\n"
        "Sua conta foi criada com sucesso.\n"
        "Crie seu primeiro time e comece a organizar seus boards!\n\n"
        "Equipe TaskTrek"
    ),
    PASSWORD_RESET: (
        'Recuperação de senha - TaskTrek',
        "Olá {name},\n\n"
        "Você solicitou a recuperação de senha da sua conta.\n"
        "Use o link abaixo para definir uma nova senha:\n{link}\n\n"
        "O link expira em {minutes} minutos.\n"
        "Se você não pediu a recuperação, ignore este email.\n\n"
        "Equipe TaskTrek"
    ),
    PASSWORD_RESET_CONFIRMATION: (
        'Senha redefinida - TaskTrek',
        "Olá {name},\n\n"
        "A senha da sua conta acabou de ser alterada.\n"
        "Se não foi você, entre em contato com o suporte imediatamente.\n\n"
        "Equipe TaskTrek"
    ),
    MEMBER_ADDED: (
        'Você foi adicionado a {target}',
        "Olá {name},\n\n"
        "Você agora faz parte de {target} com o papel {role}.\n\n"
        "Equipe TaskTrek"
    ),
    TASK_ASSIGNED: (
        'Nova tarefa: {task}',
        "Olá {name},\n\n"
        "A tarefa \"{task}\" foi atribuída a você no board {board}.\n\n"
        "Equipe TaskTrek"
    ),
}


@dataclass
class NotificationEvent:
    kind: str
    recipients: List[str]
    context: Dict = field(default_factory=dict)


class Notifier:
    """Envia eventos por email usando o backend configurado no Django"""

    def __init__(self, from_email=None):
        self._from_email = from_email

    def notify(self, event: NotificationEvent) -> bool:
        recipients = [email for email in event.recipients if email]
        if not recipients:
            return False

        try:
            subject_tpl, body_tpl = TEMPLATES[event.kind]
            send_mail(
                subject=subject_tpl.format(**event.context),
                message=body_tpl.format(**event.context),
                from_email=self._from_email or settings.DEFAULT_FROM_EMAIL,
                recipient_list=recipients,
                fail_silently=False,
            )
        except Exception:
            logger.exception("Falha ao enviar notificação %s para %s", event.kind, recipients)
            return False

        logger.info("📧 Notificação %s enviada para %s", event.kind, recipients)
        return True


# Instância global do serviço
notifier = Notifier()
