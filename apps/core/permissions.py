# apps/core/permissions.py

"""
Sistema de permissões do TaskTrek

Duas peças:
- MembershipAuthority: descobre o papel de um usuário em um Time ou Board
- MutationGate: aplica a tabela de políticas (papel mínimo por operação)

Todas as verificações de acesso dos serviços passam por aqui; nenhuma
view ou serviço compara ids de usuário por conta própria.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exceptions import Forbidden, NotFound
from .models import Board, Column, Role, Task, Team

logger = logging.getLogger(__name__)


# Motivos de negação
NOT_A_MEMBER = 'NOT_A_MEMBER'
INSUFFICIENT_ROLE = 'INSUFFICIENT_ROLE'
CANNOT_MODIFY_OWNER = 'CANNOT_MODIFY_OWNER'

ROLE_RANK = {
    Role.VIEWER: 1,
    Role.MEMBER: 2,
    Role.ADMIN: 3,
    Role.OWNER: 4,
}


def role_rank(role) -> int:
    """Posição do papel na ordem owner > admin > member > viewer (0 = sem papel)"""
    if role is None:
        return 0
    return ROLE_RANK.get(Role(role), 0)


def role_at_least(role, minimum) -> bool:
    """Verifica se o papel alcança o mínimo exigido"""
    return role is not None and role_rank(role) >= role_rank(minimum)


class Operation(str, Enum):
    READ = 'read'
    CREATE_CHILD = 'create-child'
    UPDATE = 'update'
    DELETE = 'delete'
    MANAGE_MEMBERS = 'manage-members'
    CHANGE_ROLE = 'change-role'
    TRANSFER_OWNERSHIP = 'transfer-ownership'


# Papel mínimo exigido por operação
POLICY = {
    Operation.READ: Role.VIEWER,
    Operation.CREATE_CHILD: Role.MEMBER,
    Operation.UPDATE: Role.MEMBER,
    Operation.DELETE: Role.ADMIN,
    Operation.MANAGE_MEMBERS: Role.ADMIN,
    Operation.CHANGE_ROLE: Role.ADMIN,
    Operation.TRANSFER_OWNERSHIP: Role.OWNER,
}


@dataclass(frozen=True)
class Decision:
    """Resultado de uma autorização: permitido ou negado com motivo"""

    allowed: bool
    role: Optional[str] = None
    reason: Optional[str] = None

    def __bool__(self):
        return self.allowed

    @classmethod
    def ok(cls, role):
        return cls(True, role=role)

    @classmethod
    def denied(cls, reason, role=None):
        return cls(False, role=role, reason=reason)

    def raise_if_denied(self, message: Optional[str] = None):
        if not self.allowed:
            raise Forbidden(self.reason, message or _DENIAL_MESSAGES[self.reason])
        return self


_DENIAL_MESSAGES = {
    NOT_A_MEMBER: 'Você não é membro deste recurso',
    INSUFFICIENT_ROLE: 'Seu papel não permite esta ação',
    CANNOT_MODIFY_OWNER: 'O papel do dono não pode ser alterado ou removido',
}


def nearest_scope(target):
    """
    Sobe a hierarquia até o ancestral mais próximo com lista de membros

    Team e Board são escopos; Column usa o seu Board e Task usa o Board
    da sua coluna. Referências órfãs viram NotFound.
    """
    if isinstance(target, (Team, Board)):
        return target

    if isinstance(target, Task):
        try:
            target = target.column
        except Column.DoesNotExist:
            raise NotFound('NOT_FOUND', 'Coluna da tarefa não encontrada')

    if isinstance(target, Column):
        try:
            return target.board
        except Board.DoesNotExist:
            raise NotFound('NOT_FOUND', 'Board da coluna não encontrado')

    raise TypeError(f"Sem escopo de permissão para {type(target).__name__}")


class MembershipAuthority:
    """Resolve o papel de um usuário - consulta pura, nunca levanta erro de acesso"""

    @staticmethod
    def resolve_role(principal_id, scope) -> Optional[Role]:
        """
        Papel do usuário no Time ou Board (None se não for membro)

        Time: o dono é sempre owner; demais papéis vêm dos vínculos.
        Board: somente os vínculos do próprio board contam - ser membro
        do time não dá acesso aos boards do time.
        """
        if principal_id is None:
            return None

        if isinstance(scope, Team):
            if scope.owner_id == principal_id:
                return Role.OWNER
        elif not isinstance(scope, Board):
            raise TypeError(f"Papéis só existem em Team ou Board, não em {type(scope).__name__}")

        role = scope.memberships.filter(user_id=principal_id).values_list('role', flat=True).first()
        return Role(role) if role else None

    @staticmethod
    def is_member(principal_id, scope) -> bool:
        return MembershipAuthority.resolve_role(principal_id, scope) is not None


class MutationGate:
    """Aplica a tabela POLICY sobre o papel resolvido no escopo mais próximo"""

    @staticmethod
    def authorize(principal_id, target, operation: Operation) -> Decision:
        scope = nearest_scope(target)
        role = MembershipAuthority.resolve_role(principal_id, scope)

        if role is None:
            decision = Decision.denied(NOT_A_MEMBER)
        elif role_at_least(role, POLICY[Operation(operation)]):
            decision = Decision.ok(role)
        else:
            decision = Decision.denied(INSUFFICIENT_ROLE, role=role)

        if not decision:
            logger.info(
                "Acesso negado: user=%s %s=%s op=%s motivo=%s",
                principal_id, type(scope).__name__.lower(), scope.pk,
                Operation(operation).value, decision.reason
            )
        return decision

    @staticmethod
    def require(principal_id, target, operation: Operation) -> Role:
        """Igual a authorize, mas levanta Forbidden quando negado"""
        return MutationGate.authorize(principal_id, target, operation).raise_if_denied().role

    @staticmethod
    def authorize_member_add(principal_id, scope, role) -> Decision:
        """Adicionar membro: admin, sem conceder papel acima do próprio nem owner"""
        decision = MutationGate.authorize(principal_id, scope, Operation.MANAGE_MEMBERS)
        if not decision:
            return decision
        if Role(role) == Role.OWNER:
            return Decision.denied(CANNOT_MODIFY_OWNER, role=decision.role)
        if role_rank(role) > role_rank(decision.role):
            return Decision.denied(INSUFFICIENT_ROLE, role=decision.role)
        return decision

    @staticmethod
    def authorize_role_change(principal_id, scope, member_id, new_role) -> Decision:
        """
        Alterar papel: admin, com duas regras extras
        - ninguém altera o papel do dono (nem promove alguém a dono: use transferência)
        - ninguém eleva outro membro acima do próprio papel
        """
        decision = MutationGate.authorize(principal_id, scope, Operation.CHANGE_ROLE)
        if not decision:
            return decision

        current = MembershipAuthority.resolve_role(member_id, scope)
        if current == Role.OWNER or Role(new_role) == Role.OWNER:
            return Decision.denied(CANNOT_MODIFY_OWNER, role=decision.role)
        if role_rank(new_role) > role_rank(decision.role):
            return Decision.denied(INSUFFICIENT_ROLE, role=decision.role)
        return decision

    @staticmethod
    def authorize_member_removal(principal_id, scope, member_id) -> Decision:
        """
        Remover membro: admin, ou o próprio membro saindo

        O dono nunca é removido - precisa transferir a posse antes de sair.
        """
        member_role = MembershipAuthority.resolve_role(member_id, scope)
        if member_role == Role.OWNER:
            actor_role = MembershipAuthority.resolve_role(principal_id, scope)
            return Decision.denied(CANNOT_MODIFY_OWNER, role=actor_role)

        if principal_id == member_id:
            if member_role is None:
                return Decision.denied(NOT_A_MEMBER)
            return Decision.ok(member_role)

        return MutationGate.authorize(principal_id, scope, Operation.MANAGE_MEMBERS)

    @staticmethod
    def authorize_transfer(principal_id, scope) -> Decision:
        return MutationGate.authorize(principal_id, scope, Operation.TRANSFER_OWNERSHIP)
