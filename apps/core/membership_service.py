# apps/core/membership_service.py

"""
Gestão de membros de Times e Boards

As mesmas regras valem para os dois escopos. Alterações no conjunto de
membros usam as primitivas atômicas do banco (constraint única na
inserção, update condicional na troca de papel) para que dois admins
alterando membros ao mesmo tempo não percam atualizações.
"""

import logging
from typing import Dict, List

from django.db import IntegrityError, transaction

from .exceptions import Conflict, NotFound, ValidationError
from .models import Board, BoardMembership, Role, Team, TeamMembership, User
from .permissions import MembershipAuthority, MutationGate, Operation

logger = logging.getLogger(__name__)


def parse_role(value, default=Role.MEMBER) -> Role:
    """Converte texto em Role, rejeitando valores desconhecidos"""
    if value is None:
        return Role(default)
    if value not in Role.values:
        raise ValidationError('VALIDATION_ERROR', f'Papel inválido: {value}. Use um de {Role.values}')
    return Role(value)


class MembershipService:
    """Adicionar, remover, alterar papel e transferir posse"""

    def list_members(self, principal_id, scope) -> List:
        """Membros do escopo; em times o dono vem primeiro com papel owner"""
        MutationGate.require(principal_id, scope, Operation.READ)
        return self.members_of(scope)

    def members_of(self, scope) -> List:
        memberships = list(scope.memberships.select_related('user').order_by('joined_at', 'id'))
        if isinstance(scope, Team):
            owner = TeamMembership(team=scope, user=scope.owner, role=Role.OWNER)
            owner.joined_at = scope.created_at
            memberships.insert(0, owner)
        return memberships

    def add_member(self, principal_id, scope, email: str, role=None):
        role = parse_role(role)
        MutationGate.authorize_member_add(principal_id, scope, role).raise_if_denied()

        user = self._find_user_by_email(email)
        if MembershipAuthority.is_member(user.pk, scope):
            raise Conflict('ALREADY_MEMBER', f'{user.email} já é membro')

        try:
            with transaction.atomic():
                membership = scope.memberships.create(user=user, role=role)
        except IntegrityError:
            # Outro admin adicionou o mesmo usuário entre a leitura e a escrita
            raise Conflict('ALREADY_MEMBER', f'{user.email} já é membro')

        logger.info("Membro adicionado: %s=%s user=%s role=%s por %s",
                    self._scope_name(scope), scope.pk, user.pk, role.value, principal_id)
        return membership

    def remove_member(self, principal_id, scope, member_id) -> None:
        MutationGate.authorize_member_removal(principal_id, scope, member_id).raise_if_denied()

        deleted, _ = scope.memberships.filter(user_id=member_id).delete()
        if not deleted:
            raise NotFound('NOT_A_MEMBER', 'Usuário não é membro')

        logger.info("Membro removido: %s=%s user=%s por %s",
                    self._scope_name(scope), scope.pk, member_id, principal_id)

    def change_role(self, principal_id, scope, member_id, new_role):
        if new_role is None:
            raise ValidationError('VALIDATION_ERROR', 'Campo role é obrigatório')
        new_role = parse_role(new_role)

        MutationGate.authorize_role_change(principal_id, scope, member_id, new_role).raise_if_denied()

        membership = scope.memberships.filter(user_id=member_id).first()
        if membership is None:
            raise NotFound('NOT_A_MEMBER', 'Usuário não é membro')

        # Update condicional: só aplica se o papel ainda for o que foi lido
        updated = scope.memberships.filter(
            pk=membership.pk, role=membership.role
        ).update(role=new_role)
        if not updated:
            raise Conflict('MEMBERSHIP_CHANGED', 'Os membros foram alterados por outra requisição. Tente novamente.')

        membership.role = new_role
        logger.info("Papel alterado: %s=%s user=%s %s",
                    self._scope_name(scope), scope.pk, member_id, new_role.value)
        return membership

    def transfer_ownership(self, principal_id, scope, new_owner_id):
        """
        Passa a posse para outro membro; o dono anterior vira admin

        Em times o dono é um campo do próprio time; em boards é o
        vínculo com papel owner.
        """
        MutationGate.authorize_transfer(principal_id, scope).raise_if_denied()

        if new_owner_id == principal_id:
            raise ValidationError('VALIDATION_ERROR', 'Você já é o dono')
        if not scope.memberships.filter(user_id=new_owner_id).exists():
            raise NotFound('NOT_A_MEMBER', 'O novo dono precisa ser membro')

        with transaction.atomic():
            if isinstance(scope, Team):
                self._transfer_team(scope, principal_id, new_owner_id)
            else:
                self._transfer_board(scope, principal_id, new_owner_id)

        logger.info("Posse transferida: %s=%s de %s para %s",
                    self._scope_name(scope), scope.pk, principal_id, new_owner_id)
        scope.refresh_from_db()
        return scope

    def share(self, principal_id, board: Board, emails: List[str], role=None) -> Dict:
        """
        Adiciona vários emails de uma vez, relatando o resultado de cada um

        Sem permissão de gerenciar membros a operação inteira é negada.
        A lista é validada inteira antes de qualquer inclusão, para que um
        item inválido não deixe parte dos emails gravada.
        """
        role = parse_role(role)
        MutationGate.authorize_member_add(principal_id, board, role).raise_if_denied()
        if not isinstance(emails, list) or not emails:
            raise ValidationError('VALIDATION_ERROR', 'Informe uma lista de emails')
        invalid = [email for email in emails if not isinstance(email, str) or not email.strip()]
        if invalid:
            raise ValidationError(
                'VALIDATION_ERROR', 'Todos os emails devem ser textos não vazios',
                {'invalid': invalid}
            )

        result = {'added': [], 'already_member': [], 'not_found': []}
        for email in emails:
            try:
                self.add_member(principal_id, board, email, role)
            except NotFound:
                result['not_found'].append(email)
            except Conflict:
                result['already_member'].append(email)
            else:
                result['added'].append(email)
        return result

    # =================== MÉTODOS PRIVADOS ===================

    def _transfer_team(self, team: Team, old_owner_id, new_owner_id):
        updated = Team.objects.filter(pk=team.pk, owner_id=old_owner_id).update(owner_id=new_owner_id)
        if not updated:
            raise Conflict('MEMBERSHIP_CHANGED', 'O dono do time mudou durante a operação')
        TeamMembership.objects.filter(team=team, user_id=new_owner_id).delete()
        demoted = TeamMembership(team=team, user_id=old_owner_id, role=Role.ADMIN)
        demoted._sem_notificacao = True
        demoted.save()

    def _transfer_board(self, board: Board, old_owner_id, new_owner_id):
        demoted = BoardMembership.objects.filter(
            board=board, user_id=old_owner_id, role=Role.OWNER
        ).update(role=Role.ADMIN)
        promoted = BoardMembership.objects.filter(
            board=board, user_id=new_owner_id
        ).exclude(role=Role.OWNER).update(role=Role.OWNER)
        if not (demoted and promoted):
            raise Conflict('MEMBERSHIP_CHANGED', 'Os membros do board mudaram durante a operação')

    def _find_user_by_email(self, email) -> User:
        if not email or not isinstance(email, str):
            raise ValidationError('VALIDATION_ERROR', 'Campo email é obrigatório')
        user = User.objects.filter(email__iexact=email.strip(), is_active=True).first()
        if user is None:
            raise NotFound('USER_NOT_FOUND', f'Nenhum usuário com o email {email}')
        return user

    @staticmethod
    def _scope_name(scope) -> str:
        return type(scope).__name__.lower()


# Instância global do serviço
membership_service = MembershipService()
