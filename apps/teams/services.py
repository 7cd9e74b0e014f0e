# apps/teams/services.py

import logging
from typing import Dict, Optional

from django.db.models import Q

from apps.board.services import CascadeDeleter, already_deleted, load_team
from apps.core.exceptions import Conflict, ValidationError
from apps.core.models import Team
from apps.core.permissions import MutationGate, Operation
from apps.core.utils import clean_text

logger = logging.getLogger(__name__)


class TeamService:
    """Operações de Time (membros ficam no MembershipService)"""

    def __init__(self, cascade: Optional[CascadeDeleter] = None):
        self.cascade = cascade or CascadeDeleter()

    def create_team(self, principal_id, data: Dict) -> Team:
        name = clean_text(data, 'name', required=True, max_length=200)
        self._check_name_available(principal_id, name)

        team = Team.objects.create(
            name=name,
            description=clean_text(data, 'description', default=''),
            owner_id=principal_id,
        )
        logger.info("Time criado: team=%s por %s", team.pk, principal_id)
        return team

    def list_teams(self, principal_id):
        """Times onde o usuário é dono ou membro"""
        return (
            Team.objects
            .filter(Q(owner_id=principal_id) | Q(memberships__user_id=principal_id))
            .select_related('owner')
            .distinct()
        )

    def search_teams(self, principal_id, query: Optional[str]):
        if not query or not query.strip():
            raise ValidationError('VALIDATION_ERROR', 'Informe o termo de busca')
        query = query.strip()
        return self.list_teams(principal_id).filter(
            Q(name__icontains=query) | Q(description__icontains=query)
        )

    def team_exists(self, team_id) -> bool:
        try:
            return Team.objects.filter(pk=int(team_id)).exists()
        except (TypeError, ValueError):
            return False

    def get_team(self, principal_id, team_id) -> Team:
        team = load_team(team_id)
        MutationGate.require(principal_id, team, Operation.READ)
        return team

    def update_team(self, principal_id, team_id, data: Dict) -> Team:
        team = load_team(team_id)
        MutationGate.require(principal_id, team, Operation.UPDATE)

        name = clean_text(data, 'name', max_length=200)
        if name and name.lower() != team.name.lower():
            self._check_name_available(team.owner_id, name)
        if name:
            team.name = name
        description = clean_text(data, 'description')
        if description is not None:
            team.description = description

        team.save()
        return team

    def delete_team(self, principal_id, team_id) -> Dict:
        """Exclui o time e, em cascata, seus boards, colunas e tarefas"""
        if already_deleted(Team, team_id):
            logger.info("Time %s já excluído; nada a fazer", team_id)
            return {}

        team = load_team(team_id)
        MutationGate.require(principal_id, team, Operation.DELETE)

        removed = self.cascade.execute(self.cascade.plan_team(team.pk))
        logger.info("Time excluído: team=%s por %s (%s)", team.pk, principal_id, removed)
        return removed

    def _check_name_available(self, owner_id, name: str):
        if Team.objects.filter(owner_id=owner_id, name__iexact=name).exists():
            raise Conflict('TEAM_EXISTS', f'Você já tem um time chamado "{name}"')


# Instância global do serviço
team_service = TeamService()
