# apps/core/management/commands/seed.py

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.board.services import board_service
from apps.board.task_service import task_service
from apps.core.models import User, Team, Board
from apps.teams.services import team_service

DEMO_EMAIL = 'demo@tasktrek.app'
DEMO_TEAM = 'Time Demo'
DEMO_BOARD = 'Board Demo'
DEMO_COLUMNS = ['A fazer', 'Fazendo', 'Feito']
DEMO_TASKS = [
    ('A fazer', 'Configurar ambiente', 'high'),
    ('A fazer', 'Escrever documentação', 'low'),
    ('Fazendo', 'Revisar permissões', 'medium'),
]


class Command(BaseCommand):
    help = 'Cria dados de demonstração (usuário, time, board, colunas e tarefas) - idempotente'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='demo12345', help='Senha do usuário demo')

    def handle(self, *args, **options):
        self.stdout.write('🌱 Populando banco com dados demo...')

        with transaction.atomic():
            user = self._criar_usuario(options['password'])
            team = self._criar_time(user)
            self._criar_board(user, team)

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✅ Dados demo prontos!\n'
                f'🔑 Login: {DEMO_EMAIL} / {options["password"]}\n'
            )
        )

    # ==== MÉTODOS PRIVADOS ====

    def _criar_usuario(self, password):
        user, created = User.objects.get_or_create(
            email=DEMO_EMAIL,
            defaults={'username': 'demo', 'name': 'Usuário Demo'},
        )
        if created:
            user.set_password(password)
            user.save(update_fields=['password'])
            self.stdout.write(f'  👤 Usuário criado: {user.email}')
        else:
            self.stdout.write(f'  👤 Usuário já existe: {user.email}')
        return user

    def _criar_time(self, user):
        team = Team.objects.filter(owner=user, name__iexact=DEMO_TEAM).first()
        if team:
            self.stdout.write(f'  👥 Time já existe: {team.name}')
            return team

        team = team_service.create_team(user.pk, {'name': DEMO_TEAM, 'description': 'Time de demonstração'})
        self.stdout.write(f'  👥 Time criado: {team.name}')
        return team

    def _criar_board(self, user, team):
        if Board.objects.filter(team=team, title=DEMO_BOARD).exists():
            self.stdout.write(f'  📋 Board já existe: {DEMO_BOARD}')
            return

        board = board_service.create_board(user.pk, team.pk, {'title': DEMO_BOARD})

        columns = {column.title: column for column in board.columns.all()}
        for position, title in enumerate(DEMO_COLUMNS):
            if title not in columns:
                columns[title] = board_service.create_column(
                    user.pk, board.pk, {'title': title, 'position': position}
                )

        for column_title, title, priority in DEMO_TASKS:
            task_service.create_task(
                user.pk, columns[column_title].pk,
                {'title': title, 'priority': priority, 'assignee': user.pk},
            )

        self.stdout.write(f'  📋 Board criado: {board.title} ({len(DEMO_TASKS)} tarefas)')
