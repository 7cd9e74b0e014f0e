# apps/core/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """
    Modelo de usuário customizado

    O email é único porque é a chave usada para convidar membros
    para times e boards.
    """

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)

    # Último refresh token emitido - rotacionado a cada refresh, limpo no logout
    refresh_token = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'usuario'

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = self.username
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name or self.username} <{self.email}>"


class Role(models.TextChoices):
    """Papel de um usuário em um Time ou Board (ordem: owner > admin > member > viewer)"""

    OWNER = 'owner', 'Owner'
    ADMIN = 'admin', 'Admin'
    MEMBER = 'member', 'Member'
    VIEWER = 'viewer', 'Viewer'


class Team(models.Model):
    """
    Time - raiz da hierarquia

    O dono fica no próprio time (campo owner) e nunca aparece em
    TeamMembership; os demais membros ficam na tabela de vínculos.
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='owned_teams'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'team'
        ordering = ['-updated_at']

    def __str__(self):
        return self.name


class TeamMembership(models.Model):
    """Vínculo (usuário, papel) de um time - único por usuário"""

    team = models.ForeignKey(
        Team,
        on_delete=models.CASCADE,
        related_name='memberships'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='team_memberships'
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'team_membership'
        constraints = [
            models.UniqueConstraint(fields=['team', 'user'], name='unique_team_member'),
        ]

    def __str__(self):
        return f"{self.user} @ {self.team} ({self.role})"


class Board(models.Model):
    """
    Quadro Kanban de um time

    A referência ao time não é garantida pelo banco: a exclusão em
    cascata é feita pelo serviço de hierarquia, nunca pelo banco.
    """

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    team = models.ForeignKey(
        Team,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='boards'
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='boards_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'board'
        ordering = ['-updated_at']

    def __str__(self):
        return self.title


class BoardMembership(models.Model):
    """Vínculo (usuário, papel) de um board - independente dos membros do time"""

    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='memberships'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='board_memberships'
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'board_membership'
        constraints = [
            models.UniqueConstraint(fields=['board', 'user'], name='unique_board_member'),
        ]

    def __str__(self):
        return f"{self.user} @ {self.board} ({self.role})"


class Column(models.Model):
    """Coluna do board - position define a ordem de exibição (empates por inserção)"""

    title = models.CharField(max_length=100)
    board = models.ForeignKey(
        Board,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='columns'
    )
    position = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'coluna'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['board', 'position'], name='coluna_board_position_idx'),
        ]

    def __str__(self):
        return f"{self.title} (board {self.board_id})"


class Task(models.Model):
    """Tarefa dentro de uma coluna"""

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    column = models.ForeignKey(
        Column,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='tasks'
    )
    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    assignee = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tasks'
    )
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    position = models.IntegerField(default=0)
    due_date = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='tasks_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tarefa'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['column', 'position'], name='tarefa_column_position_idx'),
            models.Index(fields=['assignee'], name='tarefa_assignee_idx'),
        ]

    @property
    def status(self):
        return 'completed' if self.completed else 'open'

    def is_overdue(self):
        """Verifica se a tarefa está atrasada"""
        if self.due_date and not self.completed:
            return timezone.now().date() > self.due_date
        return False

    def __str__(self):
        return self.title
