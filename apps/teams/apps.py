# apps/teams/apps.py

from django.apps import AppConfig


class TeamsConfig(AppConfig):
    """Configuração da app Teams"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.teams'
    verbose_name = 'Teams - Times e membros'
