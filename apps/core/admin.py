# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html

from .models import User, Team, TeamMembership, Board, BoardMembership, Column, Task


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin customizado para o modelo User"""

    list_display = ['username', 'email', 'name', 'is_active', 'date_joined']
    list_filter = ['is_staff', 'is_active', 'date_joined']
    search_fields = ['username', 'name', 'email']
    ordering = ['-date_joined']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Informações Adicionais', {
            'fields': ('name',)
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Informações Adicionais', {
            'fields': ('email', 'name')
        }),
    )


class TeamMembershipInline(admin.TabularInline):
    """Membros do time (o dono fica no próprio time)"""
    model = TeamMembership
    extra = 0
    fields = ['user', 'role', 'joined_at']
    readonly_fields = ['joined_at']


class BoardMembershipInline(admin.TabularInline):
    """Membros do board"""
    model = BoardMembership
    extra = 0
    fields = ['user', 'role', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    """Admin para times"""

    list_display = ['name', 'owner', 'membros_count', 'boards_count', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'description', 'owner__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [TeamMembershipInline]

    def membros_count(self, obj):
        """Conta membros, incluindo o dono"""
        return obj.memberships.count() + 1

    membros_count.short_description = 'Membros'

    def boards_count(self, obj):
        return obj.boards.count()

    boards_count.short_description = 'Boards'


@admin.register(Board)
class BoardAdmin(admin.ModelAdmin):
    """Admin para boards Kanban"""

    list_display = ['title', 'team', 'colunas_count', 'tarefas_count', 'created_at']
    list_filter = ['created_at', 'team']
    search_fields = ['title', 'description', 'team__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [BoardMembershipInline]

    def colunas_count(self, obj):
        return obj.columns.count()

    colunas_count.short_description = 'Colunas'

    def tarefas_count(self, obj):
        return Task.objects.filter(column__board=obj).count()

    tarefas_count.short_description = 'Tarefas'


class TaskInline(admin.TabularInline):
    """Tarefas da coluna"""
    model = Task
    extra = 0
    fields = ['title', 'assignee', 'priority', 'position', 'completed']
    ordering = ['position']


@admin.register(Column)
class ColumnAdmin(admin.ModelAdmin):
    """Admin para colunas do Kanban"""

    list_display = ['title', 'board', 'position', 'tarefas_count']
    list_filter = ['board']
    search_fields = ['title', 'board__title']
    ordering = ['board', 'position']
    inlines = [TaskInline]

    def tarefas_count(self, obj):
        return obj.tasks.count()

    tarefas_count.short_description = 'Tarefas'


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin para tarefas"""

    list_display = ['id', 'title', 'prioridade_badge', 'assignee', 'column', 'status_badge', 'due_date']
    list_filter = ['priority', 'completed', 'column__board', 'created_at']
    search_fields = ['title', 'description']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'updated_at', 'created_by', 'completed_at']

    fieldsets = (
        ('Informações Básicas', {
            'fields': ('title', 'description', 'column', 'assignee', 'priority', 'due_date')
        }),
        ('Estado', {
            'fields': ('completed', 'completed_at', 'position')
        }),
        ('Metadados', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def prioridade_badge(self, obj):
        """Badge colorido para prioridade"""
        cores = {
            'low': '#10B981',  # verde
            'medium': '#F59E0B',  # amarelo
            'high': '#F97316',  # laranja
            'critical': '#EF4444'  # vermelho
        }
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 3px 8px; border-radius: 4px; font-size: 11px;">{}</span>',
            cores.get(obj.priority, '#6B7280'),
            obj.get_priority_display()
        )

    prioridade_badge.short_description = 'Prioridade'

    def status_badge(self, obj):
        if obj.completed:
            return format_html('<span style="color: green;">✓ Concluída</span>')
        if obj.is_overdue():
            return format_html('<span style="color: red;">⚠️ Atrasada</span>')
        return 'Aberta'

    status_badge.short_description = 'Status'
