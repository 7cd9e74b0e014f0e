# apps/board/urls.py

from django.urls import path
from . import views

app_name = 'board'

urlpatterns = [
    # Boards
    path('', views.boards_view, name='boards'),
    path('complete/', views.boards_complete_view, name='boards_complete'),
    path('team/<int:team_id>/', views.boards_by_team_view, name='boards_by_team'),
    path('<int:board_id>/', views.board_detail_view, name='detail'),

    # Membros
    path('<int:board_id>/members/', views.board_members_view, name='members'),
    path('<int:board_id>/members/<int:user_id>/', views.board_member_detail_view, name='member_detail'),
    path('<int:board_id>/members/<int:user_id>/role/', views.board_member_role_view, name='member_role'),
    path('<int:board_id>/transfer-ownership/', views.board_transfer_view, name='transfer_ownership'),
    path('<int:board_id>/share/', views.board_share_view, name='share'),

    # Colunas e tarefas dentro do board
    path('<int:board_id>/columns/', views.columns_view, name='columns'),
    path('<int:board_id>/columns/<int:column_id>/', views.column_detail_view, name='column_detail'),
    path('<int:board_id>/columns/<int:column_id>/tasks/', views.column_tasks_view, name='column_tasks'),
]

task_urlpatterns = [
    path('', views.create_task_view, name='create'),
    path('all/', views.all_tasks_view, name='all'),
    path('column/<int:column_id>/', views.tasks_by_column_view, name='by_column'),
    path('user/<int:user_id>/', views.tasks_by_user_view, name='by_user'),
    path('<int:task_id>/', views.task_detail_view, name='detail'),
    path('<int:task_id>/move/', views.move_task_view, name='move'),
    path('<int:task_id>/complete/', views.complete_task_view, name='complete'),
    path('<int:task_id>/reopen/', views.reopen_task_view, name='reopen'),
    path('<int:task_id>/assign/', views.assign_task_view, name='assign'),
    path('<int:task_id>/unassign/', views.unassign_task_view, name='unassign'),
]
