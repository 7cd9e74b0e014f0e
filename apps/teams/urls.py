# apps/teams/urls.py

from django.urls import path
from . import views

app_name = 'teams'

urlpatterns = [
    path('', views.teams_view, name='teams'),
    path('search/', views.search_teams_view, name='search'),
    path('exists/<str:team_id>/', views.team_exists_view, name='exists'),
    path('me/', views.my_teams_view, name='me'),
    path('<int:team_id>/', views.team_detail_view, name='detail'),
    path('<int:team_id>/members/', views.team_members_view, name='members'),
    path('<int:team_id>/members/<int:user_id>/', views.team_member_detail_view, name='member_detail'),
    path('<int:team_id>/members/<int:user_id>/role/', views.team_member_role_view, name='member_role'),
    path('<int:team_id>/transfer-ownership/', views.team_transfer_view, name='transfer_ownership'),
]
