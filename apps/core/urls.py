# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

auth_urlpatterns = [
    path('signup/', views.signup_view, name='signup'),
    path('login/', views.login_view, name='login'),
    path('refresh-token/', views.refresh_token_view, name='refresh_token'),
    path('logout/', views.logout_view, name='logout'),
    path('forgot-password/', views.forgot_password_view, name='forgot_password'),
    path('reset-password/<str:token>/', views.reset_password_view, name='reset_password'),
    path('me/', views.me_view, name='me'),
]

user_urlpatterns = [
    path('profile/', views.profile_view, name='profile'),
    path('<int:user_id>/', views.user_detail_view, name='user_detail'),
]

urlpatterns = [
    path('health/', views.health_check, name='health'),
]
