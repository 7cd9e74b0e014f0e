# config/urls.py

from django.contrib import admin
from django.urls import path, include

from apps.board.urls import task_urlpatterns
from apps.core.urls import auth_urlpatterns, user_urlpatterns

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API
    path('api/auth/', include((auth_urlpatterns, 'auth'))),
    path('api/users/', include((user_urlpatterns, 'users'))),
    path('api/teams/', include('apps.teams.urls')),
    path('api/boards/', include('apps.board.urls')),
    path('api/tasks/', include((task_urlpatterns, 'tasks'))),
    path('api/', include('apps.core.urls')),
]

# Customizar títulos do admin
admin.site.site_header = 'TaskTrek Admin'
admin.site.site_title = 'TaskTrek'
admin.site.index_title = 'Administração do Sistema'
