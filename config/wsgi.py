# config/wsgi.py

import os
from django.core.wsgi import get_wsgi_application

# Produção por padrão; manage.py usa development
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.production')

application = get_wsgi_application()
