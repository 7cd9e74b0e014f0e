# config/settings/test.py

from .base import *

DEBUG = False

ALLOWED_HOSTS = ['testserver', 'localhost']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'tasktrek-test-cache',
    }
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

# Hash rápido nos testes
PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES['staticfiles'] = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}

TASKTREK_JWT = {
    'ACCESS_SECRET': 'test-access-secret',
    'REFRESH_SECRET': 'test-refresh-secret',
    'ALGORITHM': 'HS256',
    'ACCESS_TTL_MINUTES': 15,
    'REFRESH_TTL_DAYS': 7,
}

TASKTREK_DEFAULT_COLUMNS = []
TASKTREK_FRONTEND_URL = 'http://frontend.test'

# Desabilitar logs em testes
LOGGING['handlers'] = {'null': {'class': 'logging.NullHandler'}}
LOGGING['root'] = {'handlers': ['null'], 'level': 'WARNING'}
LOGGING['loggers'] = {
    'apps': {'handlers': ['null'], 'level': 'DEBUG', 'propagate': True},
}
