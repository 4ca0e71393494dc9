# config/settings/test.py
from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

CELERY_BROKER_URL = 'memory://'
CELERY_TASK_ALWAYS_EAGER = True

REALTIME_BROADCASTER = 'apps.realtime.broadcaster.NullBroadcaster'

# Let pytest's caplog see application records
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'loggers': {
        'apps': {'level': 'DEBUG', 'propagate': True},
        'core': {'level': 'DEBUG', 'propagate': True},
    },
}
