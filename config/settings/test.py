"""Settings used by the pytest suite.

In-memory SQLite, the locmem email backend for the SMTP fallback and
eager Celery so tasks run inline.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

# Внешние провайдеры в тестах выключены, остаётся только SMTP
EMAIL_RESEND_ENABLED = False
EMAIL_POSTMARK_ENABLED = False
EMAIL_SES_ENABLED = False

WHATSAPP_ACCESS_TOKEN = 'test-token'
WHATSAPP_PHONE_NUMBER_ID = '1234567890'

CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

LOGGING['root']['level'] = 'WARNING'
LOGGING['loggers']['apps']['level'] = 'WARNING'
