"""Base settings for all environments.

Common configuration for the RentalHub notification service: the Django
ORM backing the job store, Celery for the periodic tick, the email
provider chain and the WhatsApp Cloud API credentials. Environment
specific overrides live in `dev.py`, `prod.py` and `test.py`.
"""

import os
from pathlib import Path

import structlog
from django.core.exceptions import ImproperlyConfigured  # type: ignore
from dotenv import load_dotenv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / ".env")


def get_env(var_name: str, default=None, required: bool = False):
    value = os.environ.get(var_name, default)
    if required and value in (None, ""):
        raise ImproperlyConfigured(f"Missing required environment variable: {var_name}")
    return value


def get_bool_env(var_name: str, default: bool = False) -> bool:
    return str(get_env(var_name, str(default))).lower() in ("1", "true", "yes", "on")


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = get_env('DJANGO_SECRET_KEY', 'replace-me-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = False

ALLOWED_HOSTS: list[str] = get_env('DJANGO_ALLOWED_HOSTS', '*').split(',')

BRAND_NAME = get_env('BRAND_NAME', 'RentalHub')

# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Third‑party apps
    'django_celery_beat',
    # Domain apps
    'apps.users',
    'apps.bookings',
    'apps.notifications',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases

DATABASES = {
    'default': {
        'ENGINE': get_env('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': get_env('DB_NAME', BASE_DIR / 'db.sqlite3'),
        'USER': get_env('DB_USER', ''),
        'PASSWORD': get_env('DB_PASSWORD', ''),
        'HOST': get_env('DB_HOST', ''),
        'PORT': get_env('DB_PORT', ''),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
]

# Internationalization
LANGUAGE_CODE = 'en-us'

TIME_ZONE = get_env('DJANGO_TIME_ZONE', 'UTC')

USE_I18N = True

USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Custom user model
AUTH_USER_MODEL = 'users.CustomUser'

# ============================================================================
# EMAIL
# ============================================================================

DEFAULT_FROM_EMAIL = get_env('DEFAULT_FROM_EMAIL', f'{BRAND_NAME} <no-reply@rentalhub.local>')
EMAIL_REPLY_TO = get_env('EMAIL_REPLY_TO', 'support@rentalhub.local')

# Provider A: Resend
EMAIL_RESEND_ENABLED = get_bool_env('EMAIL_RESEND_ENABLED', True)
RESEND_API_KEY = get_env('RESEND_API_KEY', '')
RESEND_FROM = get_env('RESEND_FROM', DEFAULT_FROM_EMAIL)

# Provider B: Postmark
EMAIL_POSTMARK_ENABLED = get_bool_env('EMAIL_POSTMARK_ENABLED', False)
POSTMARK_SERVER_TOKEN = get_env('POSTMARK_SERVER_TOKEN', '')
POSTMARK_MESSAGE_STREAM = get_env('POSTMARK_MESSAGE_STREAM', '')

# Provider C: Amazon SES
EMAIL_SES_ENABLED = get_bool_env('EMAIL_SES_ENABLED', False)
AWS_SES_REGION = get_env('AWS_SES_REGION', 'us-east-1')
AWS_ACCESS_KEY_ID = get_env('AWS_ACCESS_KEY_ID', '')
AWS_SECRET_ACCESS_KEY = get_env('AWS_SECRET_ACCESS_KEY', '')

# Provider D: SMTP через стандартный backend Django, всегда последний в цепочке
EMAIL_BACKEND = get_env('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = get_env('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(get_env('EMAIL_PORT', '587'))
EMAIL_USE_TLS = get_bool_env('EMAIL_USE_TLS', True)
EMAIL_HOST_USER = get_env('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = get_env('EMAIL_HOST_PASSWORD', '')
EMAIL_TIMEOUT = int(get_env('EMAIL_TIMEOUT', '10'))

# ============================================================================
# WHATSAPP CLOUD API
# ============================================================================

WHATSAPP_ACCESS_TOKEN = get_env('WHATSAPP_ACCESS_TOKEN', '')
WHATSAPP_PHONE_NUMBER_ID = get_env('WHATSAPP_PHONE_NUMBER_ID', '')
WHATSAPP_API_VERSION = get_env('WHATSAPP_API_VERSION', 'v18.0')
WHATSAPP_DEFAULT_COUNTRY_CODE = get_env('WHATSAPP_DEFAULT_COUNTRY_CODE', '233')

# ============================================================================
# NOTIFICATION DISPATCH
# ============================================================================

NOTIFICATIONS = {
    'SETTINGS_VERSION': int(get_env('NOTIFICATIONS_SETTINGS_VERSION', '1')),
    'POLL_INTERVAL_SECONDS': float(get_env('NOTIFICATIONS_POLL_INTERVAL_SECONDS', '15')),
    'BATCH_SIZE': int(get_env('NOTIFICATIONS_BATCH_SIZE', '50')),
    'SEND_TIMEOUT_SECONDS': float(get_env('NOTIFICATIONS_SEND_TIMEOUT_SECONDS', '10')),
    'SUPPORT_EMAIL': get_env('SUPPORT_EMAIL', EMAIL_REPLY_TO),
    'SUPPORT_PHONE': get_env('SUPPORT_PHONE', ''),
    'LOGIN_URL': get_env('PORTAL_LOGIN_URL', 'http://localhost:3000/login'),
    'OWNER_DASHBOARD_URL': get_env('PORTAL_OWNER_DASHBOARD_URL', 'http://localhost:3000/owner/dashboard'),
    # Отключение каналов по типу события: {"pickup_reminder": {"whatsapp": False}}
    'EVENTS': {},
}

# ============================================================================
# CELERY
# ============================================================================

CELERY_BROKER_URL = get_env('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = get_env('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_RESULT_SERIALIZER = 'json'

# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVEL = get_env('LOG_LEVEL', 'INFO')

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'structured': {
            '()': structlog.stdlib.ProcessorFormatter,
            'processor': structlog.dev.ConsoleRenderer(colors=False),
            'foreign_pre_chain': [
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_logger_name,
                structlog.processors.add_log_level,
            ],
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'structured',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
