"""
Django settings for the stahome project (Smart Task Automation backend).

All deployment-specific values come from the environment; a local `.env`
file is loaded first.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-local-development-key')

DEBUG = _env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]


# Application definition

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'tasks',
    'automation',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'stahome.urls'

WSGI_APPLICATION = 'stahome.wsgi.application'

# No ORM models: tasks and rules live in flat JSON files. The database is
# only declared so that Django's own machinery has somewhere to point.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Django REST framework

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'UNAUTHENTICATED_USER': None,
}


# Flat-file persistence

AUTOMATION_DATA_DIR = Path(os.getenv('STA_DATA_DIR', str(BASE_DIR / 'data')))


# Automation engine
# The keyword tables are optional overrides; leaving them unset uses the
# defaults in tasks.rule_engine.keywords.

AUTOMATION_TRIGGER = os.getenv('STA_AUTOMATION_TRIGGER', 'new-task')
AUTOMATION_ASSIGNEE = os.getenv('STA_AUTOMATION_ASSIGNEE', 'Auto-assigned')
AUTOMATION_URGENT_KEYWORDS = None
AUTOMATION_CATEGORY_KEYWORDS = None


# Celery
# Eager by default so analytics bookkeeping runs inline without a worker.

CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER', True)
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_TASK_IGNORE_RESULT = True
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE


# Logging

LOG_LEVEL = os.getenv('STA_LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'loggers': {
        'tasks': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'automation': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'django': {'handlers': ['console'], 'level': 'WARNING'},
    },
}
