import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'insecure-dev-key')
DEBUG = _env_bool('DJANGO_DEBUG')
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost').split(',')

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'cms_sync.apps.CmsSyncConfig',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DJANGO_DB_PATH', BASE_DIR / 'db.sqlite3'),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
LANGUAGE_CODE = os.environ.get('DJANGO_LANGUAGE_CODE', 'en-us')
TIME_ZONE = 'UTC'
USE_TZ = True

# Content API
CMS_API_BASE_URL = os.environ.get('CMS_API_BASE_URL', 'https://mapi.storyblok.com/v1')
CMS_API_KEY = os.environ.get('CMS_API_KEY', '')
CMS_SPACE_ID = os.environ.get('CMS_SPACE_ID', '')
CMS_RATE_LIMIT = float(os.environ.get('CMS_RATE_LIMIT', 5))
CMS_INITIALIZATION_TIMEOUT = float(os.environ.get('CMS_INITIALIZATION_TIMEOUT', 30))
CMS_INITIALIZATION_MAX_ATTEMPTS = int(os.environ.get('CMS_INITIALIZATION_MAX_ATTEMPTS', 5))
CMS_DEFAULT_LANGUAGE_CODE = os.environ.get('CMS_DEFAULT_LANGUAGE_CODE', LANGUAGE_CODE.split('-')[0])

# Bulk reconciliation
CMS_BULK_MAX_ATTEMPTS = int(os.environ.get('CMS_BULK_MAX_ATTEMPTS', 10))
CMS_BACKOFF_BASE = float(os.environ.get('CMS_BACKOFF_BASE', 1.0))
CMS_BACKOFF_CAP = float(os.environ.get('CMS_BACKOFF_CAP', 10.0))
CMS_ENABLE_SCHEDULED_SYNC = _env_bool('CMS_ENABLE_SCHEDULED_SYNC')
CMS_SCHEDULED_SYNC_CRON = os.environ.get('CMS_SCHEDULED_SYNC_CRON', '0 3 * * *')

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_ACKS_LATE = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ROUTES = {
    'cms_sync.full_sync': {'queue': 'cms-bulk-sync'},
    'cms_sync.full_sync_all': {'queue': 'cms-bulk-sync'},
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'default'},
    },
    'loggers': {
        'cms_sync': {
            'handlers': ['console'],
            'level': os.environ.get('CMS_SYNC_LOG_LEVEL', 'INFO'),
            'propagate': True,
        },
    },
}
