"""
Settings for the pytest run.

Everything stays in process: SQLite in memory, a local cache for the
throttles, eager Celery and no Sentry. The pipeline loops never sleep so
threaded tests finish quickly.
"""

from .base import *  # noqa: F401,F403

DEBUG = False
ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "device-catalog-tests",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
AUTH_PASSWORD_VALIDATORS = []

LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["catalog"]["level"] = "WARNING"

SENTRY_DSN = ""
# Tests hand the monitor a fake counter store
REDIS_URL = ""

DEVICE_CATALOG_REQUEST_TIMEOUT = 5
DEVICE_CATALOG_ENQUEUER_INTERVAL = 0
DEVICE_CATALOG_ENQUEUER_IDLE_BACKOFF = 0
DEVICE_CATALOG_ENQUEUER_FAILURE_BACKOFF = 0
DEVICE_CATALOG_UPLOADER_INTERVAL = 0
DEVICE_CATALOG_UPLOADER_FAILURE_BACKOFF = 0
DEVICE_CATALOG_STOP_POLL_INTERVAL = 0.01
DEVICE_CATALOG_JOIN_TIMEOUT = 5
