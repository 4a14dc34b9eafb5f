"""
Local development settings.

SQLite file database, in-process cache and verbose pipeline logging.
Celery and the error counters still expect a Redis on localhost.
"""

from .base import *  # noqa: F401,F403

DEBUG = True
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]
INTERNAL_IPS = ["127.0.0.1"]

# Both loops write from their own threads; let a writer wait out the other's lock
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "catalog.sqlite3",
        "OPTIONS": {"timeout": 20},
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "device-catalog-dev",
    }
}

AUTH_PASSWORD_VALIDATORS = []
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

LOGGING["loggers"]["catalog"]["level"] = "DEBUG"

# Shorter cycles so a local run shows progress quickly
DEVICE_CATALOG_REQUEST_TIMEOUT = 60
DEVICE_CATALOG_ENQUEUER_INTERVAL = 60
DEVICE_CATALOG_UPLOADER_INTERVAL = 5
DEVICE_CATALOG_JOIN_TIMEOUT = 15
