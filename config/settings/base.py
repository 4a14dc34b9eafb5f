"""
Settings shared by every environment of the device catalog service.

Environment modules (development, production, test) star-import this one
and override the database, cache and anything that differs per deploy.
Values come from the process environment, with a local .env file loaded
first when present.
"""

import os
from pathlib import Path

import sentry_sdk
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _env_float(name, default):
    return float(os.getenv(name, str(default)))


def _env_int(name, default):
    return int(os.getenv(name, str(default)))


def _env_list(name, default):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# Core

SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-device-catalog-local-only")
DEBUG = os.getenv("DEBUG", "True") == "True"
ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", "localhost,127.0.0.1")

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "drf_spectacular",
    "catalog",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# Only the admin renders templates
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": f"django.contrib.auth.password_validation.{validator}"}
    for validator in (
        "UserAttributeSimilarityValidator",
        "MinimumLengthValidator",
        "CommonPasswordValidator",
        "NumericPasswordValidator",
    )
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Each environment module supplies these
DATABASES = {}
CACHES = {}


# Redis holds the per-category error counters. Empty means reuse the broker.
REDIS_URL = os.getenv("REDIS_URL", "")


# Celery

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
# run_data_collection holds its worker slot for the whole run
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ROUTES = {
    "catalog.tasks.run_data_collection": {"queue": "pipeline"},
    "catalog.tasks.reset_catalog": {"queue": "default"},
}


# REST API

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Device Catalog API",
    "DESCRIPTION": "Phone catalog built from specs, prices, benchmarks and reviews",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# Logging

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "pipeline": {
            "format": "{asctime} {levelname} [{threadName}] {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "pipeline"},
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": LOG_LEVEL},
        "catalog": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}


# External services

DEVICE_SPECS_API_URL = os.getenv("DEVICE_SPECS_API_URL", "https://phone-specs-api.vercel.app")
GEEKBENCH_BASE_URL = os.getenv("GEEKBENCH_BASE_URL", "https://browser.geekbench.com")

# Custom Search finds the price and review pages
GOOGLE_CUSTOM_SEARCH_KEY = os.getenv("GOOGLE_CUSTOM_SEARCH_KEY", "")
REVIEW_SEARCH_ENGINE_ID = os.getenv("REVIEW_SEARCH_ENGINE_ID", "")
PRICE_SEARCH_ENGINE_ID = os.getenv("PRICE_SEARCH_ENGINE_ID", "")
PRICE_SITE_DOMAIN = os.getenv("PRICE_SITE_DOMAIN", "zap.co.il")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

NATURAL_LANGUAGE_API_KEY = os.getenv("NATURAL_LANGUAGE_API_KEY", "")


# Sentry stays off until a DSN is configured

SENTRY_DSN = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
SENTRY_TRACES_SAMPLE_RATE = _env_float("SENTRY_TRACES_SAMPLE_RATE", 0.1)
SENTRY_PROFILE_SAMPLE_RATE = _env_float("SENTRY_PROFILE_SAMPLE_RATE", 0.0)

if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        profiles_sample_rate=SENTRY_PROFILE_SAMPLE_RATE,
    )


# Pipeline

DEVICE_CATALOG_REQUEST_TIMEOUT = _env_float("DEVICE_CATALOG_REQUEST_TIMEOUT", 30)
DEVICE_CATALOG_QUEUE_CAPACITY = _env_int("DEVICE_CATALOG_QUEUE_CAPACITY", 30)

# Loop pacing, in seconds
DEVICE_CATALOG_ENQUEUER_INTERVAL = _env_float("DEVICE_CATALOG_ENQUEUER_INTERVAL", 300)
DEVICE_CATALOG_ENQUEUER_IDLE_BACKOFF = _env_float("DEVICE_CATALOG_ENQUEUER_IDLE_BACKOFF", 24)
DEVICE_CATALOG_ENQUEUER_FAILURE_BACKOFF = _env_float("DEVICE_CATALOG_ENQUEUER_FAILURE_BACKOFF", 10)
DEVICE_CATALOG_UPLOADER_INTERVAL = _env_float("DEVICE_CATALOG_UPLOADER_INTERVAL", 30)
DEVICE_CATALOG_UPLOADER_FAILURE_BACKOFF = _env_float("DEVICE_CATALOG_UPLOADER_FAILURE_BACKOFF", 10)
DEVICE_CATALOG_STOP_POLL_INTERVAL = _env_float("DEVICE_CATALOG_STOP_POLL_INTERVAL", 2)
DEVICE_CATALOG_JOIN_TIMEOUT = _env_float("DEVICE_CATALOG_JOIN_TIMEOUT", 60)

# Estimated uploads between full catalog re-estimations
DEVICE_CATALOG_REESTIMATION_CYCLE_LIMIT = _env_int("DEVICE_CATALOG_REESTIMATION_CYCLE_LIMIT", 3)

DEVICE_CATALOG_YEARLY_UPLIFT = _env_float("DEVICE_CATALOG_YEARLY_UPLIFT", 1.10)
DEVICE_CATALOG_CATEGORY_DAMPING = _env_float("DEVICE_CATALOG_CATEGORY_DAMPING", 0.25)
DEVICE_CATALOG_MATCH_SCORE_CUTOFF = _env_float("DEVICE_CATALOG_MATCH_SCORE_CUTOFF", 70)

DEVICE_CATALOG_EARLIEST_RELEASE_YEAR = _env_int("DEVICE_CATALOG_EARLIEST_RELEASE_YEAR", 2019)
DEVICE_CATALOG_TOP_N_LIMIT = _env_int("DEVICE_CATALOG_TOP_N_LIMIT", 3)
DEVICE_CATALOG_REVIEW_SOURCES = _env_list("DEVICE_CATALOG_REVIEW_SOURCES", "cnet,tomsguide")

# A count above its ceiling stops the run
DEVICE_CATALOG_ERROR_CEILINGS = {
    "clean_up": 10,
    "sentiment_analysis": 3,
    "creating_new_ai_client": 3,
    "ai_network": 3,
    "failed_ai_instruction": 1,
    "getting_url": 5,
    "getting_document": 5,
    "parsing": 5,
    "missing_document": 1,
    "database_network": 3,
    "general_database": 1,
    "invalid_const_id_string": 1,
}
