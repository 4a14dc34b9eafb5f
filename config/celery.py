"""
Celery application for the Device Catalog service.

A pipeline run occupies its worker for as long as the run lasts, so it
gets the "pipeline" queue to itself; catalog maintenance goes through
"default". Start workers with, for example:

    celery -A config worker -Q pipeline --concurrency 1
    celery -A config worker -Q default
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("device_catalog")

# CELERY_* settings from Django, including CELERY_TASK_ROUTES
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

app.conf.update(
    task_queues={
        queue: {"exchange": queue, "routing_key": queue}
        for queue in ("pipeline", "default")
    },
    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",
)
