"""
Unauthenticated health check for load balancers and uptime checks.

The catalog database and the Redis counter store both have to answer for
the service to report healthy: without the counters every pipeline run
would trip its breaker on the first failure.
"""

import logging

import redis
from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse

from catalog.models import PipelineRun, QueueCounter

logger = logging.getLogger(__name__)

REDIS_SCHEMES = ("redis://", "rediss://", "unix://")


def get_redis_connection():
    """Client for the counter store, or None when no Redis URL is set."""
    url = getattr(settings, "REDIS_URL", "") or getattr(settings, "CELERY_BROKER_URL", "")
    if not url.startswith(REDIS_SCHEMES):
        return None
    return redis.from_url(url, socket_connect_timeout=2)


def _check_database() -> bool:
    try:
        connection.ensure_connection()
    except DatabaseError as e:
        logger.warning(f"Health: database unreachable: {e}")
        return False
    return True


def _check_redis() -> str:
    client = get_redis_connection()
    if client is None:
        return "not_configured"
    try:
        return "connected" if client.ping() else "error"
    except redis.RedisError as e:
        logger.warning(f"Health: counter store unreachable: {e}")
        return "error"


def _pipeline_state():
    """Queue depth and active run id, both None if they cannot be read."""
    try:
        run = PipelineRun.active().first()
        return QueueCounter.load().size, (str(run.id) if run else None)
    except DatabaseError as e:
        logger.warning(f"Health: pipeline state unavailable: {e}")
        return None, None


def health_check(request):
    """
    GET /api/health/

    Returns 200 with status "healthy", or 503 with "unhealthy" when the
    database or a configured Redis does not respond.
    """
    database_up = _check_database()
    redis_status = _check_redis()
    queue_depth, active_run = _pipeline_state() if database_up else (None, None)

    healthy = database_up and redis_status != "error"
    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "database": "connected" if database_up else "error",
            "redis": redis_status,
            "queue_depth": queue_depth,
            "active_run": active_run,
        },
        status=200 if healthy else 503,
    )
