"""
Per-category failure counters with ceilings (the pipeline circuit breaker).

- Counters live in one Redis hash so they survive restarts
- Every increment happens under a process lock
- A category whose count exceeds its ceiling trips the context's
  ``too_many_errors`` signal and raises a Sentry alert
- Counters only go back to zero through ``reset()``

Usage:
    from catalog.monitoring import build_error_monitor

    monitor = build_error_monitor()
    monitor.record(ErrorCategory.PARSING, ctx)
"""

import logging
import threading
from typing import Dict, Mapping, Optional

import redis
from django.conf import settings

from catalog.constants import DEFAULT_ERROR_CEILINGS, ErrorCategory

logger = logging.getLogger(__name__)

DEFAULT_COUNTERS_KEY = "catalog:error_counters"


def trigger_ceiling_alert(category: str, count: int, ceiling: int) -> None:
    """Log and report a breached ceiling."""
    from .sentry_integration import capture_alert

    message = (
        f"Error ceiling breached for {category}: "
        f"{count} failures (ceiling {ceiling}), stopping pipeline"
    )
    logger.error(message)

    capture_alert(
        message=message,
        level="error",
        category=category,
        extra_data={"count": count, "ceiling": ceiling},
    )


class ErrorMonitor:
    """
    Owns the persisted error counters.

    Injected into every component that can fail; tests build one per
    case with their own Redis double and ceilings.
    """

    def __init__(
        self,
        redis_client=None,
        ceilings: Optional[Mapping[str, int]] = None,
        key: str = DEFAULT_COUNTERS_KEY,
    ):
        """
        Initialize the monitor.

        Args:
            redis_client: Redis client instance holding the counters hash
            ceilings: Ceiling per ErrorCategory value (defaults to DEFAULT_ERROR_CEILINGS)
            key: Redis hash key for the counters
        """
        self.redis_client = redis_client
        self.ceilings = {str(k): int(v) for k, v in (ceilings or DEFAULT_ERROR_CEILINGS).items()}
        self.key = key
        self._lock = threading.Lock()

    def ceiling_for(self, category: str) -> int:
        return self.ceilings.get(str(category), 0)

    def record(self, category: str, ctx) -> int:
        """
        Count one failure for a category.

        A no-op once the context is cancelled. If the counter store is
        unreachable the stop signal is delivered, since failures can no
        longer be bounded.

        Args:
            category: ErrorCategory value
            ctx: PipelineContext of the current run

        Returns:
            Count after the increment (0 when nothing was recorded)
        """
        if ctx.cancelled():
            return 0

        category = str(category)

        with self._lock:
            if self.redis_client is None:
                logger.error(f"Error counter store not available, cannot record {category}")
                ctx.signal_too_many_errors()
                return 0

            try:
                count = int(self.redis_client.hincrby(self.key, category, 1))
            except redis.RedisError as e:
                logger.error(f"Failed to record {category} error in Redis: {e}")
                ctx.signal_too_many_errors()
                return 0

        ceiling = self.ceiling_for(category)
        logger.debug(f"Recorded {category} error: count={count}, ceiling={ceiling}")

        if count > ceiling:
            trigger_ceiling_alert(category, count, ceiling)
            ctx.signal_too_many_errors()

        return count

    def reset(self) -> None:
        """Zero every counter. Only call while no pipeline loop is running."""
        with self._lock:
            if self.redis_client is None:
                logger.warning("Error counter store not available, nothing to reset")
                return
            self.redis_client.delete(self.key)
        logger.info("Error counters reset")

    def snapshot(self) -> Dict[str, int]:
        """Current count for every category."""
        counts = {category.value: 0 for category in ErrorCategory}
        if self.redis_client is None:
            return counts

        with self._lock:
            try:
                stored = self.redis_client.hgetall(self.key) or {}
            except redis.RedisError as e:
                logger.warning(f"Failed to read error counters from Redis: {e}")
                return counts

        for raw_key, raw_value in stored.items():
            category = raw_key.decode() if isinstance(raw_key, bytes) else str(raw_key)
            counts[category] = int(raw_value)
        return counts


def build_error_monitor() -> ErrorMonitor:
    """
    Create an ErrorMonitor from settings.

    Ceilings come from DEVICE_CATALOG_ERROR_CEILINGS layered over the
    defaults; the Redis client from REDIS_URL.
    """
    ceilings = dict(DEFAULT_ERROR_CEILINGS)
    ceilings.update(getattr(settings, "DEVICE_CATALOG_ERROR_CEILINGS", {}))
    return ErrorMonitor(redis_client=_get_redis_client(), ceilings=ceilings)


def _get_redis_client():
    """
    Get a Redis client for the counter store.

    Returns:
        Redis client or None if connection fails
    """
    redis_url = getattr(settings, "REDIS_URL", None) or getattr(
        settings, "CELERY_BROKER_URL", "redis://localhost:6379/1"
    )

    try:
        client = redis.from_url(redis_url)
        client.ping()
        return client

    except redis.RedisError as e:
        logger.warning(f"Failed to connect to Redis for error counters: {e}")
        return None
