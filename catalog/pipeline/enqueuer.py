"""
Producer loop: discovers devices and tops up the work queue.
"""

import logging
from typing import Optional

from django.conf import settings

from catalog.exceptions import CatalogError, PipelineCancelled

from .loop import PipelineLoop

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_BACKOFF = 10
DEFAULT_IDLE_BACKOFF = 24
DEFAULT_INTERVAL = 5 * 60


class Enqueuer(PipelineLoop):
    """
    Runs discovery and enqueues what is new.

    Discovery failures are transient and only delay the next pass; they
    are not counted. Queue write failures are database errors and are.
    """

    component = "enqueuer"

    def __init__(
        self,
        database,
        discovery,
        monitor,
        ctx,
        failure_backoff: Optional[float] = None,
        idle_backoff: Optional[float] = None,
        interval: Optional[float] = None,
    ):
        super().__init__(
            database,
            monitor,
            ctx,
            failure_backoff
            if failure_backoff is not None
            else getattr(settings, "DEVICE_CATALOG_ENQUEUER_FAILURE_BACKOFF", DEFAULT_FAILURE_BACKOFF),
        )
        self.discovery = discovery
        self.idle_backoff = (
            idle_backoff
            if idle_backoff is not None
            else getattr(settings, "DEVICE_CATALOG_ENQUEUER_IDLE_BACKOFF", DEFAULT_IDLE_BACKOFF)
        )
        self.interval = (
            interval
            if interval is not None
            else getattr(settings, "DEVICE_CATALOG_ENQUEUER_INTERVAL", DEFAULT_INTERVAL)
        )

    def run_once(self) -> float:
        try:
            candidates = self.discovery.discover_all(self.ctx)
        except PipelineCancelled:
            raise
        except CatalogError as e:
            logger.warning(f"Discovery failed, retrying in {self.failure_backoff}s: {e}")
            return self.failure_backoff

        if not candidates:
            logger.info(f"Discovery returned nothing, retrying in {self.idle_backoff}s")
            return self.idle_backoff

        try:
            inserted = self.database.enqueue_batch(candidates, self.ctx)
        except PipelineCancelled:
            raise
        except CatalogError as e:
            self.report_failure(e)
            return self.failure_backoff

        logger.info(f"Enqueued {inserted} devices from {len(candidates)} discovered")
        return self.interval
