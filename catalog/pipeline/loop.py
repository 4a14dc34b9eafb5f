"""
Common run loop for the enqueuer and uploader threads.
"""

import logging

from django.db import connection

from catalog.exceptions import CatalogError, PipelineCancelled
from catalog.monitoring import capture_pipeline_error, log_collection_error

logger = logging.getLogger(__name__)


class PipelineLoop:
    """
    Runs ``run_once`` until the context is cancelled.

    ``run_once`` returns how long to sleep before the next iteration.
    The sleep is cut short by cancellation.
    """

    component = "loop"

    def __init__(self, database, monitor, ctx, failure_backoff: float):
        self.database = database
        self.monitor = monitor
        self.ctx = ctx
        self.failure_backoff = failure_backoff

    def run_once(self) -> float:
        raise NotImplementedError

    def run(self) -> None:
        logger.info(f"{self.component} started")
        try:
            while not self.ctx.cancelled():
                try:
                    delay = self.run_once()
                except PipelineCancelled:
                    break
                except Exception as e:
                    # A bug in one iteration must not kill the thread
                    logger.exception(f"Unexpected error in {self.component}: {e}")
                    capture_pipeline_error(e, component=self.component)
                    delay = self.failure_backoff

                if not self.ctx.sleep(delay):
                    break
        finally:
            connection.close()
            logger.info(f"{self.component} stopped")

    def report_failure(self, error: CatalogError, device_name: str = "") -> None:
        """Log a failure and, if its category is counted, record and persist it."""
        logger.warning(
            f"{self.component} failed"
            f"{f' on {device_name}' if device_name else ''}: "
            f"{type(error).__name__}: {error}"
        )
        if error.counted:
            self.monitor.record(error.category, self.ctx)
            log_collection_error(error, component=self.component, device_name=device_name)
