"""
Supervisor for one pipeline run.

Connects the database, finishes any validation a previous run left
half-done, starts the enqueuer and uploader threads and waits for the
first stop signal. On a signal it cancels the context, joins the loops
with a bounded wait and reports how the run ended.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from django.conf import settings

from catalog.constants import PipelineOutcome
from catalog.context import PipelineContext
from catalog.exceptions import CatalogError
from catalog.monitoring import add_pipeline_breadcrumb, capture_pipeline_error

from .enqueuer import Enqueuer
from .uploader import Uploader

logger = logging.getLogger(__name__)

DEFAULT_STOP_POLL_INTERVAL = 2.0
DEFAULT_JOIN_TIMEOUT = 60.0


@dataclass
class PipelineResult:
    """How a run ended and the error counters at that moment."""

    outcome: str
    error_counts: Dict[str, int] = field(default_factory=dict)
    message: str = ""


class PipelineSupervisor:
    """Owns the loop threads for one run."""

    def __init__(
        self,
        database,
        collaborators,
        monitor,
        ctx: Optional[PipelineContext] = None,
        stop_requested: Optional[Callable[[], bool]] = None,
        stop_poll_interval: Optional[float] = None,
        join_timeout: Optional[float] = None,
    ):
        """
        Args:
            database: DatabaseInterface implementation
            collaborators: Discovery source and enrichers
            monitor: ErrorMonitor wired to the same context
            ctx: Context shared with the loops (created if omitted)
            stop_requested: Polled for stop requests issued from elsewhere
            stop_poll_interval: Seconds between polls of stop_requested
            join_timeout: Seconds to wait for each loop after cancelling
        """
        self.database = database
        self.collaborators = collaborators
        self.monitor = monitor
        self.ctx = ctx or PipelineContext()
        self.external_stop = stop_requested
        self.stop_poll_interval = (
            stop_poll_interval
            if stop_poll_interval is not None
            else getattr(settings, "DEVICE_CATALOG_STOP_POLL_INTERVAL", DEFAULT_STOP_POLL_INTERVAL)
        )
        self.join_timeout = (
            join_timeout
            if join_timeout is not None
            else getattr(settings, "DEVICE_CATALOG_JOIN_TIMEOUT", DEFAULT_JOIN_TIMEOUT)
        )
        self.enqueuer = Enqueuer(database, collaborators.discovery, monitor, self.ctx)
        self.uploader = Uploader(database, collaborators, monitor, self.ctx)

    def run(self) -> PipelineResult:
        """Run until a stop signal and return the outcome."""
        logger.info("Pipeline starting")

        try:
            self.database.connect(self.ctx)
            if not self.database.is_up(self.ctx):
                return self._finish(PipelineOutcome.FAILED, "database is not reachable")
            if self.database.resume_interrupted_validation(self.ctx):
                logger.info("Finished validation interrupted by a previous run")
        except CatalogError as e:
            logger.error(f"Pipeline failed to start: {e}")
            capture_pipeline_error(e, component="supervisor", category=e.category)
            return self._finish(PipelineOutcome.FAILED, str(e))

        threads = self._start_loops()
        try:
            outcome = self._wait(threads)
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping pipeline")
            self.ctx.request_stop()
            outcome = PipelineOutcome.STOPPED_BY_REQUEST

        self.ctx.cancel()
        self._join(threads)
        return self._finish(outcome, self._describe(outcome))

    def _start_loops(self) -> List[threading.Thread]:
        threads = [
            threading.Thread(target=self.enqueuer.run, name="catalog-enqueuer", daemon=True),
            threading.Thread(target=self.uploader.run, name="catalog-uploader", daemon=True),
        ]
        for thread in threads:
            thread.start()
        add_pipeline_breadcrumb(component="supervisor", message="Loops started")
        return threads

    def _wait(self, threads: List[threading.Thread]) -> str:
        while True:
            if self.ctx.wait_for_signal(self.stop_poll_interval):
                if self.ctx.too_many_errors:
                    return PipelineOutcome.TOO_MANY_ERRORS
                return PipelineOutcome.STOPPED_BY_REQUEST

            if self.external_stop is not None and self._poll_external_stop():
                logger.info("Stop requested")
                self.ctx.request_stop()
                continue

            if not any(thread.is_alive() for thread in threads):
                return PipelineOutcome.COMPLETED

    def _poll_external_stop(self) -> bool:
        try:
            return bool(self.external_stop())
        except Exception as e:
            logger.warning(f"Could not poll for stop request: {e}")
            return False

    def _join(self, threads: List[threading.Thread]) -> None:
        for thread in threads:
            thread.join(self.join_timeout)
            if thread.is_alive():
                logger.warning(f"{thread.name} did not stop within {self.join_timeout}s")

    def _describe(self, outcome: str) -> str:
        if outcome == PipelineOutcome.TOO_MANY_ERRORS:
            counts = self.monitor.snapshot()
            breached = [
                category
                for category, count in counts.items()
                if count > self.monitor.ceiling_for(category)
            ]
            if breached:
                return f"error ceiling exceeded: {', '.join(sorted(breached))}"
            return "error counters unavailable"
        if outcome == PipelineOutcome.COMPLETED:
            return "both loops exited"
        return ""

    def _finish(self, outcome: str, message: str = "") -> PipelineResult:
        try:
            self.collaborators.close()
        except CatalogError as e:
            logger.warning(f"Cleanup failed: {e}")
            # The run context is cancelled by now and would drop the count
            self.monitor.record(e.category, PipelineContext())
        self.database.disconnect()

        result = PipelineResult(
            outcome=str(outcome),
            error_counts=self.monitor.snapshot(),
            message=message,
        )
        logger.info(f"Pipeline finished: {result.outcome}{f' ({message})' if message else ''}")
        return result
