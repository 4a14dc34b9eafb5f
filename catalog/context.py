"""
Cooperative cancellation shared by every pipeline component.

The context combines a cancellation token with two stop signals:
``too_many_errors`` raised by the error monitor and ``stop_requested``
raised on behalf of an operator. Raising a signal never blocks and is
idempotent; only the supervisor turns a signal into cancellation, which
keeps the two outcomes distinguishable.
"""

import logging
import threading
from typing import Optional

from catalog.exceptions import PipelineCancelled

logger = logging.getLogger(__name__)


class PipelineContext:
    """Cancellation token plus stop signals for one pipeline run."""

    def __init__(self):
        self._cancelled = threading.Event()
        self._too_many_errors = threading.Event()
        self._stop_requested = threading.Event()
        # Set whenever any signal fires so the supervisor can wait on one event.
        self._signalled = threading.Event()

    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self, operation: str = "") -> None:
        """Raise PipelineCancelled if the context was cancelled."""
        if self._cancelled.is_set():
            raise PipelineCancelled(f"stopping {operation}" if operation else "pipeline cancelled")

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            logger.info("Cancelling pipeline context")
        self._cancelled.set()
        self._signalled.set()

    def signal_too_many_errors(self) -> None:
        self._too_many_errors.set()
        self._signalled.set()

    def request_stop(self) -> None:
        self._stop_requested.set()
        self._signalled.set()

    @property
    def too_many_errors(self) -> bool:
        return self._too_many_errors.is_set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def wait_for_signal(self, timeout: Optional[float] = None) -> bool:
        """Block until a stop signal or cancellation, or until timeout."""
        return self._signalled.wait(timeout)

    def sleep(self, seconds: float) -> bool:
        """
        Sleep unless cancelled first.

        Returns:
            True if the full interval elapsed, False if cancellation cut it short
        """
        if seconds <= 0:
            return not self.cancelled()
        return not self._cancelled.wait(seconds)
