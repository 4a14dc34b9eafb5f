"""
Failure handling for the data collection pipeline: the per-category
error counters that act as the circuit breaker, the CollectionError log
and Sentry reporting.
"""

from .sentry_integration import add_pipeline_breadcrumb, capture_alert, capture_pipeline_error
from .error_monitor import ErrorMonitor, build_error_monitor
from .error_logger import log_collection_error

__all__ = [
    "add_pipeline_breadcrumb",
    "capture_alert",
    "capture_pipeline_error",
    "ErrorMonitor",
    "build_error_monitor",
    "log_collection_error",
]
