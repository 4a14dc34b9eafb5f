"""
Durable record of counted collection failures.

The error monitor only keeps counts. Each counted failure is also stored
as a CollectionError row with its device, URL and stack trace, and sent
to Sentry, so the failures behind a breaker trip can be looked up later.
"""

import logging
import traceback
from typing import Optional

from django.db import DatabaseError

logger = logging.getLogger(__name__)


def log_collection_error(
    error: Exception,
    component: str,
    device_name: str = "",
    url: Optional[str] = None,
):
    """
    Store and report a counted failure.

    The device name and URL default to the ones carried by the error.
    Returns the CollectionError row, or None when the error has no
    category or the write failed.
    """
    from catalog.models import CollectionError

    from .sentry_integration import capture_pipeline_error

    category = getattr(error, "category", None)
    device_name = device_name or getattr(error, "device_name", "")
    url = url or getattr(error, "url", "")

    record = None
    if category:
        trace = traceback.format_exception(type(error), error, error.__traceback__)
        try:
            record = CollectionError.from_failure(
                category,
                str(error),
                device_name=device_name,
                url=url,
                stack_trace="".join(trace),
            )
        except DatabaseError as e:
            # The catalog database may be the thing that failed
            logger.error(f"Could not store {category} failure: {e}")

    capture_pipeline_error(
        error,
        component=component,
        device_name=device_name,
        category=category,
        extra_context={"url": url} if url else None,
    )
    return record
