"""
Sentry reporting for the pipeline loops.

Breadcrumbs trace which device each loop was working on, failures are
captured with the component and error category as tags, and breaker
trips go out as messages. Credentials in attached data are masked
before anything leaves the process.

With no DSN configured the sentry_sdk calls are no-ops, so callers never
need to check whether reporting is enabled.
"""

import logging
import re
from typing import Any, Dict, Mapping, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

MASK = "[Filtered]"

# Matched against each underscore or dash separated part of a key
SENSITIVE_WORDS = {"apikey", "key", "authorization", "password", "secret", "token"}


def _is_sensitive(key: Any) -> bool:
    return any(part in SENSITIVE_WORDS for part in re.split(r"[_\-]", str(key).lower()))


def _filter_sensitive_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of data with credential-like values masked, nested dicts included."""
    if not isinstance(data, Mapping):
        return data
    return {
        key: MASK if _is_sensitive(key) else _filter_sensitive_data(value)
        for key, value in data.items()
    }


def add_pipeline_breadcrumb(
    component: str,
    message: str,
    device_name: Optional[str] = None,
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    data = dict(_filter_sensitive_data(extra_data or {}))
    data["component"] = component
    if device_name:
        data["device"] = device_name

    try:
        sentry_sdk.add_breadcrumb(category="pipeline", message=message, level=level, data=data)
    except Exception as e:
        logger.warning(f"Sentry breadcrumb dropped: {e}")


def capture_pipeline_error(
    error: Exception,
    component: str,
    device_name: Optional[str] = None,
    category: Optional[str] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Report a pipeline failure.

    Args:
        error: The failure
        component: enqueuer, uploader or supervisor
        device_name: Device in flight when it failed
        category: Counter the failure was recorded under
        extra_context: Free-form details, masked before sending
    """
    add_pipeline_breadcrumb(
        component,
        f"{type(error).__name__} in {component}",
        device_name=device_name,
        level="error",
    )

    tags = {"pipeline.component": component, "pipeline.error_category": category}
    extras = {"device_name": device_name}
    if extra_context:
        extras["pipeline_context"] = _filter_sensitive_data(extra_context)

    try:
        with sentry_sdk.push_scope() as scope:
            _apply(scope, tags, extras)
            sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.warning(f"Sentry capture dropped for {type(error).__name__}: {e}")


def capture_alert(
    message: str,
    level: str = "warning",
    category: Optional[str] = None,
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """Send a breaker trip as a Sentry message tagged with its category."""
    tags = {"alert.type": "error_ceiling_breach", "pipeline.error_category": category}
    extras = {"alert_data": _filter_sensitive_data(extra_data) if extra_data else None}

    try:
        with sentry_sdk.push_scope() as scope:
            _apply(scope, tags, extras)
            sentry_sdk.capture_message(message, level=level)
    except Exception as e:
        logger.warning(f"Sentry alert dropped: {e}")


def _apply(scope, tags: Dict[str, Optional[str]], extras: Dict[str, Any]) -> None:
    # Unset values are left off the event
    for name, value in tags.items():
        if value:
            scope.set_tag(name, value)
    for name, value in extras.items():
        if value:
            scope.set_extra(name, value)
