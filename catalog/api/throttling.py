"""
Per-user request rates for the catalog API.

Pipeline control is rate limited hard since each launch ties up a
worker for hours; catalog reads get a generous budget.
"""

from rest_framework.throttling import UserRateThrottle


class PipelineControlThrottle(UserRateThrottle):
    """Launch, stop and reset: 20 per hour."""

    scope = "pipeline_control"
    rate = "20/hour"


class CatalogQueryThrottle(UserRateThrottle):
    """Top devices queries: 600 per hour."""

    scope = "catalog_query"
    rate = "600/hour"
