"""
Device catalog Django application.

Discovers consumer devices, enriches them with specs, price, benchmark
and review data, and keeps a comparably-scored catalog that can be
queried for the best devices under a set of filters.
"""

default_app_config = "catalog.apps.CatalogConfig"
