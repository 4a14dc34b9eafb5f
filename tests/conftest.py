"""
Pytest configuration and fixtures for the Device Catalog test suite.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with empty throttle counters."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def authenticated_client(db, api_client):
    """API client logged in as an operator."""
    from django.contrib.auth import get_user_model

    user = get_user_model().objects.create_user(username="operator", password="operator-pass")
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def ctx():
    """Fresh pipeline context."""
    from catalog.context import PipelineContext

    return PipelineContext()


@pytest.fixture
def counter_redis():
    """
    Redis double for the error counters, backed by a dict.

    Hash fields come back as bytes like they do from a real client.
    """
    store = {}

    def hincrby(key, field, amount=1):
        fields = store.setdefault(key, {})
        field = str(field).encode()
        fields[field] = fields.get(field, 0) + amount
        return fields[field]

    def hgetall(key):
        return {field: str(value).encode() for field, value in store.get(key, {}).items()}

    def delete(*keys):
        return sum(1 for key in keys if store.pop(key, None) is not None)

    client = MagicMock()
    client.hincrby = MagicMock(side_effect=hincrby)
    client.hgetall = MagicMock(side_effect=hgetall)
    client.delete = MagicMock(side_effect=delete)
    client.ping = MagicMock(return_value=True)
    client.store = store
    return client


@pytest.fixture
def monitor(counter_redis):
    """ErrorMonitor with default ceilings over the Redis double."""
    from catalog.monitoring import ErrorMonitor

    return ErrorMonitor(redis_client=counter_redis)


@pytest.fixture
def make_device(db):
    """Factory for saved catalog devices linked into their year and month."""
    from catalog.constants import PriceCategory
    from catalog.models import Device, ReleaseMonth, ReleaseYear

    def _make(name="Galaxy S23", brand="Samsung", release_date=date(2023, 2, 17), **fields):
        year, _ = ReleaseYear.objects.get_or_create(year=release_date.year)
        month, _ = ReleaseMonth.objects.get_or_create(year=year, month=release_date.month)
        values = {
            "battery_capacity": 3900,
            "display_size": 6.1,
            "display_resolution": "1080 x 2340",
            "pixel_density": 422.0,
            "refresh_rate": 120,
            "nits": 1750,
            "single_core_score": 1500,
            "multi_core_score": 4600,
            "review_sentiment": 0.5,
            "review_magnitude": 3.0,
            "real_price": 799,
            "price_category": PriceCategory.HIGH_END,
        }
        values.update(fields)
        return Device.objects.create(
            name=name,
            brand=brand,
            release_date=release_date,
            release_year=year,
            release_month=month,
            **values,
        )

    return _make
