"""
Catalog writes and reads outside the scoring protocol: committing a new
device, the top-N query and the full reset.
"""

import logging
from typing import List

from django.conf import settings
from django.db import transaction
from django.db.models import Q

from catalog.exceptions import InvalidDeviceError
from catalog.models import (
    Device,
    QueueCounter,
    QueueEntry,
    ReleaseMonth,
    ReleaseYear,
    ScoringState,
)
from catalog.types import DeviceFilters

logger = logging.getLogger(__name__)

DEFAULT_TOP_N_LIMIT = 3


def upload_device(device: Device) -> Device:
    """
    Insert a fully enriched device and count it in the unvalidated box.

    Links the device into its release year and month, creating them on
    first use. Everything happens in one transaction so the device count
    recorded in the box never drifts from the catalog.

    Raises:
        InvalidDeviceError: If the catalog already holds this brand and name.
            Discovery can queue a device again while the uploader is still
            enriching the copy it dequeued.
    """
    with transaction.atomic():
        duplicate = Device.objects.filter(
            brand__iexact=device.brand, name__iexact=device.name
        ).exists()
        if duplicate:
            raise InvalidDeviceError(
                f"{device.full_name} is already in the catalog",
                device_name=device.full_name,
            )

        year, _ = ReleaseYear.objects.get_or_create(year=device.release_date.year)
        month, _ = ReleaseMonth.objects.get_or_create(
            year=year, month=device.release_date.month
        )
        device.release_year = year
        device.release_month = month
        device.save(force_insert=True)

        state = ScoringState.load(for_update=True)
        box = state.unvalidated
        state.unvalidated_box = box.with_device_count(box.device_count + 1).to_dict()
        state.save(update_fields=["unvalidated_box", "updated_at"])

    logger.info(f"Uploaded {device.full_name} ({device.release_date:%Y-%m})")
    return device


def top_devices(filters: DeviceFilters, limit: int = None) -> List[Device]:
    """
    Best devices under the given filters by validated final score.

    Args:
        filters: Price, display size, refresh rate and brand filters
        limit: Maximum number of devices (defaults to settings.DEVICE_CATALOG_TOP_N_LIMIT)

    Returns:
        Devices sorted by validated final score, highest first
    """
    if limit is None:
        limit = getattr(settings, "DEVICE_CATALOG_TOP_N_LIMIT", DEFAULT_TOP_N_LIMIT)

    queryset = Device.objects.all()
    ranges = (
        ("real_price", filters.min_price, filters.max_price),
        ("display_size", filters.min_display_size, filters.max_display_size),
        ("refresh_rate", filters.min_refresh_rate, filters.max_refresh_rate),
    )
    for field, lower, upper in ranges:
        if lower is not None:
            queryset = queryset.filter(**{f"{field}__gte": lower})
        if upper is not None:
            queryset = queryset.filter(**{f"{field}__lte": upper})

    if filters.brands:
        brand_filter = Q()
        for brand in filters.brands:
            brand_filter |= Q(brand__iexact=brand)
        queryset = queryset.filter(brand_filter)

    return list(queryset.order_by("-validated_final_score", "created_at")[:limit])


def reset_catalog() -> None:
    """Delete every device, grouping and queue entry and reset both boxes."""
    with transaction.atomic():
        Device.objects.all().delete()
        ReleaseMonth.objects.all().delete()
        ReleaseYear.objects.all().delete()
        QueueEntry.objects.all().delete()

        counter = QueueCounter.load(for_update=True)
        counter.size = 0
        counter.save(update_fields=["size"])

        ScoringState.load(for_update=True).reset()

    logger.warning("Catalog reset: devices, groupings, queue and boxes cleared")
