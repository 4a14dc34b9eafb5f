"""
Benchmark estimation for devices the benchmark source does not list.

A device borrows its benchmark from last year's equivalent:

1. The previous generation by name ("Galaxy S24" -> "Galaxy S23"),
   uplifted by a fixed yearly factor.
2. Otherwise the closest fuzzy name match among last year's devices in
   a nearby price category (any category for Apple), damped per unit of
   price category distance.
"""

import logging
import re
from typing import List, Optional, Tuple

from django.conf import settings
from rapidfuzz import fuzz

from catalog.constants import APPLE_BRAND
from catalog.exceptions import NoLastYearEquivalentError
from catalog.models import Device

logger = logging.getLogger(__name__)

DEFAULT_YEARLY_UPLIFT = 1.10
DEFAULT_CATEGORY_DAMPING = 0.25
DEFAULT_MATCH_SCORE_CUTOFF = 70

GENERATION_NUMBER = re.compile(r"\d+")


def decrement_generation(name: str) -> Optional[str]:
    """
    Decrement the first number in a model name.

    Returns:
        The predecessor's name, or None if the name has no positive number
    """
    match = GENERATION_NUMBER.search(name)
    if match is None:
        return None

    number = int(match.group())
    if number <= 0:
        return None

    return f"{name[:match.start()]}{number - 1}{name[match.end():]}"


class BenchmarkEstimator:
    """Derives substitute benchmark scores from predecessor devices."""

    def __init__(
        self,
        yearly_uplift: Optional[float] = None,
        category_damping: Optional[float] = None,
        score_cutoff: Optional[int] = None,
    ):
        self.yearly_uplift = (
            yearly_uplift
            if yearly_uplift is not None
            else getattr(settings, "DEVICE_CATALOG_YEARLY_UPLIFT", DEFAULT_YEARLY_UPLIFT)
        )
        self.category_damping = (
            category_damping
            if category_damping is not None
            else getattr(settings, "DEVICE_CATALOG_CATEGORY_DAMPING", DEFAULT_CATEGORY_DAMPING)
        )
        self.score_cutoff = (
            score_cutoff
            if score_cutoff is not None
            else getattr(settings, "DEVICE_CATALOG_MATCH_SCORE_CUTOFF", DEFAULT_MATCH_SCORE_CUTOFF)
        )

    def last_year_equivalent(self, device, ctx) -> Tuple[float, float]:
        """
        Find substitute (single core, multi core) scores for a device.

        Raises:
            NoLastYearEquivalentError: If no predecessor could be matched
        """
        ctx.check("last_year_equivalent")

        scores = self._previous_generation(device)
        if scores is None:
            scores = self._closest_last_year_device(device)
        if scores is None:
            raise NoLastYearEquivalentError(
                f"no last year equivalent for {device.full_name}",
                device_name=device.full_name,
            )
        return scores

    def estimate(self, device, ctx) -> None:
        """Set the device's benchmark fields from its last year equivalent."""
        single_core, multi_core = self.last_year_equivalent(device, ctx)
        device.single_core_score = single_core
        device.multi_core_score = multi_core
        device.is_estimated_benchmark = True
        logger.info(
            f"Estimated benchmark for {device.full_name}: "
            f"single={single_core:.0f}, multi={multi_core:.0f}"
        )

    def reestimate_all(self, ctx) -> List[Device]:
        """
        Re-run estimation for every estimated device, oldest release first.

        Devices without a match keep their current values.

        Returns:
            Devices whose benchmark fields were updated
        """
        updated = []
        estimated = Device.objects.filter(is_estimated_benchmark=True).order_by(
            "release_date", "created_at"
        )
        for device in estimated:
            ctx.check("reestimate_all")
            try:
                self.estimate(device, ctx)
            except NoLastYearEquivalentError:
                logger.info(f"Still no equivalent for {device.full_name}, keeping estimate")
                continue

            device.save(update_fields=["single_core_score", "multi_core_score"])
            updated.append(device)

        logger.info(f"Re-estimated {len(updated)} of {len(estimated)} estimated devices")
        return updated

    def _previous_generation(self, device) -> Optional[Tuple[float, float]]:
        predecessor_name = decrement_generation(device.name)
        if predecessor_name is None:
            return None

        predecessor = (
            Device.objects.filter(
                brand__iexact=device.brand,
                name__iexact=predecessor_name,
                single_core_score__gt=0,
            )
            .exclude(pk=device.pk)
            .first()
        )
        if predecessor is None:
            return None

        logger.debug(f"{device.full_name}: previous generation is {predecessor.full_name}")
        return (
            predecessor.single_core_score * self.yearly_uplift,
            predecessor.multi_core_score * self.yearly_uplift,
        )

    def _closest_last_year_device(self, device) -> Optional[Tuple[float, float]]:
        candidates = Device.objects.filter(
            release_year__year=device.release_date.year - 1,
            single_core_score__gt=0,
        ).exclude(pk=device.pk)

        if device.brand != APPLE_BRAND:
            candidates = candidates.filter(
                price_category__gte=device.price_category - 1,
                price_category__lte=device.price_category + 1,
            )

        target = device.full_name.lower()
        best_match = None
        best_key = None

        for candidate in candidates:
            similarity = max(
                fuzz.token_set_ratio(target, candidate.full_name.lower()),
                fuzz.ratio(target, candidate.full_name.lower()),
            )
            if similarity < self.score_cutoff:
                continue

            distance = abs(candidate.price_category - device.price_category)
            # Prefer higher similarity, then the closer price category
            key = (similarity, -distance)
            if best_key is None or key > best_key:
                best_match, best_key = candidate, key

        if best_match is None:
            return None

        distance = abs(best_match.price_category - device.price_category)
        damping = max(0.0, 1 - self.category_damping * distance)
        logger.debug(
            f"{device.full_name}: last year match {best_match.full_name} "
            f"(similarity {best_key[0]:.0f}, category distance {distance})"
        )
        return (
            best_match.single_core_score * damping,
            best_match.multi_core_score * damping,
        )
