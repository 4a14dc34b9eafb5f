"""
Recomputes every catalog device's unvalidated scores when the
unvalidated bounding box grows.
"""

import logging

from django.db import transaction

from catalog.models import Device, ScoringState
from catalog.scoring import MinMaxValues, score_device

logger = logging.getLogger(__name__)


class MinMaxNormalizer:
    """Rescores the catalog against a new unvalidated box."""

    def recompute_all(self, new_box: MinMaxValues, ctx) -> int:
        """
        Recompute the unvalidated review and final score of every device.

        Scores are a pure function of the device's raw fields and the box,
        so running this twice with the same box stores the same values.

        Returns:
            Number of devices rescored
        """
        rescored = 0
        for device in Device.objects.all():
            ctx.check("recompute_all")
            device.apply_unvalidated_scores(score_device(new_box, device))
            device.save(update_fields=Device.UNVALIDATED_SCORE_FIELDS)
            rescored += 1
        return rescored

    def normalize_unvalidated(self, new_box: MinMaxValues, ctx) -> int:
        """Rescore the catalog and persist ``new_box`` as the unvalidated box."""
        ctx.check("normalize_unvalidated")

        with transaction.atomic():
            rescored = self.recompute_all(new_box, ctx)
            state = ScoringState.load(for_update=True)
            state.unvalidated_box = new_box.to_dict()
            state.save(update_fields=["unvalidated_box", "updated_at"])

        logger.info(f"Rescored {rescored} devices against the new unvalidated box")
        return rescored
