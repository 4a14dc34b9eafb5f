"""
Two-phase promotion of unvalidated scores to validated.

The ScoringState row moves to ``promoting`` (together with the new
validated box) before any device is touched and back to ``idle`` only
after every device was promoted. Promotion is a plain copy, so a pass
interrupted half way is repaired by simply running it again.
"""

import logging

from django.db import transaction
from django.utils import timezone

from catalog.constants import ErrorCategory, ValidationStatus
from catalog.models import Device, ScoringState
from catalog.scoring import MinMaxValues

logger = logging.getLogger(__name__)


class ScoreValidator:
    """Promotes the unvalidated box and scores; recovers interrupted passes."""

    def __init__(self, monitor):
        """
        Args:
            monitor: ErrorMonitor used to count device count mismatches
        """
        self.monitor = monitor

    def is_interrupted(self) -> bool:
        return ScoringState.load().is_promoting

    def validate(self, new_box: MinMaxValues, ctx) -> int:
        """
        Promote ``new_box`` and every device's unvalidated scores.

        Args:
            new_box: Box the unvalidated scores were computed against
            ctx: PipelineContext

        Returns:
            Number of devices promoted
        """
        ctx.check("validate")

        with transaction.atomic():
            state = ScoringState.load(for_update=True)
            state.validation_status = ValidationStatus.PROMOTING
            state.promotion_started_at = timezone.now()
            state.validated_box = new_box.to_dict()
            state.save(
                update_fields=[
                    "validation_status",
                    "promotion_started_at",
                    "validated_box",
                    "updated_at",
                ]
            )

        device_count = Device.objects.count()
        if device_count != new_box.device_count:
            logger.warning(
                f"Catalog holds {device_count} devices but the box counts "
                f"{new_box.device_count}, promoting what exists"
            )
            self.monitor.record(ErrorCategory.MISSING_DOCUMENT, ctx)

        promoted = 0
        for device in Device.objects.all():
            ctx.check("validate")
            device.promote_scores()
            device.save(update_fields=Device.VALIDATED_SCORE_FIELDS)
            promoted += 1

        with transaction.atomic():
            state = ScoringState.load(for_update=True)
            state.validation_status = ValidationStatus.IDLE
            state.promotion_started_at = None
            state.last_validated_at = timezone.now()
            state.save(
                update_fields=[
                    "validation_status",
                    "promotion_started_at",
                    "last_validated_at",
                    "updated_at",
                ]
            )

        logger.info(f"Validated {promoted} devices")
        return promoted

    def resume_interrupted(self, ctx) -> bool:
        """
        Re-run an interrupted validation with the stored unvalidated box.

        Returns:
            True if a pass was resumed
        """
        ctx.check("resume_interrupted_validation")

        state = ScoringState.load()
        if not state.is_promoting:
            return False

        logger.warning(
            f"Validation started at {state.promotion_started_at} was interrupted, resuming"
        )
        self.validate(state.unvalidated, ctx)
        return True
