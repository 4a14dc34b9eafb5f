"""
Consumer loop: turns queued devices into scored catalog entries.

For each dequeued device the uploader runs the enrichers in order, scores
the device against the unvalidated box grown by its own measurements,
renormalizes the catalog when the box moved, uploads the device and then
validates. Every few estimated devices it re-estimates the whole catalog
so estimates pick up benchmarks published since.
"""

import logging
from typing import Optional

from django.conf import settings

from catalog.exceptions import (
    CatalogError,
    EmptyQueueError,
    InvalidDeviceError,
    NoLastYearEquivalentError,
    NoSuchBenchmarkError,
    PipelineCancelled,
)
from catalog.models import Device
from catalog.monitoring import add_pipeline_breadcrumb
from catalog.scoring import measurements_for, score_device
from catalog.types import DeviceLocator

from .loop import PipelineLoop

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_BACKOFF = 10
DEFAULT_INTERVAL = 30
DEFAULT_REESTIMATION_CYCLE_LIMIT = 3


class Uploader(PipelineLoop):
    """Dequeues, enriches, scores, uploads and validates one device per pass."""

    component = "uploader"

    def __init__(
        self,
        database,
        collaborators,
        monitor,
        ctx,
        failure_backoff: Optional[float] = None,
        interval: Optional[float] = None,
        reestimation_cycle_limit: Optional[int] = None,
    ):
        super().__init__(
            database,
            monitor,
            ctx,
            failure_backoff
            if failure_backoff is not None
            else getattr(settings, "DEVICE_CATALOG_UPLOADER_FAILURE_BACKOFF", DEFAULT_FAILURE_BACKOFF),
        )
        self.collaborators = collaborators
        self.interval = (
            interval
            if interval is not None
            else getattr(settings, "DEVICE_CATALOG_UPLOADER_INTERVAL", DEFAULT_INTERVAL)
        )
        self.reestimation_cycle_limit = (
            reestimation_cycle_limit
            if reestimation_cycle_limit is not None
            else getattr(
                settings,
                "DEVICE_CATALOG_REESTIMATION_CYCLE_LIMIT",
                DEFAULT_REESTIMATION_CYCLE_LIMIT,
            )
        )
        self.estimated_since_reestimation = 0

    def run_once(self) -> float:
        try:
            locator = self.database.dequeue(self.ctx)
        except PipelineCancelled:
            raise
        except EmptyQueueError:
            logger.debug(f"Queue is empty, retrying in {self.failure_backoff}s")
            return self.failure_backoff
        except CatalogError as e:
            self.report_failure(e)
            return self.failure_backoff

        try:
            device = self.build_device(locator)
            self.commit(device)
        except PipelineCancelled:
            raise
        except InvalidDeviceError as e:
            logger.info(f"Skipping {locator.name}: {e}")
            return self.failure_backoff
        except CatalogError as e:
            self.report_failure(e, device_name=e.device_name or locator.name)
            return self.failure_backoff

        logger.info(
            f"Uploaded {device.full_name} "
            f"(final score {device.unvalidated_final_score:.2f}"
            f"{', estimated benchmark' if device.is_estimated_benchmark else ''})"
        )

        if device.is_estimated_benchmark:
            self.estimated_since_reestimation += 1
            if self.estimated_since_reestimation > self.reestimation_cycle_limit:
                self.reestimate()

        return self.interval

    def build_device(self, locator: DeviceLocator) -> Device:
        """Run every enricher over a fresh, unsaved device."""
        device = Device(name=locator.name, image=locator.image)
        collaborators = self.collaborators

        for enricher in (collaborators.specs, collaborators.price, collaborators.price_category):
            self.ctx.check(enricher.name)
            enricher.enrich(device, locator, self.ctx)

        self.ctx.check("benchmark")
        self._enrich_benchmark(device, locator)

        self.ctx.check("review")
        collaborators.review.enrich(device, locator, self.ctx)
        return device

    def _enrich_benchmark(self, device: Device, locator: DeviceLocator) -> None:
        try:
            self.collaborators.benchmark.enrich(device, locator, self.ctx)
            return
        except NoSuchBenchmarkError:
            logger.info(f"No benchmark for {device.full_name}, estimating from last year")

        device.is_estimated_benchmark = True
        try:
            single, multi = self.database.get_last_year_equivalent(device, self.ctx)
        except NoLastYearEquivalentError as e:
            logger.info(f"Keeping zero benchmark for {device.full_name}: {e}")
            return
        device.single_core_score = single
        device.multi_core_score = multi

    def commit(self, device: Device) -> None:
        """Score the device, renormalize if needed, upload and validate."""
        boxes = self.database.get_min_max(self.ctx)
        new_box = boxes.unvalidated.fold(measurements_for(device))
        device.apply_unvalidated_scores(score_device(new_box, device))

        if not new_box.same_bounds(boxes.validated):
            updated = self.database.normalize_unvalidated(new_box, self.ctx)
            logger.info(f"Bounds moved, renormalized {updated} devices")

        if self.database.is_interrupted_validation(self.ctx):
            self.database.resume_interrupted_validation(self.ctx)

        self.database.upload_device(device, self.ctx)
        add_pipeline_breadcrumb(
            component=self.component,
            message="Device uploaded",
            device_name=device.full_name,
        )

        self.database.validate(self.database.get_min_max(self.ctx).unvalidated, self.ctx)

    def reestimate(self) -> None:
        """Refresh every estimated benchmark and renormalize the catalog."""
        logger.info(
            f"{self.estimated_since_reestimation} estimated devices since last pass, re-estimating"
        )
        try:
            updated = self.database.reestimate_benchmarks(self.ctx)
            if updated:
                boxes = self.database.get_min_max(self.ctx)
                new_box = boxes.unvalidated.fold_all(measurements_for(d) for d in updated)
                self.database.normalize_unvalidated(new_box, self.ctx)
                self.database.validate(self.database.get_min_max(self.ctx).unvalidated, self.ctx)
        except PipelineCancelled:
            raise
        except CatalogError as e:
            # The upload already landed; retry the pass after the next estimate.
            self.report_failure(e)
            return

        logger.info(f"Re-estimated {len(updated)} devices")
        self.estimated_since_reestimation = 0
