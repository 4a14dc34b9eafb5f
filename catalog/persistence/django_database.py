"""
DatabaseInterface backed by the Django ORM.

Delegates to the work queue, normalizer, validator, estimator and
catalog store, checks the context before each call and translates
database exceptions into the catalog taxonomy.
"""

import logging
from typing import List, Mapping, Optional, Tuple

from django.db import DatabaseError, connection

from catalog.models import ScoringState
from catalog.scoring import MinMaxValues
from catalog.types import BoxPair, DeviceFilters, DeviceLocator

from . import catalog_store
from .base import DatabaseInterface
from .errors import translate_database_errors
from .estimator import BenchmarkEstimator
from .normalizer import MinMaxNormalizer
from .validator import ScoreValidator
from .work_queue import WorkQueue

logger = logging.getLogger(__name__)


class DjangoCatalogDatabase(DatabaseInterface):
    """Catalog persistence on the default Django database."""

    def __init__(
        self,
        monitor,
        queue: Optional[WorkQueue] = None,
        normalizer: Optional[MinMaxNormalizer] = None,
        validator: Optional[ScoreValidator] = None,
        estimator: Optional[BenchmarkEstimator] = None,
    ):
        """
        Args:
            monitor: ErrorMonitor shared with the rest of the pipeline
            queue: Work queue (defaults to one sized from settings)
            normalizer: Min-max normalizer
            validator: Score validator (defaults to one counting into monitor)
            estimator: Benchmark estimator
        """
        self.monitor = monitor
        self.queue = queue or WorkQueue()
        self.normalizer = normalizer or MinMaxNormalizer()
        self.validator = validator or ScoreValidator(monitor)
        self.estimator = estimator or BenchmarkEstimator()

    @translate_database_errors
    def connect(self, ctx) -> None:
        ctx.check("connect")
        connection.ensure_connection()

    def disconnect(self) -> None:
        # Each loop thread owns its own connection; close the caller's.
        connection.close()

    def is_up(self, ctx) -> bool:
        ctx.check("is_up")
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
            return True
        except DatabaseError as e:
            logger.warning(f"Database is not reachable: {e}")
            return False

    @translate_database_errors
    def upload_device(self, device, ctx):
        ctx.check("upload_device")
        return catalog_store.upload_device(device)

    @translate_database_errors
    def get_min_max(self, ctx) -> BoxPair:
        ctx.check("get_min_max")
        state = ScoringState.load()
        return BoxPair(validated=state.validated, unvalidated=state.unvalidated)

    @translate_database_errors
    def normalize_unvalidated(self, new_box: MinMaxValues, ctx) -> int:
        return self.normalizer.normalize_unvalidated(new_box, ctx)

    @translate_database_errors
    def validate(self, new_box: MinMaxValues, ctx) -> int:
        return self.validator.validate(new_box, ctx)

    @translate_database_errors
    def is_interrupted_validation(self, ctx) -> bool:
        ctx.check("is_interrupted_validation")
        return self.validator.is_interrupted()

    @translate_database_errors
    def resume_interrupted_validation(self, ctx) -> bool:
        return self.validator.resume_interrupted(ctx)

    @translate_database_errors
    def enqueue_batch(self, candidates: Mapping[str, DeviceLocator], ctx) -> int:
        return self.queue.enqueue_batch(candidates, ctx)

    @translate_database_errors
    def dequeue(self, ctx) -> DeviceLocator:
        return self.queue.dequeue(ctx)

    @translate_database_errors
    def reestimate_benchmarks(self, ctx) -> List:
        return self.estimator.reestimate_all(ctx)

    @translate_database_errors
    def get_last_year_equivalent(self, device, ctx) -> Tuple[float, float]:
        return self.estimator.last_year_equivalent(device, ctx)

    @translate_database_errors
    def reset_all(self, ctx) -> None:
        ctx.check("reset_all")
        catalog_store.reset_catalog()
        self.monitor.reset()

    @translate_database_errors
    def top_n(self, filters: DeviceFilters, ctx) -> List:
        ctx.check("top_n")
        return catalog_store.top_devices(filters)
