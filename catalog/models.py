"""
Django models for the device catalog.

Models: ReleaseYear, ReleaseMonth, Device, ScoringState, QueueEntry,
        QueueCounter, PipelineRun, CollectionError
"""

import uuid

from django.db import models
from django.utils import timezone

from catalog.constants import (
    ErrorCategory,
    PipelineOutcome,
    PipelineRunStatus,
    PriceCategory,
    ValidationStatus,
)
from catalog.scoring import MinMaxValues


def _default_box():
    return MinMaxValues.default().to_dict()


class ReleaseYear(models.Model):
    """Chronological grouping of devices by release year."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    year = models.PositiveIntegerField(unique=True)

    class Meta:
        db_table = "catalog_release_years"
        ordering = ["year"]

    def __str__(self):
        return str(self.year)


class ReleaseMonth(models.Model):
    """Month inside a release year."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    year = models.ForeignKey(
        ReleaseYear, on_delete=models.CASCADE, related_name="months"
    )
    month = models.PositiveSmallIntegerField()

    class Meta:
        db_table = "catalog_release_months"
        ordering = ["year__year", "month"]
        constraints = [
            models.UniqueConstraint(fields=["year", "month"], name="unique_release_month"),
        ]

    def __str__(self):
        return f"{self.year.year}-{self.month:02d}"


class Device(models.Model):
    """
    A fully enriched device in the catalog.

    Built in memory by the uploader and saved once, fully populated.
    Afterwards only the score fields and, for estimated benchmarks, the
    benchmark fields change.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    brand = models.CharField(max_length=100)
    name = models.CharField(max_length=255, db_index=True)
    image = models.URLField(max_length=2000, blank=True)

    # Chronological grouping
    release_date = models.DateField()
    release_year = models.ForeignKey(
        ReleaseYear, on_delete=models.CASCADE, related_name="devices"
    )
    release_month = models.ForeignKey(
        ReleaseMonth, on_delete=models.CASCADE, related_name="devices"
    )

    # Specs
    battery_capacity = models.FloatField(default=0, help_text="Battery capacity in mAh")
    display_size = models.FloatField(default=0, help_text="Display diagonal in inches")
    display_resolution = models.CharField(max_length=50, blank=True)
    pixel_density = models.FloatField(default=0)
    refresh_rate = models.PositiveIntegerField(default=60)
    nits = models.PositiveIntegerField(default=0)
    main_cameras_setup = models.CharField(max_length=20, blank=True)
    selfie_cameras_setup = models.CharField(max_length=20, blank=True)

    # Benchmark
    single_core_score = models.FloatField(default=0)
    multi_core_score = models.FloatField(default=0)
    is_estimated_benchmark = models.BooleanField(default=False)

    # Review
    review_sentiment = models.FloatField(default=0)
    review_magnitude = models.FloatField(default=0)
    unvalidated_review_score = models.FloatField(default=0)
    validated_review_score = models.FloatField(default=0)

    # Scores
    unvalidated_normalized = models.JSONField(default=dict, blank=True)
    validated_normalized = models.JSONField(default=dict, blank=True)
    unvalidated_final_score = models.FloatField(default=0)
    validated_final_score = models.FloatField(default=0, db_index=True)

    # Price
    real_price = models.FloatField(default=0)
    price_category = models.IntegerField(
        choices=PriceCategory.choices, default=PriceCategory.LOW_END
    )

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "catalog_devices"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["brand", "name"], name="catalog_device_brand_name_idx"),
            models.Index(
                fields=["is_estimated_benchmark", "release_date"],
                name="catalog_device_estimated_idx",
            ),
        ]

    def __str__(self):
        return f"{self.brand} {self.name}"

    @property
    def full_name(self) -> str:
        return f"{self.brand} {self.name}".strip()

    def apply_unvalidated_scores(self, scores) -> None:
        """Store scores computed against the unvalidated box."""
        self.unvalidated_normalized = scores.normalized
        self.unvalidated_review_score = scores.review_score
        self.unvalidated_final_score = scores.final_score

    def promote_scores(self) -> None:
        """Copy the unvalidated scores into the validated slots."""
        self.validated_normalized = dict(self.unvalidated_normalized)
        self.validated_review_score = self.unvalidated_review_score
        self.validated_final_score = self.unvalidated_final_score

    UNVALIDATED_SCORE_FIELDS = [
        "unvalidated_normalized",
        "unvalidated_review_score",
        "unvalidated_final_score",
    ]
    VALIDATED_SCORE_FIELDS = [
        "validated_normalized",
        "validated_review_score",
        "validated_final_score",
    ]


class ScoringState(models.Model):
    """
    Singleton holding both bounding boxes and the promotion state machine.

    ``validation_status`` moves idle -> promoting when a validation pass
    starts and back to idle only after every device was promoted. Finding
    it in ``promoting`` means the last pass was interrupted.
    """

    SINGLETON_ID = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_ID)
    validated_box = models.JSONField(default=_default_box)
    unvalidated_box = models.JSONField(default=_default_box)

    validation_status = models.CharField(
        max_length=20,
        choices=ValidationStatus.choices,
        default=ValidationStatus.IDLE,
    )
    promotion_started_at = models.DateTimeField(null=True, blank=True)
    last_validated_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "catalog_scoring_state"

    def __str__(self):
        return f"Scoring state ({self.validation_status})"

    @classmethod
    def load(cls, for_update: bool = False) -> "ScoringState":
        """Fetch the singleton row, creating it with empty boxes on first use."""
        manager = cls.objects.select_for_update() if for_update else cls.objects
        state, _ = manager.get_or_create(id=cls.SINGLETON_ID)
        return state

    @property
    def validated(self) -> MinMaxValues:
        return MinMaxValues.from_dict(self.validated_box)

    @property
    def unvalidated(self) -> MinMaxValues:
        return MinMaxValues.from_dict(self.unvalidated_box)

    @property
    def is_promoting(self) -> bool:
        return self.validation_status == ValidationStatus.PROMOTING

    def reset(self) -> None:
        self.validated_box = _default_box()
        self.unvalidated_box = _default_box()
        self.validation_status = ValidationStatus.IDLE
        self.promotion_started_at = None
        self.save()


class QueueEntry(models.Model):
    """A discovered device waiting to be enriched. Consumed oldest first."""

    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255, unique=True)
    detail = models.URLField(max_length=2000, help_text="Locator of the device's spec sheet")
    image = models.URLField(max_length=2000, blank=True)
    enqueued_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "catalog_queue_entries"
        ordering = ["id"]

    def __str__(self):
        return self.name


class QueueCounter(models.Model):
    """Singleton tracking the number of queue entries."""

    SINGLETON_ID = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_ID)
    size = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "catalog_queue_counter"

    def __str__(self):
        return f"Queue size {self.size}"

    @classmethod
    def load(cls, for_update: bool = False) -> "QueueCounter":
        manager = cls.objects.select_for_update() if for_update else cls.objects
        counter, _ = manager.get_or_create(id=cls.SINGLETON_ID)
        return counter


class PipelineRun(models.Model):
    """
    One launch of the data collection pipeline.

    The supervisor polls ``stop_requested`` so a stop issued from another
    process (API, admin) reaches the running loops.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(
        max_length=20,
        choices=PipelineRunStatus.choices,
        default=PipelineRunStatus.PENDING,
    )
    outcome = models.CharField(
        max_length=30, choices=PipelineOutcome.choices, blank=True
    )
    stop_requested = models.BooleanField(default=False)
    error_counts = models.JSONField(default=dict, blank=True)
    message = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "catalog_pipeline_runs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="catalog_run_status_idx"),
        ]

    def __str__(self):
        return f"Run {self.id} ({self.status})"

    @classmethod
    def active(cls):
        return cls.objects.exclude(status=PipelineRunStatus.FINISHED)

    @property
    def duration_seconds(self):
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def start(self):
        """Mark run as started."""
        self.status = PipelineRunStatus.RUNNING
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at"])

    def request_stop(self):
        self.stop_requested = True
        self.save(update_fields=["stop_requested"])

    def is_stop_requested(self) -> bool:
        return PipelineRun.objects.filter(id=self.id, stop_requested=True).exists()

    def finish(self, outcome: str, error_counts=None, message: str = ""):
        """Mark run as finished with its outcome."""
        self.status = PipelineRunStatus.FINISHED
        self.outcome = outcome
        self.finished_at = timezone.now()
        self.error_counts = error_counts or {}
        if message:
            self.message = message
        self.save(
            update_fields=["status", "outcome", "finished_at", "error_counts", "message"]
        )


class CollectionError(models.Model):
    """Durable log of counted collection failures."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    category = models.CharField(max_length=40, choices=ErrorCategory.choices)
    message = models.TextField()
    device_name = models.CharField(max_length=255, blank=True)
    url = models.URLField(max_length=2000, blank=True)
    stack_trace = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "catalog_collection_errors"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["category", "timestamp"], name="catalog_error_category_idx"),
        ]

    def __str__(self):
        return f"{self.category}: {self.message[:50]}"

    @classmethod
    def from_failure(cls, category: str, message: str, device_name: str = "", url: str = "", stack_trace: str = ""):
        """Store a failure, filing unknown categories under general_database."""
        if category not in ErrorCategory.values:
            category = ErrorCategory.GENERAL_DATABASE
        return cls.objects.create(
            category=category,
            message=message,
            device_name=device_name[:255],
            url=url[:2000],
            stack_trace=stack_trace,
        )
