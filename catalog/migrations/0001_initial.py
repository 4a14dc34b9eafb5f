"""
Initial catalog schema.

Creates the device catalog with its release year and month grouping,
the scoring state singleton, the work queue and its counter, pipeline
runs and the collection error log.
"""

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import catalog.models


ERROR_CATEGORY_CHOICES = [
    ("clean_up", "Clean Up"),
    ("sentiment_analysis", "Sentiment Analysis"),
    ("creating_new_ai_client", "Creating New AI Client"),
    ("ai_network", "AI Network"),
    ("failed_ai_instruction", "Failed AI Instruction"),
    ("getting_url", "Getting URL"),
    ("getting_document", "Getting Document"),
    ("parsing", "Parsing"),
    ("missing_document", "Missing Document"),
    ("database_network", "Database Network"),
    ("general_database", "General Database"),
    ("invalid_const_id_string", "Invalid Identifier"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ReleaseYear",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("year", models.PositiveIntegerField(unique=True)),
            ],
            options={
                "db_table": "catalog_release_years",
                "ordering": ["year"],
            },
        ),
        migrations.CreateModel(
            name="ReleaseMonth",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("month", models.PositiveSmallIntegerField()),
                (
                    "year",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="months",
                        to="catalog.releaseyear",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_release_months",
                "ordering": ["year__year", "month"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("year", "month"), name="unique_release_month"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Device",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("brand", models.CharField(max_length=100)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("image", models.URLField(blank=True, max_length=2000)),
                ("release_date", models.DateField()),
                (
                    "battery_capacity",
                    models.FloatField(default=0, help_text="Battery capacity in mAh"),
                ),
                (
                    "display_size",
                    models.FloatField(default=0, help_text="Display diagonal in inches"),
                ),
                ("display_resolution", models.CharField(blank=True, max_length=50)),
                ("pixel_density", models.FloatField(default=0)),
                ("refresh_rate", models.PositiveIntegerField(default=60)),
                ("nits", models.PositiveIntegerField(default=0)),
                ("main_cameras_setup", models.CharField(blank=True, max_length=20)),
                ("selfie_cameras_setup", models.CharField(blank=True, max_length=20)),
                ("single_core_score", models.FloatField(default=0)),
                ("multi_core_score", models.FloatField(default=0)),
                ("is_estimated_benchmark", models.BooleanField(default=False)),
                ("review_sentiment", models.FloatField(default=0)),
                ("review_magnitude", models.FloatField(default=0)),
                ("unvalidated_review_score", models.FloatField(default=0)),
                ("validated_review_score", models.FloatField(default=0)),
                ("unvalidated_normalized", models.JSONField(blank=True, default=dict)),
                ("validated_normalized", models.JSONField(blank=True, default=dict)),
                ("unvalidated_final_score", models.FloatField(default=0)),
                ("validated_final_score", models.FloatField(db_index=True, default=0)),
                ("real_price", models.FloatField(default=0)),
                (
                    "price_category",
                    models.IntegerField(
                        choices=[
                            (0, "Low End"),
                            (1, "Low Mid Range"),
                            (2, "High Mid Range"),
                            (3, "High End"),
                        ],
                        default=0,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "release_year",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="devices",
                        to="catalog.releaseyear",
                    ),
                ),
                (
                    "release_month",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="devices",
                        to="catalog.releasemonth",
                    ),
                ),
            ],
            options={
                "db_table": "catalog_devices",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["brand", "name"], name="catalog_device_brand_name_idx"
                    ),
                    models.Index(
                        fields=["is_estimated_benchmark", "release_date"],
                        name="catalog_device_estimated_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ScoringState",
            fields=[
                (
                    "id",
                    models.PositiveSmallIntegerField(
                        default=1, primary_key=True, serialize=False
                    ),
                ),
                (
                    "validated_box",
                    models.JSONField(default=catalog.models._default_box),
                ),
                (
                    "unvalidated_box",
                    models.JSONField(default=catalog.models._default_box),
                ),
                (
                    "validation_status",
                    models.CharField(
                        choices=[("idle", "Idle"), ("promoting", "Promoting")],
                        default="idle",
                        max_length=20,
                    ),
                ),
                ("promotion_started_at", models.DateTimeField(blank=True, null=True)),
                ("last_validated_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "catalog_scoring_state",
            },
        ),
        migrations.CreateModel(
            name="QueueEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255, unique=True)),
                (
                    "detail",
                    models.URLField(
                        help_text="Locator of the device's spec sheet", max_length=2000
                    ),
                ),
                ("image", models.URLField(blank=True, max_length=2000)),
                ("enqueued_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "catalog_queue_entries",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="QueueCounter",
            fields=[
                (
                    "id",
                    models.PositiveSmallIntegerField(
                        default=1, primary_key=True, serialize=False
                    ),
                ),
                ("size", models.PositiveIntegerField(default=0)),
            ],
            options={
                "db_table": "catalog_queue_counter",
            },
        ),
        migrations.CreateModel(
            name="PipelineRun",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("finished", "Finished"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("completed", "Completed"),
                            ("too_many_errors", "Stopped Due To Too Many Errors"),
                            ("stopped_by_request", "Stopped By External Request"),
                            ("failed", "Failed To Start"),
                        ],
                        max_length=30,
                    ),
                ),
                ("stop_requested", models.BooleanField(default=False)),
                ("error_counts", models.JSONField(blank=True, default=dict)),
                ("message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "catalog_pipeline_runs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"], name="catalog_run_status_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CollectionError",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "category",
                    models.CharField(choices=ERROR_CATEGORY_CHOICES, max_length=40),
                ),
                ("message", models.TextField()),
                ("device_name", models.CharField(blank=True, max_length=255)),
                ("url", models.URLField(blank=True, max_length=2000)),
                ("stack_trace", models.TextField(blank=True)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "catalog_collection_errors",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(
                        fields=["category", "timestamp"],
                        name="catalog_error_category_idx",
                    ),
                ],
            },
        ),
    ]
