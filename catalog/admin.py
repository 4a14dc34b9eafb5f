"""
Django admin configuration for the device catalog.

Read-mostly views of the catalog, the pipeline runs and the durable
error log, plus actions to stop a running pipeline or mark a dead one
as failed.
"""

from django.contrib import admin
from django.utils.html import format_html

from catalog.constants import PipelineOutcome
from catalog.models import (
    CollectionError,
    Device,
    PipelineRun,
    QueueEntry,
    ReleaseMonth,
    ReleaseYear,
    ScoringState,
)

OUTCOME_COLORS = {
    PipelineOutcome.COMPLETED: "#28a745",
    PipelineOutcome.STOPPED_BY_REQUEST: "#6c757d",
    PipelineOutcome.TOO_MANY_ERRORS: "#dc3545",
    PipelineOutcome.FAILED: "#dc3545",
}


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    """Catalog devices with their scores."""

    list_display = [
        "brand",
        "name",
        "release_date",
        "real_price",
        "price_category",
        "validated_final_score",
        "is_estimated_benchmark",
    ]
    list_filter = ["brand", "price_category", "is_estimated_benchmark"]
    search_fields = ["brand", "name"]
    ordering = ["-validated_final_score"]
    readonly_fields = [
        "id",
        "created_at",
        "unvalidated_normalized",
        "validated_normalized",
        "unvalidated_review_score",
        "validated_review_score",
        "unvalidated_final_score",
        "validated_final_score",
    ]

    fieldsets = (
        ("Device", {
            "fields": ("id", "brand", "name", "image", "release_date", "release_year", "release_month"),
        }),
        ("Specs", {
            "fields": (
                "battery_capacity",
                "display_size",
                "display_resolution",
                "pixel_density",
                "refresh_rate",
                "nits",
                "main_cameras_setup",
                "selfie_cameras_setup",
            ),
        }),
        ("Benchmark", {
            "fields": ("single_core_score", "multi_core_score", "is_estimated_benchmark"),
        }),
        ("Review", {
            "fields": ("review_sentiment", "review_magnitude"),
        }),
        ("Price", {
            "fields": ("real_price", "price_category"),
        }),
        ("Scores", {
            "fields": (
                "unvalidated_normalized",
                "unvalidated_review_score",
                "unvalidated_final_score",
                "validated_normalized",
                "validated_review_score",
                "validated_final_score",
            ),
            "classes": ("collapse",),
        }),
    )


@admin.register(ReleaseYear)
class ReleaseYearAdmin(admin.ModelAdmin):
    list_display = ["year"]
    ordering = ["-year"]


@admin.register(ReleaseMonth)
class ReleaseMonthAdmin(admin.ModelAdmin):
    list_display = ["year", "month"]
    list_filter = ["year"]


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "enqueued_at"]
    search_fields = ["name"]
    ordering = ["id"]


@admin.register(ScoringState)
class ScoringStateAdmin(admin.ModelAdmin):
    """The bounding boxes and validation state. Edited only by the pipeline."""

    list_display = ["validation_status", "last_validated_at", "updated_at"]
    readonly_fields = [
        "validated_box",
        "unvalidated_box",
        "validation_status",
        "promotion_started_at",
        "last_validated_at",
        "updated_at",
    ]

    def has_add_permission(self, request):
        return False


@admin.register(PipelineRun)
class PipelineRunAdmin(admin.ModelAdmin):
    """
    Pipeline runs.

    Read-only view of run status and outcome, with a stop action.
    """

    list_display = [
        "id_short",
        "status",
        "outcome_badge",
        "stop_requested",
        "started_at",
        "finished_at",
        "duration_display",
    ]
    list_filter = [
        "status",
        "outcome",
        ("created_at", admin.DateFieldListFilter),
    ]
    readonly_fields = [
        "id",
        "status",
        "outcome",
        "stop_requested",
        "error_counts",
        "message",
        "created_at",
        "started_at",
        "finished_at",
    ]
    ordering = ["-created_at"]
    actions = ["request_stop", "mark_failed"]

    def id_short(self, obj):
        return str(obj.id)[:8]
    id_short.short_description = "ID"

    def outcome_badge(self, obj):
        if not obj.outcome:
            return "-"
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            OUTCOME_COLORS.get(obj.outcome, "#6c757d"),
            obj.get_outcome_display(),
        )
    outcome_badge.short_description = "Outcome"

    def duration_display(self, obj):
        seconds = obj.duration_seconds
        if seconds is None:
            return "-"
        minutes, seconds = divmod(int(seconds), 60)
        return f"{minutes}m {seconds}s"
    duration_display.short_description = "Duration"

    @admin.action(description="Request stop of selected runs")
    def request_stop(self, request, queryset):
        count = 0
        for run in PipelineRun.active().filter(id__in=queryset.values("id")):
            run.request_stop()
            count += 1
        self.message_user(request, f"Stop requested for {count} run(s).")

    @admin.action(description="Mark selected runs as failed")
    def mark_failed(self, request, queryset):
        """Clear runs whose worker died or whose task was never dispatched."""
        count = 0
        for run in PipelineRun.active().filter(id__in=queryset.values("id")):
            run.finish(PipelineOutcome.FAILED, message=f"Marked failed by {request.user}")
            count += 1
        self.message_user(request, f"Marked {count} run(s) as failed.")


@admin.register(CollectionError)
class CollectionErrorAdmin(admin.ModelAdmin):
    """Filterable log of counted collection failures."""

    list_display = ["timestamp", "category", "device_name", "message_truncated"]
    list_filter = [
        "category",
        ("timestamp", admin.DateFieldListFilter),
    ]
    search_fields = ["device_name", "url", "message"]
    readonly_fields = [
        "id",
        "category",
        "message",
        "device_name",
        "url",
        "stack_trace",
        "timestamp",
    ]
    ordering = ["-timestamp"]

    def message_truncated(self, obj):
        max_length = 80
        if len(obj.message) > max_length:
            return obj.message[:max_length] + "..."
        return obj.message
    message_truncated.short_description = "Message"
