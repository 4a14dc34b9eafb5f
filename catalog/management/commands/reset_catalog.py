"""
Django management command to wipe the device catalog.

Deletes every device, release year and month and queued entry, resets
both bounding boxes, the validation state and the error counters.
USE WITH CAUTION - this permanently deletes data!
"""

from django.core.management.base import BaseCommand, CommandError

from catalog.exceptions import CatalogError
from catalog.models import Device, PipelineRun, QueueEntry
from catalog.pipeline import wipe_catalog


class Command(BaseCommand):
    help = "Delete the whole device catalog and reset the scoring state"

    def add_arguments(self, parser):
        parser.add_argument(
            "--confirm",
            action="store_true",
            help="Confirm deletion (required to proceed)",
        )

    def handle(self, *args, **options):
        if PipelineRun.active().exists():
            raise CommandError("Cannot reset the catalog while a pipeline run is active")

        devices = Device.objects.count()
        queued = QueueEntry.objects.count()

        if not options["confirm"]:
            self.stdout.write(
                self.style.WARNING(
                    f"Would delete {devices} devices and {queued} queued entries. "
                    f"Re-run with --confirm to proceed."
                )
            )
            return

        try:
            wipe_catalog()
        except CatalogError as e:
            raise CommandError(f"Catalog reset failed: {e}")

        self.stdout.write(
            self.style.SUCCESS(f"Deleted {devices} devices and {queued} queued entries")
        )
