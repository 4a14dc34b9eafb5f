"""
Management command to run the data collection pipeline in the foreground.

Usage:
    python manage.py run_pipeline
    python manage.py run_pipeline --review-sources cnet

Ctrl-C requests a stop: the loops finish their current step and exit.
"""

from django.core.management.base import BaseCommand, CommandError

from catalog.collectors import build_collaborators
from catalog.constants import PipelineOutcome
from catalog.models import PipelineRun
from catalog.pipeline import build_supervisor, execute_run


class Command(BaseCommand):
    help = "Run the data collection pipeline until stopped"

    def add_arguments(self, parser):
        parser.add_argument(
            "--review-sources",
            type=str,
            help="Comma separated review sources (default: settings.DEVICE_CATALOG_REVIEW_SOURCES)",
        )

    def handle(self, *args, **options):
        active = PipelineRun.active().first()
        if active is not None:
            raise CommandError(f"Pipeline run {active.id} is already active")

        review_sources = None
        if options.get("review_sources"):
            review_sources = [
                name.strip() for name in options["review_sources"].split(",") if name.strip()
            ]

        try:
            collaborators = build_collaborators(review_sources)
        except ValueError as e:
            raise CommandError(str(e))

        run = PipelineRun.objects.create()
        self.stdout.write(f"Starting pipeline run {run.id} (Ctrl-C to stop)")

        result = execute_run(run, build_supervisor(run, collaborators=collaborators))

        self.stdout.write("")
        self.stdout.write(f"Outcome: {result.outcome}")
        if result.message:
            self.stdout.write(f"Message: {result.message}")
        for category, count in sorted(result.error_counts.items()):
            if count:
                self.stdout.write(f"  {category}: {count}")

        if result.outcome in (PipelineOutcome.FAILED, PipelineOutcome.TOO_MANY_ERRORS):
            self.stdout.write(self.style.ERROR(f"Pipeline run {run.id} ended: {result.outcome}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Pipeline run {run.id} ended: {result.outcome}"))
