"""
Tests for the enqueuer and uploader loops.

Unit tests drive ``run_once`` against a mocked database; the end-to-end
tests run the uploader against the real Django-backed catalog with
mocked enrichers.
"""

from datetime import date
from unittest.mock import Mock, patch

import pytest

from catalog.collectors import Collaborators
from catalog.constants import PriceCategory, ValidationStatus
from catalog.exceptions import (
    DatabaseNetworkError,
    EmptyQueueError,
    GeneralDatabaseError,
    GettingURLError,
    InvalidDeviceError,
    NoLastYearEquivalentError,
    NoSuchBenchmarkError,
    ParsingError,
    PipelineCancelled,
)
from catalog.models import Device, QueueCounter, QueueEntry, ScoringState
from catalog.persistence import DjangoCatalogDatabase
from catalog.pipeline import Enqueuer, PipelineLoop, Uploader
from catalog.scoring import MinMaxValues, measurements_for
from catalog.types import BoxPair, DeviceLocator


@pytest.fixture(autouse=True)
def quiet_error_log():
    """Keep durable error logging and Sentry out of loop tests."""
    with patch("catalog.pipeline.loop.log_collection_error") as mock_log, \
            patch("catalog.pipeline.uploader.add_pipeline_breadcrumb"), \
            patch("catalog.monitoring.error_monitor.trigger_ceiling_alert"):
        yield mock_log


def _locator(name):
    slug = name.lower().replace(" ", "-")
    return DeviceLocator(name=name, detail=f"https://specs.example.com/{slug}", image=f"https://img.example.com/{slug}.jpg")


BENCHMARKS = {
    "Pixel 8": (1700, 4200),
    "Pixel 8 Pro": (1760, 4400),
}


def _fill_specs(device, locator, ctx):
    device.brand = "Samsung" if locator.name.startswith("Galaxy") else "Google"
    device.release_date = date(2024, 1, 31) if locator.name.startswith("Galaxy") else date(2023, 10, 4)
    device.battery_capacity = 5050 if locator.name.endswith("Pro") else 4575
    device.display_size = 6.2
    device.display_resolution = "1080 x 2400"
    device.pixel_density = 428
    device.refresh_rate = 120
    device.nits = 2000
    device.main_cameras_setup = "Dual"
    device.selfie_cameras_setup = "Single"


def _fill_price(device, locator, ctx):
    device.real_price = 699


def _fill_category(device, locator, ctx):
    device.price_category = PriceCategory.HIGH_END


def _fill_benchmark(device, locator, ctx):
    if device.name not in BENCHMARKS:
        raise NoSuchBenchmarkError(f"{device.name} is not on the benchmark chart")
    device.single_core_score, device.multi_core_score = BENCHMARKS[device.name]
    device.is_estimated_benchmark = False


def _fill_review(device, locator, ctx):
    device.review_sentiment = 0.4
    device.review_magnitude = 3.5


def _enricher(name, fill):
    enricher = Mock()
    enricher.name = name
    enricher.enrich.side_effect = fill
    return enricher


@pytest.fixture
def collaborators():
    return Collaborators(
        discovery=Mock(),
        specs=_enricher("specs", _fill_specs),
        price=_enricher("price", _fill_price),
        price_category=_enricher("price_category", _fill_category),
        benchmark=_enricher("benchmark", _fill_benchmark),
        review=_enricher("review", _fill_review),
    )


@pytest.fixture
def mock_database():
    database = Mock()
    boxes = BoxPair(validated=MinMaxValues.default(), unvalidated=MinMaxValues.default())
    database.get_min_max.return_value = boxes
    database.is_interrupted_validation.return_value = False
    database.reestimate_benchmarks.return_value = []
    return database


class TestPipelineLoop:
    """The shared run loop."""

    class CountingLoop(PipelineLoop):
        component = "counting"

        def __init__(self, *args, outcomes, **kwargs):
            super().__init__(*args, **kwargs)
            self.outcomes = list(outcomes)
            self.calls = 0

        def run_once(self):
            self.calls += 1
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            if outcome == "cancel":
                self.ctx.cancel()
                self.ctx.check("counting")
            return outcome

    @patch("catalog.pipeline.loop.capture_pipeline_error")
    @patch("catalog.pipeline.loop.connection")
    def test_unexpected_error_does_not_stop_loop(self, mock_connection, mock_capture, monitor, ctx):
        """A bug in one pass is reported and the loop carries on."""
        loop = self.CountingLoop(Mock(), monitor, ctx, 0, outcomes=[RuntimeError("boom"), 0, "cancel"])

        loop.run()

        assert loop.calls == 3
        mock_capture.assert_called_once()
        mock_connection.close.assert_called_once()

    @patch("catalog.pipeline.loop.connection")
    def test_cancelled_context_exits_without_running(self, mock_connection, monitor, ctx):
        loop = self.CountingLoop(Mock(), monitor, ctx, 0, outcomes=[])
        ctx.cancel()

        loop.run()

        assert loop.calls == 0
        mock_connection.close.assert_called_once()

    def test_report_failure_counts_only_counted_errors(self, monitor, ctx, quiet_error_log):
        loop = self.CountingLoop(Mock(), monitor, ctx, 0, outcomes=[])

        loop.report_failure(EmptyQueueError("queue is empty"))
        loop.report_failure(ParsingError("bad sheet"), device_name="Pixel 8")

        assert monitor.snapshot()["parsing"] == 1
        assert monitor.snapshot()["missing_document"] == 0
        quiet_error_log.assert_called_once()
        assert quiet_error_log.call_args[1]["device_name"] == "Pixel 8"


class TestEnqueuer:
    """Discovery into the work queue."""

    def _enqueuer(self, database, discovery, monitor, ctx):
        return Enqueuer(database, discovery, monitor, ctx, failure_backoff=10, idle_backoff=24, interval=300)

    def test_enqueues_discovered_devices(self, mock_database, monitor, ctx):
        candidates = {"Pixel 8": _locator("Pixel 8")}
        discovery = Mock()
        discovery.discover_all.return_value = candidates
        mock_database.enqueue_batch.return_value = 1

        delay = self._enqueuer(mock_database, discovery, monitor, ctx).run_once()

        assert delay == 300
        mock_database.enqueue_batch.assert_called_once_with(candidates, ctx)

    def test_discovery_failure_is_not_counted(self, mock_database, monitor, ctx):
        discovery = Mock()
        discovery.discover_all.side_effect = GettingURLError("HTTP error 503")

        delay = self._enqueuer(mock_database, discovery, monitor, ctx).run_once()

        assert delay == 10
        assert monitor.snapshot()["getting_url"] == 0
        mock_database.enqueue_batch.assert_not_called()

    def test_nothing_discovered(self, mock_database, monitor, ctx):
        discovery = Mock()
        discovery.discover_all.return_value = {}

        delay = self._enqueuer(mock_database, discovery, monitor, ctx).run_once()

        assert delay == 24
        mock_database.enqueue_batch.assert_not_called()

    def test_queue_write_failure_is_counted(self, mock_database, monitor, ctx):
        discovery = Mock()
        discovery.discover_all.return_value = {"Pixel 8": _locator("Pixel 8")}
        mock_database.enqueue_batch.side_effect = DatabaseNetworkError("connection refused")

        delay = self._enqueuer(mock_database, discovery, monitor, ctx).run_once()

        assert delay == 10
        assert monitor.snapshot()["database_network"] == 1

    def test_cancellation_propagates(self, mock_database, monitor, ctx):
        discovery = Mock()
        discovery.discover_all.side_effect = PipelineCancelled("stopping")

        with pytest.raises(PipelineCancelled):
            self._enqueuer(mock_database, discovery, monitor, ctx).run_once()

    def test_defaults_from_settings(self, mock_database, monitor, ctx, settings):
        settings.DEVICE_CATALOG_ENQUEUER_INTERVAL = 42

        assert Enqueuer(mock_database, Mock(), monitor, ctx).interval == 42


class TestUploaderUnits:
    """Uploader decisions against a mocked database."""

    def _uploader(self, database, collaborators, monitor, ctx, **kwargs):
        kwargs.setdefault("reestimation_cycle_limit", 3)
        return Uploader(database, collaborators, monitor, ctx, failure_backoff=10, interval=30, **kwargs)

    def test_empty_queue_waits(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.side_effect = EmptyQueueError("queue is empty")

        delay = self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        assert delay == 10
        assert all(count == 0 for count in monitor.snapshot().values())
        collaborators.specs.enrich.assert_not_called()

    def test_dequeue_failure_is_counted(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.side_effect = GeneralDatabaseError("disk I/O error")

        assert self._uploader(mock_database, collaborators, monitor, ctx).run_once() == 10
        assert monitor.snapshot()["general_database"] == 1

    def test_uploads_enriched_device(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Pixel 8")

        delay = self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        assert delay == 30
        device = mock_database.upload_device.call_args[0][0]
        assert device.full_name == "Google Pixel 8"
        assert device.single_core_score == 1700
        assert device.review_sentiment == 0.4
        assert device.image == "https://img.example.com/pixel-8.jpg"
        assert not device.is_estimated_benchmark
        mock_database.validate.assert_called_once()

    def test_invalid_device_is_skipped_uncounted(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Pixel 3")
        collaborators.specs.enrich.side_effect = InvalidDeviceError("ancient device")

        delay = self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        assert delay == 10
        assert all(count == 0 for count in monitor.snapshot().values())
        mock_database.upload_device.assert_not_called()

    def test_enrichment_failure_is_counted(self, mock_database, collaborators, monitor, ctx, quiet_error_log):
        mock_database.dequeue.return_value = _locator("Pixel 8")
        collaborators.price.enrich.side_effect = ParsingError("no price on price page")

        delay = self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        assert delay == 10
        assert monitor.snapshot()["parsing"] == 1
        assert quiet_error_log.call_args[1]["device_name"] == "Pixel 8"
        mock_database.upload_device.assert_not_called()
        collaborators.review.enrich.assert_not_called()

    def test_missing_benchmark_is_estimated(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Galaxy S24")
        mock_database.get_last_year_equivalent.return_value = (1650, 5060)
        uploader = self._uploader(mock_database, collaborators, monitor, ctx)

        uploader.run_once()

        device = mock_database.upload_device.call_args[0][0]
        assert device.is_estimated_benchmark
        assert (device.single_core_score, device.multi_core_score) == (1650, 5060)
        assert uploader.estimated_since_reestimation == 1

    def test_no_equivalent_keeps_zero_benchmark(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Galaxy S24")
        mock_database.get_last_year_equivalent.side_effect = NoLastYearEquivalentError("none")

        self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        device = mock_database.upload_device.call_args[0][0]
        assert device.is_estimated_benchmark
        assert device.single_core_score == 0
        assert all(count == 0 for count in monitor.snapshot().values())

    def test_moved_bounds_renormalize(self, mock_database, collaborators, monitor, ctx):
        """A device outside the validated box rescores the catalog first."""
        mock_database.dequeue.return_value = _locator("Pixel 8")

        self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        new_box = mock_database.normalize_unvalidated.call_args[0][0]
        assert new_box["single_core"].max == 1700
        calls = [c[0] for c in mock_database.method_calls]
        assert calls.index("normalize_unvalidated") < calls.index("upload_device")

    def test_unchanged_bounds_skip_renormalize(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Pixel 8")
        sample = Device(name="Pixel 8")
        _fill_specs(sample, _locator("Pixel 8"), ctx)
        _fill_benchmark(sample, _locator("Pixel 8"), ctx)
        _fill_review(sample, _locator("Pixel 8"), ctx)
        box = MinMaxValues.default().fold(measurements_for(sample))
        mock_database.get_min_max.return_value = BoxPair(validated=box, unvalidated=box)

        self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        mock_database.normalize_unvalidated.assert_not_called()
        mock_database.upload_device.assert_called_once()

    def test_interrupted_validation_is_resumed_before_upload(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Pixel 8")
        mock_database.is_interrupted_validation.return_value = True

        self._uploader(mock_database, collaborators, monitor, ctx).run_once()

        mock_database.resume_interrupted_validation.assert_called_once_with(ctx)

    def test_reestimates_after_cycle_limit(self, mock_database, collaborators, monitor, ctx):
        """The second estimated upload exceeds a limit of one and triggers a pass."""
        mock_database.dequeue.side_effect = [_locator("Galaxy S24"), _locator("Galaxy S24 Ultra")]
        mock_database.get_last_year_equivalent.return_value = (1650, 5060)
        updated = Device(name="Galaxy S24", brand="Samsung", single_core_score=1700, multi_core_score=5200)
        mock_database.reestimate_benchmarks.return_value = [updated]
        uploader = self._uploader(mock_database, collaborators, monitor, ctx, reestimation_cycle_limit=1)

        uploader.run_once()
        mock_database.reestimate_benchmarks.assert_not_called()
        uploader.run_once()

        mock_database.reestimate_benchmarks.assert_called_once_with(ctx)
        assert mock_database.normalize_unvalidated.call_count == 3
        assert uploader.estimated_since_reestimation == 0

    def test_reestimation_failure_keeps_counter(self, mock_database, collaborators, monitor, ctx):
        mock_database.dequeue.return_value = _locator("Galaxy S24")
        mock_database.get_last_year_equivalent.return_value = (1650, 5060)
        mock_database.reestimate_benchmarks.side_effect = GeneralDatabaseError("deadlock")
        uploader = self._uploader(mock_database, collaborators, monitor, ctx, reestimation_cycle_limit=0)

        delay = uploader.run_once()

        assert delay == 30
        assert uploader.estimated_since_reestimation == 1
        assert monitor.snapshot()["general_database"] == 1
        mock_database.upload_device.assert_called_once()


@pytest.mark.django_db
class TestUploaderEndToEnd:
    """Uploader against the real catalog tables."""

    def _run(self, names, collaborators, monitor, ctx):
        database = DjangoCatalogDatabase(monitor)
        uploader = Uploader(database, collaborators, monitor, ctx, failure_backoff=0, interval=0)
        for name in names:
            database.enqueue_batch({name: _locator(name)}, ctx)
            assert uploader.run_once() == 0
        return database, uploader

    def test_first_device(self, collaborators, monitor, ctx):
        self._run(["Pixel 8"], collaborators, monitor, ctx)

        device = Device.objects.get(name="Pixel 8")
        state = ScoringState.load()
        assert device.release_year.year == 2023
        assert state.validation_status == ValidationStatus.IDLE
        assert state.validated.device_count == 1
        assert state.unvalidated.device_count == 1
        # Alone in the box every dimension is degenerate; only the 120 Hz tier scores
        assert device.validated_final_score == pytest.approx(0.8 * 0.30 * 20)
        assert all(count == 0 for count in monitor.snapshot().values())

    def test_second_device_rescores_first(self, collaborators, monitor, ctx):
        self._run(["Pixel 8", "Pixel 8 Pro"], collaborators, monitor, ctx)

        pixel, pro = Device.objects.get(name="Pixel 8"), Device.objects.get(name="Pixel 8 Pro")
        state = ScoringState.load()
        assert state.validated.device_count == 2
        assert state.validated == state.unvalidated
        assert pixel.validated_normalized["single_core"] == 0.0
        assert pro.validated_normalized["single_core"] == 1.0
        assert pro.validated_final_score > pixel.validated_final_score
        assert all(count == 0 for count in monitor.snapshot().values())

    def test_estimated_device_from_previous_generation(self, collaborators, monitor, ctx, make_device):
        predecessor = make_device(name="Galaxy S23", brand="Samsung", single_core_score=1500, multi_core_score=4600)
        box = MinMaxValues.default().fold(measurements_for(predecessor)).with_device_count(1)
        state = ScoringState.load()
        state.validated_box = state.unvalidated_box = box.to_dict()
        state.save()

        _, uploader = self._run(["Galaxy S24"], collaborators, monitor, ctx)

        device = Device.objects.get(name="Galaxy S24")
        assert device.is_estimated_benchmark
        assert device.single_core_score == pytest.approx(1650)
        assert device.multi_core_score == pytest.approx(5060)
        assert ScoringState.load().validated.device_count == 2
        assert uploader.estimated_since_reestimation == 1
        assert all(count == 0 for count in monitor.snapshot().values())

    def test_device_queued_again_while_in_flight_is_not_duplicated(self, collaborators, monitor, ctx):
        """Discovery can queue a device the uploader already holds; the second copy is skipped."""
        database = DjangoCatalogDatabase(monitor)
        uploader = Uploader(database, collaborators, monitor, ctx, failure_backoff=0, interval=0)

        database.enqueue_batch({"Pixel 8": _locator("Pixel 8")}, ctx)
        assert uploader.run_once() == 0
        # Queued again between dequeue and upload of the first copy
        QueueEntry.objects.create(name="Pixel 8", detail=_locator("Pixel 8").detail)
        counter = QueueCounter.load()
        counter.size = 1
        counter.save()

        uploader.run_once()

        assert Device.objects.filter(name="Pixel 8").count() == 1
        assert ScoringState.load().unvalidated.device_count == 1
        assert QueueCounter.load().size == 0
        assert all(count == 0 for count in monitor.snapshot().values())
