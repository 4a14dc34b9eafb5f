"""
The data collection pipeline: enqueuer and uploader loops under a
supervisor.
"""

import logging
from typing import Optional

from catalog.collectors import build_collaborators
from catalog.context import PipelineContext
from catalog.models import PipelineRun
from catalog.monitoring import build_error_monitor
from catalog.persistence import DjangoCatalogDatabase

from .enqueuer import Enqueuer
from .loop import PipelineLoop
from .supervisor import PipelineResult, PipelineSupervisor
from .uploader import Uploader

logger = logging.getLogger(__name__)


def build_supervisor(run: Optional[PipelineRun] = None, collaborators=None) -> PipelineSupervisor:
    """
    Wire a supervisor from settings.

    Args:
        run: PipelineRun whose stop flag the supervisor polls
        collaborators: Override the production collaborators
    """
    ctx = PipelineContext()
    monitor = build_error_monitor()
    return PipelineSupervisor(
        database=DjangoCatalogDatabase(monitor),
        collaborators=collaborators or build_collaborators(),
        monitor=monitor,
        ctx=ctx,
        stop_requested=run.is_stop_requested if run is not None else None,
    )


def execute_run(run: PipelineRun, supervisor: Optional[PipelineSupervisor] = None) -> PipelineResult:
    """
    Run the pipeline for a PipelineRun and record its outcome.

    Error counters start from zero for every run.
    """
    supervisor = supervisor or build_supervisor(run)
    supervisor.monitor.reset()
    run.start()
    logger.info(f"Pipeline run {run.id} started")

    result = supervisor.run()

    run.finish(result.outcome, error_counts=result.error_counts, message=result.message)
    return result


def wipe_catalog() -> None:
    """Delete the whole catalog and zero the error counters."""
    monitor = build_error_monitor()
    DjangoCatalogDatabase(monitor).reset_all(PipelineContext())


__all__ = [
    "Enqueuer",
    "PipelineLoop",
    "PipelineResult",
    "PipelineSupervisor",
    "Uploader",
    "build_supervisor",
    "execute_run",
    "wipe_catalog",
]
