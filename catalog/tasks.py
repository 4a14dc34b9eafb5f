"""
Celery tasks for the device catalog.

- run_data_collection: Runs the pipeline supervisor for a PipelineRun
- reset_catalog: Wipes the catalog and the error counters
"""

import logging
import traceback
from typing import Any, Dict
from uuid import UUID

from celery import shared_task

from catalog.constants import PipelineOutcome, PipelineRunStatus
from catalog.models import PipelineRun

logger = logging.getLogger(__name__)


@shared_task(name="catalog.tasks.run_data_collection")
def run_data_collection(run_id: str) -> Dict[str, Any]:
    """
    Run the data collection pipeline until it is stopped.

    The task blocks for the lifetime of the run; stop it through the
    run's ``stop_requested`` flag rather than by revoking the task.

    Args:
        run_id: UUID of the PipelineRun to execute

    Returns:
        Dict with the run outcome and error counter snapshot
    """
    from catalog.pipeline import execute_run

    try:
        run = PipelineRun.objects.get(id=UUID(run_id))
    except PipelineRun.DoesNotExist:
        logger.error(f"PipelineRun {run_id} not found")
        return {"run_id": run_id, "success": False, "error": "run not found"}

    if run.status == PipelineRunStatus.FINISHED:
        logger.warning(f"PipelineRun {run_id} already finished, not running it again")
        return {"run_id": run_id, "success": False, "error": "run already finished"}

    try:
        result = execute_run(run)
    except Exception as e:
        logger.exception(f"PipelineRun {run_id} crashed: {e}")
        run.finish(
            PipelineOutcome.FAILED,
            message=f"{e}\n{traceback.format_exc()}",
        )
        raise

    return {
        "run_id": run_id,
        "success": result.outcome != PipelineOutcome.FAILED,
        "outcome": result.outcome,
        "error_counts": result.error_counts,
        "message": result.message,
    }


@shared_task(name="catalog.tasks.reset_catalog")
def reset_catalog() -> Dict[str, Any]:
    """
    Delete every device, grouping and queued entry and reset the scoring
    state and error counters.

    Refuses while a pipeline run is active.
    """
    from catalog.pipeline import wipe_catalog

    if PipelineRun.active().exists():
        logger.warning("Refusing to reset the catalog while a pipeline run is active")
        return {"success": False, "error": "pipeline run is active"}

    wipe_catalog()
    return {"success": True}
