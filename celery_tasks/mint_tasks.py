"""
Mint queue tasks for the Celery worker.
Claims pending mint jobs, mints them, and fails jobs stuck in processing.
"""
from celery import Task
from celery_app import celery_app
from database import get_supabase_admin
from dependencies import build_mint_worker
from logging_system import get_logging_system, LogType, LogLevel
from services.mint_worker import MintWorker
import logging
from typing import Dict, Any
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class MintWorkerTask(Task):
    """Base task class holding the worker wiring for the process."""
    _worker: MintWorker = None

    @property
    def worker(self) -> MintWorker:
        if self._worker is None:
            self._worker = build_mint_worker(get_supabase_admin())
        return self._worker


@celery_app.task(base=MintWorkerTask, bind=True, name="celery_tasks.mint_tasks.process_mint_queue")
def process_mint_queue(self: MintWorkerTask) -> Dict[str, Any]:
    """
    Drain one round of the mint queue.

    Takes the oldest pending job of each event with nothing in flight,
    claims it and runs it through the minter. Outcomes are recorded on the
    jobs and tickets by the minter itself.

    Runs: every MINT_WORKER_POLL_SECONDS
    """
    try:
        outcomes = self.worker.run_once()
    except Exception as e:
        logger.error(f"Error processing mint queue: {e}", exc_info=True)
        raise

    logging_system = get_logging_system()
    for outcome in outcomes:
        if outcome.status == "minted":
            logging_system.log_event(
                LogType.MINT_JOB_MINTED,
                f"Minted {len(outcome.token_ids)} tokens in tx {outcome.tx_hash}",
                event_id=outcome.event_id,
                job_id=outcome.job_id,
            )
        else:
            logging_system.log_event(
                LogType.MINT_JOB_FAILED,
                f"Mint job failed: {outcome.error_message}",
                log_level=LogLevel.WARNING,
                event_id=outcome.event_id,
                job_id=outcome.job_id,
            )

    result = {
        "success": True,
        "jobs_processed": len(outcomes),
        "minted": sum(1 for outcome in outcomes if outcome.status == "minted"),
        "failed": sum(1 for outcome in outcomes if outcome.status == "failed"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "task_id": self.request.id,
    }
    if outcomes:
        logger.info(f"Mint queue round completed: {result}")
    return result


@celery_app.task(base=MintWorkerTask, bind=True, name="celery_tasks.mint_tasks.sweep_stale_mint_jobs")
def sweep_stale_mint_jobs(self: MintWorkerTask) -> Dict[str, Any]:
    """
    Fail jobs that stayed in processing past MINT_STALE_PROCESSING_SECONDS.

    Swept jobs become retryable through /api/events/retry-mint.

    Runs: every 5 minutes
    """
    try:
        swept = self.worker.sweep_stale()
    except Exception as e:
        logger.error(f"Error sweeping stale mint jobs: {e}", exc_info=True)
        raise

    if swept:
        get_logging_system().log_event(
            LogType.STALE_JOBS_SWEPT,
            f"Failed {swept} mint jobs stuck in processing",
            log_level=LogLevel.WARNING,
        )
    return {
        "success": True,
        "jobs_swept": swept,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "task_id": self.request.id,
    }
