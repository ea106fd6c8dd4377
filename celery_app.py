"""
Celery application for the mint worker.
Beat drains the mint queue on a short interval and sweeps jobs stuck in processing.
"""
from celery import Celery
from datetime import timedelta

import config
from sentry_config import init_sentry

init_sentry()

# Create Celery app (Redis for broker and result backend)
celery_app = Celery(
    "nft_ticket_minting",
    broker=config.REDIS_URL,
    backend=config.REDIS_URL,
    include=["celery_tasks.mint_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # A drain round may wait on several confirmations
    task_soft_time_limit=config.MINT_CONFIRMATION_TIMEOUT * 3,
    task_time_limit=config.MINT_CONFIRMATION_TIMEOUT * 3 + 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "process-mint-queue": {
        "task": "celery_tasks.mint_tasks.process_mint_queue",
        "schedule": timedelta(seconds=config.MINT_WORKER_POLL_SECONDS),
        "options": {"expires": config.MINT_WORKER_POLL_SECONDS},
    },
    "sweep-stale-mint-jobs": {
        "task": "celery_tasks.mint_tasks.sweep_stale_mint_jobs",
        "schedule": timedelta(minutes=5),
        "options": {"expires": 300},
    },
}

if __name__ == "__main__":
    celery_app.start()
