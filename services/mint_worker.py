"""
Mint Worker
Drains the mint queue: claims pending jobs and runs them through the
BlockchainMinter on a bounded thread pool, one job in flight per event.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import config
from errors import ConflictError
from models import MintJob, MintOutcome
from monitoring import stale_mint_jobs_total
from services.blockchain_minter import BlockchainMinter
from services.mint_queue import MintQueue

logger = logging.getLogger(__name__)


class MintWorker:

    def __init__(
        self,
        queue: MintQueue,
        minter: BlockchainMinter,
        concurrency: int = config.MINT_WORKER_CONCURRENCY,
        stale_after_seconds: int = config.MINT_STALE_PROCESSING_SECONDS,
    ):
        self.queue = queue
        self.minter = minter
        self.concurrency = max(1, concurrency)
        self.stale_after_seconds = stale_after_seconds

    def select_jobs(self) -> List[MintJob]:
        """Oldest pending job of each event that has no job in processing."""
        busy_events = {job.event_id for job in self.queue.list_processing()}
        selected: List[MintJob] = []
        for job in self.queue.list_pending():
            if job.event_id in busy_events:
                continue
            busy_events.add(job.event_id)
            selected.append(job)
            if len(selected) >= self.concurrency:
                break
        return selected

    def run_once(self) -> List[MintOutcome]:
        """Process one round of jobs and return their outcomes."""
        jobs = self.select_jobs()
        if not jobs:
            return []

        logger.info(f"Processing {len(jobs)} mint jobs")
        with ThreadPoolExecutor(max_workers=min(self.concurrency, len(jobs))) as pool:
            outcomes = list(pool.map(self._claim_and_mint, jobs))
        return [outcome for outcome in outcomes if outcome is not None]

    def sweep_stale(self) -> int:
        """Fail jobs left in processing past the stale bound (e.g. a worker died mid-job)."""
        swept = self.queue.sweep_stale(self.stale_after_seconds)
        stale_mint_jobs_total.inc(len(swept))
        return len(swept)

    def _claim_and_mint(self, job: MintJob) -> Optional[MintOutcome]:
        try:
            claimed = self.queue.mark_processing(job.job_id)
        except ConflictError:
            logger.info(f"Mint job {job.job_id} was claimed by another worker")
            return None
        return self.minter.process(claimed)
