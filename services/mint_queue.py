"""
Mint Queue Service
Durable queue of mint jobs and their lifecycle:

    pending -> processing -> minted
                          -> failed -> pending (reset_failed)

Only a claimed (processing) job can be finished, and finishing a job writes
the outcome back to every ticket bound to it.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from errors import ConflictError, NotFoundError, ValidationError
from models import MintItem, MintJob
from repositories.base import MintJobRepository, TicketRepository

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MintQueue:
    """Mint job lifecycle on top of the mint_queue and tickets tables."""

    def __init__(
        self,
        jobs: MintJobRepository,
        tickets: TicketRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.jobs = jobs
        self.tickets = tickets
        self.clock = clock

    def enqueue(
        self,
        event_id: int,
        ticket_refs: Sequence[str],
        metadata_set: Sequence[MintItem],
        claimed: bool = False,
    ) -> MintJob:
        """Create a job for the tickets, pending by default. Ticket rows are not touched.

        ``metadata_set[i]`` must describe ``ticket_refs[i]``; the order is kept
        as given all the way to the batch-mint transaction. With ``claimed``
        the job is inserted already processing, so no worker can take it.
        """
        if not ticket_refs:
            raise ValidationError("A mint job needs at least one ticket")
        if [item.ticket_id for item in metadata_set] != list(ticket_refs):
            raise ValidationError("Mint metadata does not line up with the job's tickets")

        now = self.clock()
        job = MintJob(
            job_id=str(uuid.uuid4()),
            event_id=event_id,
            ticket_refs=list(ticket_refs),
            ticket_data=list(metadata_set),
            status="processing" if claimed else "pending",
            retry_count=0,
            created_at=now,
            claimed_at=now if claimed else None,
        )
        created = self.jobs.insert(job)
        logger.info(
            f"{'Claimed' if claimed else 'Queued'} mint job {created.job_id} for event {event_id} "
            f"({len(ticket_refs)} tickets)"
        )
        return created

    def get(self, job_id: str) -> MintJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Mint job {job_id} not found")
        return job

    def list_by_event(self, event_id: int) -> List[MintJob]:
        return self.jobs.list_by_event(event_id)

    def list_pending(self, limit: Optional[int] = None) -> List[MintJob]:
        return self.jobs.list_by_status("pending", limit)

    def list_processing(self) -> List[MintJob]:
        return self.jobs.list_by_status("processing")

    def mark_processing(self, job_id: str) -> MintJob:
        """Claim a pending job. Only one caller can win the claim."""
        claimed = self.jobs.transition(job_id, "pending", {"status": "processing", "claimed_at": self.clock()})
        if claimed is None:
            job = self.get(job_id)
            raise ConflictError(
                f"Mint job {job_id} is {job.status}, not pending",
                details={"job_id": job_id, "status": job.status},
            )
        logger.info(f"Claimed mint job {job_id}")
        return claimed

    def mark_minted(self, job_id: str, token_ids: Sequence[int]) -> MintJob:
        """Finish a claimed job as minted and give each ticket its token id.

        ``token_ids[i]`` belongs to ``ticket_refs[i]``.
        """
        job = self.get(job_id)
        if job.status != "processing":
            raise ConflictError(f"Mint job {job_id} is {job.status}, not processing")
        if len(token_ids) != len(job.ticket_refs):
            raise ValidationError(
                f"Expected {len(job.ticket_refs)} token ids for job {job_id}, got {len(token_ids)}"
            )

        completed = self.jobs.complete_minted(
            job_id, list(zip(job.ticket_refs, token_ids)), processed_at=self.clock()
        )
        if completed is None:
            raise ConflictError(f"Mint job {job_id} left processing before it could be marked minted")

        updated, changed = completed
        if changed != len(job.ticket_refs):
            logger.warning(
                f"Mint job {job_id}: {changed} of {len(job.ticket_refs)} tickets updated to minted "
                f"(others were deleted or already final)"
            )
        logger.info(f"Mint job {job_id} minted tokens {list(token_ids)}")
        return updated

    def mark_failed(self, job_id: str, error_message: str) -> MintJob:
        """Finish a claimed job as failed and fail its tickets."""
        job = self.get(job_id)
        updated = self.jobs.transition(
            job_id,
            "processing",
            {
                "status": "failed",
                "error_message": error_message,
                "retry_count": job.retry_count + 1,
                "processed_at": self.clock(),
            },
        )
        if updated is None:
            raise ConflictError(f"Mint job {job_id} is {job.status}, not processing")

        self.tickets.mark_failed(job.ticket_refs)
        logger.warning(f"Mint job {job_id} failed: {error_message}")
        return updated

    def reset_failed(self, event_id: int) -> int:
        """Make every failed job of the event pending again. Other jobs are untouched."""
        reset = self.jobs.reset_failed(event_id)
        if reset:
            logger.info(f"Reset {len(reset)} failed mint jobs for event {event_id}")
        return len(reset)

    def sweep_stale(self, max_age_seconds: int) -> List[MintJob]:
        """Fail jobs stuck in processing for longer than ``max_age_seconds``.

        Their tickets are failed too, which makes them retryable through
        reset_failed like any other failure.
        """
        now = self.clock()
        swept = self.jobs.fail_stale(
            claimed_before=now - timedelta(seconds=max_age_seconds),
            error_message=f"Mint job timed out after {max_age_seconds}s in processing",
            processed_at=now,
        )
        for job in swept:
            self.tickets.mark_failed(job.ticket_refs)
            logger.warning(f"Swept stale mint job {job.job_id} (event {job.event_id})")
        return swept
