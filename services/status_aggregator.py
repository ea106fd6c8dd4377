"""Read-only rollup of an event's mint progress."""

from collections import Counter

from models import MintStatusSummary, QueueJobSummary
from repositories.base import MintJobRepository, TicketRepository


class StatusAggregator:

    def __init__(self, tickets: TicketRepository, jobs: MintJobRepository):
        self.tickets = tickets
        self.jobs = jobs

    def summary(self, event_id: int) -> MintStatusSummary:
        """Ticket counts by mint status plus the event's queue jobs, newest first."""
        statuses = Counter(self.tickets.list_mint_statuses(event_id))
        jobs = self.jobs.list_by_event(event_id)
        return MintStatusSummary(
            event_id=event_id,
            total_tickets=sum(statuses.values()),
            minted=statuses["minted"],
            pending=statuses["pending"],
            failed=statuses["failed"],
            queue_jobs=[
                QueueJobSummary(
                    job_id=job.job_id,
                    status=job.status,
                    created_at=job.created_at,
                    processed_at=job.processed_at,
                    error_message=job.error_message,
                )
                for job in jobs
            ],
        )
