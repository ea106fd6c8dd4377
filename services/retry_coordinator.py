"""Operator-triggered retry of failed mint jobs."""

import logging
from typing import Optional

from models import RetryMintResult
from monitoring import mint_jobs_reset_total
from repositories.base import EventRepository
from services.access import require_event_admin
from services.mint_queue import MintQueue

logger = logging.getLogger(__name__)


class RetryCoordinator:
    """Puts an event's failed jobs back in the queue. Nothing is sent to the chain here."""

    def __init__(self, queue: MintQueue, events: EventRepository):
        self.queue = queue
        self.events = events

    def retry(self, event_id: int, auth_id: Optional[str] = None) -> RetryMintResult:
        require_event_admin(self.events, auth_id, event_id)
        reset_count = self.queue.reset_failed(event_id)
        mint_jobs_reset_total.inc(reset_count)
        logger.info(f"Retry requested for event {event_id}: {reset_count} jobs reset")
        return RetryMintResult(event_id=event_id, reset_count=reset_count)
