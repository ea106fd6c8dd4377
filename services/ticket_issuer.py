"""
Ticket Issuer Service
Allocates sequential ticket numbers per event, persists each issuance batch
atomically and hands the batch to the mint queue (or mints it right away).
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import config
from errors import (
    ExternalServiceError,
    NotFoundError,
    PersistenceError,
    TicketNumberConflict,
    ValidationError,
)
from models import (
    EventMintConfig,
    MintItem,
    MintTicketsRequest,
    MintTicketsResult,
    Ticket,
)
from monitoring import tickets_issued_total
from repositories.base import EventRepository, TicketRepository
from services.access import require_event_admin
from services.metadata import build_ticket_metadata
from services.mint_queue import MintQueue, utcnow

logger = logging.getLogger(__name__)


class EventLocks:
    """One mutex per event id; a lock is dropped once nobody holds or waits for it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, Tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, event_id: int) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(event_id, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[event_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[event_id]
                if users == 1:
                    del self._locks[event_id]
                else:
                    self._locks[event_id] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every issuer in the process so concurrent requests serialize per event
_event_locks = EventLocks()


class TicketIssuer:
    """Creates ticket batches for an event."""

    def __init__(
        self,
        tickets: TicketRepository,
        events: EventRepository,
        queue: MintQueue,
        minter=None,
        immediate_mint: bool = config.IMMEDIATE_MINT,
        max_attempts: int = config.TICKET_ALLOCATION_ATTEMPTS,
        locks: Optional[EventLocks] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if immediate_mint and minter is None:
            raise ValueError("Immediate minting needs a BlockchainMinter")
        self.tickets = tickets
        self.events = events
        self.queue = queue
        self.minter = minter
        self.immediate_mint = immediate_mint
        self.max_attempts = max(1, max_attempts)
        self.locks = locks or _event_locks
        self.clock = clock

    def issue(self, request: MintTicketsRequest, auth_id: Optional[str] = None) -> MintTicketsResult:
        """
        Issue ``request.quantity`` tickets for the event.

        Every check runs before the first write. Tickets are numbered
        ``max(existing) + 1`` onwards and written in a single batch; the batch
        is then queued for minting, or minted synchronously in immediate mode.
        """
        self._validate(request)

        event = self.events.get_mint_config(request.event_id)
        if event is None:
            raise NotFoundError(f"Event {request.event_id} not found")
        require_event_admin(self.events, auth_id, request.event_id)
        if not event.is_mint_ready:
            raise ValidationError("Event not configured for NFT minting")

        with self.locks.hold(event.event_id):
            created = self._allocate_and_insert(request, event)

        starting_number = created[0].ticket_number
        tickets_issued_total.inc(len(created))
        logger.info(
            f"Issued {len(created)} tickets for event {event.event_id} "
            f"(#{starting_number}-#{created[-1].ticket_number})"
        )

        items = [
            MintItem(ticket_id=ticket.ticket_id, token_id=ticket.ticket_number, metadata=ticket.nft_metadata)
            for ticket in created
        ]
        try:
            # Immediate mode inserts the job already claimed so the worker cannot take it
            job = self.queue.enqueue(
                event.event_id,
                [ticket.ticket_id for ticket in created],
                items,
                claimed=self.immediate_mint,
            )
        except PersistenceError:
            # Tickets without a mint job would never be minted; take the batch back
            self._discard_batch(event.event_id, created)
            raise

        if not self.immediate_mint:
            return MintTicketsResult(
                event_id=event.event_id,
                tickets_created=len(created),
                starting_ticket_number=starting_number,
                tickets=created,
                mint_status="queued",
                job_id=job.job_id,
            )

        outcome = self.minter.process(job)
        if outcome.status != "minted":
            # Tickets and the failed job stay behind; /retry-mint re-queues them
            raise ExternalServiceError(
                f"Minting failed: {outcome.error_message}",
                details={
                    "event_id": event.event_id,
                    "job_id": job.job_id,
                    "tickets_created": len(created),
                    "starting_ticket_number": starting_number,
                },
            )

        minted = [
            ticket.model_copy(update={"nft_mint_status": "minted", "nft_token_id": token_id})
            for ticket, token_id in zip(created, outcome.token_ids)
        ]
        return MintTicketsResult(
            event_id=event.event_id,
            tickets_created=len(minted),
            starting_ticket_number=starting_number,
            tickets=minted,
            mint_status="minted",
            job_id=job.job_id,
        )

    def _discard_batch(self, event_id: int, created: List[Ticket]) -> None:
        """Remove a batch whose job could not be queued. Failures are logged, not raised."""
        ticket_ids = [ticket.ticket_id for ticket in created]
        try:
            with self.locks.hold(event_id):
                removed = self.tickets.delete_unminted_for_event(event_id, ticket_ids)
        except Exception as e:
            logger.critical(
                f"Queueing failed for event {event_id} and its {len(ticket_ids)} new tickets "
                f"could not be removed: {e}",
                exc_info=True,
            )
            return
        logger.error(f"Queueing failed for event {event_id}; removed {len(removed)} new tickets")

    def _validate(self, request: MintTicketsRequest) -> None:
        if not request.ticket_name or not request.ticket_name.strip():
            raise ValidationError("Invalid input parameters: ticket_name is required")
        if request.quantity < 1 or request.quantity > config.MAX_TICKETS_PER_REQUEST:
            raise ValidationError(
                f"Invalid input parameters: quantity must be between 1 and {config.MAX_TICKETS_PER_REQUEST}"
            )

    def _allocate_and_insert(self, request: MintTicketsRequest, event: EventMintConfig) -> List[Ticket]:
        """Number and insert the batch. Called with the event lock held.

        The unique (event_id, ticket_number) index still catches writers in
        other processes; on such a conflict the numbers are allocated again.
        """
        for attempt in range(1, self.max_attempts + 1):
            starting_number = self.tickets.max_ticket_number(event.event_id) + 1
            batch = self._build_batch(request, event, starting_number)
            try:
                created = self.tickets.insert_batch(batch)
            except TicketNumberConflict:
                logger.warning(
                    f"Ticket numbers from #{starting_number} taken for event {event.event_id} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                if attempt == self.max_attempts:
                    raise
                continue
            return sorted(created, key=lambda ticket: ticket.ticket_number)
        raise PersistenceError("Ticket allocation exhausted its attempts")

    def _build_batch(self, request: MintTicketsRequest, event: EventMintConfig, starting_number: int) -> List[Ticket]:
        created_at = self.clock()
        batch = []
        for i in range(request.quantity):
            ticket_number = starting_number + i
            batch.append(Ticket(
                ticket_id=str(uuid.uuid4()),
                event_id=event.event_id,
                ticket_number=ticket_number,
                total_tickets_in_group=request.quantity,
                ticket_status="valid",
                nft_mint_status="pending",
                nft_contract_address=event.nft_contract_address,
                nft_token_id=None,
                nft_metadata=build_ticket_metadata(
                    ticket_name=request.ticket_name,
                    ticket_number=ticket_number,
                    total_supply=request.quantity,
                    event_name=event.event_name,
                    ticket_type=request.ticket_type,
                    price=request.price,
                    description=request.description,
                    image_url=request.image_url,
                ),
                created_at=created_at,
            ))
        return batch
