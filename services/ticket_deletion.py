"""Deletion of tickets that have not reached the chain."""

import logging
from typing import Optional

from errors import ConflictError, NotFoundError
from models import MUTABLE_MINT_STATUSES, TicketDeletionResult
from repositories.base import EventRepository, TicketRepository
from services.access import require_event_admin

logger = logging.getLogger(__name__)


class TicketDeletionService:
    """Deletes pending or failed tickets. Minted and transferred tickets are permanent."""

    def __init__(self, tickets: TicketRepository, events: EventRepository):
        self.tickets = tickets
        self.events = events

    def delete_ticket(self, ticket_id: str, auth_id: Optional[str] = None) -> str:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        require_event_admin(self.events, auth_id, ticket.event_id)
        if ticket.nft_mint_status not in MUTABLE_MINT_STATUSES:
            raise ConflictError("Cannot delete ticket that has already been minted to the blockchain")

        # The repository re-checks the status in the delete itself; a mint may have landed meanwhile
        if not self.tickets.delete_unminted(ticket_id):
            current = self.tickets.get(ticket_id)
            if current is None:
                raise NotFoundError("Ticket not found")
            raise ConflictError("Cannot delete ticket that has already been minted to the blockchain")

        logger.info(f"Deleted ticket {ticket_id} of event {ticket.event_id}")
        return ticket_id

    def delete_event_tickets(self, event_id: int, auth_id: Optional[str] = None) -> TicketDeletionResult:
        """Delete every pending/failed ticket of the event; minted ones stay."""
        require_event_admin(self.events, auth_id, event_id)
        deleted = self.tickets.delete_unminted_for_event(event_id)
        logger.info(f"Deleted {len(deleted)} unminted tickets of event {event_id}")
        return TicketDeletionResult(event_id=event_id, deleted_count=len(deleted), deleted_tickets=deleted)
