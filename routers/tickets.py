"""Single-ticket router."""
from fastapi import APIRouter, Depends

from auth_middleware import get_current_user
from dependencies import get_ticket_deletion_service, get_ticket_repository
from errors import NotFoundError
from logging_system import get_logging_system, LogType
from repositories.base import TicketRepository
from services.ticket_deletion import TicketDeletionService

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("/{ticket_id}")
def get_ticket(
    ticket_id: str,
    tickets: TicketRepository = Depends(get_ticket_repository),
):
    ticket = tickets.get(ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket not found")
    return {"status": "success", "data": ticket.model_dump(mode="json")}


@router.delete("/{ticket_id}")
def delete_ticket(
    ticket_id: str,
    user: dict = Depends(get_current_user),
    deletion: TicketDeletionService = Depends(get_ticket_deletion_service),
):
    """Delete a ticket that has not been minted yet."""
    deletion.delete_ticket(ticket_id, auth_id=user["id"])

    get_logging_system().log_event(
        LogType.TICKETS_DELETED,
        f"Deleted ticket {ticket_id}",
        user_id=user["id"],
        endpoint="/api/tickets/{ticket_id}",
        metadata={"ticket_id": ticket_id},
    )
    return {
        "status": "success",
        "message": "Ticket deleted successfully",
        "data": {"ticket_id": ticket_id},
    }
