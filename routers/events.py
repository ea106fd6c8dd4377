"""Event ticket issuance, mint status and retry router."""
from fastapi import APIRouter, Depends, status

from auth_middleware import get_current_user
from dependencies import (
    get_retry_coordinator,
    get_status_aggregator,
    get_ticket_deletion_service,
    get_ticket_issuer,
    get_ticket_repository,
)
from logging_system import get_logging_system, LogType
from models import MintTicketsRequest, RetryMintRequest
from repositories.base import TicketRepository
from services.retry_coordinator import RetryCoordinator
from services.status_aggregator import StatusAggregator
from services.ticket_deletion import TicketDeletionService
from services.ticket_issuer import TicketIssuer

router = APIRouter(prefix="/events", tags=["Events"])


# Handlers are sync: the pipeline blocks on locks, the database and the chain,
# so FastAPI runs them in its threadpool.
@router.post("/mint", status_code=status.HTTP_201_CREATED)
def mint_tickets(
    request: MintTicketsRequest,
    user: dict = Depends(get_current_user),
    issuer: TicketIssuer = Depends(get_ticket_issuer),
):
    """Create a batch of tickets and queue (or mint) their NFTs."""
    result = issuer.issue(request, auth_id=user["id"])

    get_logging_system().log_event(
        LogType.TICKETS_ISSUED,
        f"Issued {result.tickets_created} tickets starting at #{result.starting_ticket_number} ({result.mint_status})",
        user_id=user["id"],
        event_id=result.event_id,
        job_id=result.job_id,
        endpoint="/api/events/mint",
    )
    return {
        "status": "success",
        "message": f"Successfully created {result.tickets_created} ticket(s)",
        "data": result.model_dump(mode="json"),
    }


@router.get("/{event_id}/mint-status")
def get_mint_status(
    event_id: int,
    user: dict = Depends(get_current_user),
    aggregator: StatusAggregator = Depends(get_status_aggregator),
):
    """Ticket mint counts and queue jobs for an event."""
    summary = aggregator.summary(event_id)
    return {"status": "success", "data": summary.model_dump(mode="json")}


@router.post("/retry-mint")
def retry_mint(
    request: RetryMintRequest,
    user: dict = Depends(get_current_user),
    coordinator: RetryCoordinator = Depends(get_retry_coordinator),
):
    """Reset the event's failed mint jobs so the worker picks them up again."""
    result = coordinator.retry(request.event_id, auth_id=user["id"])

    get_logging_system().log_event(
        LogType.MINT_RETRY_REQUESTED,
        f"Reset {result.reset_count} failed mint jobs",
        user_id=user["id"],
        event_id=request.event_id,
        endpoint="/api/events/retry-mint",
    )
    return {
        "status": "success",
        "message": "Failed mint jobs queued for retry",
        "data": result.model_dump(mode="json"),
    }


@router.get("/{event_id}/tickets")
def list_event_tickets(
    event_id: int,
    tickets: TicketRepository = Depends(get_ticket_repository),
):
    """Tickets of an event ordered by ticket number."""
    rows = tickets.list_by_event(event_id)
    return {"status": "success", "data": [ticket.model_dump(mode="json") for ticket in rows]}


@router.delete("/{event_id}/tickets")
def delete_event_tickets(
    event_id: int,
    user: dict = Depends(get_current_user),
    deletion: TicketDeletionService = Depends(get_ticket_deletion_service),
):
    """Delete all tickets of the event that have not been minted."""
    result = deletion.delete_event_tickets(event_id, auth_id=user["id"])

    get_logging_system().log_event(
        LogType.TICKETS_DELETED,
        f"Deleted {result.deleted_count} unminted tickets",
        user_id=user["id"],
        event_id=event_id,
        endpoint="/api/events/{event_id}/tickets",
    )
    return {
        "status": "success",
        "message": f"Successfully deleted {result.deleted_count} tickets",
        "data": result.model_dump(mode="json"),
    }
