"""
Tests for guarded ticket deletion.
"""
import pytest

from errors import AuthorizationError, ConflictError, NotFoundError
from fakes import InMemoryTicketRepository
from models import MintTicketsRequest
from services.mint_queue import MintQueue
from services.ticket_deletion import TicketDeletionService
from services.ticket_issuer import EventLocks, TicketIssuer


class MintLandsDuringDelete(InMemoryTicketRepository):
    """The ticket is minted after the service read it and before the delete runs."""

    def delete_unminted(self, ticket_id):
        with self.store.lock:
            ticket = self.store.tickets[ticket_id]
            self.store.tickets[ticket_id] = ticket.model_copy(
                update={"nft_mint_status": "minted", "nft_token_id": ticket.ticket_number}
            )
        return super().delete_unminted(ticket_id)


class RemovedDuringDelete(InMemoryTicketRepository):
    """Another request deletes the ticket first."""

    def delete_unminted(self, ticket_id):
        with self.store.lock:
            del self.store.tickets[ticket_id]
        return super().delete_unminted(ticket_id)


def issue_one(repo, event_repo, job_repo, clock):
    queue = MintQueue(job_repo, repo, clock=clock)
    issuer = TicketIssuer(repo, event_repo, queue, immediate_mint=False, locks=EventLocks(), clock=clock)
    result = issuer.issue(MintTicketsRequest(event_id=1, ticket_name="GA", quantity=1))
    return result.tickets[0].ticket_id


class TestDeleteTicket:
    """Test suite for TicketDeletionService.delete_ticket."""

    def test_deletes_pending_ticket(self, ticket_repo, event_repo, job_repo, clock):
        ticket_id = issue_one(ticket_repo, event_repo, job_repo, clock)

        assert TicketDeletionService(ticket_repo, event_repo).delete_ticket(ticket_id, auth_id="admin-1") == ticket_id
        assert ticket_repo.get(ticket_id) is None

    def test_mint_landing_before_delete_is_a_conflict(self, store, event_repo, job_repo, clock):
        repo = MintLandsDuringDelete(store)
        ticket_id = issue_one(repo, event_repo, job_repo, clock)

        with pytest.raises(ConflictError):
            TicketDeletionService(repo, event_repo).delete_ticket(ticket_id, auth_id="admin-1")

        ticket = repo.get(ticket_id)
        assert ticket is not None
        assert ticket.nft_mint_status == "minted"
        assert ticket.nft_token_id == 1

    def test_ticket_deleted_concurrently_is_not_found(self, store, event_repo, job_repo, clock):
        repo = RemovedDuringDelete(store)
        ticket_id = issue_one(repo, event_repo, job_repo, clock)

        with pytest.raises(NotFoundError):
            TicketDeletionService(repo, event_repo).delete_ticket(ticket_id, auth_id="admin-1")

    def test_non_admin_cannot_delete(self, ticket_repo, event_repo, job_repo, clock):
        ticket_id = issue_one(ticket_repo, event_repo, job_repo, clock)

        with pytest.raises(AuthorizationError):
            TicketDeletionService(ticket_repo, event_repo).delete_ticket(ticket_id, auth_id="stranger")
        assert ticket_repo.get(ticket_id) is not None
