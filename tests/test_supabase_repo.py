"""
Tests for the Supabase repositories against a mocked query builder.
"""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from postgrest.exceptions import APIError

from errors import PersistenceError, TicketNumberConflict
from models import Ticket
from repositories.supabase_repo import (
    SupabaseEventRepository,
    SupabaseMintJobRepository,
    SupabaseTicketRepository,
)
from services.metadata import build_ticket_metadata


def make_ticket(number=1):
    return Ticket(
        ticket_id=f"t-{number}",
        event_id=1,
        ticket_number=number,
        total_tickets_in_group=2,
        nft_metadata=build_ticket_metadata("GA", number, 2, "Summer Fest"),
    )


def job_row(**overrides):
    row = {
        "job_id": "job-1",
        "event_id": 1,
        "ticket_refs": ["t-1"],
        "ticket_data": [{
            "ticket_id": "t-1",
            "token_id": 1,
            "metadata": build_ticket_metadata("GA", 1, 1, "Summer Fest").model_dump(mode="json"),
        }],
        "status": "processing",
        "retry_count": 0,
        "error_message": None,
        "created_at": "2026-01-01T12:00:00+00:00",
        "claimed_at": "2026-01-01T12:01:00+00:00",
        "processed_at": None,
    }
    row.update(overrides)
    return row


class TestSupabaseTicketRepository:
    """Test suite for the tickets table repository."""

    def test_max_ticket_number(self, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.order.return_value.limit.return_value
        query.execute.return_value.data = [{"ticket_number": 12}]

        assert SupabaseTicketRepository(mock_db).max_ticket_number(1) == 12
        mock_db.table.assert_called_with("tickets")
        mock_db.table.return_value.select.return_value.eq.return_value.order.assert_called_with(
            "ticket_number", desc=True
        )

    def test_max_ticket_number_without_tickets(self, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.order.return_value.limit.return_value
        query.execute.return_value.data = []

        assert SupabaseTicketRepository(mock_db).max_ticket_number(1) == 0

    def test_insert_batch_is_one_statement(self, mock_db):
        tickets = [make_ticket(1), make_ticket(2)]
        rows = [t.model_dump(mode="json", exclude_none=True) for t in tickets]
        mock_db.table.return_value.insert.return_value.execute.return_value.data = rows

        created = SupabaseTicketRepository(mock_db).insert_batch(tickets)

        mock_db.table.return_value.insert.assert_called_once_with(rows)
        assert [t.ticket_number for t in created] == [1, 2]

    def test_unique_violation_becomes_conflict(self, mock_db):
        mock_db.table.return_value.insert.return_value.execute.side_effect = APIError({
            "message": "duplicate key value violates unique constraint \"tickets_event_number_key\"",
            "code": "23505",
            "hint": None,
            "details": None,
        })

        with pytest.raises(TicketNumberConflict):
            SupabaseTicketRepository(mock_db).insert_batch([make_ticket(1)])

    def test_other_insert_errors_become_persistence_errors(self, mock_db):
        mock_db.table.return_value.insert.return_value.execute.side_effect = APIError({
            "message": "permission denied", "code": "42501", "hint": None, "details": None,
        })

        with pytest.raises(PersistenceError):
            SupabaseTicketRepository(mock_db).insert_batch([make_ticket(1)])

    def test_delete_unminted_filters_on_status(self, mock_db):
        delete = mock_db.table.return_value.delete.return_value
        delete.eq.return_value.in_.return_value.execute.return_value.data = []

        assert SupabaseTicketRepository(mock_db).delete_unminted("t-1") is False
        delete.eq.assert_called_with("ticket_id", "t-1")
        delete.eq.return_value.in_.assert_called_with("nft_mint_status", ["pending", "failed"])


class TestSupabaseMintJobRepository:
    """Test suite for the mint_queue repository."""

    def test_transition_is_conditional_on_status(self, mock_db):
        update = mock_db.table.return_value.update.return_value
        update.eq.return_value.eq.return_value.execute.return_value.data = [job_row(status="minted")]

        job = SupabaseMintJobRepository(mock_db).transition("job-1", "processing", {"status": "minted"})

        assert job.status == "minted"
        update.eq.assert_called_with("job_id", "job-1")
        update.eq.return_value.eq.assert_called_with("status", "processing")

    def test_lost_transition_returns_none(self, mock_db):
        update = mock_db.table.return_value.update.return_value
        update.eq.return_value.eq.return_value.execute.return_value.data = []

        assert SupabaseMintJobRepository(mock_db).transition("job-1", "pending", {"status": "processing"}) is None

    def test_reset_failed_only_targets_failed_jobs(self, mock_db):
        update = mock_db.table.return_value.update.return_value
        update.eq.return_value.eq.return_value.execute.return_value.data = [job_row(status="pending")]

        reset = SupabaseMintJobRepository(mock_db).reset_failed(1)

        assert len(reset) == 1
        mock_db.table.return_value.update.assert_called_with(
            {"status": "pending", "retry_count": 0, "error_message": None}
        )
        update.eq.assert_called_with("event_id", 1)
        update.eq.return_value.eq.assert_called_with("status", "failed")

    def test_complete_minted_is_one_function_call(self, mock_db):
        mock_db.rpc.return_value.execute.return_value.data = {
            "job": job_row(status="minted"),
            "tickets_updated": 2,
        }
        processed_at = datetime(2026, 1, 1, 12, 5, tzinfo=timezone.utc)

        job, updated = SupabaseMintJobRepository(mock_db).complete_minted(
            "job-1", [("t-1", 1), ("t-2", 2)], processed_at
        )

        assert job.status == "minted"
        assert updated == 2
        mock_db.rpc.assert_called_once_with("complete_mint_job", {
            "p_job_id": "job-1",
            "p_ticket_ids": ["t-1", "t-2"],
            "p_token_ids": [1, 2],
            "p_processed_at": processed_at.isoformat(),
        })
        mock_db.table.assert_not_called()

    def test_complete_minted_on_unclaimed_job(self, mock_db):
        mock_db.rpc.return_value.execute.return_value.data = None
        completed = SupabaseMintJobRepository(mock_db).complete_minted(
            "job-1", [("t-1", 1)], datetime.now(timezone.utc)
        )
        assert completed is None

    def test_complete_minted_failure_is_persistence_error(self, mock_db):
        mock_db.rpc.return_value.execute.side_effect = APIError({
            "message": "canceling statement due to statement timeout", "code": "57014", "hint": None, "details": None,
        })

        with pytest.raises(PersistenceError):
            SupabaseMintJobRepository(mock_db).complete_minted("job-1", [("t-1", 1)], datetime.now(timezone.utc))


class TestSupabaseEventRepository:
    """Test suite for event mint configuration."""

    def test_picks_first_active_admin_wallet(self, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = [{
            "event_id": 1,
            "event_name": "Summer Fest",
            "nft_contract_address": "0xcontract",
            "admin_wallets": [
                {"wallet_address": "0xold", "is_active": False},
                {"wallet_address": "0xnew", "is_active": True},
            ],
        }]

        config = SupabaseEventRepository(mock_db).get_mint_config(1)

        assert config.admin_wallet_address == "0xnew"
        assert config.is_mint_ready

    def test_missing_event(self, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = []

        assert SupabaseEventRepository(mock_db).get_mint_config(1) is None

    def test_event_without_wallets_is_not_ready(self, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = [{
            "event_id": 1, "event_name": "Summer Fest", "nft_contract_address": "0xcontract", "admin_wallets": [],
        }]

        assert not SupabaseEventRepository(mock_db).get_mint_config(1).is_mint_ready


@pytest.fixture
def mock_db():
    """Mock Supabase client; query-builder calls chain through return_value."""
    return Mock()
