"""Supabase implementations of the pipeline repositories."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from postgrest.exceptions import APIError
from supabase import Client

from errors import PersistenceError, TicketNumberConflict
from models import (
    MUTABLE_MINT_STATUSES,
    EventMintConfig,
    JobStatus,
    MintJob,
    MintStatus,
    Ticket,
)
from .base import EventRepository, MintJobRepository, TicketRepository

logger = logging.getLogger(__name__)

TICKETS_TABLE = "tickets"
MINT_QUEUE_TABLE = "mint_queue"
EVENTS_TABLE = "events"
EVENT_ADMINS_TABLE = "event_admins"
COMPLETE_MINT_JOB_FUNCTION = "complete_mint_job"

UNIQUE_VIOLATION = "23505"


def _to_row(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in changes.items()
    }


class SupabaseTicketRepository(TicketRepository):
    """Tickets table. A unique index on (event_id, ticket_number) backs allocation."""

    def __init__(self, db: Client):
        self.db = db

    def max_ticket_number(self, event_id: int) -> int:
        response = (
            self.db.table(TICKETS_TABLE)
            .select("ticket_number")
            .eq("event_id", event_id)
            .order("ticket_number", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return 0
        return int(response.data[0]["ticket_number"])

    def insert_batch(self, tickets: Sequence[Ticket]) -> List[Ticket]:
        rows = [ticket.model_dump(mode="json", exclude_none=True) for ticket in tickets]
        try:
            # A multi-row insert is one statement, so PostgREST commits all rows or none
            response = self.db.table(TICKETS_TABLE).insert(rows).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise TicketNumberConflict(f"Ticket number already taken: {e.message}")
            raise PersistenceError(f"Database error: {e.message}")
        except Exception as e:
            raise PersistenceError(f"Database error: {e}")

        if not response.data or len(response.data) != len(rows):
            raise PersistenceError("Ticket insert returned an incomplete batch")
        return [Ticket.model_validate(row) for row in response.data]

    def get(self, ticket_id: str) -> Optional[Ticket]:
        response = (
            self.db.table(TICKETS_TABLE).select("*").eq("ticket_id", ticket_id).limit(1).execute()
        )
        if not response.data:
            return None
        return Ticket.model_validate(response.data[0])

    def list_by_event(self, event_id: int) -> List[Ticket]:
        response = (
            self.db.table(TICKETS_TABLE)
            .select("*")
            .eq("event_id", event_id)
            .order("ticket_number")
            .execute()
        )
        return [Ticket.model_validate(row) for row in response.data or []]

    def list_mint_statuses(self, event_id: int) -> List[MintStatus]:
        response = (
            self.db.table(TICKETS_TABLE).select("nft_mint_status").eq("event_id", event_id).execute()
        )
        return [row["nft_mint_status"] for row in response.data or []]

    def mark_failed(self, ticket_ids: Sequence[str]) -> int:
        if not ticket_ids:
            return 0
        try:
            response = (
                self.db.table(TICKETS_TABLE)
                .update({"nft_mint_status": "failed"})
                .in_("ticket_id", list(ticket_ids))
                .in_("nft_mint_status", list(MUTABLE_MINT_STATUSES))
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to mark tickets failed: {e}")
        return len(response.data or [])

    def delete_unminted(self, ticket_id: str) -> bool:
        # The status filter is part of the DELETE statement itself
        try:
            response = (
                self.db.table(TICKETS_TABLE)
                .delete()
                .eq("ticket_id", ticket_id)
                .in_("nft_mint_status", list(MUTABLE_MINT_STATUSES))
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to delete ticket: {e}")
        return bool(response.data)

    def delete_unminted_for_event(self, event_id: int, ticket_ids: Optional[Sequence[str]] = None) -> List[str]:
        query = (
            self.db.table(TICKETS_TABLE)
            .delete()
            .eq("event_id", event_id)
            .in_("nft_mint_status", list(MUTABLE_MINT_STATUSES))
        )
        if ticket_ids is not None:
            query = query.in_("ticket_id", list(ticket_ids))
        try:
            response = query.execute()
        except Exception as e:
            raise PersistenceError(f"Failed to delete tickets: {e}")
        return [row["ticket_id"] for row in response.data or []]


class SupabaseMintJobRepository(MintJobRepository):
    """mint_queue table."""

    def __init__(self, db: Client):
        self.db = db

    def insert(self, job: MintJob) -> MintJob:
        try:
            response = (
                self.db.table(MINT_QUEUE_TABLE)
                .insert(job.model_dump(mode="json", exclude_none=True))
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Queue error: {e}")
        if not response.data:
            raise PersistenceError("Queue insert returned no row")
        return MintJob.model_validate(response.data[0])

    def get(self, job_id: str) -> Optional[MintJob]:
        response = (
            self.db.table(MINT_QUEUE_TABLE).select("*").eq("job_id", job_id).limit(1).execute()
        )
        if not response.data:
            return None
        return MintJob.model_validate(response.data[0])

    def list_by_event(self, event_id: int) -> List[MintJob]:
        response = (
            self.db.table(MINT_QUEUE_TABLE)
            .select("*")
            .eq("event_id", event_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [MintJob.model_validate(row) for row in response.data or []]

    def list_by_status(self, status: JobStatus, limit: Optional[int] = None) -> List[MintJob]:
        query = self.db.table(MINT_QUEUE_TABLE).select("*").eq("status", status).order("created_at")
        if limit:
            query = query.limit(limit)
        response = query.execute()
        return [MintJob.model_validate(row) for row in response.data or []]

    def transition(self, job_id: str, from_status: JobStatus, changes: Dict[str, Any]) -> Optional[MintJob]:
        try:
            response = (
                self.db.table(MINT_QUEUE_TABLE)
                .update(_to_row(changes))
                .eq("job_id", job_id)
                .eq("status", from_status)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to update mint job {job_id}: {e}")
        if not response.data:
            return None
        return MintJob.model_validate(response.data[0])

    def complete_minted(
        self, job_id: str, assignments: Sequence[Tuple[str, int]], processed_at: datetime
    ) -> Optional[Tuple[MintJob, int]]:
        # One function call is one transaction: the job and all of its tickets commit together
        params = {
            "p_job_id": job_id,
            "p_ticket_ids": [ticket_id for ticket_id, _ in assignments],
            "p_token_ids": [token_id for _, token_id in assignments],
            "p_processed_at": processed_at.isoformat(),
        }
        try:
            response = self.db.rpc(COMPLETE_MINT_JOB_FUNCTION, params).execute()
        except APIError as e:
            raise PersistenceError(f"Failed to complete mint job {job_id}: {e.message}")
        except Exception as e:
            raise PersistenceError(f"Failed to complete mint job {job_id}: {e}")

        if not response.data:
            return None
        return MintJob.model_validate(response.data["job"]), int(response.data["tickets_updated"])

    def reset_failed(self, event_id: int) -> List[MintJob]:
        try:
            response = (
                self.db.table(MINT_QUEUE_TABLE)
                .update({"status": "pending", "retry_count": 0, "error_message": None})
                .eq("event_id", event_id)
                .eq("status", "failed")
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to reset mint jobs: {e}")
        return [MintJob.model_validate(row) for row in response.data or []]

    def fail_stale(self, claimed_before: datetime, error_message: str, processed_at: datetime) -> List[MintJob]:
        try:
            response = (
                self.db.table(MINT_QUEUE_TABLE)
                .update(_to_row({
                    "status": "failed",
                    "error_message": error_message,
                    "processed_at": processed_at,
                }))
                .eq("status", "processing")
                .lt("claimed_at", claimed_before.isoformat())
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to sweep stale mint jobs: {e}")
        return [MintJob.model_validate(row) for row in response.data or []]


class SupabaseEventRepository(EventRepository):
    """events, admin_wallets and event_admins tables."""

    def __init__(self, db: Client):
        self.db = db

    def get_mint_config(self, event_id: int) -> Optional[EventMintConfig]:
        response = (
            self.db.table(EVENTS_TABLE)
            .select("event_id, event_name, nft_contract_address, admin_wallets(wallet_address, is_active)")
            .eq("event_id", event_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None

        event = response.data[0]
        wallets = [
            wallet for wallet in event.get("admin_wallets") or []
            if wallet.get("is_active", True) and wallet.get("wallet_address")
        ]
        return EventMintConfig(
            event_id=event["event_id"],
            event_name=event.get("event_name") or f"Event {event_id}",
            nft_contract_address=event.get("nft_contract_address"),
            admin_wallet_address=wallets[0]["wallet_address"] if wallets else None,
        )

    def is_event_admin(self, auth_id: str, event_id: int) -> bool:
        response = (
            self.db.table(EVENT_ADMINS_TABLE)
            .select("id")
            .eq("auth_id", auth_id)
            .eq("event_id", event_id)
            .limit(1)
            .execute()
        )
        return bool(response.data)
