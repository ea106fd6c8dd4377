"""Record-store interfaces used by the minting pipeline.

Services only talk to these interfaces; the Supabase implementations live in
``repositories.supabase_repo`` and tests provide in-memory doubles.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models import EventMintConfig, JobStatus, MintJob, MintStatus, Ticket


class TicketRepository(ABC):

    @abstractmethod
    def max_ticket_number(self, event_id: int) -> int:
        """Highest ticket_number issued for the event, 0 when it has none."""

    @abstractmethod
    def insert_batch(self, tickets: Sequence[Ticket]) -> List[Ticket]:
        """Insert all tickets in one atomic write.

        Raises TicketNumberConflict when a (event_id, ticket_number) pair is
        already taken and PersistenceError for any other failure. Either way
        no ticket of the batch is stored.
        """

    @abstractmethod
    def get(self, ticket_id: str) -> Optional[Ticket]:
        ...

    @abstractmethod
    def list_by_event(self, event_id: int) -> List[Ticket]:
        """Tickets of the event ordered by ticket_number ascending."""

    @abstractmethod
    def list_mint_statuses(self, event_id: int) -> List[MintStatus]:
        ...

    @abstractmethod
    def mark_failed(self, ticket_ids: Sequence[str]) -> int:
        """Set tickets to failed. Only pending/failed tickets change."""

    @abstractmethod
    def delete_unminted(self, ticket_id: str) -> bool:
        """Delete the ticket if, at the moment of deletion, it is pending or failed."""

    @abstractmethod
    def delete_unminted_for_event(self, event_id: int, ticket_ids: Optional[Sequence[str]] = None) -> List[str]:
        """Delete the event's pending/failed tickets (optionally only ``ticket_ids``); return deleted ids."""


class MintJobRepository(ABC):

    @abstractmethod
    def insert(self, job: MintJob) -> MintJob:
        ...

    @abstractmethod
    def get(self, job_id: str) -> Optional[MintJob]:
        ...

    @abstractmethod
    def list_by_event(self, event_id: int) -> List[MintJob]:
        """Jobs of the event, newest first."""

    @abstractmethod
    def list_by_status(self, status: JobStatus, limit: Optional[int] = None) -> List[MintJob]:
        """Jobs in ``status``, oldest first."""

    @abstractmethod
    def transition(self, job_id: str, from_status: JobStatus, changes: Dict[str, Any]) -> Optional[MintJob]:
        """Compare-and-swap update.

        Applies ``changes`` only if the job is currently in ``from_status``.
        Returns the updated job, or None when the job is missing or in another
        status.
        """

    @abstractmethod
    def complete_minted(
        self, job_id: str, assignments: Sequence[Tuple[str, int]], processed_at: datetime
    ) -> Optional[Tuple[MintJob, int]]:
        """Finish a processing job as minted together with its tickets, in one transaction.

        The job moves processing -> minted and every (ticket_id, token_id)
        pair that is still pending/failed becomes minted with that token id.
        Returns the job and the number of tickets updated, or None (and no
        change) when the job is not processing. On error nothing is written.
        """

    @abstractmethod
    def reset_failed(self, event_id: int) -> List[MintJob]:
        """Move the event's failed jobs back to pending with retry_count 0 and no error."""

    @abstractmethod
    def fail_stale(self, claimed_before: datetime, error_message: str, processed_at: datetime) -> List[MintJob]:
        """Fail processing jobs claimed before ``claimed_before``."""


class EventRepository(ABC):

    @abstractmethod
    def get_mint_config(self, event_id: int) -> Optional[EventMintConfig]:
        ...

    @abstractmethod
    def is_event_admin(self, auth_id: str, event_id: int) -> bool:
        ...
