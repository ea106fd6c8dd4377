"""Repository package initialization."""
from .base import EventRepository, MintJobRepository, TicketRepository
from .supabase_repo import (
    SupabaseEventRepository,
    SupabaseMintJobRepository,
    SupabaseTicketRepository,
)

__all__ = [
    "EventRepository",
    "MintJobRepository",
    "TicketRepository",
    "SupabaseEventRepository",
    "SupabaseMintJobRepository",
    "SupabaseTicketRepository",
]
