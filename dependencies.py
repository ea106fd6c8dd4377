"""Wiring of repositories and pipeline services.

The ``get_*`` providers are FastAPI dependencies; ``build_*`` helpers give the
same wiring to code running outside a request (Celery tasks).
"""
from typing import Optional

from fastapi import Depends
from supabase import Client

import config
from database import get_supabase_admin
from repositories import (
    SupabaseEventRepository,
    SupabaseMintJobRepository,
    SupabaseTicketRepository,
)
from repositories.base import EventRepository, MintJobRepository, TicketRepository
from services.blockchain_minter import BlockchainMinter
from services.metadata_storage import MetadataStorage, PinataMetadataStorage
from services.mint_queue import MintQueue
from services.mint_worker import MintWorker
from services.retry_coordinator import RetryCoordinator
from services.status_aggregator import StatusAggregator
from services.ticket_deletion import TicketDeletionService
from services.ticket_issuer import TicketIssuer
from web3_client import get_contract_client

_metadata_storage: Optional[MetadataStorage] = None


def get_metadata_storage() -> MetadataStorage:
    global _metadata_storage
    if _metadata_storage is None:
        _metadata_storage = PinataMetadataStorage()
    return _metadata_storage


def build_minter(queue: MintQueue, events: EventRepository) -> BlockchainMinter:
    return BlockchainMinter(queue, events, get_contract_client(), get_metadata_storage())


def build_mint_worker(db: Client) -> MintWorker:
    events = SupabaseEventRepository(db)
    queue = MintQueue(SupabaseMintJobRepository(db), SupabaseTicketRepository(db))
    return MintWorker(queue, build_minter(queue, events))


def get_ticket_repository(db: Client = Depends(get_supabase_admin)) -> TicketRepository:
    return SupabaseTicketRepository(db)


def get_mint_job_repository(db: Client = Depends(get_supabase_admin)) -> MintJobRepository:
    return SupabaseMintJobRepository(db)


def get_event_repository(db: Client = Depends(get_supabase_admin)) -> EventRepository:
    return SupabaseEventRepository(db)


def get_mint_queue(
    jobs: MintJobRepository = Depends(get_mint_job_repository),
    tickets: TicketRepository = Depends(get_ticket_repository),
) -> MintQueue:
    return MintQueue(jobs, tickets)


def get_blockchain_minter(
    queue: MintQueue = Depends(get_mint_queue),
    events: EventRepository = Depends(get_event_repository),
) -> Optional[BlockchainMinter]:
    """Only immediate mode mints inside a request."""
    if not config.IMMEDIATE_MINT:
        return None
    return build_minter(queue, events)


def get_ticket_issuer(
    tickets: TicketRepository = Depends(get_ticket_repository),
    events: EventRepository = Depends(get_event_repository),
    queue: MintQueue = Depends(get_mint_queue),
    minter: Optional[BlockchainMinter] = Depends(get_blockchain_minter),
) -> TicketIssuer:
    return TicketIssuer(tickets, events, queue, minter=minter, immediate_mint=minter is not None)


def get_retry_coordinator(
    queue: MintQueue = Depends(get_mint_queue),
    events: EventRepository = Depends(get_event_repository),
) -> RetryCoordinator:
    return RetryCoordinator(queue, events)


def get_status_aggregator(
    tickets: TicketRepository = Depends(get_ticket_repository),
    jobs: MintJobRepository = Depends(get_mint_job_repository),
) -> StatusAggregator:
    return StatusAggregator(tickets, jobs)


def get_ticket_deletion_service(
    tickets: TicketRepository = Depends(get_ticket_repository),
    events: EventRepository = Depends(get_event_repository),
) -> TicketDeletionService:
    return TicketDeletionService(tickets, events)
