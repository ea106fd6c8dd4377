"""
Pytest configuration and fixtures for backend tests.
"""
import itertools
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment variables before any app module reads them
os.environ["ENVIRONMENT"] = "test"
os.environ["SUPABASE_URL"] = os.getenv("SUPABASE_URL", "https://test.supabase.co")
os.environ["SUPABASE_SERVICE_KEY"] = os.getenv("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ["IMMEDIATE_MINT"] = "false"
os.environ["AUDIT_LOG_TO_DATABASE"] = "false"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="mint-logs-")
os.environ.pop("SENTRY_DSN", None)

from fastapi.testclient import TestClient  # noqa: E402

from fakes import (  # noqa: E402
    FakeContractClient,
    FakeMetadataStorage,
    InMemoryEventRepository,
    InMemoryMintJobRepository,
    InMemoryStore,
    InMemoryTicketRepository,
)
from services.blockchain_minter import BlockchainMinter  # noqa: E402
from services.mint_queue import MintQueue  # noqa: E402
from services.ticket_issuer import EventLocks, TicketIssuer  # noqa: E402

START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=START):
        self._ticks = itertools.count()
        self.start = start
        self.offset = timedelta(0)

    def __call__(self):
        return self.start + self.offset + timedelta(seconds=next(self._ticks))

    def advance(self, seconds):
        self.offset += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store():
    """Store with event 1 configured for minting and administered by admin-1."""
    store = InMemoryStore()
    store.add_event(event_id=1)
    return store


@pytest.fixture
def ticket_repo(store):
    return InMemoryTicketRepository(store)


@pytest.fixture
def job_repo(store):
    return InMemoryMintJobRepository(store)


@pytest.fixture
def event_repo(store):
    return InMemoryEventRepository(store)


@pytest.fixture
def queue(job_repo, ticket_repo, clock):
    return MintQueue(job_repo, ticket_repo, clock=clock)


@pytest.fixture
def chain():
    return FakeContractClient()


@pytest.fixture
def storage():
    return FakeMetadataStorage()


@pytest.fixture
def minter(queue, event_repo, chain, storage):
    return BlockchainMinter(queue, event_repo, chain, storage, upload_concurrency=4, confirmation_timeout=30)


@pytest.fixture
def issuer(ticket_repo, event_repo, queue, clock):
    return TicketIssuer(ticket_repo, event_repo, queue, immediate_mint=False, locks=EventLocks(), clock=clock)


@pytest.fixture
def client(ticket_repo, job_repo, event_repo):
    """Test client wired to the in-memory store, authenticated as admin-1."""
    from main import app
    from auth_middleware import get_current_user
    from dependencies import (
        get_blockchain_minter,
        get_event_repository,
        get_mint_job_repository,
        get_ticket_repository,
    )

    app.dependency_overrides[get_ticket_repository] = lambda: ticket_repo
    app.dependency_overrides[get_mint_job_repository] = lambda: job_repo
    app.dependency_overrides[get_event_repository] = lambda: event_repo
    app.dependency_overrides[get_blockchain_minter] = lambda: None
    app.dependency_overrides[get_current_user] = lambda: {"id": "admin-1", "email": "admin@example.com"}
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client():
    """Test client without authentication overrides."""
    from main import app
    return TestClient(app)
