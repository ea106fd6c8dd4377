"""Pydantic models for tickets, mint jobs and API request/response validation."""
from pydantic import BaseModel, Field
from typing import List, Optional, Literal, Union
from datetime import datetime


TicketStatus = Literal["valid", "revoked"]
MintStatus = Literal["pending", "minted", "failed", "transferred"]
JobStatus = Literal["pending", "processing", "minted", "failed"]

# Tickets in these states may still be deleted or rewritten by the pipeline
MUTABLE_MINT_STATUSES = ("pending", "failed")


# NFT metadata (ERC-721 metadata JSON)
class NFTAttribute(BaseModel):
    trait_type: str
    value: Union[int, float, str]


class NFTMetadata(BaseModel):
    name: str
    description: str
    image: str
    attributes: List[NFTAttribute] = Field(default_factory=list)


# Ticket records
class Ticket(BaseModel):
    ticket_id: str
    event_id: int
    ticket_number: int
    total_tickets_in_group: int
    ticket_status: TicketStatus = "valid"
    nft_mint_status: MintStatus = "pending"
    nft_contract_address: Optional[str] = None
    nft_token_id: Optional[int] = None
    nft_metadata: NFTMetadata
    created_at: Optional[datetime] = None


# Mint queue
class MintItem(BaseModel):
    """One ticket of a mint job. Position in the job is the on-chain position."""
    ticket_id: str
    token_id: int
    metadata: NFTMetadata


class MintJob(BaseModel):
    job_id: str
    event_id: int
    ticket_refs: List[str]
    ticket_data: List[MintItem]
    status: JobStatus = "pending"
    retry_count: int = 0
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class MintOutcome(BaseModel):
    job_id: str
    event_id: int
    status: Literal["minted", "failed"]
    token_ids: List[int] = Field(default_factory=list)
    tx_hash: Optional[str] = None
    error_message: Optional[str] = None


# Events
class EventMintConfig(BaseModel):
    """Minting configuration of an event: its contract and the wallet receiving the tokens."""
    event_id: int
    event_name: str
    nft_contract_address: Optional[str] = None
    admin_wallet_address: Optional[str] = None

    @property
    def is_mint_ready(self) -> bool:
        return bool(self.nft_contract_address and self.admin_wallet_address)


# Issuance API
class MintTicketsRequest(BaseModel):
    event_id: int
    ticket_name: str = Field(..., min_length=1, max_length=200)
    # Bounds are enforced by the issuer so that they answer 400, not 422
    quantity: int = Field(..., description="Number of tickets to create (1-1000)")
    price: Optional[float] = Field(None, ge=0, description="Price in ETH")
    image_url: Optional[str] = None
    description: Optional[str] = None
    ticket_type: Optional[str] = None


class MintTicketsResult(BaseModel):
    event_id: int
    tickets_created: int
    starting_ticket_number: int
    tickets: List[Ticket]
    mint_status: Literal["minted", "queued"]
    job_id: Optional[str] = None


# Status and retry API
class QueueJobSummary(BaseModel):
    job_id: str
    status: JobStatus
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class MintStatusSummary(BaseModel):
    event_id: int
    total_tickets: int = 0
    minted: int = 0
    pending: int = 0
    failed: int = 0
    queue_jobs: List[QueueJobSummary] = Field(default_factory=list)


class RetryMintRequest(BaseModel):
    event_id: int


class RetryMintResult(BaseModel):
    event_id: int
    reset_count: int


class TicketDeletionResult(BaseModel):
    event_id: int
    deleted_count: int
    deleted_tickets: List[str]
