"""
Blockchain Minter Service
Turns a claimed mint job into on-chain tokens:

1. upload each ticket's metadata (bounded concurrency, original order kept)
2. submit one batch-mint transaction to the event's contract
3. wait for the receipt, bounded by the confirmation timeout
4. record the outcome on the job and its tickets, all-or-nothing
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

import config
from errors import ConflictError, ExternalServiceError, MintPipelineError
from models import MintItem, MintJob, MintOutcome
from monitoring import mint_job_duration_seconds, mint_jobs_total
from repositories.base import EventRepository
from services.metadata_storage import MetadataStorage
from services.mint_queue import MintQueue
from web3_client import TicketContractClient

logger = logging.getLogger(__name__)


class BlockchainMinter:
    """Processes mint jobs that were claimed with MintQueue.mark_processing."""

    def __init__(
        self,
        queue: MintQueue,
        events: EventRepository,
        chain: TicketContractClient,
        storage: MetadataStorage,
        upload_concurrency: int = config.METADATA_UPLOAD_CONCURRENCY,
        confirmation_timeout: float = config.MINT_CONFIRMATION_TIMEOUT,
    ):
        self.queue = queue
        self.events = events
        self.chain = chain
        self.storage = storage
        self.upload_concurrency = max(1, upload_concurrency)
        self.confirmation_timeout = confirmation_timeout

    def process(self, job: MintJob) -> MintOutcome:
        """
        Mint a claimed job and record the outcome.

        Failures at any step are recorded with ``mark_failed`` and returned as
        a failed outcome; they are not retried here.
        """
        if job.status != "processing":
            raise ConflictError(f"Mint job {job.job_id} must be claimed before minting (status: {job.status})")

        started = time.time()
        token_ids = [item.token_id for item in job.ticket_data]
        try:
            contract_address, recipient = self._mint_target(job)
            uris = self.upload_metadata(job.ticket_data)
            if not (len(job.ticket_refs) == len(token_ids) == len(uris)):
                raise ExternalServiceError("Uploaded metadata does not line up with the job's tickets")
            receipt = self.chain.batch_mint(
                contract_address,
                recipient,
                token_ids,
                uris,
                timeout=self.confirmation_timeout,
            )
        except MintPipelineError as e:
            return self._fail(job, e.message, started)
        except Exception as e:
            logger.error(f"Unexpected error minting job {job.job_id}: {e}", exc_info=True)
            return self._fail(job, f"Unexpected error: {e}", started)

        try:
            self.queue.mark_minted(job.job_id, token_ids)
        except MintPipelineError as e:
            # The chain is the source of truth; this job now needs manual reconciliation
            logger.critical(
                f"Mint job {job.job_id} confirmed in tx {receipt['tx_hash']} but write-back failed: {e.message}"
            )
            raise
        mint_jobs_total.labels(status="minted").inc()
        mint_job_duration_seconds.observe(time.time() - started)
        logger.info(f"Mint job {job.job_id} confirmed in tx {receipt['tx_hash']}")
        return MintOutcome(
            job_id=job.job_id,
            event_id=job.event_id,
            status="minted",
            token_ids=token_ids,
            tx_hash=receipt["tx_hash"],
        )

    def upload_metadata(self, items: Sequence[MintItem]) -> List[str]:
        """Upload every document; URIs come back in the order of ``items``.

        The first failure cancels the uploads that have not started and is re-raised.
        """
        if not items:
            return []

        pool = ThreadPoolExecutor(max_workers=min(self.upload_concurrency, len(items)))
        futures = [pool.submit(self.storage.upload, item.metadata) for item in items]
        try:
            return [future.result() for future in futures]
        except Exception:
            for future in futures:
                future.cancel()
            raise
        finally:
            pool.shutdown(wait=True)

    def _mint_target(self, job: MintJob):
        event = self.events.get_mint_config(job.event_id)
        if event is None or not event.is_mint_ready:
            raise ExternalServiceError(f"Event {job.event_id} is not configured for NFT minting")
        return event.nft_contract_address, event.admin_wallet_address

    def _fail(self, job: MintJob, message: str, started: float) -> MintOutcome:
        self.queue.mark_failed(job.job_id, message)
        mint_jobs_total.labels(status="failed").inc()
        mint_job_duration_seconds.observe(time.time() - started)
        return MintOutcome(
            job_id=job.job_id,
            event_id=job.event_id,
            status="failed",
            error_message=message,
        )
