"""
Metadata Storage
Uploads NFT metadata documents to content-addressed storage (IPFS through Pinata).
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

import config
from errors import ExternalServiceError
from models import NFTMetadata
from monitoring import metadata_uploads_total

logger = logging.getLogger(__name__)


class MetadataStorage(ABC):
    """Content-addressed store for metadata documents."""

    @abstractmethod
    def upload(self, metadata: NFTMetadata) -> str:
        """Store the document and return its URI."""


class PinataMetadataStorage(MetadataStorage):
    """Pins metadata JSON to IPFS with Pinata's pinJSONToIPFS endpoint.

    Identical documents hash to the same CID, so re-uploading on a retry
    yields the same URI.
    """

    def __init__(
        self,
        jwt: Optional[str] = config.PINATA_JWT,
        api_url: str = config.PINATA_API_URL,
        timeout: float = config.PINATA_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self.jwt = jwt
        self.api_url = api_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def upload(self, metadata: NFTMetadata) -> str:
        if not self.jwt:
            raise ExternalServiceError("Metadata storage not configured (missing PINATA_JWT)")

        payload = {
            "pinataContent": metadata.model_dump(mode="json"),
            "pinataMetadata": {"name": metadata.name},
        }
        try:
            response = self._client.post(
                f"{self.api_url}/pinning/pinJSONToIPFS",
                json=payload,
                headers={"Authorization": f"Bearer {self.jwt}"},
            )
            response.raise_for_status()
            ipfs_hash = response.json().get("IpfsHash")
        except httpx.HTTPStatusError as e:
            metadata_uploads_total.labels(outcome="error").inc()
            raise ExternalServiceError(
                f"Metadata upload failed for {metadata.name}: HTTP {e.response.status_code}"
            )
        except (httpx.HTTPError, ValueError) as e:
            metadata_uploads_total.labels(outcome="error").inc()
            raise ExternalServiceError(f"Metadata upload failed for {metadata.name}: {e}")

        if not ipfs_hash:
            metadata_uploads_total.labels(outcome="error").inc()
            raise ExternalServiceError(f"Metadata upload for {metadata.name} returned no IPFS hash")

        metadata_uploads_total.labels(outcome="ok").inc()
        logger.debug(f"Pinned metadata for {metadata.name} as {ipfs_hash}")
        return f"ipfs://{ipfs_hash}"

    def close(self) -> None:
        self._client.close()
