"""Domain exceptions for the ticket issuance and minting pipeline."""
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class MintPipelineError(Exception):
    """Base class for pipeline errors. Carries the HTTP status to answer with."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(MintPipelineError):
    """Malformed or out-of-range input. Raised before any write."""

    status_code = 400


class AuthorizationError(MintPipelineError):
    """Caller is not permitted to manage the event."""

    status_code = 403


class NotFoundError(MintPipelineError):
    status_code = 404


class ConflictError(MintPipelineError):
    """State precondition failed (job already claimed, ticket already minted...)."""

    status_code = 409


class TicketNumberConflict(ConflictError):
    """Another batch took one of the allocated ticket numbers first."""


class ExternalServiceError(MintPipelineError):
    """Blockchain RPC, metadata upload or confirmation timeout."""

    status_code = 502


class PersistenceError(MintPipelineError):
    """A database write did not go through."""

    status_code = 500


async def pipeline_error_handler(request: Request, exc: MintPipelineError) -> JSONResponse:
    """Render pipeline errors with the API's error envelope."""
    body: Dict[str, Any] = {"status": "error", "message": exc.message}
    if exc.details:
        body["data"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)
