"""Runtime configuration read from the environment (.env supported)."""
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
VERSION = os.getenv("VERSION", "1.0.0")

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

# Chain
ETHEREUM_RPC_URL = os.getenv("ETHEREUM_RPC_URL")
CHAIN_ID = int(os.getenv("CHAIN_ID", "11155111"))  # Sepolia
MINTER_PRIVATE_KEY = os.getenv("MINTER_PRIVATE_KEY")
MINT_GAS_LIMIT = int(os.getenv("MINT_GAS_LIMIT", "5000000"))

# Minting pipeline
IMMEDIATE_MINT = _flag("IMMEDIATE_MINT")
MAX_TICKETS_PER_REQUEST = 1000
MINT_CONFIRMATION_TIMEOUT = int(os.getenv("MINT_CONFIRMATION_TIMEOUT", "120"))
METADATA_UPLOAD_CONCURRENCY = int(os.getenv("METADATA_UPLOAD_CONCURRENCY", "8"))
MINT_WORKER_CONCURRENCY = int(os.getenv("MINT_WORKER_CONCURRENCY", "4"))
MINT_WORKER_POLL_SECONDS = int(os.getenv("MINT_WORKER_POLL_SECONDS", "30"))
MINT_STALE_PROCESSING_SECONDS = int(os.getenv("MINT_STALE_PROCESSING_SECONDS", "900"))
TICKET_ALLOCATION_ATTEMPTS = int(os.getenv("TICKET_ALLOCATION_ATTEMPTS", "3"))

# Content-addressed metadata storage (Pinata)
PINATA_JWT = os.getenv("PINATA_JWT")
PINATA_API_URL = os.getenv("PINATA_API_URL", "https://api.pinata.cloud")
PINATA_TIMEOUT = float(os.getenv("PINATA_TIMEOUT", "30"))

# Background workers
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Observability
SENTRY_DSN = os.getenv("SENTRY_DSN")
LOG_DIR = os.getenv("LOG_DIR", "logs")
AUDIT_LOG_TO_DATABASE = _flag("AUDIT_LOG_TO_DATABASE", "true")
