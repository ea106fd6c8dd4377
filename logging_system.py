"""
Logging system with file rotation and structured audit logging.
Writes JSON and plain text logs with automatic rotation, and records
pipeline audit events in the application_logs table.
"""
import logging
import logging.handlers
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
from enum import Enum
from supabase import Client

import config
from database import get_supabase_admin

MAX_LOG_BYTES = 10 * 1024 * 1024


class LogType(str, Enum):
    """Audit event types of the minting pipeline."""
    TICKETS_ISSUED = "TICKETS_ISSUED"
    TICKETS_DELETED = "TICKETS_DELETED"
    MINT_JOB_MINTED = "MINT_JOB_MINTED"
    MINT_JOB_FAILED = "MINT_JOB_FAILED"
    MINT_RETRY_REQUESTED = "MINT_RETRY_REQUESTED"
    STALE_JOBS_SWEPT = "STALE_JOBS_SWEPT"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingSystem:
    """Centralized logging system with file rotation and database storage."""

    def __init__(
        self,
        log_dir: str = config.LOG_DIR,
        db: Optional[Client] = None,
        store_in_database: bool = config.AUDIT_LOG_TO_DATABASE,
    ):
        """Initialize logging system.

        Args:
            log_dir: Directory to store log files
            db: Supabase client for audit records (defaults to the admin client)
            store_in_database: Whether audit events are written to application_logs
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.store_in_database = store_in_database
        self._db = db

        self._setup_file_handlers()

    def _rotating_handler(
        self, filename: str, formatter: logging.Formatter, level: int, backups: int = 10
    ) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / filename,
            maxBytes=MAX_LOG_BYTES,
            backupCount=backups,
            encoding='utf-8'
        )
        handler.setFormatter(formatter)
        handler.setLevel(level)
        return handler

    def _setup_file_handlers(self):
        """Attach the JSON, text and errors-only files to the root logger."""
        text_format = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handlers = [
            self._rotating_handler("app.json.log", JSONFormatter(), logging.INFO),
            self._rotating_handler("app.log", text_format, logging.INFO),
            # Mint jobs needing reconciliation are logged at critical and land here
            self._rotating_handler("errors.log", JSONFormatter(), logging.ERROR, backups=20),
        ]

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.INFO)
        for handler in handlers:
            root_logger.addHandler(handler)

    def log_event(
        self,
        log_type: LogType,
        message: str,
        log_level: LogLevel = LogLevel.INFO,
        user_id: Optional[str] = None,
        event_id: Optional[int] = None,
        job_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Log a pipeline event to files and, if enabled, the database.

        Args:
            log_type: Type of log event
            message: Log message
            log_level: Log level
            user_id: Identity-provider id of the caller, if any
            event_id: Event the action applies to
            job_id: Mint job the action applies to
            endpoint: API endpoint
            metadata: Additional metadata
        """
        log_data = {
            "log_type": log_type.value,
            "log_level": log_level.value,
            "message": message,
            "user_id": user_id,
            "event_id": event_id,
            "job_id": job_id,
            "endpoint": endpoint,
            "metadata": metadata or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        logger = logging.getLogger(__name__)
        logger.log(
            logging.getLevelName(log_level.value),
            f"[{log_type.value}] {message}",
            extra={"log_data": log_data},
        )

        if not self.store_in_database:
            return
        try:
            self._store_in_database(log_data)
        except Exception as e:
            # Audit storage must never fail the caller
            logger.error(f"Failed to store log in database: {e}")

    def _store_in_database(self, log_data: Dict[str, Any]):
        if self._db is None:
            self._db = get_supabase_admin()

        db_record = {
            "log_level": log_data["log_level"],
            "log_type": log_data["log_type"],
            "message": log_data["message"],
            "user_id": log_data.get("user_id"),
            "endpoint": log_data.get("endpoint"),
            "metadata": {
                **log_data.get("metadata", {}),
                "event_id": log_data.get("event_id"),
                "job_id": log_data.get("job_id"),
            },
            "log_data": log_data,
        }
        self._db.table("application_logs").insert(db_record).execute()


class JSONFormatter(logging.Formatter):
    """Custom formatter for JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "log_data"):
            log_data.update(record.log_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


# Global logging system instance
_logging_system: Optional[LoggingSystem] = None


def get_logging_system() -> LoggingSystem:
    """Get global logging system instance."""
    global _logging_system
    if _logging_system is None:
        _logging_system = LoggingSystem()
    return _logging_system
