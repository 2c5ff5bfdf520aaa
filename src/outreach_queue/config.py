"""Runtime configuration for the outreach task engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ALLOCATION_SERVER_CAP = 5_000


@dataclass(slots=True)
class AllocationSettings:
    """Allocator bounds."""

    server_cap: int = ALLOCATION_SERVER_CAP
    batch_size: int = 200


@dataclass(slots=True)
class QueueSettings:
    """Pagination defaults for task listings."""

    default_page_size: int = 20
    max_page_size: int = 100


@dataclass(slots=True)
class StorageSettings:
    """SQLite connection policy."""

    busy_timeout_ms: int = 5_000


@dataclass(slots=True)
class CallerSettings:
    """Acting user for CLI commands."""

    user_id: str | None = None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".outreach_queue.db")
    allocation: AllocationSettings = field(default_factory=AllocationSettings)
    queue: QueueSettings = field(default_factory=QueueSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    caller: CallerSettings = field(default_factory=CallerSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("OUTREACH_QUEUE_DB_PATH", ".outreach_queue.db")),
            allocation=AllocationSettings(
                server_cap=int(
                    os.getenv("OUTREACH_QUEUE_ALLOCATION_SERVER_CAP", str(ALLOCATION_SERVER_CAP)),
                ),
                batch_size=int(os.getenv("OUTREACH_QUEUE_ALLOCATION_BATCH_SIZE", "200")),
            ),
            queue=QueueSettings(
                default_page_size=int(os.getenv("OUTREACH_QUEUE_DEFAULT_PAGE_SIZE", "20")),
                max_page_size=int(os.getenv("OUTREACH_QUEUE_MAX_PAGE_SIZE", "100")),
            ),
            storage=StorageSettings(
                busy_timeout_ms=int(os.getenv("OUTREACH_QUEUE_BUSY_TIMEOUT_MS", "5000")),
            ),
            caller=CallerSettings(
                user_id=os.getenv("OUTREACH_QUEUE_USER_ID") or None,
            ),
            log_level=os.getenv("OUTREACH_QUEUE_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error on out-of-range values."""

        if self.allocation.server_cap <= 0:
            raise ValueError("OUTREACH_QUEUE_ALLOCATION_SERVER_CAP must be > 0.")
        if self.allocation.batch_size <= 0:
            raise ValueError("OUTREACH_QUEUE_ALLOCATION_BATCH_SIZE must be > 0.")
        if self.queue.max_page_size <= 0:
            raise ValueError("OUTREACH_QUEUE_MAX_PAGE_SIZE must be > 0.")
        if not 0 < self.queue.default_page_size <= self.queue.max_page_size:
            raise ValueError(
                "OUTREACH_QUEUE_DEFAULT_PAGE_SIZE must be > 0 and <= "
                f"OUTREACH_QUEUE_MAX_PAGE_SIZE ({self.queue.max_page_size}).",
            )
        if self.storage.busy_timeout_ms <= 0:
            raise ValueError("OUTREACH_QUEUE_BUSY_TIMEOUT_MS must be > 0.")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid OUTREACH_QUEUE_LOG_LEVEL: {self.log_level!r}")
