"""Background worker threads for long-running operations."""

from __future__ import annotations

from launchsync.workers.sync_worker import SyncWorker

__all__ = [
    "SyncWorker",
]
