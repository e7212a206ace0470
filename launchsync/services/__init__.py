from __future__ import annotations

from launchsync.services.entry_builder import EntryBuilder
from launchsync.services.reconciliation_service import ReconciliationService, SyncResult
from launchsync.services.sync_dispatcher import SyncDispatcher

__all__: list[str] = [
    "EntryBuilder",
    "ReconciliationService",
    "SyncDispatcher",
    "SyncResult",
]
