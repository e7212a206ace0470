"""
Worker thread for running a sync pass in the background.

Keeps a Qt front end responsive while apps.json is rebuilt, and lets the
user cancel between games.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from PyQt6.QtCore import QThread, pyqtSignal

if TYPE_CHECKING:
    from launchsync.services.reconciliation_service import ReconciliationService

__all__ = ["SyncWorker"]

logger = logging.getLogger("launchsync.workers.sync")


class SyncWorker(QThread):
    """Background thread for one full reconciliation pass.

    Signals:
        progress: Emitted before each phase and game with (label, current, total).
        finished_sync: Emitted with the SyncResult when the pass ends.
        error: Emitted on an unexpected crash (error_message).
    """

    progress = pyqtSignal(str, int, int)
    finished_sync = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, service: ReconciliationService, parent: Any = None) -> None:
        """Initializes the sync worker.

        Args:
            service: The engine to run the pass on.
            parent: Parent QObject.
        """
        super().__init__(parent)
        self.service = service
        self._cancelled: bool = False

    def cancel(self) -> None:
        """Request cancellation; the pass stops before the next game."""
        self._cancelled = True

    def is_cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        """Runs the pass and emits finished_sync, or error if it crashed."""
        self._cancelled = False

        def progress_callback(current: int, total: int, label: str) -> None:
            self.progress.emit(label, current, total)

        try:
            result = self.service.run_pass(progress=progress_callback, should_cancel=self.is_cancelled)
        except Exception as exc:
            logger.exception("Sync worker failed")
            self.error.emit(str(exc))
            return

        self.finished_sync.emit(result)
