# launchsync/services/sync_dispatcher.py

"""Serializes triggered sync passes onto a single background worker.

Startup, library-update and settings triggers can fire close together.
Every pass goes through one single-thread executor, so at most one runs at a
time, and a request made while another pass is still waiting to start is
merged into that waiting pass.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from launchsync.services.reconciliation_service import ProgressCallback, ReconciliationService, SyncResult

__all__ = ["SyncDispatcher"]

logger = logging.getLogger("launchsync.sync_dispatcher")


class SyncDispatcher:
    """Single-slot queue in front of ReconciliationService.run_pass.

    Args:
        service: The engine whose passes are dispatched.
        progress: Optional progress callback forwarded to every pass.
        on_finished: Optional callback receiving each pass result.
    """

    def __init__(
        self,
        service: ReconciliationService,
        progress: ProgressCallback | None = None,
        on_finished: Callable[[SyncResult], None] | None = None,
    ) -> None:
        self.service = service
        self._progress = progress
        self._on_finished = on_finished
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="launchsync-sync")
        self._guard = threading.Lock()
        self._queued: Future[SyncResult] | None = None
        self._cancel = threading.Event()
        self._running = False

    def submit(self) -> Future[SyncResult]:
        """Request a full pass.

        Returns:
            Future of the pass that will serve this request. While a pass is
            queued but not started, the same future is returned.
        """
        with self._guard:
            queued = self._queued
            if queued is not None and not queued.running() and not queued.done():
                logger.info("Sync already queued, merging request")
                return queued
            future = self._executor.submit(self._run)
            self._queued = future
            return future

    def cancel(self) -> bool:
        """Ask the running pass to stop after the current game.

        Returns:
            False when no pass is running, in which case the request is
            dropped.
        """
        with self._guard:
            if not self._running:
                logger.debug("No sync running, ignoring cancel request")
                return False
            self._cancel.set()
            return True

    def _run(self) -> SyncResult:
        with self._guard:
            self._running = True
            self._cancel.clear()
        try:
            result = self.service.run_pass(progress=self._progress, should_cancel=self._cancel.is_set)
        except Exception:
            logger.exception("Sync pass crashed")
            raise
        finally:
            with self._guard:
                self._running = False
                self._cancel.clear()

        if self._on_finished is not None:
            self._on_finished(result)
        return result

    def on_application_started(self) -> Future[SyncResult] | None:
        """Store sync now; queue a pass if sync_on_startup is set."""
        return self.service.on_application_started(schedule=self.submit)

    def on_library_updated(self) -> Future[SyncResult] | None:
        """Queue a pass if sync_on_library_update is set."""
        return self.service.on_library_updated(schedule=self.submit)

    def on_settings_updated(self) -> Future[SyncResult] | None:
        """Queue a pass if sync_on_settings_updated is set."""
        return self.service.on_settings_updated(schedule=self.submit)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting passes; optionally wait for the current one."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> SyncDispatcher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(wait=True)
