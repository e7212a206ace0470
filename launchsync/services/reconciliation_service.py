# launchsync/services/reconciliation_service.py

"""
Keeps apps.json in step with the filtered game library.

A full pass runs these phases in order:

1. Store sync: drop identity mappings whose uuid is gone from apps.json.
2. Inclusion: union of the games matched by every selected filter preset.
3. Stale removal: remove managed games that left the library, or that no
   longer match and are not pinned.
4. Manual-removal skip: games whose entry was deleted outside Launch Sync
   since the last pass are not re-added during this pass.
5. Add/update every remaining candidate.
6. Commit: save apps.json once, save the identity store, store-sync again.

apps.json is loaded fresh for every operation and written at most once.
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from launchsync.core.apps_config import AppsConfigRepository, AppsDocument
from launchsync.core.errors import BuildError, ConfigurationError, LoadError, SaveError, SavePermissionError
from launchsync.core.game import Game
from launchsync.core.identity_store import IdentityStore
from launchsync.services.entry_builder import EntryBuilder, generate_numeric_id
from launchsync.utils.i18n import t
from launchsync.utils.json_utils import dump_json_text

if TYPE_CHECKING:
    from launchsync.config import Config
    from launchsync.library.library_loader import GameLibrary

__all__ = ["FilterCollaborator", "ReconciliationService", "SyncResult"]

logger = logging.getLogger("launchsync.reconciliation")

ProgressCallback = Callable[[int, int, str], None]
CancelCheck = Callable[[], bool]
Schedule = Callable[[], "Future[SyncResult]"]


class FilterCollaborator(Protocol):
    """What the engine needs from the preset evaluator."""

    def matching_games(self, preset_id: str) -> list[Game]: ...

    def matches(self, game: Game, preset_id: str) -> bool: ...


@dataclass
class SyncResult:
    """Outcome of a pass or a batch operation.

    Attributes:
        added_or_updated: Games written to apps.json.
        failed: Games that could not be processed or saved.
        removed: Entries removed from apps.json.
        errors: User-facing error lines, in order of occurrence.
        cancelled: The add/update loop stopped early.
        permission_denied: The save was refused by the OS.
        configuration_error: No filter presets are selected.
        load_error: apps.json could not be loaded; nothing changed.
        summary_key: Translation key for summary().
    """

    added_or_updated: int = 0
    failed: int = 0
    removed: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False
    permission_denied: bool = False
    configuration_error: bool = False
    load_error: bool = False
    summary_key: str = "sync.summary"

    @property
    def ok(self) -> bool:
        """True when nothing failed."""
        return not (self.failed or self.errors or self.configuration_error or self.load_error)

    def summary(self) -> str:
        """Single end-of-operation message."""
        if self.configuration_error:
            return t("sync.no_presets")

        parts = [t(self.summary_key, added=self.added_or_updated, failed=self.failed, removed=self.removed)]
        if self.removed and self.summary_key != "remove.summary":
            parts.append(t("sync.removed", count=self.removed))
        if self.cancelled:
            parts.append(t("sync.cancelled"))
        if self.errors:
            parts.append(t("sync.details_hint"))
        return " ".join(parts)

    def details(self) -> str:
        """Error lines shown on demand."""
        return "\n".join(self.errors)

    def mark_save_failed(self, message: str) -> None:
        # Nothing reached the disk, so every counted change failed
        self.failed += self.added_or_updated + self.removed
        self.added_or_updated = 0
        self.removed = 0
        self.errors.append(message)


class ReconciliationService:
    """Reconciles apps.json with the filtered library.

    All collaborators are injected. Operations are serialized by an
    internal lock, so at most one of them mutates apps.json at a time.

    Args:
        repository: apps.json repository.
        identity_store: game id -> uuid mappings.
        library: The game library.
        filters: Preset evaluator answering matching_games/matches.
        settings: Config with the selected presets and pinned games.
        entry_builder: Builds entries (defaults to one using the settings).
        rng: Random source for numeric ids.
    """

    def __init__(
        self,
        repository: AppsConfigRepository,
        identity_store: IdentityStore,
        library: GameLibrary,
        filters: FilterCollaborator,
        settings: Config,
        entry_builder: EntryBuilder | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.identity_store = identity_store
        self.library = library
        self.filters = filters
        self.settings = settings
        self.entry_builder = entry_builder or EntryBuilder(
            launcher_path=settings.LAUNCHER_PATH, files_dir=getattr(library, "files_dir", None)
        )
        self._rng = rng or random.Random()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Store sync
    # ------------------------------------------------------------------

    def _reconcile_store(self, document: AppsDocument) -> list[str]:
        """Drop mappings orphaned relative to document; persist if any."""
        orphaned = self.identity_store.reconcile_against(document.uuids())
        if orphaned:
            logger.info("Syncing managed store: removed %d orphaned mappings", len(orphaned))
            if not self.identity_store.save():
                logger.error("Failed to persist identity store after store sync")
        return orphaned

    def sync_identity_store(self) -> list[str]:
        """Load apps.json and drop every orphaned mapping.

        A load failure is logged and leaves the store untouched.

        Returns:
            Game ids whose mappings were dropped.
        """
        with self._lock:
            try:
                document = self.repository.load()
            except LoadError as e:
                logger.error("Store sync skipped: %s", e)
                return []
            return self._reconcile_store(document)

    # ------------------------------------------------------------------
    # Inclusion
    # ------------------------------------------------------------------

    def compute_inclusion(self, errors: list[str] | None = None) -> tuple[list[Game], int]:
        """Union of the games matched by the selected presets.

        A preset that raises is logged (and reported through errors) and
        skipped; the other presets are still evaluated.

        Args:
            errors: Optional list receiving user-facing error lines.

        Returns:
            Tuple of (games in first-match order, number of failed presets).

        Raises:
            ConfigurationError: If no preset is selected.
        """
        preset_ids = list(dict.fromkeys(self.settings.INCLUDED_PRESET_IDS))
        if not preset_ids:
            raise ConfigurationError("No filter presets selected")

        included: dict[str, Game] = {}
        failures = 0
        for preset_id in preset_ids:
            try:
                matched = self.filters.matching_games(preset_id)
            except Exception as e:
                failures += 1
                logger.warning("Filter preset '%s' failed: %s", preset_id, e)
                if errors is not None:
                    errors.append(t("errors.preset_failed", preset=preset_id, error=e))
                continue
            for game in matched:
                included.setdefault(game.id, game)

        logger.info("Inclusion set: %d games from %d presets", len(included), len(preset_ids))
        return list(included.values()), failures

    def game_matches_filters(self, game: Game) -> bool:
        """Whether a game matches any selected preset."""
        for preset_id in self.settings.INCLUDED_PRESET_IDS:
            try:
                if self.filters.matches(game, preset_id):
                    return True
            except Exception as e:
                logger.warning("Filter preset '%s' failed for %s: %s", preset_id, game.name, e)
        return False

    def is_pinned(self, game_id: str) -> bool:
        return self.settings.is_pinned(game_id)

    # ------------------------------------------------------------------
    # Batch primitives (caller owns load and save)
    # ------------------------------------------------------------------

    def add_or_update(self, document: AppsDocument, game: Game) -> bool:
        """Upsert one game's entry into a loaded document.

        An existing entry keeps its numeric id and unknown keys; only name,
        detached and image-path (when resolved) are overwritten. A new entry
        gets a numeric id unused in the document.

        Returns:
            True if the entry was written, False if no entry could be built.

        Raises:
            BuildError: If building the entry failed unexpectedly.
        """
        newly_assigned = game.id not in self.identity_store
        uuid = self.identity_store.assign(game.id)

        try:
            entry = self.entry_builder.build(game, uuid)
        except Exception as e:
            if newly_assigned:
                self.identity_store.remove(game.id)
            raise BuildError(f"Cannot build entry for {game.name}: {e}") from e

        if entry is None:
            if newly_assigned:
                self.identity_store.remove(game.id)
            return False

        existing = document.find(uuid)
        if existing is not None:
            existing["name"] = entry.name
            existing["detached"] = list(entry.detached)
            if entry.image_path:
                existing["image-path"] = entry.image_path
            logger.debug("Updated entry for %s (%s)", game.name, uuid)
        else:
            entry.numeric_id = generate_numeric_id(document.numeric_ids(), self._rng)
            document.apps.append(entry.to_dict())
            logger.debug("Added entry for %s (%s, id %s)", game.name, uuid, entry.numeric_id)
        return True

    def remove(self, document: AppsDocument, game_id: str) -> bool:
        """Remove a managed game's entry and mapping from a loaded document.

        Returns:
            False if the game is not managed.
        """
        uuid = self.identity_store.get(game_id)
        if uuid is None:
            return False
        document.remove(uuid)
        self.identity_store.remove(game_id)
        return True

    def _commit(self, document: AppsDocument, before: str, store_before: dict[str, str], result: SyncResult) -> bool:
        """Persist a mutated document and the identity store.

        On a save failure the identity store is rolled back to store_before
        and the result is marked failed.

        Returns:
            True if everything that changed was saved.
        """
        document_changed = dump_json_text(document.to_dict()) != before
        if document_changed:
            try:
                self.repository.save(document)
            except SavePermissionError as e:
                logger.error("Permission denied saving apps.json: %s", e)
                result.permission_denied = True
                self.identity_store.restore(store_before)
                result.mark_save_failed(t("errors.save_denied", path=e.path or self.repository.describe()))
                return False
            except SaveError as e:
                logger.error("Failed to save apps.json: %s", e)
                self.identity_store.restore(store_before)
                result.mark_save_failed(t("errors.save_failed", error=e))
                return False

        if self.identity_store.as_dict() != store_before and not self.identity_store.save():
            logger.error("Failed to persist identity store")

        if document_changed:
            try:
                self._reconcile_store(self.repository.load())
            except LoadError as e:
                logger.warning("Post-save store sync skipped: %s", e)
        return True

    def _load_for(self, result: SyncResult, failed: int) -> AppsDocument | None:
        try:
            return self.repository.load()
        except LoadError as e:
            logger.error("Failed to load apps.json: %s", e)
            result.load_error = True
            result.failed += failed
            result.errors.append(t("errors.load_failed", error=e))
            return None

    # ------------------------------------------------------------------
    # Full pass
    # ------------------------------------------------------------------

    def run_pass(self, progress: ProgressCallback | None = None, should_cancel: CancelCheck | None = None) -> SyncResult:
        """Run one full reconciliation pass.

        Args:
            progress: Optional callback(current, total, label).
            should_cancel: Checked before each add/update; when it returns
                True the loop stops and what was done so far is committed.

        Returns:
            The pass outcome.
        """
        with self._lock:
            return self._run_pass(progress, should_cancel)

    def _run_pass(self, progress: ProgressCallback | None, should_cancel: CancelCheck | None) -> SyncResult:
        result = SyncResult()

        def report(current: int, total: int, label: str) -> None:
            if progress:
                progress(current, total, label)

        logger.info("Starting sync pass against %s", self.repository.describe())
        report(0, 0, t("sync.progress_store"))

        # Phase 1
        try:
            document = self.repository.load()
        except LoadError as e:
            logger.error("Sync aborted, cannot load apps.json: %s", e)
            result.load_error = True
            result.errors.append(t("errors.load_failed", error=e))
            try:
                candidates, _ = self.compute_inclusion()
                result.failed = len(candidates)
            except ConfigurationError:
                result.configuration_error = True
            except LoadError:
                pass
            return result

        manually_removed = set(self._reconcile_store(document))
        before = dump_json_text(document.to_dict())
        store_before = self.identity_store.as_dict()

        # Phase 2
        try:
            candidates, _ = self.compute_inclusion(result.errors)
        except ConfigurationError:
            logger.warning("Sync skipped: no filter presets selected")
            result.configuration_error = True
            return result

        # Phase 3
        report(0, len(candidates), t("sync.progress_filters"))
        # Union of the presets that evaluated; a failed preset contributes nothing
        included_ids = {g.id for g in candidates}
        try:
            for game_id, uuid in self.identity_store.items():
                game = self.library.get(game_id)
                if game is not None:
                    if self.is_pinned(game_id) or game_id in included_ids:
                        continue
                if document.remove(uuid):
                    result.removed += 1
                self.identity_store.remove(game_id)
                logger.info("Removed %s from apps.json", game.name if game else game_id)
        except LoadError as e:
            logger.error("Sync aborted, cannot read the library: %s", e)
            self.identity_store.restore(store_before)
            result.removed = 0
            result.errors.append(t("errors.library_failed", error=e))
            return result

        # Phases 4 and 5
        total = len(candidates)
        for index, game in enumerate(candidates, 1):
            if should_cancel is not None and should_cancel():
                logger.info("Sync cancelled after %d of %d games", index - 1, total)
                result.cancelled = True
                break

            report(index, total, t("sync.progress_game", name=game.name))

            if game.id in manually_removed:
                logger.warning("Skipping %s: removed from apps.json outside Launch Sync", game.name)
                continue

            try:
                if self.add_or_update(document, game):
                    result.added_or_updated += 1
                else:
                    result.failed += 1
                    result.errors.append(t("errors.process_failed", name=game.name))
            except Exception as e:
                logger.exception("Error processing %s", game.name)
                result.failed += 1
                result.errors.append(t("errors.process_error", name=game.name, error=e))

        # Phase 6
        self._commit(document, before, store_before, result)
        logger.info(
            "Sync pass finished. Success: %d, Failed: %d, Removed: %d",
            result.added_or_updated,
            result.failed,
            result.removed,
        )
        return result

    # ------------------------------------------------------------------
    # Selection operations
    # ------------------------------------------------------------------

    def export_games(self, games: Iterable[Game]) -> SyncResult:
        """Pin and export the given games with one load and one save."""
        games = list(games)
        result = SyncResult(summary_key="export.summary")
        with self._lock:
            self.pin_games(g.id for g in games)

            document = self._load_for(result, failed=len(games))
            if document is None:
                return result
            before = dump_json_text(document.to_dict())
            store_before = self.identity_store.as_dict()

            for game in games:
                try:
                    if self.add_or_update(document, game):
                        result.added_or_updated += 1
                        continue
                    result.errors.append(t("errors.process_failed", name=game.name))
                except Exception as e:
                    logger.exception("Error exporting %s", game.name)
                    result.errors.append(t("errors.process_error", name=game.name, error=e))
                result.failed += 1

            self._commit(document, before, store_before, result)
        return result

    def remove_games(self, games: Iterable[Game]) -> SyncResult:
        """Remove the given games with one load and one save.

        Games are not unpinned; a pinned game that still matches a preset
        will be exported again by the next pass.
        """
        games = list(games)
        result = SyncResult(summary_key="remove.summary")
        with self._lock:
            document = self._load_for(result, failed=len(games))
            if document is None:
                return result
            before = dump_json_text(document.to_dict())
            store_before = self.identity_store.as_dict()

            for game in games:
                if self.remove(document, game.id):
                    result.removed += 1
                else:
                    result.failed += 1
                    result.errors.append(t("errors.not_managed", name=game.name))

            self._commit(document, before, store_before, result)
        return result

    # ------------------------------------------------------------------
    # Immediate single-game operations
    # ------------------------------------------------------------------

    def add_or_update_now(self, game: Game) -> bool:
        """Load, upsert one game, save and store-sync.

        Returns:
            True if the game's entry is now in apps.json.

        Raises:
            SavePermissionError: If the write was denied.
        """
        result = SyncResult()
        with self._lock:
            document = self._load_for(result, failed=1)
            if document is None:
                return False
            before = dump_json_text(document.to_dict())
            store_before = self.identity_store.as_dict()
            try:
                written = self.add_or_update(document, game)
            except BuildError as e:
                logger.error("%s", e)
                return False
            if not written:
                return False
            saved = self._commit(document, before, store_before, result)
        if result.permission_denied:
            raise SavePermissionError(result.errors[-1])
        return saved

    def remove_game_now(self, game_id: str) -> bool:
        """Remove one game immediately.

        A game that vanished from the library only loses its mapping.

        Returns:
            True if something was removed.
        """
        with self._lock:
            return self._remove_one_now(game_id, store_sync=True)

    def remove_games_now(self, game_ids: Iterable[str]) -> int:
        """Remove several games immediately, store-syncing once at the end.

        Returns:
            Number of games removed.
        """
        removed = 0
        with self._lock:
            for game_id in game_ids:
                if self._remove_one_now(game_id, store_sync=False):
                    removed += 1
            if removed:
                self.sync_identity_store()
        return removed

    def _remove_one_now(self, game_id: str, store_sync: bool) -> bool:
        game_id = str(game_id)
        if game_id not in self.identity_store:
            logger.debug("Game %s is not managed", game_id)
            return False

        if self.library.get(game_id) is None:
            self.identity_store.remove(game_id)
            self.identity_store.save()
            logger.info("Dropped mapping for %s (no longer in the library)", game_id)
            return True

        result = SyncResult()
        document = self._load_for(result, failed=1)
        if document is None:
            return False
        before = dump_json_text(document.to_dict())
        store_before = self.identity_store.as_dict()
        self.remove(document, game_id)

        if dump_json_text(document.to_dict()) != before:
            try:
                self.repository.save(document)
            except SaveError as e:
                logger.error("Failed to remove %s: %s", game_id, e)
                self.identity_store.restore(store_before)
                if isinstance(e, SavePermissionError):
                    raise
                return False
        self.identity_store.save()
        if store_sync:
            self.sync_identity_store()
        return True

    # ------------------------------------------------------------------
    # Pins and managed games
    # ------------------------------------------------------------------

    def pin_games(self, game_ids: Iterable[str]) -> int:
        """Add games to the pin set; saves settings when anything changed.

        Returns:
            Number of newly pinned games.
        """
        pinned = 0
        for game_id in game_ids:
            if not self.settings.is_pinned(game_id):
                self.settings.PINNED_GAME_IDS.append(str(game_id))
                pinned += 1
                logger.debug("Pinned game %s", game_id)
        if pinned:
            logger.info("Pinned %d games", pinned)
            self.settings.save()
        return pinned

    def unpin_games(self, game_ids: Iterable[str]) -> int:
        """Remove games from the pin set; saves settings when anything changed.

        Returns:
            Number of unpinned games.
        """
        unpinned = 0
        for game_id in game_ids:
            if self.settings.is_pinned(game_id):
                self.settings.PINNED_GAME_IDS.remove(str(game_id))
                unpinned += 1
        if unpinned:
            logger.info("Unpinned %d games", unpinned)
            self.settings.save()
        return unpinned

    def managed_games(self) -> list[Game]:
        """Managed games still in the library, sorted by name."""
        games = [g for g in (self.library.get(i) for i in self.identity_store.game_ids()) if g is not None]
        return sorted(games, key=lambda g: g.name.lower())

    def forget_games(self, game_ids: Iterable[str]) -> int:
        """Drop mappings without touching apps.json.

        Returns:
            Number of mappings dropped.
        """
        with self._lock:
            dropped = sum(1 for game_id in game_ids if self.identity_store.remove(game_id))
            if dropped:
                self.identity_store.save()
        return dropped

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def _trigger_pass(self, schedule: Schedule | None) -> SyncResult | Future[SyncResult]:
        if schedule is not None:
            return schedule()
        return self.run_pass()

    def on_application_started(self, schedule: Schedule | None = None) -> Any:
        """Store sync, then a full pass if sync_on_startup is set.

        Args:
            schedule: Submits a pass to the dispatcher; without it the pass
                runs synchronously.

        Returns:
            The pass result or future, or None when no pass was triggered.
        """
        self.sync_identity_store()
        if self.settings.SYNC_ON_STARTUP:
            logger.info("Sync on startup enabled, starting pass")
            return self._trigger_pass(schedule)
        return None

    def on_library_updated(self, schedule: Schedule | None = None) -> Any:
        """Full pass if sync_on_library_update is set."""
        if not self.settings.SYNC_ON_LIBRARY_UPDATE:
            return None
        return self._trigger_pass(schedule)

    def on_settings_updated(self, schedule: Schedule | None = None) -> Any:
        """Full pass if sync_on_settings_updated is set."""
        if not self.settings.SYNC_ON_SETTINGS_UPDATED:
            return None
        return self._trigger_pass(schedule)

    def on_game_installed(self, game: Game) -> bool:
        """Export a newly installed game if it matches a selected preset.

        Returns:
            True if the game was exported.
        """
        if not self.game_matches_filters(game):
            logger.debug("Installed game %s does not match any preset", game.name)
            return False
        return self.add_or_update_now(game)
