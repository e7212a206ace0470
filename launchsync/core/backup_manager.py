# launchsync/core/backup_manager.py

"""
Manages apps.json backups with automatic rotation.

Before the repository replaces an existing apps.json, a timestamped copy is
written to a backup directory and old copies beyond the configured limit are
deleted. Backups are best effort: a failure is logged, never raised.
"""
from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

__all__ = ["BackupManager"]

logger = logging.getLogger("launchsync.backup_manager")

DEFAULT_MAX_BACKUPS = 5


class BackupManager:
    """
    Creates and rotates timestamped copies of a file.

    Backups are named ``<stem>_<unix timestamp><suffix>`` (for example
    ``apps_1760868000.json``) so they sort chronologically by name.
    """

    def __init__(self, backup_dir: Path | None = None, max_backups: int = DEFAULT_MAX_BACKUPS):
        """
        Initializes the BackupManager.

        Args:
            backup_dir: Directory for storing backups. If None, backups go
                into a "backups" folder next to the original file.
            max_backups: Number of copies to keep per file. Zero disables backups.
        """
        self.backup_dir = backup_dir
        self.max_backups = max_backups

    def target_dir_for(self, file_path: Path) -> Path:
        """Return the directory backups of file_path are written to."""
        return self.backup_dir if self.backup_dir else file_path.parent / "backups"

    def create_backup(self, file_path: Path) -> Path | None:
        """
        Creates a timestamped backup of a file and rotates old ones.

        Args:
            file_path: Path to the file to back up.

        Returns:
            Path to the created backup, or None if nothing was written
            (file missing, backups disabled, or copy failed).
        """
        if self.max_backups <= 0 or not file_path.exists():
            return None

        target_dir = self.target_dir_for(file_path)
        timestamp = int(time.time())
        backup_path = target_dir / f"{file_path.stem}_{timestamp}{file_path.suffix}"
        # Two saves within the same second must not overwrite each other
        counter = 1
        while backup_path.exists():
            backup_path = target_dir / f"{file_path.stem}_{timestamp}-{counter}{file_path.suffix}"
            counter += 1

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(file_path, backup_path)
            logger.info("Created backup %s", backup_path.name)
        except OSError as backup_error:
            logger.error("Failed to back up %s: %s", file_path, backup_error)
            return None

        self._rotate_backups(file_path)
        return backup_path

    def list_backups(self, file_path: Path) -> list[Path]:
        """
        Lists existing backups of a file, newest first.

        Args:
            file_path: The original file path.

        Returns:
            Backup paths sorted newest first.
        """
        target_dir = self.target_dir_for(file_path)
        if not target_dir.is_dir():
            return []
        backups = target_dir.glob(f"{file_path.stem}_*{file_path.suffix}")
        return sorted(backups, key=lambda p: (p.stat().st_mtime, p.name), reverse=True)

    def _rotate_backups(self, file_path: Path) -> None:
        """
        Removes backups exceeding max_backups, oldest first.

        Args:
            file_path: The original file path (used to match backup files).
        """
        for old in self.list_backups(file_path)[self.max_backups:]:
            try:
                old.unlink()
                logger.info("Rotated out backup %s", old.name)
            except OSError as delete_error:
                logger.error("Failed to delete backup %s: %s", old.name, delete_error)

    def restore_latest(self, file_path: Path) -> Path | None:
        """
        Copies the newest backup back over file_path.

        Args:
            file_path: The file to restore.

        Returns:
            The backup that was restored, or None if no backup exists.

        Raises:
            OSError: If the copy fails.
        """
        backups = self.list_backups(file_path)
        if not backups:
            return None
        shutil.copy2(backups[0], file_path)
        logger.info("Restored %s from %s", file_path, backups[0].name)
        return backups[0]
