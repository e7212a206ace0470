#!/usr/bin/env python3
"""
Restore apps.json from its newest backup.

Use this after apps.json was damaged by a bad hand edit or by another
program. The current file is itself backed up before being replaced.

Usage:
    python scripts/restore_apps_backup.py [--apps-json PATH] [--backup FILE] [--list]
"""

from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from launchsync.config import config
from launchsync.core.apps_config import FileAppsConfigRepository
from launchsync.core.backup_manager import BackupManager
from launchsync.core.errors import LoadError


def main(argv: list[str] | None = None) -> int:
    """Restore apps.json; returns the process exit code."""
    parser = argparse.ArgumentParser(description="Restore apps.json from a backup")
    parser.add_argument("--apps-json", default=config.APPS_JSON_PATH, help="apps.json path (default: configured)")
    parser.add_argument("--backup", type=Path, help="Specific backup file to restore")
    parser.add_argument("--list", action="store_true", help="Only list available backups")
    args = parser.parse_args(argv)

    backups = BackupManager(max_backups=max(config.MAX_BACKUPS, 1))
    repository = FileAppsConfigRepository(args.apps_json, backup_manager=backups)
    target = repository.resolve_path()

    print("=" * 60)
    print(f"Launch Sync - restore {target}")
    print("=" * 60)

    available = backups.list_backups(target)
    if args.list:
        if not available:
            print("No backups found")
        for path in available:
            print(f"  {path.name}")
        return 0

    source = args.backup or (available[0] if available else None)
    if source is None or not source.is_file():
        print("No backup to restore")
        return 1

    # Validate the backup before replacing anything
    try:
        document = FileAppsConfigRepository(source).load()
    except LoadError as e:
        print(f"Backup is not a valid apps.json: {e}")
        return 1

    if target.exists():
        backups.create_backup(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)

    print(f"Restored {len(document.apps)} apps from {source.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
