"""Error kinds raised by the apps.json repository, entry builder and sync engine.

Per-game errors (BuildError) never abort a sync pass; document-level errors
(LoadError, SaveError, SavePermissionError) abort the remaining phases.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "BuildError",
    "ConfigurationError",
    "LaunchSyncError",
    "LoadError",
    "SaveError",
    "SavePermissionError",
    "TransientIOError",
]


class LaunchSyncError(Exception):
    """Base class for all Launch Sync errors."""


class LoadError(LaunchSyncError):
    """The apps.json file (or the library export) could not be read or parsed.

    Attributes:
        path: The path that was actually resolved and read.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class SaveError(LaunchSyncError):
    """Writing apps.json failed after all retry attempts."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class SavePermissionError(SaveError, PermissionError):
    """Writing apps.json was denied by the OS; never retried.

    Callers should offer to retry with elevated rights (the default
    install locations live under Program Files on Windows).
    """


class TransientIOError(LaunchSyncError):
    """A single write attempt failed for a reason worth retrying."""


class BuildError(LaunchSyncError):
    """An apps.json entry could not be built for one game."""


class ConfigurationError(LaunchSyncError):
    """No filter presets are selected, so nothing can be synced."""
