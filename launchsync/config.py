"""
Configuration - settings persistence and environment overrides.

Settings live in settings.json inside the per-user data directory. A .env
file (loaded through python-dotenv) can point LAUNCHSYNC_APPS_JSON and
LAUNCHSYNC_DATA_DIR elsewhere, which is handy for portable installs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from launchsync.utils.json_utils import load_json, save_json
from launchsync.utils.paths import get_data_dir

logger = logging.getLogger("launchsync.config")


__all__ = ["Config", "config"]


@dataclass
class Config:
    """
    Central configuration handling for the application.
    Manages paths, sync triggers, selected filter presets and pinned games.
    """

    DATA_DIR: Path | None = None
    SETTINGS_FILE: Path | None = None

    # Blank = resolve the Apollo/Sunshine default install location
    APPS_JSON_PATH: str = ""
    LIBRARY_PATH: str = ""
    LIBRARY_FILES_DIR: str = ""
    # Blank = auto-detect the library's desktop executable
    LAUNCHER_PATH: str = ""

    INCLUDED_PRESET_IDS: list[str] = field(default_factory=list)
    PINNED_GAME_IDS: list[str] = field(default_factory=list)

    SYNC_ON_STARTUP: bool = False
    SYNC_ON_LIBRARY_UPDATE: bool = True
    SYNC_ON_SETTINGS_UPDATED: bool = True
    SHOW_NOTIFICATIONS: bool = True

    MAX_BACKUPS: int = 5
    SAVE_ATTEMPTS: int = 3
    RETRY_DELAY: float = 0.2

    UI_LANGUAGE: str = "en"

    def __post_init__(self):
        """Resolve directories and load settings after instantiation."""
        load_dotenv()

        if self.DATA_DIR is None:
            self.DATA_DIR = get_data_dir()
        if self.SETTINGS_FILE is None:
            self.SETTINGS_FILE = self.DATA_DIR / "settings.json"

        self._load_settings()

        env_apps = os.getenv("LAUNCHSYNC_APPS_JSON")
        if env_apps:
            self.APPS_JSON_PATH = env_apps

    @property
    def identity_store_file(self) -> Path:
        """Location of the game id -> uuid mapping file."""
        return self.DATA_DIR / "managed_games.json"

    @property
    def presets_file(self) -> Path:
        """Location of the filter preset definitions."""
        return self.DATA_DIR / "filter_presets.json"

    @property
    def log_file(self) -> Path:
        """Location of the debug log."""
        return self.DATA_DIR / "launchsync.log"

    def _load_settings(self) -> None:
        """Load settings from JSON file."""
        data = load_json(self.SETTINGS_FILE, default={}, expected_type=dict)
        if not data:
            return

        self.APPS_JSON_PATH = str(data.get("apps_json_path", self.APPS_JSON_PATH) or "")
        self.LIBRARY_PATH = str(data.get("library_path", self.LIBRARY_PATH) or "")
        self.LIBRARY_FILES_DIR = str(data.get("library_files_dir", self.LIBRARY_FILES_DIR) or "")
        self.LAUNCHER_PATH = str(data.get("launcher_path", self.LAUNCHER_PATH) or "")

        self.INCLUDED_PRESET_IDS = [str(p) for p in data.get("included_preset_ids", []) or []]
        self.PINNED_GAME_IDS = [str(g) for g in data.get("pinned_game_ids", []) or []]

        self.SYNC_ON_STARTUP = bool(data.get("sync_on_startup", self.SYNC_ON_STARTUP))
        self.SYNC_ON_LIBRARY_UPDATE = bool(data.get("sync_on_library_update", self.SYNC_ON_LIBRARY_UPDATE))
        self.SYNC_ON_SETTINGS_UPDATED = bool(data.get("sync_on_settings_updated", self.SYNC_ON_SETTINGS_UPDATED))
        self.SHOW_NOTIFICATIONS = bool(data.get("show_notifications", self.SHOW_NOTIFICATIONS))

        try:
            self.MAX_BACKUPS = int(data.get("max_backups", self.MAX_BACKUPS))
            self.SAVE_ATTEMPTS = int(data.get("save_attempts", self.SAVE_ATTEMPTS))
            self.RETRY_DELAY = float(data.get("retry_delay", self.RETRY_DELAY))
        except (TypeError, ValueError) as e:
            logger.error("Invalid numeric setting in %s: %s", self.SETTINGS_FILE, e)

        self.UI_LANGUAGE = str(data.get("ui_language", self.UI_LANGUAGE) or "en")

    def save(self) -> bool:
        """Save current configuration to JSON file.

        Returns:
            True on success.
        """
        data = {
            "apps_json_path": self.APPS_JSON_PATH,
            "library_path": self.LIBRARY_PATH,
            "library_files_dir": self.LIBRARY_FILES_DIR,
            "launcher_path": self.LAUNCHER_PATH,
            "included_preset_ids": self.INCLUDED_PRESET_IDS,
            "pinned_game_ids": self.PINNED_GAME_IDS,
            "sync_on_startup": self.SYNC_ON_STARTUP,
            "sync_on_library_update": self.SYNC_ON_LIBRARY_UPDATE,
            "sync_on_settings_updated": self.SYNC_ON_SETTINGS_UPDATED,
            "show_notifications": self.SHOW_NOTIFICATIONS,
            "max_backups": self.MAX_BACKUPS,
            "save_attempts": self.SAVE_ATTEMPTS,
            "retry_delay": self.RETRY_DELAY,
            "ui_language": self.UI_LANGUAGE,
        }
        return save_json(self.SETTINGS_FILE, data)

    def is_pinned(self, game_id: str) -> bool:
        """Check whether a game is exempt from filter-driven removal."""
        return str(game_id) in self.PINNED_GAME_IDS

    def verify(self) -> list[str]:
        """Validate user-editable settings.

        A blank apps.json path is valid (the default location is used). A
        configured one is invalid when neither the file nor its folder exists.

        Returns:
            Translated error messages; empty when everything is valid.
        """
        from launchsync.utils.i18n import t

        errors: list[str] = []
        if self.APPS_JSON_PATH.strip():
            path = Path(self.APPS_JSON_PATH.strip()).expanduser()
            if not path.exists() and (path.parent == Path("") or not path.parent.is_dir()):
                errors.append(t("settings.apps_json_invalid", path=path))
        if self.LIBRARY_PATH.strip() and not Path(self.LIBRARY_PATH.strip()).expanduser().is_file():
            errors.append(t("settings.library_invalid", path=self.LIBRARY_PATH))
        return errors


# Global instance
config = Config()
