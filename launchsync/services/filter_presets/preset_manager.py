"""
Filter preset persistence.

Presets are stored as a JSON array in filter_presets.json in the application
data directory and are looked up by id.
"""

from __future__ import annotations

import logging
from pathlib import Path

from launchsync.services.filter_presets.models import FilterPreset, preset_from_dict, preset_to_dict
from launchsync.utils.json_utils import load_json, save_json

logger = logging.getLogger("launchsync.filter_presets.manager")

__all__ = ["PresetManager"]

PRESETS_FILENAME = "filter_presets.json"


class PresetManager:
    """Manages CRUD operations for filter presets."""

    def __init__(self, file_path: Path) -> None:
        """Initialize the preset manager.

        Args:
            file_path: Location of filter_presets.json.
        """
        self._file_path = file_path

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load_presets(self) -> list[FilterPreset]:
        """Load all presets from disk.

        Returns:
            List of presets, empty if the file does not exist or is invalid.
        """
        data = load_json(self._file_path, default=[], expected_type=list)

        presets: list[FilterPreset] = []
        seen: set[str] = set()
        for item in data:
            try:
                preset = preset_from_dict(item)
            except (KeyError, TypeError) as exc:
                logger.warning("Skipping malformed preset: %s", exc)
                continue
            if preset.preset_id in seen:
                logger.warning("Skipping duplicate preset id '%s'", preset.preset_id)
                continue
            seen.add(preset.preset_id)
            presets.append(preset)
        return presets

    def get_preset(self, preset_id: str) -> FilterPreset | None:
        """Return the preset with this id, or None."""
        for preset in self.load_presets():
            if preset.preset_id == preset_id:
                return preset
        return None

    def save_preset(self, preset: FilterPreset) -> bool:
        """Save or update a preset (same id overwrites).

        Args:
            preset: The preset to save.

        Returns:
            True on success.
        """
        presets = [p for p in self.load_presets() if p.preset_id != preset.preset_id]
        presets.append(preset)
        ok = self._write_presets(presets)
        if ok:
            logger.info("Saved preset '%s'", preset.preset_id)
        return ok

    def delete_preset(self, preset_id: str) -> bool:
        """Delete a preset by id.

        Returns:
            True if a preset was deleted, False if not found.
        """
        presets = self.load_presets()
        remaining = [p for p in presets if p.preset_id != preset_id]
        if len(remaining) == len(presets):
            return False

        self._write_presets(remaining)
        logger.info("Deleted preset '%s'", preset_id)
        return True

    def _write_presets(self, presets: list[FilterPreset]) -> bool:
        return save_json(self._file_path, [preset_to_dict(p) for p in presets])
