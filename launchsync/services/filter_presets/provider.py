"""Filter collaborator used by the sync engine.

Answers the two questions the engine asks per preset id: which games match,
and does this one game match.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from launchsync.services.filter_presets.evaluator import PresetEvaluator
from launchsync.services.filter_presets.models import FilterPreset
from launchsync.services.filter_presets.preset_manager import PresetManager

if TYPE_CHECKING:
    from launchsync.core.game import Game
    from launchsync.library.library_loader import GameLibrary

__all__ = ["PresetFilterProvider"]

logger = logging.getLogger("launchsync.filter_presets.provider")


class PresetFilterProvider:
    """Evaluates stored presets against the library.

    Args:
        library: Library the presets select from.
        presets: Either a PresetManager (re-read per call) or a fixed list.
        evaluator: Rule evaluator (defaults to PresetEvaluator).
    """

    def __init__(
        self,
        library: GameLibrary,
        presets: PresetManager | list[FilterPreset],
        evaluator: PresetEvaluator | None = None,
    ) -> None:
        self._library = library
        self._presets = presets
        self._evaluator = evaluator or PresetEvaluator()

    def presets(self) -> list[FilterPreset]:
        """All known presets."""
        if isinstance(self._presets, PresetManager):
            return self._presets.load_presets()
        return list(self._presets)

    def _preset(self, preset_id: str) -> FilterPreset:
        for preset in self.presets():
            if preset.preset_id == preset_id:
                return preset
        raise KeyError(preset_id)

    def matching_games(self, preset_id: str) -> list[Game]:
        """Games matching a preset.

        Raises:
            KeyError: If no preset has this id.
        """
        preset = self._preset(preset_id)
        matched = self._evaluator.evaluate_batch(self._library.games(), preset)
        logger.debug("Preset '%s' matched %d games", preset_id, len(matched))
        return matched

    def matches(self, game: Game, preset_id: str) -> bool:
        """Whether one game matches a preset.

        Raises:
            KeyError: If no preset has this id.
        """
        return self._evaluator.evaluate(game, self._preset(preset_id))
