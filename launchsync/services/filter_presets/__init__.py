"""Filter presets: named rule sets that select which library games are exported."""

from __future__ import annotations

from launchsync.services.filter_presets.evaluator import PresetEvaluator
from launchsync.services.filter_presets.models import (
    FilterField,
    FilterPreset,
    LogicOperator,
    Operator,
    PresetRule,
)
from launchsync.services.filter_presets.preset_manager import PresetManager
from launchsync.services.filter_presets.provider import PresetFilterProvider

__all__: list[str] = [
    "FilterField",
    "FilterPreset",
    "LogicOperator",
    "Operator",
    "PresetEvaluator",
    "PresetFilterProvider",
    "PresetManager",
    "PresetRule",
]
