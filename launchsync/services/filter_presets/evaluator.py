# launchsync/services/filter_presets/evaluator.py

"""Filter preset rule evaluation.

Evaluates PresetRule instances against Game objects: text matching
(equals, contains, starts_with, ends_with, regex; case-insensitive),
numeric comparison and boolean checks.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from launchsync.services.filter_presets.models import (
    FIELD_CATEGORIES,
    FilterField,
    FilterPreset,
    LogicOperator,
    Operator,
    PresetRule,
)

if TYPE_CHECKING:
    from launchsync.core.game import Game

__all__ = ["PresetEvaluator"]

logger = logging.getLogger("launchsync.filter_presets.evaluator")

_TEXT_LIST_FIELDS: frozenset[FilterField] = frozenset(FIELD_CATEGORIES["text_list"])
_TEXT_SINGLE_FIELDS: frozenset[FilterField] = frozenset(FIELD_CATEGORIES["text_single"])
_NUMERIC_FIELDS: frozenset[FilterField] = frozenset(FIELD_CATEGORIES["numeric"])
_BOOL_FIELDS: frozenset[FilterField] = frozenset(FIELD_CATEGORIES["boolean"])

_FIELD_TO_ATTR: dict[FilterField, str] = {
    FilterField.PLATFORM: "platforms",
    FilterField.TAG: "tags",
    FilterField.GENRE: "genres",
    FilterField.CATEGORY: "categories",
    FilterField.NAME: "name",
    FilterField.SOURCE: "source",
    FilterField.PLAYTIME_HOURS: "playtime_hours",
    FilterField.INSTALLED: "installed",
    FilterField.HIDDEN: "hidden",
    FilterField.FAVORITE: "favorite",
}


class PresetEvaluator:
    """Evaluates filter presets against Game objects."""

    def evaluate(self, game: Game, preset: FilterPreset) -> bool:
        """Checks if a game matches a preset.

        Args:
            game: The game to evaluate.
            preset: The preset with its rules.

        Returns:
            True if the game matches. A preset without rules matches nothing.
        """
        if not preset.rules:
            return False

        if preset.logic == LogicOperator.AND:
            return all(self._evaluate_rule(game, rule) for rule in preset.rules)
        return any(self._evaluate_rule(game, rule) for rule in preset.rules)

    def evaluate_batch(self, games: list[Game], preset: FilterPreset) -> list[Game]:
        """Returns all games matching the preset, in input order."""
        return [game for game in games if self.evaluate(game, preset)]

    def _evaluate_rule(self, game: Game, rule: PresetRule) -> bool:
        result = self._match_rule(game, rule)
        return not result if rule.negated else result

    def _match_rule(self, game: Game, rule: PresetRule) -> bool:
        """Matches a single rule against a game (without negation)."""
        field_value = getattr(game, _FIELD_TO_ATTR[rule.field], "")

        if rule.field in _TEXT_LIST_FIELDS:
            values = field_value if isinstance(field_value, list) else ([str(field_value)] if field_value else [])
            return any(self._match_text(str(v), rule.operator, rule.value) for v in values)

        if rule.field in _TEXT_SINGLE_FIELDS:
            return self._match_text(str(field_value or ""), rule.operator, rule.value)

        if rule.field in _NUMERIC_FIELDS:
            return self._match_numeric(field_value, rule.operator, rule.value)

        if rule.field in _BOOL_FIELDS:
            return self._match_boolean(bool(field_value), rule.operator)

        logger.warning("Unknown field category for %s", rule.field)
        return False

    @staticmethod
    def _match_text(value: str, operator: Operator, target: str) -> bool:
        value_lower = value.lower()
        target_lower = target.lower()

        if operator == Operator.EQUALS:
            return value_lower == target_lower
        if operator == Operator.CONTAINS:
            return target_lower in value_lower
        if operator == Operator.STARTS_WITH:
            return value_lower.startswith(target_lower)
        if operator == Operator.ENDS_WITH:
            return value_lower.endswith(target_lower)
        if operator == Operator.REGEX:
            try:
                return bool(re.search(target, value, re.IGNORECASE))
            except re.error:
                logger.warning("Invalid regex in filter rule: %s", target)
                return False
        return False

    @staticmethod
    def _match_numeric(value: object, operator: Operator, target: str) -> bool:
        try:
            num_value = float(value)  # type: ignore[arg-type]
            num_target = float(target) if target else 0.0
        except (TypeError, ValueError):
            return False

        if operator == Operator.EQUALS:
            return num_value == num_target
        if operator == Operator.GREATER_THAN:
            return num_value > num_target
        if operator == Operator.LESS_THAN:
            return num_value < num_target
        if operator == Operator.GREATER_EQUAL:
            return num_value >= num_target
        if operator == Operator.LESS_EQUAL:
            return num_value <= num_target
        return False

    @staticmethod
    def _match_boolean(value: bool, operator: Operator) -> bool:
        if operator == Operator.IS_TRUE:
            return value
        if operator == Operator.IS_FALSE:
            return not value
        return False
