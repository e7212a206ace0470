# launchsync/services/filter_presets/models.py

"""Data models for filter presets: enums, dataclasses, and serialization helpers.

A filter preset is a named rule set that selects the library games to export.
Rules compare one game field against a value; the preset's logic operator
combines the rule results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

__all__ = [
    "FIELD_CATEGORIES",
    "FilterField",
    "FilterPreset",
    "LogicOperator",
    "Operator",
    "PresetRule",
    "VALID_OPERATORS",
    "preset_from_dict",
    "preset_to_dict",
    "rule_from_dict",
    "rule_to_dict",
]

logger = logging.getLogger("launchsync.filter_presets.models")


class FilterField(Enum):
    """Game fields a preset rule can match against."""

    # Text list fields (game has list of values)
    PLATFORM = "platform"
    TAG = "tag"
    GENRE = "genre"
    CATEGORY = "category"

    # Text single fields
    NAME = "name"
    SOURCE = "source"

    # Numeric fields
    PLAYTIME_HOURS = "playtime_hours"

    # Boolean fields
    INSTALLED = "installed"
    HIDDEN = "hidden"
    FAVORITE = "favorite"


class Operator(Enum):
    """Comparison operators for preset rules."""

    # Text operators
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "regex"

    # Numeric operators
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_EQUAL = "greater_equal"
    LESS_EQUAL = "less_equal"

    # Boolean operators
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"


class LogicOperator(Enum):
    """Logic operator between the rules of one preset."""

    AND = "AND"
    OR = "OR"


_TEXT_OPS: list[Operator] = [
    Operator.EQUALS,
    Operator.CONTAINS,
    Operator.STARTS_WITH,
    Operator.ENDS_WITH,
    Operator.REGEX,
]

_NUMERIC_OPS: list[Operator] = [
    Operator.EQUALS,
    Operator.GREATER_THAN,
    Operator.LESS_THAN,
    Operator.GREATER_EQUAL,
    Operator.LESS_EQUAL,
]

_BOOL_OPS: list[Operator] = [Operator.IS_TRUE, Operator.IS_FALSE]

FIELD_CATEGORIES: dict[str, list[FilterField]] = {
    "text_list": [FilterField.PLATFORM, FilterField.TAG, FilterField.GENRE, FilterField.CATEGORY],
    "text_single": [FilterField.NAME, FilterField.SOURCE],
    "numeric": [FilterField.PLAYTIME_HOURS],
    "boolean": [FilterField.INSTALLED, FilterField.HIDDEN, FilterField.FAVORITE],
}

VALID_OPERATORS: dict[FilterField, list[Operator]] = {
    **{f: _TEXT_OPS for f in FIELD_CATEGORIES["text_list"]},
    **{f: _TEXT_OPS for f in FIELD_CATEGORIES["text_single"]},
    **{f: _NUMERIC_OPS for f in FIELD_CATEGORIES["numeric"]},
    **{f: _BOOL_OPS for f in FIELD_CATEGORIES["boolean"]},
}


@dataclass(frozen=True)
class PresetRule:
    """A single rule in a filter preset.

    Attributes:
        field: Which game field to match against.
        operator: The comparison operator.
        value: The target value for comparison.
        negated: If True, the rule result is inverted (NOT).
    """

    field: FilterField
    operator: Operator
    value: str = ""
    negated: bool = False


@dataclass
class FilterPreset:
    """A named filter preset.

    Attributes:
        preset_id: Stable identifier referenced from settings.
        name: Display name.
        logic: Logic operator between rules (AND/OR).
        rules: List of rules; an empty list matches nothing.
    """

    preset_id: str
    name: str = ""
    logic: LogicOperator = LogicOperator.AND
    rules: list[PresetRule] = field(default_factory=list)


def rule_to_dict(rule: PresetRule) -> dict[str, Any]:
    """Serializes a PresetRule to a JSON-compatible dict."""
    return {
        "field": rule.field.value,
        "operator": rule.operator.value,
        "value": rule.value,
        "negated": rule.negated,
    }


def rule_from_dict(data: dict[str, Any]) -> PresetRule:
    """Deserializes a PresetRule from a dict.

    Args:
        data: Dict with field, operator, value, negated.

    Returns:
        A PresetRule instance.

    Raises:
        ValueError: If the field or operator is unknown, or the operator
            does not apply to the field.
    """
    fld = FilterField(data["field"])
    operator = Operator(data["operator"])
    if operator not in VALID_OPERATORS[fld]:
        raise ValueError(f"operator {operator.value} does not apply to {fld.value}")
    return PresetRule(
        field=fld,
        operator=operator,
        value=str(data.get("value", "")),
        negated=bool(data.get("negated", False)),
    )


def preset_to_dict(preset: FilterPreset) -> dict[str, Any]:
    """Serializes a FilterPreset to a JSON-compatible dict."""
    return {
        "id": preset.preset_id,
        "name": preset.name,
        "logic": preset.logic.value,
        "rules": [rule_to_dict(r) for r in preset.rules],
    }


def preset_from_dict(data: dict[str, Any]) -> FilterPreset:
    """Deserializes a FilterPreset, skipping invalid rules.

    Args:
        data: Dict with id, name, logic and rules.

    Returns:
        A FilterPreset instance.

    Raises:
        KeyError: If the preset has no id.
    """
    preset = FilterPreset(preset_id=str(data["id"]), name=str(data.get("name", "") or data["id"]))

    if "logic" in data:
        try:
            preset.logic = LogicOperator(str(data["logic"]).upper())
        except ValueError:
            logger.warning("Unknown logic operator in preset %s: %s", preset.preset_id, data["logic"])

    for rule_data in data.get("rules", []) or []:
        try:
            preset.rules.append(rule_from_dict(rule_data))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Skipping invalid rule %s in preset %s: %s", rule_data, preset.preset_id, exc)
    return preset
