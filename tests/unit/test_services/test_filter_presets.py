# tests/unit/test_services/test_filter_presets.py

"""Unit tests for filter preset models, evaluation, storage and lookup."""

import json

import pytest

from launchsync.core.game import Game
from launchsync.library.library_loader import InMemoryGameLibrary
from launchsync.services.filter_presets import (
    FilterField,
    FilterPreset,
    LogicOperator,
    Operator,
    PresetEvaluator,
    PresetFilterProvider,
    PresetManager,
    PresetRule,
)
from launchsync.services.filter_presets.models import preset_from_dict, preset_to_dict, rule_from_dict


@pytest.fixture
def celeste() -> Game:
    return Game(
        id="c1",
        name="Celeste",
        source="Steam",
        platforms=["PC (Windows)"],
        tags=["Platformer", "Indie"],
        installed=True,
        playtime_minutes=600,
    )


@pytest.fixture
def evaluator() -> PresetEvaluator:
    return PresetEvaluator()


def _preset(*rules: PresetRule, logic: LogicOperator = LogicOperator.AND) -> FilterPreset:
    return FilterPreset(preset_id="p", name="P", logic=logic, rules=list(rules))


class TestPresetEvaluator:
    """Tests for PresetEvaluator rule matching."""

    def test_empty_preset_matches_nothing(self, evaluator, celeste):
        assert evaluator.evaluate(celeste, _preset()) is False

    def test_text_list_contains_is_case_insensitive(self, evaluator, celeste):
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.TAG, Operator.EQUALS, "indie")))
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.PLATFORM, Operator.CONTAINS, "windows")))

    def test_text_single_and_regex(self, evaluator, celeste):
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.NAME, Operator.STARTS_WITH, "cel")))
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.SOURCE, Operator.REGEX, "^st(e|a)am$")))

    def test_invalid_regex_does_not_match(self, evaluator, celeste):
        assert not evaluator.evaluate(celeste, _preset(PresetRule(FilterField.NAME, Operator.REGEX, "(")))

    def test_numeric_playtime(self, evaluator, celeste):
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.PLAYTIME_HOURS, Operator.GREATER_EQUAL, "10")))
        assert not evaluator.evaluate(celeste, _preset(PresetRule(FilterField.PLAYTIME_HOURS, Operator.LESS_THAN, "5")))
        assert not evaluator.evaluate(
            celeste, _preset(PresetRule(FilterField.PLAYTIME_HOURS, Operator.GREATER_THAN, "lots"))
        )

    def test_boolean_and_negation(self, evaluator, celeste):
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.INSTALLED, Operator.IS_TRUE)))
        assert evaluator.evaluate(celeste, _preset(PresetRule(FilterField.HIDDEN, Operator.IS_TRUE, negated=True)))

    def test_and_versus_or(self, evaluator, celeste):
        rules = (
            PresetRule(FilterField.INSTALLED, Operator.IS_TRUE),
            PresetRule(FilterField.FAVORITE, Operator.IS_TRUE),
        )
        assert not evaluator.evaluate(celeste, _preset(*rules))
        assert evaluator.evaluate(celeste, _preset(*rules, logic=LogicOperator.OR))

    def test_evaluate_batch_keeps_order(self, evaluator, celeste):
        other = Game(id="o", name="Other")
        preset = _preset(PresetRule(FilterField.NAME, Operator.CONTAINS, "e"))
        assert evaluator.evaluate_batch([other, celeste], preset) == [other, celeste]


class TestPresetModels:
    """Tests for preset (de)serialization."""

    def test_round_trip(self):
        preset = _preset(PresetRule(FilterField.TAG, Operator.CONTAINS, "rpg", negated=True), logic=LogicOperator.OR)
        assert preset_from_dict(preset_to_dict(preset)) == preset

    def test_operator_must_fit_field(self):
        with pytest.raises(ValueError):
            rule_from_dict({"field": "installed", "operator": "contains", "value": "x"})

    def test_invalid_rules_are_skipped(self):
        preset = preset_from_dict(
            {
                "id": "mixed",
                "logic": "or",
                "rules": [{"field": "colour", "operator": "equals"}, {"field": "favorite", "operator": "is_true"}],
            }
        )
        assert preset.name == "mixed"
        assert preset.logic == LogicOperator.OR
        assert preset.rules == [PresetRule(FilterField.FAVORITE, Operator.IS_TRUE)]


class TestPresetManager:
    """Tests for preset persistence."""

    def test_missing_file(self, tmp_path):
        assert PresetManager(tmp_path / "filter_presets.json").load_presets() == []

    def test_save_get_delete(self, tmp_path):
        manager = PresetManager(tmp_path / "filter_presets.json")
        assert manager.save_preset(FilterPreset("installed", "Installed", rules=[PresetRule(FilterField.INSTALLED, Operator.IS_TRUE)]))
        assert manager.save_preset(FilterPreset("installed", "Renamed"))

        assert [p.name for p in manager.load_presets()] == ["Renamed"]
        assert manager.get_preset("installed").name == "Renamed"
        assert manager.get_preset("nope") is None

        assert manager.delete_preset("installed") is True
        assert manager.delete_preset("installed") is False

    def test_duplicate_and_malformed_entries_skipped(self, tmp_path):
        path = tmp_path / "filter_presets.json"
        path.write_text(json.dumps([{"id": "a", "name": "First"}, {"name": "no id"}, {"id": "a", "name": "Second"}]))
        assert [p.name for p in PresetManager(path).load_presets()] == ["First"]


class TestPresetFilterProvider:
    """Tests for the filter collaborator."""

    @pytest.fixture
    def provider(self, celeste):
        library = InMemoryGameLibrary([celeste, Game(id="x", name="Xenon")])
        presets = [FilterPreset("installed", rules=[PresetRule(FilterField.INSTALLED, Operator.IS_TRUE)])]
        return PresetFilterProvider(library, presets)

    def test_matching_games(self, provider):
        assert [g.id for g in provider.matching_games("installed")] == ["c1"]

    def test_matches(self, provider, celeste):
        assert provider.matches(celeste, "installed") is True
        assert provider.matches(Game(id="x", name="Xenon"), "installed") is False

    def test_unknown_preset_raises(self, provider, celeste):
        with pytest.raises(KeyError):
            provider.matching_games("missing")
        with pytest.raises(KeyError):
            provider.matches(celeste, "missing")

    def test_reads_presets_through_manager(self, tmp_path, celeste):
        manager = PresetManager(tmp_path / "filter_presets.json")
        manager.save_preset(FilterPreset("fav", rules=[PresetRule(FilterField.FAVORITE, Operator.IS_TRUE)]))
        provider = PresetFilterProvider(InMemoryGameLibrary([celeste]), manager)
        assert provider.matching_games("fav") == []
        assert [p.preset_id for p in provider.presets()] == ["fav"]
