# tests/conftest.py
import os
from pathlib import Path

# Ensure Qt can run headless (CI runners have no display server)
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication
from pytestqt.qtbot import QtBot

from launchsync.config import Config
from launchsync.core.apps_config import InMemoryAppsConfigRepository
from launchsync.core.game import Game
from launchsync.core.identity_store import IdentityStore
from launchsync.library.library_loader import InMemoryGameLibrary
from launchsync.services.entry_builder import EntryBuilder
from launchsync.services.reconciliation_service import ReconciliationService
from launchsync.utils.i18n import init_i18n


@pytest.fixture(scope="session")
def qapp():
    """QApplication instance for all Qt tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def qtbot(qapp, request):
    """Provide qtbot fixture with automatic cleanup."""
    bot = QtBot(request)
    yield bot
    if hasattr(bot, "cleanup"):
        bot.cleanup()


@pytest.fixture(autouse=True)
def english_and_isolated_env(monkeypatch, tmp_path):
    """English texts, no launcher install and a throwaway data directory."""
    monkeypatch.delenv("LOCALAPPDATA", raising=False)
    monkeypatch.delenv("LAUNCHSYNC_APPS_JSON", raising=False)
    monkeypatch.setenv("LAUNCHSYNC_DATA_DIR", str(tmp_path / "data"))
    init_i18n("en")


@pytest.fixture
def settings(tmp_path) -> Config:
    """Config persisted under tmp_path with one selected preset."""
    cfg = Config(DATA_DIR=tmp_path / "data")
    cfg.INCLUDED_PRESET_IDS = ["a"]
    return cfg


class StaticFilters:
    """Filter collaborator answering from fixed preset -> game id sets."""

    def __init__(self, library: InMemoryGameLibrary, presets: dict[str, set[str]] | None = None) -> None:
        self.library = library
        self.presets: dict[str, set[str]] = presets if presets is not None else {}
        self.failing: set[str] = set()

    def matching_games(self, preset_id: str) -> list[Game]:
        if preset_id in self.failing:
            raise RuntimeError(f"preset {preset_id} exploded")
        ids = self.presets[preset_id]
        return [g for g in self.library.games() if g.id in ids]

    def matches(self, game: Game, preset_id: str) -> bool:
        if preset_id in self.failing:
            raise RuntimeError(f"preset {preset_id} exploded")
        return game.id in self.presets.get(preset_id, set())


@pytest.fixture
def games() -> list[Game]:
    return [
        Game(id="g1", name="Game One"),
        Game(id="g2", name="Game Two"),
        Game(id="g3", name="Game Three"),
    ]


@pytest.fixture
def library(games) -> InMemoryGameLibrary:
    return InMemoryGameLibrary(games)


@pytest.fixture
def filters(library) -> StaticFilters:
    return StaticFilters(library, {"a": {"g1", "g2"}})


@pytest.fixture
def repository() -> InMemoryAppsConfigRepository:
    return InMemoryAppsConfigRepository()


@pytest.fixture
def store() -> IdentityStore:
    return IdentityStore()


@pytest.fixture
def service(repository, store, library, filters, settings, tmp_path) -> ReconciliationService:
    """Engine wired entirely to in-memory collaborators."""
    return ReconciliationService(
        repository,
        store,
        library,
        filters,
        settings,
        entry_builder=EntryBuilder(files_dir=tmp_path),
    )


@pytest.fixture
def apps_json(tmp_path) -> Path:
    """Path for an apps.json inside tmp_path (not created)."""
    return tmp_path / "config" / "apps.json"
