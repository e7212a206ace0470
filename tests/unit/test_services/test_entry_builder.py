# tests/unit/test_services/test_entry_builder.py

"""Unit tests for the apps.json entry builder."""

import random

from launchsync.core.game import Game
from launchsync.services.entry_builder import EntryBuilder, find_launcher_executable, generate_numeric_id

UUID = "0B5F2A44-6F0C-4F52-9E3B-2B0A4D3F8C11"


class TestLaunchCommand:
    def test_deep_link_without_launcher(self):
        assert EntryBuilder().launch_command("abc") == "playnite://play/abc"

    def test_executable_from_local_app_data(self, tmp_path, monkeypatch):
        exe = tmp_path / "Playnite" / "Playnite.DesktopApp.exe"
        exe.parent.mkdir()
        exe.write_text("")
        monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))

        assert EntryBuilder().launch_command("abc") == f'"{exe}" --start abc'

    def test_configured_launcher_wins(self, tmp_path):
        exe = tmp_path / "custom.exe"
        exe.write_text("")
        assert find_launcher_executable(str(exe)) == exe

    def test_missing_configured_launcher_falls_back(self, tmp_path):
        assert find_launcher_executable(tmp_path / "gone.exe") is None


class TestCoverPath:
    def test_remote_cover_skipped(self, tmp_path):
        builder = EntryBuilder(files_dir=tmp_path)
        assert builder.cover_path(Game(id="g", name="G", cover_image="https://example.com/c.jpg")) is None

    def test_relative_cover_resolves_against_files_dir(self, tmp_path):
        cover = tmp_path / "abc" / "cover.jpg"
        cover.parent.mkdir()
        cover.write_bytes(b"jpg")
        builder = EntryBuilder(files_dir=tmp_path)
        assert builder.cover_path(Game(id="g", name="G", cover_image="abc/cover.jpg")) == str(cover)

    def test_missing_cover_file(self, tmp_path):
        builder = EntryBuilder(files_dir=tmp_path)
        assert builder.cover_path(Game(id="g", name="G", cover_image="nope.jpg")) is None

    def test_relative_cover_without_files_dir(self):
        assert EntryBuilder().cover_path(Game(id="g", name="G", cover_image="abc/cover.jpg")) is None


class TestBuild:
    def test_build_entry(self, tmp_path):
        entry = EntryBuilder(files_dir=tmp_path).build(Game(id="g1", name="Game One"), UUID)
        assert entry.uuid == UUID
        assert entry.name == "Game One"
        assert entry.detached == ["playnite://play/g1"]
        assert entry.image_path is None

    def test_build_without_game(self):
        assert EntryBuilder().build(None, UUID) is None


class TestGenerateNumericId:
    def test_avoids_used_ids(self):
        rng = random.Random(7)
        first = generate_numeric_id([], rng=random.Random(7))
        assert generate_numeric_id([first], rng=rng) != first

    def test_falls_back_to_max_plus_one(self):
        assert generate_numeric_id(["3", "10", "abc"], attempts=0) == "11"
        assert generate_numeric_id([], attempts=0) == "0"
