# tests/unit/test_core/test_apps_config.py

"""Unit tests for apps.json parsing, deduplication and persistence."""

import json
from pathlib import Path

import pytest

from launchsync.core.apps_config import (
    AppEntry,
    AppsDocument,
    FileAppsConfigRepository,
    InMemoryAppsConfigRepository,
    deduplicate_apps,
    default_apps_json_candidates,
    resolve_apps_json_path,
)
from launchsync.core.backup_manager import BackupManager
from launchsync.core.errors import LoadError, SaveError, SavePermissionError, TransientIOError
from launchsync.utils.json_utils import atomic_write_text, dump_json_text

UUID_A = "0B5F2A44-6F0C-4F52-9E3B-2B0A4D3F8C11"
UUID_B = "7C1D4E2A-1111-4A2B-8C3D-9E8F7A6B5C4D"


class TestAppEntry:
    """Tests for the AppEntry dataclass."""

    def test_to_dict_uses_wire_names(self):
        entry = AppEntry(uuid=UUID_A, name="Hades", detached=["cmd"], image_path="C:/c.png", numeric_id="42")
        assert entry.to_dict() == {
            "name": "Hades",
            "uuid": UUID_A,
            "detached": ["cmd"],
            "image-path": "C:/c.png",
            "id": "42",
        }

    def test_to_dict_omits_empty_optionals(self):
        data = AppEntry(uuid=UUID_A, name="Hades").to_dict()
        assert "image-path" not in data
        assert "id" not in data

    def test_from_dict_canonicalizes_uuid(self):
        entry = AppEntry.from_dict({"uuid": UUID_A.lower(), "name": "X", "id": 7, "detached": "single"})
        assert entry.uuid == UUID_A
        assert entry.numeric_id == "7"
        assert entry.detached == ["single"]


class TestDeduplicateApps:
    """Tests for deduplicate_apps()."""

    def test_keeps_entry_with_largest_numeric_id(self):
        apps = [
            {"uuid": UUID_A, "id": "5", "name": "low"},
            {"uuid": UUID_A, "id": "900", "name": "high"},
            {"uuid": UUID_A, "id": "77", "name": "mid"},
        ]
        result, dropped = deduplicate_apps(apps)
        assert [a["name"] for a in result] == ["high"]
        assert dropped == 2

    def test_uuid_comparison_is_case_insensitive(self):
        apps = [{"uuid": UUID_A.lower(), "id": "1"}, {"uuid": UUID_A, "id": "2"}]
        result, _ = deduplicate_apps(apps)
        assert len(result) == 1
        assert result[0]["id"] == "2"

    def test_unparseable_ids_rank_lowest(self):
        apps = [{"uuid": UUID_A, "id": "abc", "name": "bad"}, {"uuid": UUID_A, "id": "0", "name": "zero"}]
        result, _ = deduplicate_apps(apps)
        assert result[0]["name"] == "zero"

    def test_ties_keep_first_seen(self):
        apps = [{"uuid": UUID_A, "name": "first"}, {"uuid": UUID_A, "name": "second"}]
        result, _ = deduplicate_apps(apps)
        assert result[0]["name"] == "first"

    def test_drops_entries_without_uuid(self):
        apps = [{"name": "no uuid"}, {"uuid": "", "name": "blank"}, "not an object", {"uuid": UUID_A}]
        result, dropped = deduplicate_apps(apps)
        assert result == [{"uuid": UUID_A}]
        assert dropped == 3

    def test_preserves_first_seen_order(self):
        apps = [
            {"uuid": UUID_B, "id": "1"},
            {"uuid": UUID_A, "id": "2"},
            {"uuid": UUID_B, "id": "3"},
        ]
        result, _ = deduplicate_apps(apps)
        assert [a["uuid"] for a in result] == [UUID_B, UUID_A]
        assert result[0]["id"] == "3"

    def test_non_guid_uuids_survive(self):
        result, _ = deduplicate_apps([{"uuid": "my-custom-app"}])
        assert len(result) == 1

    def test_convergence_for_many_duplicates(self):
        ids = [13, 2, 999, 400, 57]
        apps = [{"uuid": UUID_A, "id": str(i)} for i in ids]
        result, dropped = deduplicate_apps(apps)
        assert len(result) == 1
        assert result[0]["id"] == "999"
        assert dropped == len(ids) - 1


class TestAppsDocument:
    """Tests for AppsDocument."""

    def test_new_document_defaults(self):
        doc = AppsDocument()
        assert doc.to_dict() == {"apps": [], "env": {}, "version": 2}

    def test_preserves_unknown_keys(self):
        doc = AppsDocument({"apps": [], "env": {"PATH": "x"}, "version": 3, "extra": True})
        assert doc.to_dict()["extra"] is True
        assert doc.env == {"PATH": "x"}
        assert doc.version == 3

    def test_rejects_non_array_apps(self):
        with pytest.raises(ValueError):
            AppsDocument({"apps": {}})

    def test_rejects_non_object_env(self):
        with pytest.raises(ValueError):
            AppsDocument({"apps": [], "env": []})

    def test_find_and_remove(self):
        doc = AppsDocument({"apps": [{"uuid": UUID_A.lower(), "name": "A"}, {"uuid": UUID_B, "name": "B"}]})
        assert doc.find(UUID_A)["name"] == "A"
        assert doc.remove(UUID_A) == 1
        assert doc.find(UUID_A) is None
        assert doc.uuids() == {UUID_B}

    def test_numeric_ids(self):
        doc = AppsDocument({"apps": [{"uuid": UUID_A, "id": "5"}, {"uuid": UUID_B}]})
        assert doc.numeric_ids() == {"5"}


class TestResolveAppsJsonPath:
    """Tests for default location resolution."""

    def test_explicit_path_wins(self, tmp_path):
        assert resolve_apps_json_path(str(tmp_path / "a.json")) == tmp_path / "a.json"

    def test_windows_defaults(self, monkeypatch):
        monkeypatch.setattr("launchsync.core.apps_config.platform.system", lambda: "Windows")
        monkeypatch.setenv("ProgramW6432", r"D:\Programs")
        candidates = default_apps_json_candidates()
        assert [c.parts[-3] for c in candidates] == ["Apollo", "Sunshine"]
        assert candidates[0] == Path(r"D:\Programs") / "Apollo" / "config" / "apps.json"

    def test_prefers_existing_second_root(self, tmp_path, monkeypatch):
        monkeypatch.setattr("launchsync.core.apps_config.platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        sunshine = tmp_path / "sunshine" / "apps.json"
        sunshine.parent.mkdir()
        sunshine.write_text("{}")
        assert resolve_apps_json_path("") == sunshine

    def test_defaults_to_first_root_when_none_exist(self, tmp_path, monkeypatch):
        monkeypatch.setattr("launchsync.core.apps_config.platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert resolve_apps_json_path(None) == tmp_path / "apollo" / "apps.json"


class TestFileAppsConfigRepository:
    """Tests for loading and saving apps.json on disk."""

    def test_missing_file_loads_empty_document(self, apps_json):
        doc = FileAppsConfigRepository(apps_json).load()
        assert doc.apps == []
        assert doc.version == 2

    def test_invalid_json_raises_load_error(self, apps_json):
        apps_json.parent.mkdir(parents=True)
        apps_json.write_text("{ not json")
        with pytest.raises(LoadError) as exc_info:
            FileAppsConfigRepository(apps_json).load()
        assert exc_info.value.path == apps_json

    def test_non_object_raises_load_error(self, apps_json):
        apps_json.parent.mkdir(parents=True)
        apps_json.write_text("[]")
        with pytest.raises(LoadError):
            FileAppsConfigRepository(apps_json).load()

    def test_load_deduplicates(self, apps_json):
        apps_json.parent.mkdir(parents=True)
        apps_json.write_text(json.dumps({"apps": [{"uuid": UUID_A, "id": "1"}, {"uuid": UUID_A, "id": "2"}]}))
        doc = FileAppsConfigRepository(apps_json).load()
        assert doc.apps == [{"uuid": UUID_A, "id": "2"}]

    def test_load_accepts_utf8_bom(self, apps_json):
        apps_json.parent.mkdir(parents=True)
        apps_json.write_bytes(b"\xef\xbb\xbf" + json.dumps({"apps": []}).encode())
        assert FileAppsConfigRepository(apps_json).load().apps == []

    def test_save_creates_parent_directories(self, apps_json):
        repo = FileAppsConfigRepository(apps_json)
        doc = AppsDocument()
        doc.apps.append({"name": "A", "uuid": UUID_A, "id": "1", "detached": []})
        repo.save(doc)
        assert json.loads(apps_json.read_text())["apps"][0]["uuid"] == UUID_A

    def test_save_deduplicates_again(self, apps_json):
        doc = AppsDocument()
        doc.apps.extend([{"uuid": UUID_A, "id": "1"}, {"uuid": UUID_A, "id": "3"}])
        FileAppsConfigRepository(apps_json).save(doc)
        assert json.loads(apps_json.read_text())["apps"] == [{"uuid": UUID_A, "id": "3"}]

    def test_round_trip_is_byte_stable(self, apps_json):
        original = {
            "env": {"PATH": "$(PATH);C:\\Tools"},
            "apps": [
                {"name": "Desktop", "image-path": "desktop.png", "uuid": UUID_B, "id": "1", "custom": {"k": 1}},
                {"name": "Ünïcode", "uuid": UUID_A, "id": "2", "detached": ["x"]},
            ],
            "version": 2,
        }
        apps_json.parent.mkdir(parents=True)
        apps_json.write_text(dump_json_text(original), encoding="utf-8")
        before = apps_json.read_bytes()

        repo = FileAppsConfigRepository(apps_json)
        repo.save(repo.load())

        assert apps_json.read_bytes() == before

    def test_transient_failures_are_retried(self, apps_json, monkeypatch):
        calls = []
        real_write = FileAppsConfigRepository._write_once

        def flaky(path, text):
            calls.append(path)
            if len(calls) < 3:
                raise TransientIOError("file in use")
            real_write(path, text)

        monkeypatch.setattr(FileAppsConfigRepository, "_write_once", staticmethod(flaky))
        monkeypatch.setattr("launchsync.core.apps_config.time.sleep", lambda s: None)

        FileAppsConfigRepository(apps_json, attempts=3).save(AppsDocument())
        assert len(calls) == 3
        assert apps_json.exists()

    def test_gives_up_after_attempts(self, apps_json, monkeypatch):
        sleeps = []

        def always_busy(path, text):
            raise TransientIOError("file in use")

        monkeypatch.setattr(FileAppsConfigRepository, "_write_once", staticmethod(always_busy))
        monkeypatch.setattr("launchsync.core.apps_config.time.sleep", sleeps.append)

        with pytest.raises(SaveError):
            FileAppsConfigRepository(apps_json, attempts=3, retry_delay=0.5).save(AppsDocument())
        assert sleeps == [0.5, 1.0]

    def test_permission_error_is_not_retried(self, apps_json, monkeypatch):
        calls = []

        def denied(path, text):
            calls.append(path)
            raise PermissionError("access denied")

        monkeypatch.setattr("launchsync.core.apps_config.atomic_write_text", denied)

        with pytest.raises(SavePermissionError) as exc_info:
            FileAppsConfigRepository(apps_json, attempts=3).save(AppsDocument())
        assert len(calls) == 1
        assert isinstance(exc_info.value, PermissionError)

    @pytest.mark.parametrize("winerror", [32, 33])
    def test_windows_sharing_violation_is_retried(self, apps_json, monkeypatch, winerror):
        class SharingViolation(PermissionError):
            pass

        calls = []
        real_write = atomic_write_text

        def locked_once(path, text):
            calls.append(path)
            if len(calls) == 1:
                exc = SharingViolation(13, "The process cannot access the file")
                exc.winerror = winerror
                raise exc
            real_write(path, text)

        monkeypatch.setattr("launchsync.core.apps_config.atomic_write_text", locked_once)
        monkeypatch.setattr("launchsync.core.apps_config.time.sleep", lambda s: None)

        FileAppsConfigRepository(apps_json, attempts=3).save(AppsDocument())

        assert len(calls) == 2
        assert json.loads(apps_json.read_text())["apps"] == []

    def test_existing_file_is_backed_up(self, apps_json):
        apps_json.parent.mkdir(parents=True)
        apps_json.write_text(json.dumps({"apps": []}))
        manager = BackupManager(max_backups=5)

        FileAppsConfigRepository(apps_json, backup_manager=manager).save(AppsDocument())

        backups = manager.list_backups(apps_json)
        assert len(backups) == 1
        assert backups[0].parent == apps_json.parent / "backups"


class TestInMemoryAppsConfigRepository:
    """Tests for the in-memory repository used by engine tests."""

    def test_load_returns_isolated_copy(self):
        repo = InMemoryAppsConfigRepository({"apps": [{"uuid": UUID_A}], "env": {}, "version": 2})
        doc = repo.load()
        doc.apps.clear()
        assert repo.apps == [{"uuid": UUID_A}]

    def test_save_counts(self):
        repo = InMemoryAppsConfigRepository()
        repo.save(AppsDocument())
        assert repo.save_count == 1
        assert repo.data == {"apps": [], "env": {}, "version": 2}

