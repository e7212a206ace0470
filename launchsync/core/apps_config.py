# launchsync/core/apps_config.py

"""Read, deduplicate and write the streaming host's apps.json.

apps.json belongs to the host application (Apollo or Sunshine) and may be
edited by it, or by hand, between our syncs. The repository therefore never
caches a document: every operation loads a fresh copy, mutates it in memory
and writes it back once. Unknown keys, on the document and on every entry,
are carried through untouched.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from launchsync.core.backup_manager import BackupManager
from launchsync.core.errors import LoadError, SaveError, SavePermissionError, TransientIOError
from launchsync.utils.json_utils import atomic_write_text, dump_json_text
from launchsync.utils.uuid_utils import canonical_uuid

__all__ = [
    "AppEntry",
    "AppsConfigRepository",
    "AppsDocument",
    "DEFAULT_VERSION",
    "FileAppsConfigRepository",
    "InMemoryAppsConfigRepository",
    "deduplicate_apps",
    "default_apps_json_candidates",
    "resolve_apps_json_path",
]

logger = logging.getLogger("launchsync.apps_config")

DEFAULT_VERSION = 2

_HOST_DIRS = ("Apollo", "Sunshine")

# ERROR_SHARING_VIOLATION and ERROR_LOCK_VIOLATION: the host has the file open
_WINDOWS_SHARING_ERRORS = frozenset({32, 33})


@dataclass
class AppEntry:
    """One application entry of apps.json.

    Only the fields Launch Sync manages are modelled; an existing entry's
    other keys live on in the raw dict held by AppsDocument.

    Attributes:
        uuid: Canonical uppercase uuid.
        name: Display name shown by the streaming client.
        detached: Commands the host starts detached.
        image_path: Local cover image path, if any.
        numeric_id: The host's numeric id as text; empty until assigned.
    """

    uuid: str
    name: str
    detached: list[str] = field(default_factory=list)
    image_path: str | None = None
    numeric_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to the apps.json object layout.

        Returns:
            Dict with "name", "uuid", "detached", optional "image-path"
            and "id" when a numeric id is assigned.
        """
        data: dict[str, Any] = {
            "name": self.name,
            "uuid": self.uuid,
            "detached": list(self.detached),
        }
        if self.image_path:
            data["image-path"] = self.image_path
        if self.numeric_id:
            data["id"] = self.numeric_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppEntry:
        """Create from an apps.json object.

        Args:
            data: One element of the "apps" array.

        Returns:
            AppEntry instance (uuid is "" when missing or invalid).
        """
        detached = data.get("detached", [])
        if not isinstance(detached, list):
            detached = [detached] if detached else []
        image = data.get("image-path")
        return cls(
            uuid=canonical_uuid(data.get("uuid")) or "",
            name=str(data.get("name", "")),
            detached=[str(c) for c in detached],
            image_path=str(image) if image else None,
            numeric_id=str(data.get("id", "") or ""),
        )


def _numeric_rank(entry: dict[str, Any]) -> int:
    """Numeric id of an entry for duplicate resolution; -1 when unparseable."""
    try:
        return int(str(entry.get("id", "")).strip())
    except (TypeError, ValueError):
        return -1


def _uuid_key(value: Any) -> str | None:
    """Grouping key for a uuid value; None when the entry has no uuid."""
    canonical = canonical_uuid(value)
    if canonical is not None:
        return canonical
    if isinstance(value, str) and value.strip():
        # Hand-written, non-GUID uuids still identify an entry
        return value.strip().upper()
    return None


def deduplicate_apps(apps: Iterable[Any]) -> tuple[list[dict[str, Any]], int]:
    """Collapse entries sharing a uuid (case-insensitive) to a single entry.

    The survivor of each group is the entry whose "id" parses to the
    largest integer; missing or unparseable ids rank lowest and ties keep
    the first-seen entry. Entries without a uuid (and non-objects) are
    dropped. Groups keep the position of their first-seen member.

    Args:
        apps: The raw "apps" array.

    Returns:
        Tuple of (deduplicated list, number of entries dropped).
    """
    order: list[str] = []
    winners: dict[str, dict[str, Any]] = {}
    dropped = 0

    for entry in apps:
        uuid = _uuid_key(entry.get("uuid")) if isinstance(entry, dict) else None
        if uuid is None:
            dropped += 1
            continue

        current = winners.get(uuid)
        if current is None:
            order.append(uuid)
            winners[uuid] = entry
            continue

        dropped += 1
        if _numeric_rank(entry) > _numeric_rank(current):
            winners[uuid] = entry

    return [winners[u] for u in order], dropped


class AppsDocument:
    """In-memory apps.json document.

    Holds the raw top-level object so unknown keys and key order survive a
    load/save cycle. apps entries are the raw dicts from the file.

    Args:
        data: Parsed top-level JSON object (defaults to a new empty document).
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        if data is None:
            data = {"apps": [], "env": {}, "version": DEFAULT_VERSION}
        self._data: dict[str, Any] = dict(data)

        apps = self._data.get("apps")
        if apps is None:
            apps = []
        if not isinstance(apps, list):
            raise ValueError('"apps" must be an array')
        self._data["apps"] = list(apps)

        env = self._data.get("env")
        if env is None:
            self._data["env"] = {}
        elif not isinstance(env, dict):
            raise ValueError('"env" must be an object')

    @property
    def apps(self) -> list[dict[str, Any]]:
        """Mutable list of raw app entries."""
        return self._data["apps"]

    @apps.setter
    def apps(self, value: list[dict[str, Any]]) -> None:
        self._data["apps"] = value

    @property
    def env(self) -> dict[str, Any]:
        """Host environment map, passed through untouched."""
        return self._data["env"]

    @property
    def version(self) -> int | None:
        """Document version tag, or None when the file has none."""
        return self._data.get("version")

    def uuids(self) -> set[str]:
        """Canonical uuids of all entries that carry a valid one."""
        return {u for u in (canonical_uuid(a.get("uuid")) for a in self.apps if isinstance(a, dict)) if u}

    def numeric_ids(self) -> set[str]:
        """All non-empty numeric ids currently in use."""
        return {str(a.get("id")) for a in self.apps if isinstance(a, dict) and a.get("id") not in (None, "")}

    def find(self, uuid: str) -> dict[str, Any] | None:
        """Return the entry with this uuid (case-insensitive), if any."""
        wanted = canonical_uuid(uuid)
        if wanted is None:
            return None
        for entry in self.apps:
            if isinstance(entry, dict) and canonical_uuid(entry.get("uuid")) == wanted:
                return entry
        return None

    def remove(self, uuid: str) -> int:
        """Remove every entry carrying this uuid.

        Returns:
            Number of entries removed.
        """
        wanted = canonical_uuid(uuid)
        if wanted is None:
            return 0
        before = len(self.apps)
        self.apps = [a for a in self.apps if not (isinstance(a, dict) and canonical_uuid(a.get("uuid")) == wanted)]
        return before - len(self.apps)

    def deduplicate(self) -> int:
        """Deduplicate apps in place.

        Returns:
            Number of entries dropped.
        """
        self.apps, dropped = deduplicate_apps(self.apps)
        return dropped

    def to_dict(self) -> dict[str, Any]:
        """Return the top-level object for serialization."""
        return dict(self._data)

    def copy(self) -> AppsDocument:
        """Deep copy through JSON, for snapshot-style repositories."""
        return AppsDocument(json.loads(json.dumps(self._data)))


def default_apps_json_candidates() -> list[Path]:
    """Return the known apps.json install locations, Apollo first.

    Windows uses "<Program Files>/<Host>/config/apps.json"; other platforms
    use the host's XDG config directory.

    Returns:
        Candidate paths in priority order.
    """
    if platform.system() == "Windows":
        program_files = os.environ.get("ProgramW6432") or os.environ.get("ProgramFiles") or r"C:\Program Files"
        return [Path(program_files) / host / "config" / "apps.json" for host in _HOST_DIRS]

    config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return [config_home / host.lower() / "apps.json" for host in _HOST_DIRS]


def resolve_apps_json_path(path: str | Path | None, prefer_existing: bool = True) -> Path:
    """Resolve the configured apps.json path.

    A blank path resolves to the first default location that exists, or to
    the first default location when none does (or prefer_existing is off).

    Args:
        path: Configured path; None or blank means "use the default".
        prefer_existing: Pick an existing default install over the first one.

    Returns:
        The path to read or write.
    """
    if path is not None and str(path).strip():
        return Path(str(path).strip()).expanduser()

    candidates = default_apps_json_candidates()
    if prefer_existing:
        for candidate in candidates:
            if candidate.exists():
                return candidate
    return candidates[0]


class AppsConfigRepository(ABC):
    """Loads and persists AppsDocument instances.

    Implementations must deduplicate on load and again on save.
    """

    @abstractmethod
    def load(self) -> AppsDocument:
        """Load a fresh document.

        Raises:
            LoadError: If the document cannot be read or parsed.
        """

    @abstractmethod
    def save(self, document: AppsDocument) -> None:
        """Persist a document.

        Raises:
            SavePermissionError: If the write was denied.
            SaveError: If the write kept failing.
        """

    def describe(self) -> str:
        """Human-readable location, for logs and messages."""
        return self.__class__.__name__


class FileAppsConfigRepository(AppsConfigRepository):
    """apps.json on the local filesystem.

    Args:
        path: Configured path; blank resolves to the default install location.
        backup_manager: Optional BackupManager used before overwriting.
        attempts: Write attempts for transient failures.
        retry_delay: Base delay in seconds; attempt n waits n * retry_delay.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        backup_manager: BackupManager | None = None,
        attempts: int = 3,
        retry_delay: float = 0.2,
    ) -> None:
        """Initializes the repository.

        Args:
            path: Configured apps.json path (blank = default location).
            backup_manager: Optional BackupManager used before overwriting.
            attempts: Write attempts for transient failures (at least 1).
            retry_delay: Base backoff delay in seconds.
        """
        self._configured = path
        self._backups = backup_manager
        self._attempts = max(1, attempts)
        self._retry_delay = retry_delay

    def resolve_path(self) -> Path:
        """Resolve the file to read from and write to.

        Loads and saves resolve the same way, so a blank setting never
        reads the Sunshine file and writes the Apollo one.
        """
        return resolve_apps_json_path(self._configured)

    def describe(self) -> str:
        return str(self.resolve_path())

    def load(self) -> AppsDocument:
        """Load apps.json, or a new empty document if the file is absent.

        Returns:
            Deduplicated document.

        Raises:
            LoadError: If the file cannot be read or is not a valid document.
        """
        path = self.resolve_path()
        logger.debug("Loading apps.json from %s", path)

        if not path.exists():
            logger.info("No apps.json at %s, starting from an empty document", path)
            return AppsDocument()

        try:
            text = path.read_text(encoding="utf-8-sig")
            data = json.loads(text)
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(f"Cannot read {path}: {exc}", path) from exc
        except json.JSONDecodeError as exc:
            raise LoadError(f"Invalid JSON in {path}: {exc}", path) from exc

        if not isinstance(data, dict):
            raise LoadError(f"{path} does not contain a JSON object", path)

        try:
            document = AppsDocument(data)
        except ValueError as exc:
            raise LoadError(f"Malformed apps.json at {path}: {exc}", path) from exc

        dropped = document.deduplicate()
        if dropped:
            logger.warning("Dropped %d duplicate or uuid-less entries from %s", dropped, path)

        logger.info("Loaded apps.json from %s with %d apps", path, len(document.apps))
        return document

    def save(self, document: AppsDocument) -> None:
        """Deduplicate and write the document, retrying transient failures.

        Args:
            document: Document to persist. It is deduplicated in place.

        Raises:
            SavePermissionError: If the OS denied the write (not retried).
            SaveError: If every attempt failed.
        """
        path = self.resolve_path()

        dropped = document.deduplicate()
        if dropped:
            logger.warning("Dropped %d duplicate entries before saving", dropped)

        text = dump_json_text(document.to_dict())

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            raise SavePermissionError(f"Permission denied creating {path.parent}", path) from exc
        except OSError as exc:
            raise SaveError(f"Cannot create {path.parent}: {exc}", path) from exc

        if self._backups is not None and path.exists():
            self._backups.create_backup(path)

        last_error: TransientIOError | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                self._write_once(path, text)
                logger.info("Saved apps.json to %s with %d apps", path, len(document.apps))
                return
            except TransientIOError as exc:
                last_error = exc
                logger.warning("Write attempt %d/%d for %s failed: %s", attempt, self._attempts, path, exc)
                if attempt < self._attempts:
                    time.sleep(self._retry_delay * attempt)

        raise SaveError(f"Failed to write {path} after {self._attempts} attempts: {last_error}", path) from last_error

    @staticmethod
    def _write_once(path: Path, text: str) -> None:
        """Single write attempt.

        Raises:
            SavePermissionError: On a permission failure.
            TransientIOError: On any other OS error, including a Windows
                sharing or lock violation while another process holds the file.
        """
        try:
            atomic_write_text(path, text)
        except PermissionError as exc:
            if getattr(exc, "winerror", None) in _WINDOWS_SHARING_ERRORS:
                raise TransientIOError(str(exc)) from exc
            raise SavePermissionError(f"Permission denied writing {path}", path) from exc
        except OSError as exc:
            raise TransientIOError(str(exc)) from exc


class InMemoryAppsConfigRepository(AppsConfigRepository):
    """Repository holding the document as a dict, for tests and dry runs.

    load() hands out a deep copy, so callers see the same isolation as with
    the file repository. Setting fail_load or fail_save makes the next
    calls raise the given exception.

    Args:
        data: Initial top-level document (None = no file yet).
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] | None = json.loads(json.dumps(data)) if data is not None else None
        self.save_count = 0
        self.load_count = 0
        self.fail_load: Exception | None = None
        self.fail_save: Exception | None = None

    def load(self) -> AppsDocument:
        self.load_count += 1
        if self.fail_load is not None:
            raise self.fail_load
        if self.data is None:
            return AppsDocument()
        try:
            document = AppsDocument(json.loads(json.dumps(self.data)))
        except ValueError as exc:
            raise LoadError(str(exc)) from exc
        document.deduplicate()
        return document

    def save(self, document: AppsDocument) -> None:
        if self.fail_save is not None:
            raise self.fail_save
        document.deduplicate()
        self.data = json.loads(json.dumps(document.to_dict()))
        self.save_count += 1

    @property
    def apps(self) -> list[dict[str, Any]]:
        """Entries of the stored document (empty when nothing saved yet)."""
        return list((self.data or {}).get("apps", []))

    def describe(self) -> str:
        return "<memory>"
