# launchsync/core/identity_store.py

"""Durable mapping from library game ids to the uuids written into apps.json.

A game keeps the same apps.json uuid for as long as it stays managed, so the
streaming host keeps its per-app settings across renames and cover changes.
Mappings are only ever dropped explicitly (remove) or because their uuid is
missing from a freshly loaded apps.json (reconcile_against): edits made by
the host application win over our records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from launchsync.utils.json_utils import load_json, save_json
from launchsync.utils.uuid_utils import canonical_uuid, new_uuid

__all__ = ["IdentityStore", "JsonIdentityStore"]

logger = logging.getLogger("launchsync.identity_store")

_STORE_VERSION = 1


class IdentityStore:
    """In-memory game id -> uuid mapping.

    This base class never touches the disk; save() is a no-op. It backs the
    tests and any caller that persists the mapping some other way.
    """

    def __init__(self, mappings: dict[str, str] | None = None) -> None:
        """Initializes the store.

        Args:
            mappings: Optional initial game id -> uuid pairs. Invalid uuids
                are dropped.
        """
        self._mappings: dict[str, str] = {}
        for game_id, value in (mappings or {}).items():
            uuid = canonical_uuid(value)
            if uuid is None:
                logger.warning("Dropping mapping for %s: invalid uuid %r", game_id, value)
                continue
            self._mappings[str(game_id)] = uuid

    def get(self, game_id: str) -> str | None:
        """Return the uuid mapped to a game, or None when unmanaged."""
        return self._mappings.get(str(game_id))

    def assign(self, game_id: str) -> str:
        """Return the game's uuid, generating a fresh one only if absent.

        Args:
            game_id: Library game id.

        Returns:
            The existing or newly created uuid.
        """
        key = str(game_id)
        existing = self._mappings.get(key)
        if existing is not None:
            return existing

        uuid = new_uuid()
        self._mappings[key] = uuid
        logger.debug("Assigned uuid %s to game %s", uuid, key)
        return uuid

    def remove(self, game_id: str) -> bool:
        """Drop a game's mapping.

        Returns:
            True if a mapping existed.
        """
        return self._mappings.pop(str(game_id), None) is not None

    def reconcile_against(self, document_uuids: Iterable[str]) -> list[str]:
        """Drop every mapping whose uuid is absent from the given set.

        Args:
            document_uuids: uuids present in a freshly loaded apps.json
                (any case; invalid values are ignored).

        Returns:
            Game ids whose mappings were removed.
        """
        present = {u for u in (canonical_uuid(v) for v in document_uuids) if u is not None}
        orphaned = [game_id for game_id, uuid in self._mappings.items() if uuid not in present]
        for game_id in orphaned:
            logger.debug("Removing orphaned mapping: game %s -> %s", game_id, self._mappings[game_id])
            del self._mappings[game_id]
        return orphaned

    def game_ids(self) -> list[str]:
        """Return all managed game ids (no particular order)."""
        return list(self._mappings)

    def items(self) -> list[tuple[str, str]]:
        """Return a snapshot of (game_id, uuid) pairs."""
        return list(self._mappings.items())

    def as_dict(self) -> dict[str, str]:
        """Return a copy of the mapping."""
        return dict(self._mappings)

    def restore(self, snapshot: dict[str, str]) -> None:
        """Replace the whole mapping with an earlier as_dict() snapshot."""
        self._mappings = dict(snapshot)

    def save(self) -> bool:
        """Persist the mapping. The in-memory store has nothing to do."""
        return True

    def __contains__(self, game_id: object) -> bool:
        return str(game_id) in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._mappings))


class JsonIdentityStore(IdentityStore):
    """Identity store persisted as JSON in the application data directory.

    File layout: ``{"version": 1, "games": {"<game id>": "<UUID>"}}``. The
    file is read once on construction; save() flushes the whole mapping.

    Args:
        path: Location of the mapping file (usually DATA_DIR/managed_games.json).
    """

    def __init__(self, path: Path) -> None:
        """Loads the mapping file if it exists.

        Args:
            path: Location of the mapping file.
        """
        self.path = path
        data = load_json(path, default={}, expected_type=dict)
        games = data.get("games", {})
        if not isinstance(games, dict):
            logger.warning("Ignoring malformed mapping table in %s", path)
            games = {}
        super().__init__(games)
        logger.debug("Loaded %d managed game mappings from %s", len(self), path)

    def save(self) -> bool:
        """Write the mapping to disk.

        Returns:
            True on success, False if the file could not be written.
        """
        ok = save_json(self.path, {"version": _STORE_VERSION, "games": self.as_dict()})
        if ok:
            logger.debug("Saved %d managed game mappings to %s", len(self), self.path)
        return ok
