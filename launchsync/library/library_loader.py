# launchsync/library/library_loader.py

"""
Read access to the game library.

The library is owned by the launcher application (Playnite). Launch Sync only
reads a snapshot of it: either an exported JSON file or, in tests, a list of
Game objects held in memory.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from launchsync.core.errors import LoadError
from launchsync.core.game import Game

logger = logging.getLogger("launchsync.library")

__all__ = ["GameLibrary", "InMemoryGameLibrary", "JsonGameLibrary"]


class GameLibrary(ABC):
    """Read interface the sync engine needs from a game library.

    Subclasses implement games(); get() is answered from the same snapshot.
    """

    files_dir: Path | None = None

    @abstractmethod
    def games(self) -> list[Game]:
        """Return every game in the library.

        Returns:
            List of games in library order.
        """

    def get(self, game_id: str) -> Game | None:
        """Look up one game by id.

        Args:
            game_id: Library game id.

        Returns:
            The game, or None if it no longer exists.
        """
        wanted = str(game_id)
        for game in self.games():
            if game.id == wanted:
                return game
        return None

    def __contains__(self, game_id: object) -> bool:
        return self.get(str(game_id)) is not None


class InMemoryGameLibrary(GameLibrary):
    """Library backed by a plain list of games.

    Args:
        games: Initial games.
        files_dir: Directory relative cover paths resolve against.
    """

    def __init__(self, games: Iterable[Game] = (), files_dir: Path | None = None) -> None:
        self._games: dict[str, Game] = {g.id: g for g in games}
        self.files_dir = files_dir

    def games(self) -> list[Game]:
        return list(self._games.values())

    def get(self, game_id: str) -> Game | None:
        return self._games.get(str(game_id))

    def add(self, game: Game) -> None:
        """Add or replace a game."""
        self._games[game.id] = game

    def delete(self, game_id: str) -> bool:
        """Delete a game; returns True if it existed."""
        return self._games.pop(str(game_id), None) is not None


class JsonGameLibrary(GameLibrary):
    """
    Library export read from a JSON file.

    The export is either a JSON array of game objects or an object with a
    "games" array. The file is read lazily on first access and cached;
    reload() re-reads it after the library changed.
    """

    def __init__(self, path: Path, files_dir: Path | None = None):
        """
        Initializes the JsonGameLibrary.

        Args:
            path: Path to the export file.
            files_dir: Library files directory for relative cover paths.
                Defaults to the export's own folder.
        """
        self.path = Path(path)
        self.files_dir = Path(files_dir) if files_dir else self.path.parent
        self._games: dict[str, Game] | None = None

    def reload(self) -> None:
        """Re-read the export on next access."""
        self._games = None

    def _load(self) -> dict[str, Game]:
        """
        Reads and parses the export file.

        Malformed entries are skipped with a warning.

        Returns:
            Games keyed by id, in file order.

        Raises:
            LoadError: If the file cannot be read or has an unexpected shape.
        """
        try:
            with open(self.path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LoadError(f"Cannot read library export {self.path}: {e}", self.path) from e

        if isinstance(data, dict):
            data = data.get("games")
        if not isinstance(data, list):
            raise LoadError(f"Library export {self.path} has no games array", self.path)

        games: dict[str, Game] = {}
        for entry in data:
            try:
                game = Game.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed library entry: %s", e)
                continue
            games[game.id] = game

        logger.info("Loaded %d games from %s", len(games), self.path)
        return games

    def games(self) -> list[Game]:
        if self._games is None:
            self._games = self._load()
        return list(self._games.values())

    def get(self, game_id: str) -> Game | None:
        if self._games is None:
            self._games = self._load()
        return self._games.get(str(game_id))
