# launchsync/services/entry_builder.py

"""Builds apps.json entries for library games.

Each exported game becomes one detached command that asks the library's
desktop application to start the game by id. Covers are only attached
when they resolve to an existing local file, because the streaming host
cannot fetch remote images.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Iterable
from pathlib import Path

from launchsync.core.apps_config import AppEntry
from launchsync.core.game import Game

__all__ = ["EntryBuilder", "MAX_ID_ATTEMPTS", "find_launcher_executable", "generate_numeric_id"]

logger = logging.getLogger("launchsync.entry_builder")

LAUNCHER_EXE = "Playnite.DesktopApp.exe"
DEEP_LINK_TEMPLATE = "playnite://play/{game_id}"
MAX_ID_ATTEMPTS = 1000
_MAX_RANDOM_ID = 2**31 - 1


def find_launcher_executable(configured: str | Path | None = None) -> Path | None:
    """Locate the library's desktop executable.

    Args:
        configured: Explicit path from settings; used only if it exists.

    Returns:
        Path to the executable, or None when it cannot be found on disk.
    """
    if configured and str(configured).strip():
        path = Path(str(configured).strip()).expanduser()
        if path.is_file():
            return path
        logger.warning("Configured launcher %s does not exist, falling back to auto-detect", path)

    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        candidate = Path(local_app_data) / "Playnite" / LAUNCHER_EXE
        if candidate.is_file():
            return candidate
    return None


def generate_numeric_id(used: Iterable[str], rng: random.Random | None = None, attempts: int = MAX_ID_ATTEMPTS) -> str:
    """Pick a numeric id not present in ``used``.

    Random ids in [0, 2**31 - 1] are tried up to ``attempts`` times; after
    that the id one above the largest numeric id in use is returned.

    Args:
        used: Ids already present in the document.
        rng: Random source (tests pass a seeded one).
        attempts: Random draws before falling back.

    Returns:
        The new id as decimal text.
    """
    taken = set(used)
    rng = rng or random.Random()
    for _ in range(attempts):
        candidate = str(rng.randint(0, _MAX_RANDOM_ID))
        if candidate not in taken:
            return candidate

    numeric = [int(v) for v in taken if v.isdigit()]
    fallback = str(max(numeric, default=-1) + 1)
    logger.warning("No free random id after %d attempts, using %s", attempts, fallback)
    return fallback


class EntryBuilder:
    """Maps a Game plus its stable uuid to an AppEntry.

    Args:
        launcher_path: Configured launcher executable (blank = auto-detect).
        files_dir: Library files directory for relative cover paths.
    """

    def __init__(self, launcher_path: str | Path | None = None, files_dir: Path | None = None) -> None:
        self.launcher_path = launcher_path
        self.files_dir = files_dir

    def launch_command(self, game_id: str) -> str:
        """Command line that starts the game through the library.

        Falls back to the URI deep link when the executable is not installed.
        """
        exe = find_launcher_executable(self.launcher_path)
        if exe is None:
            return DEEP_LINK_TEMPLATE.format(game_id=game_id)
        return f'"{exe}" --start {game_id}'

    def cover_path(self, game: Game) -> str | None:
        """Resolve the game's cover to an existing local file.

        Remote covers (http/https) are skipped. Relative paths resolve
        against files_dir. Lookup errors are logged, never raised.

        Returns:
            Absolute path text, or None.
        """
        cover = (game.cover_image or "").strip()
        if not cover:
            logger.debug("No cover image set for game: %s", game.name)
            return None
        if cover.lower().startswith("http"):
            logger.debug("Skipping remote cover image for game: %s", game.name)
            return None

        try:
            path = Path(cover)
            if not path.is_absolute():
                if self.files_dir is None:
                    logger.debug("Cannot resolve relative cover %s without a files directory", cover)
                    return None
                path = self.files_dir / path
            if not path.is_file():
                logger.debug("Cover image file not found for game: %s, path: %s", game.name, path)
                return None
        except OSError as e:
            logger.info("Error getting cover image path for '%s': %s", game.name, e)
            return None

        return str(path)

    def build(self, game: Game | None, uuid: str) -> AppEntry | None:
        """Build the entry for one game.

        The numeric id is left empty; it is assigned on insert.

        Args:
            game: Library game, or None.
            uuid: Canonical uuid from the identity store.

        Returns:
            The entry, or None when game is None.
        """
        if game is None:
            logger.error("Cannot build an entry without a game")
            return None

        return AppEntry(
            uuid=uuid,
            name=game.name,
            detached=[self.launch_command(game.id)],
            image_path=self.cover_path(game),
        )
