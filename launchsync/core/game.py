# launchsync/core/game.py

"""Game dataclass for library entries that can be exported to apps.json.

The library owns these objects; the sync engine only reads them. Besides
the fields the entry builder needs (id, name, install directory, cover),
a game carries the metadata that filter presets match against.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = ["Game"]


@dataclass
class Game:
    """Represents a single game from the library.

    Attributes:
        id: Stable library identity (a GUID string for Playnite libraries).
        name: Display name.
        install_directory: Install folder, empty when not installed.
        cover_image: Cover as a local path (absolute or library-relative)
            or a remote URL.
        source: Library source/store name (e.g. "Steam", "GOG").
        platforms: Platform names the game runs on.
        tags: User tags.
        genres: Genre names.
        categories: User categories.
        installed: Whether the game is installed.
        hidden: Whether the game is hidden in the library.
        favorite: Whether the game is marked as favorite.
        playtime_minutes: Total playtime in minutes.
    """

    id: str
    name: str
    install_directory: str = ""
    cover_image: str = ""
    source: str = ""
    platforms: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    installed: bool = False
    hidden: bool = False
    favorite: bool = False
    playtime_minutes: int = 0

    @property
    def playtime_hours(self) -> float:
        """Playtime in hours, rounded to one decimal."""
        return round(self.playtime_minutes / 60, 1)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Game:
        """Create a Game from a library export entry.

        Accepts both the camelCase keys of a library export and the
        snake_case attribute names.

        Args:
            data: One game object from the export.

        Returns:
            Game instance.

        Raises:
            KeyError: If the entry has no id.
            TypeError: If data is not a mapping.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a game object, got {type(data).__name__}")

        game_id = data.get("id", data.get("Id"))
        if game_id in (None, ""):
            raise KeyError("id")

        playtime = data.get("playtime", data.get("playtime_minutes", 0)) or 0
        # Playnite exports playtime in seconds
        if "playtime" in data:
            playtime = int(playtime) // 60

        return cls(
            id=str(game_id),
            name=str(data.get("name", data.get("Name", "")) or ""),
            install_directory=str(data.get("installDirectory", data.get("install_directory", "")) or ""),
            cover_image=str(data.get("coverImage", data.get("cover_image", "")) or ""),
            source=str(data.get("source", "") or ""),
            platforms=[str(p) for p in data.get("platforms", []) or []],
            tags=[str(x) for x in data.get("tags", []) or []],
            genres=[str(x) for x in data.get("genres", []) or []],
            categories=[str(x) for x in data.get("categories", []) or []],
            installed=bool(data.get("isInstalled", data.get("installed", False))),
            hidden=bool(data.get("hidden", False)),
            favorite=bool(data.get("favorite", False)),
            playtime_minutes=int(playtime),
        )
