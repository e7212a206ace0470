"""Game library collaborators: read-only access to the games Launch Sync exports."""

from __future__ import annotations

from launchsync.library.library_loader import GameLibrary, InMemoryGameLibrary, JsonGameLibrary

__all__: list[str] = ["GameLibrary", "InMemoryGameLibrary", "JsonGameLibrary"]
