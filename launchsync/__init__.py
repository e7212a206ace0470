"""Launch Sync: keeps a game-streaming host's apps.json in step with a game library."""

from __future__ import annotations

from launchsync.version import __app_name__, __version__

__all__ = ["__app_name__", "__version__"]
