"""Centralized path resolution for application resources and user data.

Provides a single source of truth for locating the bundled resources
directory and the per-user data directory (settings, identity mappings,
filter presets, logs).
"""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path

__all__ = ["get_data_dir", "get_resources_dir"]

_resources_dir: Path | None = None


def get_resources_dir() -> Path:
    """Get the path to the resources directory.

    Checks multiple locations to support different installation methods:
    1. Development and pip install: launchsync/resources/ next to this package
    2. Frozen/bundled builds: resources/ under sys.prefix

    Returns:
        Path to the resources directory.

    Raises:
        FileNotFoundError: If resources directory cannot be found.
    """
    global _resources_dir
    if _resources_dir is not None:
        return _resources_dir

    # paths.py is at launchsync/utils/paths.py → parent.parent = launchsync/
    candidate = Path(__file__).resolve().parent.parent / "resources"
    if candidate.is_dir():
        _resources_dir = candidate
        return _resources_dir

    candidate = Path(sys.prefix) / "resources"
    if candidate.is_dir():
        _resources_dir = candidate
        return _resources_dir

    raise FileNotFoundError(
        "Could not locate resources directory. Searched: launchsync/resources/, sys.prefix/resources/"
    )


def get_data_dir() -> Path:
    """Get the per-user data directory (not created here).

    LAUNCHSYNC_DATA_DIR overrides the platform default:
    %APPDATA%/LaunchSync on Windows, $XDG_DATA_HOME/launchsync
    (or ~/.local/share/launchsync) elsewhere.

    Returns:
        Path to the data directory.
    """
    override = os.environ.get("LAUNCHSYNC_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if platform.system() == "Windows":
        base = os.environ.get("APPDATA")
        return Path(base) / "LaunchSync" if base else Path.home() / "AppData" / "Roaming" / "LaunchSync"

    xdg = os.environ.get("XDG_DATA_HOME")
    base_dir = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base_dir / "launchsync"
