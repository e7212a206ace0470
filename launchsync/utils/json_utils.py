"""JSON file I/O shared by settings, identity mappings, presets and apps.json.

load_json()/save_json() swallow and log errors for the small files Launch
Sync owns. atomic_write_text() and dump_json_text() are the raw building
blocks the apps.json repository uses, since that file needs retries and
distinct error kinds instead of a boolean.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

__all__ = ["atomic_write_text", "dump_json_text", "load_json", "save_json"]

logger = logging.getLogger("launchsync.json_utils")


def load_json(path: Path, default: Any = None, expected_type: type | None = None) -> Any:
    """Load and parse a JSON file with unified error handling.

    Args:
        path: Path to the JSON file.
        default: Value to return if file doesn't exist, fails to parse, or
            holds the wrong top-level type. Defaults to empty dict if None.
        expected_type: Optional required type of the top-level value.

    Returns:
        Parsed JSON data, or default value on failure.
    """
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to load JSON from %s: %s", path, exc)
        return default

    if expected_type is not None and not isinstance(data, expected_type):
        logger.warning("Ignoring %s: expected %s, found %s", path, expected_type.__name__, type(data).__name__)
        return default
    return data


def dump_json_text(data: Any) -> str:
    """Serialize data with the formatting used for every file we write.

    Two-space indentation, non-ASCII kept verbatim, key order preserved and
    a trailing newline, so rewriting an unchanged document is stable.

    Args:
        data: JSON-serializable data.

    Returns:
        The JSON text.
    """
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to path through a temporary sibling and os.replace().

    Readers never observe a half-written file. The temporary file is
    removed if anything fails.

    Args:
        path: Target file path; its parent must exist.
        text: Content to write (UTF-8).

    Raises:
        OSError: If the temporary file cannot be written or moved into place.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def save_json(path: Path, data: Any, ensure_parents: bool = True) -> bool:
    """Save data as JSON atomically with unified error handling.

    Args:
        path: Target file path.
        data: Data to serialize as JSON.
        ensure_parents: Create parent directories if needed.

    Returns:
        True on success, False on failure.
    """
    try:
        if ensure_parents:
            path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write_text(path, dump_json_text(data))
        return True
    except OSError as exc:
        logger.error("Failed to save JSON to %s: %s", path, exc)
        return False
