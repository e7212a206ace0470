"""
Internationalization (i18n) for user-facing text.

Every sync summary, CLI message and notification is looked up by a dotted
key in resources/i18n/{locale}/*.json, with English as the fallback.
Keys may hold a plural table ({"one": ..., "other": ...}) that is picked
by the ``count`` argument.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

__all__ = ["I18n", "get_language", "init_i18n", "t"]

logger = logging.getLogger("launchsync.i18n")

FALLBACK_LOCALE = "en"


class I18n:
    """Translation catalogue for one locale, merged over the English fallback.

    Args:
        locale: Locale directory name under resources/i18n/ (e.g. "de").
        i18n_root: Override for the translations root (tests).
    """

    def __init__(self, locale: str = FALLBACK_LOCALE, i18n_root: Path | None = None) -> None:
        self.locale = locale
        if i18n_root is None:
            from launchsync.utils.paths import get_resources_dir

            i18n_root = get_resources_dir() / "i18n"
        self.i18n_root = i18n_root

        fallback = self._load_locale_directory(FALLBACK_LOCALE)
        if locale != FALLBACK_LOCALE:
            self.translations = self._deep_merge(fallback, self._load_locale_directory(locale))
        else:
            self.translations = fallback

    def _load_locale_directory(self, locale_code: str) -> dict[str, Any]:
        """Loads and deep-merges all JSON files of one locale.

        Args:
            locale_code: Directory name under the i18n root.

        Returns:
            Merged dictionary (empty if the directory is missing).
        """
        merged: dict[str, Any] = {}
        directory = self.i18n_root / locale_code
        if not directory.is_dir():
            if locale_code != FALLBACK_LOCALE:
                logger.warning("No translations for locale '%s', using English", locale_code)
            return merged
        for file_path in sorted(directory.glob("*.json")):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    merged = self._deep_merge(merged, json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Error loading i18n file %s: %s", file_path.name, e)
        return merged

    @classmethod
    def _deep_merge(cls, base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
        result = base.copy()
        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def t(self, key: str, **kwargs: Any) -> str:
        """Retrieve a translated string by dot-notation key.

        Args:
            key: Dot-separated key path (e.g. 'sync.summary').
            **kwargs: Format arguments; ``count`` also selects the plural form.

        Returns:
            Translated string, or '[key]' if not found.
        """
        value: Any = self.translations
        for part in key.split("."):
            value = value.get(part) if isinstance(value, dict) else None
            if value is None:
                return f"[{key}]"

        if isinstance(value, dict) and "other" in value:
            value = value["one"] if kwargs.get("count") == 1 and "one" in value else value["other"]

        if not isinstance(value, str):
            return f"[{key}]"

        if kwargs:
            try:
                return value.format(**kwargs)
            except (ValueError, KeyError, IndexError):
                return value
        return value


_i18n_instance: I18n | None = None


def init_i18n(locale: str = FALLBACK_LOCALE) -> I18n:
    """Initialize the global i18n instance.

    Args:
        locale: The locale code to use.

    Returns:
        The initialized I18n instance.
    """
    global _i18n_instance
    _i18n_instance = I18n(locale)
    return _i18n_instance


def get_language() -> str:
    """Return the active locale code, initializing English if needed."""
    if _i18n_instance is None:
        init_i18n()
    return _i18n_instance.locale


def t(key: str, **kwargs: Any) -> str:
    """Retrieve a translated string using the global i18n instance.

    Args:
        key: Dot-separated key path.
        **kwargs: Format arguments for string interpolation.

    Returns:
        Translated string, or '[key]' if not found.
    """
    if _i18n_instance is None:
        init_i18n()
    return _i18n_instance.t(key, **kwargs)
