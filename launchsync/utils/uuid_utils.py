"""UUID text helpers for apps.json identifiers.

The streaming host writes uuids as uppercase, hyphenated GUID text. Every
comparison in this package goes through canonical_uuid() so lowercase or
braced variants written by hand still match.
"""

from __future__ import annotations

import uuid

__all__ = ["canonical_uuid", "new_uuid"]


def canonical_uuid(value: object) -> str | None:
    """Return the canonical uppercase form of a uuid string.

    Args:
        value: Candidate uuid (usually a str read from JSON).

    Returns:
        Uppercase hyphenated uuid, or None when value is not a valid uuid.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return str(uuid.UUID(value.strip())).upper()
    except ValueError:
        return None


def new_uuid() -> str:
    """Generate a fresh random uuid in canonical form.

    Returns:
        Uppercase hyphenated uuid4 string.
    """
    return str(uuid.uuid4()).upper()
