"""
Form key and search text helpers.

Broker forms post camelCase keys (``boatType``, ``engineHours``,
``toContact``); :func:`normalize_keys` turns them into the snake_case
field names the pydantic form models declare.  :func:`escape_like` makes
free-text search terms safe inside a ``LIKE`` pattern.
"""

from __future__ import annotations

import re
from typing import Any

__all__ = [
    "to_snake_case",
    "normalize_keys",
    "escape_like",
    "LIKE_ESCAPE",
]

LIKE_ESCAPE: str = "\\"

# "URLPath" -> "URL_Path", then "engineHours" -> "engine_Hours"
_ACRONYM_THEN_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")
_LOWER_THEN_UPPER = re.compile(r"([a-z\d])([A-Z])")
_UNDERSCORES = re.compile(r"_{2,}")
_LIKE_WILDCARDS = re.compile(r"([\\%_])")


def to_snake_case(name: str) -> str:
    """``boatType`` -> ``boat_type``; keys already in snake_case pass through.

    ::

        engineHours    -> engine_hours
        toContactText  -> to_contact_text
        URLPath        -> url_path
    """
    split = _LOWER_THEN_UPPER.sub(r"\1_\2", _ACRONYM_THEN_WORD.sub(r"\1_\2", name))
    return _UNDERSCORES.sub("_", split).lower()


def normalize_keys(data: Any) -> Any:
    """Rename every mapping key in *data* to snake_case, descending into
    nested dicts and lists.  Non-container values are returned as is."""
    if isinstance(data, dict):
        return {to_snake_case(key): normalize_keys(value) for key, value in data.items()}
    if isinstance(data, list):
        return [normalize_keys(item) for item in data]
    return data


def escape_like(value: str) -> str:
    """Backslash-escape ``%``, ``_`` and ``\\`` in a search term.

    Pair the result with ``LIKE ? ESCAPE '\\'``; a search for ``50%`` then
    matches the literal text rather than everything starting with ``50``.
    """
    return _LIKE_WILDCARDS.sub(r"\\\1", value)
