"""
Shared lightweight types and helpers used across the registry search package.
"""

import re
from typing import TypeAlias

# Recursive JSON-like structure typing for loosely shaped registry payloads.
ResultStructure: TypeAlias = (
    str
    | int
    | float
    | bool
    | None
    | dict[str, "ResultStructure"]
    | list["ResultStructure"]
)
ResultStructureDict: TypeAlias = dict[str, ResultStructure]

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: str | None) -> str:
    """
    Strip a free-text value and collapse internal whitespace runs to one space.

    ``None`` and whitespace-only input both become the empty string, so callers
    can use plain truthiness to decide whether a field was supplied.

    :param value: Raw text as typed by a user or returned by the registry.
    :returns: The cleaned text.
    """
    if not value:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def split_tokens(value: str | None) -> list[str]:
    """
    Split text into whitespace-delimited tokens, ignoring runs of whitespace.

    :param value: Text to split.
    :returns: Non-empty tokens in their original order.
    """
    return clean_text(value).split()


def as_non_negative_int(value: object) -> int | None:
    """
    Return ``value`` if it is a non-negative integer, otherwise ``None``.

    Booleans are rejected even though ``bool`` subclasses ``int``.

    :param value: Candidate value read from a JSON payload.
    :returns: The integer, or ``None`` if it is unusable as a count.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value >= 0 else None
