"""
Resolve a registry full name and birth date into registration form fields.

Names are split on whitespace using a "given [middle] family..." convention.
Registries that put the family name first will be mis-split; the split is a
heuristic and is left as such.

Birth dates are parsed by an ordered list of strategies. Every strategy builds
``datetime.date`` from integer year/month/day components, so a date-only value
is never read as UTC midnight and shifted by the local offset.
"""

from __future__ import annotations

import logging
from typing import TypeAlias
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from registry_search.common.common import split_tokens

logger = logging.getLogger(__name__)

DateStrategy: TypeAlias = Callable[[str], date | None]


@dataclass(frozen=True)
class ResolvedNameDate:
    """
    Form-ready name parts and birth date for one selected patient.

    :param given_name: First token of the full name.
    :param middle_name: Second token, only when there are three or more.
    :param family_name: Remaining tokens.
    :param birth_date: Parsed calendar date, or ``None`` if it could not be read.
    """

    given_name: str = ""
    middle_name: str = ""
    family_name: str = ""
    birth_date: date | None = None


def split_name(full_name: str | None) -> tuple[str, str, str]:
    """
    Split a full name into ``(given, middle, family)``.

    * 1 token: given only
    * 2 tokens: given and family
    * 3+ tokens: given, middle, and the rest joined as family
    """
    tokens = split_tokens(full_name)

    if not tokens:
        return "", "", ""
    if len(tokens) == 1:
        return tokens[0], "", ""
    if len(tokens) == 2:
        return tokens[0], "", tokens[1]
    return tokens[0], tokens[1], " ".join(tokens[2:])


def _from_parts(year: str, month: str, day: str) -> date | None:
    try:
        return date(int(year), int(month), int(day))
    except (ValueError, OverflowError):
        return None


def _ymd(text: str) -> date | None:
    parts = text.strip().split("-")
    if len(parts) != 3:
        return None
    return _from_parts(*parts)


def parse_iso_datetime(text: str) -> date | None:
    """``1990-05-02T00:00:00Z``: the date part before ``T``, offset ignored."""
    if "T" not in text:
        return None
    return _ymd(text.split("T", 1)[0])


def parse_iso_date(text: str) -> date | None:
    """``1990-05-02``."""
    if "-" not in text:
        return None
    return _ymd(text)


def parse_slash_dmy(text: str) -> date | None:
    """``31/12/1999``: day first, the registry's local convention."""
    if "/" not in text:
        return None
    parts = text.strip().split("/")
    if len(parts) != 3:
        return None
    day, month, year = parts
    return _from_parts(year, month, day)


_GENERIC_FORMATS = (
    "%Y%m%d",
    "%d.%m.%Y",
    "%Y.%m.%d",
    "%d %m %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)


def parse_generic(text: str) -> date | None:
    """Last resort: a handful of other common textual layouts."""
    cleaned = re.sub(r"\s+", " ", text.strip())
    for fmt in _GENERIC_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


DATE_STRATEGIES: tuple[tuple[str, DateStrategy], ...] = (
    ("iso-datetime", parse_iso_datetime),
    ("iso-date", parse_iso_date),
    ("slash-dmy", parse_slash_dmy),
    ("generic", parse_generic),
)


def parse_birth_date(value: date | str | None) -> date | None:
    """
    Parse a loosely formatted birth date without any timezone shift.

    A ``date`` is returned as-is (a ``datetime`` is reduced to its own date).
    Strings are tried against :data:`DATE_STRATEGIES` in order; the first
    strategy to produce a valid date wins.

    :param value: Date object or text as returned by the registry.
    :returns: The calendar date, or ``None`` when nothing matches. Never raises.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        return None

    text = str(value)
    for name, strategy in DATE_STRATEGIES:
        parsed = strategy(text)
        if parsed is not None:
            logger.debug("Parsed birth date %r with %s strategy", text, name)
            return parsed

    logger.warning("Invalid birth date received from registry: %r", text)
    return None


def resolve(
    full_name: str | None, birth_date_text: date | str | None
) -> ResolvedNameDate:
    """
    Resolve a registry name and birth date into form fields.

    :param full_name: Display name, e.g. ``"Ana Maria Lopez Garcia"``.
    :param birth_date_text: Birth date as returned by the registry.
    :returns: The split name and parsed date.
    """
    given, middle, family = split_name(full_name)
    return ResolvedNameDate(
        given_name=given,
        middle_name=middle,
        family_name=family,
        birth_date=parse_birth_date(birth_date_text),
    )
