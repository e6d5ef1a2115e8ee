"""
Normalise a registry ``Patient`` search Bundle into a page of patient summaries.

The registry payload is treated as loosely typed: only ``entry[].resource`` and
``total`` are read, and any missing field degrades to an empty value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from fhir.bundle import Bundle

from registry_search.common.common import (
    ResultStructureDict,
    as_non_negative_int,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatientSummary:
    """
    One registry match, flattened for display and selection.

    :param id: Registry resource id.
    :param uuid: Logical identifier; the registry does not expose one separately,
        so this is the resource id.
    :param full_name: Given names followed by the family name.
    :param gender: Administrative gender exactly as returned.
    :param birth_date: Birth date text exactly as returned.
    """

    id: str
    uuid: str
    full_name: str
    gender: str
    birth_date: str

    def to_json(self) -> dict[str, str]:
        """Serialise with the camelCase keys the registration UI consumes."""
        return {
            "id": self.id,
            "uuid": self.uuid,
            "name": self.full_name,
            "gender": self.gender,
            "birthDate": self.birth_date,
        }


@dataclass(frozen=True)
class PagedResult:
    """
    One page of search results.

    :param results: Summaries in registry order; never longer than the page size.
    :param total: Registry-reported number of matches across all pages.
    """

    results: tuple[PatientSummary, ...] = ()
    total: int = 0

    def to_json(self) -> dict[str, Any]:
        return {
            "results": [summary.to_json() for summary in self.results],
            "total": self.total,
        }


EMPTY_RESULT = PagedResult()


def parse(
    raw: Bundle | ResultStructureDict | None, *, limit: int | None = None
) -> PagedResult:
    """
    Convert a FHIR searchset Bundle into a :class:`PagedResult`.

    With no entries the result is empty with ``total`` 0, whatever ``total`` the
    payload reports, so a non-zero count is never shown next to zero rows.

    :param raw: Decoded JSON body from ``GET /Patient``.
    :param limit: Requested page size. Entries beyond it are dropped.
    :returns: The normalised page.
    """
    if not isinstance(raw, dict):
        return EMPTY_RESULT

    entries = raw.get("entry")
    if not isinstance(entries, list) or not entries:
        return EMPTY_RESULT

    entries = cast("list[dict[str, Any]]", entries)
    if limit is not None and len(entries) > limit:
        logger.warning(
            "Registry returned %d entries for a page of %d; extra entries dropped",
            len(entries),
            limit,
        )
        entries = entries[:limit]

    results = tuple(_to_summary(entry) for entry in entries)

    total = as_non_negative_int(raw.get("total"))
    if total is None:
        # Registry left out the count; the page itself is the best we know.
        total = len(results)

    return PagedResult(results=results, total=total)


def format_full_name(name: dict[str, Any] | None) -> str:
    """
    Build a display name from a FHIR ``HumanName``.

    Given names are joined with single spaces and followed by the family name.
    Either part is skipped when absent.

    :param name: A ``HumanName`` dict, or ``None``.
    :returns: The full name, or ``""`` if nothing usable is present.
    """
    if not name:
        return ""

    given_list = cast("list[str]", name.get("given") or [])
    given = " ".join(str(part) for part in given_list)
    family = str(name.get("family") or "")

    return " ".join(segment for segment in (given, family) if segment)


def _to_summary(entry: dict[str, Any]) -> PatientSummary:
    resource = cast("dict[str, Any]", entry.get("resource") or {})

    patient_id = _text(resource.get("id"))

    names = cast("list[dict[str, Any]]", resource.get("name") or [])
    # First name entry is taken as the official one.
    full_name = format_full_name(names[0] if names else None)

    return PatientSummary(
        id=patient_id,
        uuid=patient_id,
        full_name=full_name,
        gender=_text(resource.get("gender")),
        birth_date=_text(resource.get("birthDate")),
    )


def _text(value: object) -> str:
    return "" if value is None else str(value)
