"""
Translate a registry search request into FHIR ``GET /Patient`` query parameters.

A national ID (DPI) search always wins: when an identifier is supplied the
name and birth date fields are dropped rather than combined with it.
"""

from __future__ import annotations

import logging
from typing import TypeAlias
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType

from registry_search.common.common import clean_text

logger = logging.getLogger(__name__)

OutboundQuery: TypeAlias = Mapping[str, str]

DEFAULT_PAGE_SIZE = 10


@dataclass
class InvalidSearchCriteria(Exception):
    """
    Raised by :func:`validate_search_criteria` when a request cannot be searched.

    The query builder itself never raises this; callers check criteria before
    any network call and show ``message`` to the user.

    :param message: Human-readable validation message.
    """

    message: str = "Please provide a DPI, or at least a first name and first surname."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class SearchRequest:
    """
    Structured search fields entered by the user, plus the page to fetch.

    :param identifier: National ID (DPI). Takes precedence over everything else.
    :param given_name: Given name(s), space separated.
    :param family_name: Family name(s).
    :param birth_date: Birth date as ``YYYY-MM-DD``.
    :param page: 1-based page number.
    :param page_size: Number of results per page.
    """

    identifier: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    birth_date: str | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")

    @property
    def offset(self) -> int:
        """0-based index of the first result on this page."""
        return (self.page - 1) * self.page_size

    @classmethod
    def from_form(
        cls,
        *,
        dpi: str | None = None,
        first_name: str | None = None,
        second_name: str | None = None,
        family: str | None = None,
        birthdate: date | str | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> SearchRequest:
        """
        Build a request from the registration form's search fields.

        The form has separate first and second given-name inputs; the registry
        takes a single ``given`` value, so the two are joined with a space.

        A ``date`` birthdate is formatted from its own year/month/day, never via
        a UTC conversion, so the search day matches the day picked.
        """
        given = " ".join(
            part for part in (clean_text(first_name), clean_text(second_name)) if part
        )
        if isinstance(birthdate, datetime):
            birthdate = birthdate.date()
        if isinstance(birthdate, date):
            birth_date = birthdate.isoformat()
        else:
            birth_date = clean_text(birthdate)

        return cls(
            identifier=clean_text(dpi),
            given_name=given,
            family_name=clean_text(family),
            birth_date=birth_date,
            page=page,
            page_size=page_size,
        )


def validate_search_criteria(request: SearchRequest) -> None:
    """
    Check that a request names a patient precisely enough to search for.

    A request is searchable when it has a DPI, or both a given and a family name.

    :param request: The request about to be sent.
    :raises InvalidSearchCriteria: If neither condition holds.
    """
    if clean_text(request.identifier):
        return
    if clean_text(request.given_name) and clean_text(request.family_name):
        return
    raise InvalidSearchCriteria()


def build(request: SearchRequest) -> OutboundQuery:
    """
    Map a :class:`SearchRequest` to the registry's query parameters.

    * ``identifier`` only, when a DPI is present;
    * otherwise ``given``, ``family`` and ``birthdate``, each only when non-empty;
    * always ``_count`` and ``_getpagesoffset``.

    :param request: Search fields and paging.
    :returns: A read-only, ordered parameter mapping suitable for
        ``requests.get(params=...)``.
    """
    params: dict[str, str] = {}

    identifier = _supplied(request.identifier)
    if identifier:
        params["identifier"] = identifier
    else:
        given = _supplied(request.given_name)
        family = _supplied(request.family_name)
        birth_date = _supplied(request.birth_date)
        if given:
            params["given"] = given
        if family:
            params["family"] = family
        if birth_date:
            params["birthdate"] = birth_date

    params["_count"] = str(request.page_size)
    params["_getpagesoffset"] = str(request.offset)

    logger.debug(
        "Built registry query: keys=%s page=%d offset=%d",
        list(params),
        request.page,
        request.offset,
    )
    return MappingProxyType(params)


def _supplied(value: str | None) -> str:
    # Blank counts as absent; anything else is sent exactly as given.
    if value and value.strip():
        return value
    return ""
