"""
Client-side adapter for searching the national patient registry (FHIR R4).

Pure entry points:
    - :func:`registry_search.query_builder.build`
    - :func:`registry_search.result_mapper.parse`
    - :func:`registry_search.name_date.resolve`
"""

from registry_search.name_date import ResolvedNameDate, resolve
from registry_search.query_builder import SearchRequest, build
from registry_search.result_mapper import PagedResult, PatientSummary, parse

__all__ = [
    "PagedResult",
    "PatientSummary",
    "ResolvedNameDate",
    "SearchRequest",
    "build",
    "parse",
    "resolve",
]
