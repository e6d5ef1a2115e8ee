"""FHIR Bundle resource (searchset subset)."""

from typing import NotRequired, TypedDict

from fhir.patient import Patient


class BundleEntry(TypedDict):
    fullUrl: NotRequired[str]
    resource: NotRequired[Patient]


class Bundle(TypedDict):
    resourceType: NotRequired[str]
    id: NotRequired[str]
    type: NotRequired[str]
    total: NotRequired[int]
    entry: NotRequired[list[BundleEntry]]
