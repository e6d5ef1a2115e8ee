"""FHIR HumanName type."""

from typing import NotRequired, TypedDict


class HumanName(TypedDict):
    use: NotRequired[str]
    family: NotRequired[str]
    given: NotRequired[list[str]]
