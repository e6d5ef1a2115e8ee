"""FHIR Identifier type (national ID / DPI lives here)."""

from typing import NotRequired, TypedDict


class Identifier(TypedDict):
    system: NotRequired[str]
    value: str
