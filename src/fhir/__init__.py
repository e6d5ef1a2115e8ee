"""FHIR data types and resources consumed from the national registry."""

from fhir.bundle import Bundle, BundleEntry
from fhir.human_name import HumanName
from fhir.identifier import Identifier
from fhir.operation_outcome import OperationOutcome, OperationOutcomeIssue
from fhir.patient import Patient

__all__ = [
    "Bundle",
    "BundleEntry",
    "HumanName",
    "Identifier",
    "OperationOutcome",
    "OperationOutcomeIssue",
    "Patient",
]
