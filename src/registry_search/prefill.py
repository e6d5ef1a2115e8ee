"""
Registration form pre-fill from a selected registry match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from registry_search.name_date import resolve
from registry_search.result_mapper import PatientSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationPrefill:
    """
    Values handed to the registration form after the user picks a match.

    ``birthdate`` is ``None`` when the registry date could not be read; the form
    leaves that field for the user to complete.
    """

    given_name: str
    middle_name: str
    family_name: str
    gender: str
    birthdate: date | None
    patient_uuid: str

    def to_json(self) -> dict[str, Any]:
        return {
            "givenName": self.given_name,
            "middleName": self.middle_name,
            "familyName": self.family_name,
            "gender": self.gender,
            "birthdate": self.birthdate.isoformat() if self.birthdate else None,
            "patientUuid": self.patient_uuid,
        }


def prefill_from_summary(summary: PatientSummary) -> RegistrationPrefill:
    """
    Split the summary's name, parse its birth date and carry gender and uuid over.

    :param summary: The match the user selected.
    :returns: Form-ready values.
    """
    resolved = resolve(summary.full_name, summary.birth_date)

    if resolved.birth_date is None:
        logger.warning(
            "Could not set birth date for registry patient %s", summary.uuid or "?"
        )

    return RegistrationPrefill(
        given_name=resolved.given_name,
        middle_name=resolved.middle_name,
        family_name=resolved.family_name,
        gender=summary.gender or "",
        birthdate=resolved.birth_date,
        patient_uuid=summary.uuid or "",
    )
