"""
In-memory national registry FHIR R4 stub.

The stub does **not** implement a full FHIR search, nor FHIR validation. It serves
``GET /Patient`` with the parameters the registry search client sends.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from fhir.operation_outcome import OperationOutcome
from requests import Response
from requests.structures import CaseInsensitiveDict

NATIONAL_ID_SYSTEM = "urn:gt:renap:dpi"


@dataclass(frozen=True)
class StubResponse:
    """
    Minimal response object returned by :class:`RegistryFhirApiStub`.

    :param status_code: HTTP-like status code for the response.
    :param headers: HTTP-like response headers.
    :param json: Parsed JSON response body.
    """

    status_code: int
    headers: dict[str, str]
    json: dict[str, Any]


def _create_response(
    status_code: int,
    headers: dict[str, str],
    content: bytes,
    reason: str = "",
) -> Response:
    """
    Create a :class:`requests.Response` object for the stub.
    """
    response = Response()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers)
    response._content = content  # noqa: SLF001
    response.reason = reason
    response.encoding = "utf-8"
    return response


class RegistryFhirApiStub:
    """
    Minimal in-memory stub for the registry FHIR API, implementing only
    ``GET /Patient`` as a paged searchset.

    Supported parameters:

    * ``identifier`` - exact match on any ``Patient.identifier[].value``
    * ``given`` - case-insensitive prefix of the joined given names
    * ``family`` - case-insensitive prefix of the family name
    * ``birthdate`` - exact ``YYYY-MM-DD`` match
    * ``_count`` / ``_getpagesoffset`` - page size and 0-based offset

    ``X-Request-ID`` is echoed back as ``X-Request-Id`` (must be a UUID in
    strict mode). ``X-Correlation-ID`` is echoed back if supplied.
    """

    def __init__(self, strict_headers: bool = True) -> None:
        """
        :param strict_headers: If ``True``, enforce presence and UUID format of
            ``X-Request-ID``.
        """
        self.strict_headers = strict_headers

        # Insertion-ordered store: patient id -> Patient resource
        self._patients: dict[str, dict[str, Any]] = {}
        # Query parameters of every search served, oldest first
        self.calls: list[dict[str, str]] = []

        # Seed one deterministic example. Tests may overwrite or clear it.
        self.upsert_patient(
            patient_id="p-0001",
            dpi="1234567890101",
            given=["Ana", "Maria"],
            family="Lopez Garcia",
            gender="female",
            birth_date="1990-05-02",
        )

    # ---------------------------
    # Public API for tests
    # ---------------------------

    def clear(self) -> None:
        self._patients.clear()

    def upsert_patient(
        self,
        patient_id: str,
        *,
        dpi: str | None = None,
        given: list[str] | None = None,
        family: str | None = None,
        gender: str | None = None,
        birth_date: str | None = None,
        patient: dict[str, Any] | None = None,
    ) -> None:
        """
        Insert or replace a patient record in the stub store.

        Either pass a raw ``patient`` resource (stored as-is apart from ``id``), or
        the individual fields to build a typical one.
        """
        if patient is None:
            patient = {"resourceType": "Patient"}
            if dpi:
                patient["identifier"] = [{"system": NATIONAL_ID_SYSTEM, "value": dpi}]
            if given or family:
                name: dict[str, Any] = {"use": "official"}
                if given:
                    name["given"] = list(given)
                if family:
                    name["family"] = family
                patient["name"] = [name]
            if gender:
                patient["gender"] = gender
            if birth_date:
                patient["birthDate"] = birth_date

        patient["id"] = patient_id
        self._patients[patient_id] = patient

    def search_patients(
        self,
        params: Mapping[str, str] | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
        authorization: str | None = None,  # noqa: ARG002 (ignored in stub)
    ) -> StubResponse:
        """
        Implements ``GET /Patient``.

        :return: ``200`` with a searchset Bundle, or ``400`` with an
            OperationOutcome for header or paging problems.
        """
        params = dict(params or {})
        self.calls.append(params)
        headers_out: dict[str, str] = {}

        if self.strict_headers:
            if not request_id:
                return self._bad_request("Missing X-Request-ID", headers_out)
            if not self._is_uuid(request_id):
                return self._bad_request(
                    "Invalid X-Request-ID (must be a UUID)", headers_out
                )

        if request_id:
            headers_out["X-Request-Id"] = request_id
        if correlation_id:
            headers_out["X-Correlation-Id"] = correlation_id

        try:
            count = int(params.get("_count", "10"))
            offset = int(params.get("_getpagesoffset", "0"))
        except ValueError:
            return self._bad_request("Invalid paging parameters", headers_out)
        if count < 1 or offset < 0:
            return self._bad_request("Invalid paging parameters", headers_out)

        matches = [p for p in self._patients.values() if self._matches(p, params)]
        page = matches[offset : offset + count]

        bundle: dict[str, Any] = {
            "resourceType": "Bundle",
            "id": str(uuid.uuid4()),
            "type": "searchset",
            "total": len(matches),
        }
        # Like many FHIR servers, an empty page carries no "entry" key at all.
        if page:
            bundle["entry"] = [
                {"fullUrl": f"urn:uuid:{p['id']}", "resource": p} for p in page
            ]

        return StubResponse(status_code=200, headers=headers_out, json=bundle)

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        timeout: int | None = None,  # noqa: ARG002 (ignored in stub)
    ) -> Response:
        """
        Convenience method matching requests.get signature for easy monkeypatching.

        :param url: Request URL; must end in ``/Patient``.
        :param headers: Request headers.
        :param params: Query parameters.
        :param timeout: Timeout value.
        :return: A :class:`requests.Response`.
        """
        headers = headers or {}
        if not url.rstrip("/").endswith("/Patient"):
            return _create_response(
                status_code=404,
                headers={"Content-Type": "application/fhir+json"},
                content=json.dumps(
                    self._bad_request(f"Unknown path: {url}", {}).json
                ).encode("utf-8"),
                reason="Not Found",
            )

        stub_resp = self.search_patients(
            params=params,
            request_id=headers.get("X-Request-ID"),
            correlation_id=headers.get("X-Correlation-ID"),
            authorization=headers.get("Authorization"),
        )
        return _create_response(
            status_code=stub_resp.status_code,
            headers={**stub_resp.headers, "Content-Type": "application/fhir+json"},
            content=json.dumps(stub_resp.json).encode("utf-8"),
            reason="OK" if stub_resp.status_code == 200 else "Bad Request",
        )

    # ---------------------------
    # Internal helpers
    # ---------------------------

    @staticmethod
    def _matches(patient: dict[str, Any], params: dict[str, str]) -> bool:
        identifier = params.get("identifier")
        if identifier is not None:
            values = [i.get("value") for i in patient.get("identifier", [])]
            return identifier in values

        names = patient.get("name") or [{}]
        name = names[0]
        given = " ".join(name.get("given", [])).casefold()
        family = str(name.get("family", "")).casefold()

        if "given" in params and not given.startswith(params["given"].casefold()):
            return False
        if "family" in params and not family.startswith(params["family"].casefold()):
            return False
        if "birthdate" in params and patient.get("birthDate") != params["birthdate"]:
            return False
        return True

    @staticmethod
    def _is_uuid(value: str) -> bool:
        try:
            uuid.UUID(value)
            return True
        except ValueError:
            return False

    @staticmethod
    def _bad_request(message: str, headers: dict[str, str]) -> StubResponse:
        body: OperationOutcome = {
            "resourceType": "OperationOutcome",
            "issue": [
                {
                    "severity": "error",
                    "code": "invalid",
                    "diagnostics": message,
                }
            ],
        }
        return StubResponse(status_code=400, headers=dict(headers), json=dict(body))
