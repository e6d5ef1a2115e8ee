"""Pytest configuration and shared fixtures for registry search tests."""

import time
from collections.abc import Generator
from typing import Any

import pytest
import requests
from fhir.bundle import Bundle
from stubs.stub_registry import RegistryFhirApiStub


@pytest.fixture
def single_patient_bundle() -> Bundle:
    return {
        "resourceType": "Bundle",
        "type": "searchset",
        "total": 1,
        "entry": [
            {
                "fullUrl": "urn:uuid:p1",
                "resource": {
                    "resourceType": "Patient",
                    "id": "p1",
                    "name": [{"given": ["Ana", "Maria"], "family": "Lopez"}],
                    "gender": "female",
                    "birthDate": "1990-05-02",
                },
            }
        ],
    }


@pytest.fixture
def stub() -> RegistryFhirApiStub:
    """
    Create a stub registry backend with strict header validation.

    :return: A :class:`stubs.stub_registry.RegistryFhirApiStub` holding the seeded
        patient ``p-0001`` (Ana Maria Lopez Garcia).
    """
    return RegistryFhirApiStub(strict_headers=True)


@pytest.fixture
def mock_requests_get(
    monkeypatch: pytest.MonkeyPatch, stub: RegistryFhirApiStub
) -> dict[str, Any]:
    """
    Patch ``requests.get`` so calls are routed into :meth:`RegistryFhirApiStub.get`.

    :return: A capture dictionary holding the most recent call details
        (url/headers/params/timeout).
    """
    capture: dict[str, Any] = {}

    def _fake_get(
        url: str,
        headers: dict[str, str] | None = None,
        params: Any = None,
        timeout: Any = None,
    ) -> requests.Response:
        capture["url"] = url
        capture["headers"] = dict(headers or {})
        capture["params"] = dict(params or {})
        capture["timeout"] = timeout
        return stub.get(url, headers=headers, params=params, timeout=timeout)

    monkeypatch.setattr(requests, "get", _fake_get)
    return capture


@pytest.fixture
def local_timezone(monkeypatch: pytest.MonkeyPatch) -> Generator[Any, None, None]:
    """
    Yield a setter that switches the process timezone for the rest of a test.

    The original timezone is restored afterwards.
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    def _set(tz_name: str) -> None:
        monkeypatch.setenv("TZ", tz_name)
        time.tzset()

    yield _set

    monkeypatch.undo()
    time.tzset()
