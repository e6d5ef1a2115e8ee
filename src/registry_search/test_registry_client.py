"""
Unit tests for :mod:`registry_search.registry_client`.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import pytest
import requests
from stubs.stub_registry import RegistryFhirApiStub

from registry_search.cancellation import CancellationToken, SearchCancelled
from registry_search.query_builder import SearchRequest
from registry_search.registry_client import ExternalServiceError, RegistryClient
from registry_search.result_mapper import PagedResult

BASE_URL = "http://registry.test/ws/fhir2/R4/"


@pytest.fixture
def client() -> RegistryClient:
    return RegistryClient(
        base_url=BASE_URL,
        auth_token="test-token",  # noqa: S106  (test token hardcoded)
        timeout=7,
    )


def _seed_lopez_family(stub: RegistryFhirApiStub, count: int) -> None:
    stub.clear()
    for i in range(count):
        stub.upsert_patient(
            patient_id=f"p-{i:03d}",
            given=["Ana", f"N{i}"],
            family="Lopez",
            gender="female",
            birth_date="1990-05-02",
        )


def test_search_by_identifier_returns_seeded_patient(
    client: RegistryClient, mock_requests_get: dict[str, Any]
) -> None:
    result = client.search_patients(SearchRequest(identifier="1234567890101"))

    assert result.total == 1
    (patient,) = result.results
    assert patient.id == "p-0001"
    assert patient.uuid == "p-0001"
    assert patient.full_name == "Ana Maria Lopez Garcia"
    assert patient.gender == "female"
    assert patient.birth_date == "1990-05-02"


def test_request_uses_built_params_url_and_timeout(
    client: RegistryClient, mock_requests_get: dict[str, Any]
) -> None:
    client.search_patients(
        SearchRequest(
            identifier="1234567890101", given_name="Ignored", page=2, page_size=20
        )
    )

    assert mock_requests_get["url"] == "http://registry.test/ws/fhir2/R4/Patient"
    assert mock_requests_get["params"] == {
        "identifier": "1234567890101",
        "_count": "20",
        "_getpagesoffset": "20",
    }
    assert mock_requests_get["timeout"] == 7


def test_per_call_timeout_overrides_client_default(
    client: RegistryClient, mock_requests_get: dict[str, Any]
) -> None:
    client.search_patients(SearchRequest(identifier="1"), timeout=3)

    assert mock_requests_get["timeout"] == 3


def test_headers_are_sent(
    client: RegistryClient, mock_requests_get: dict[str, Any]
) -> None:
    client.search_patients(SearchRequest(identifier="1"), correlation_id="corr-1")

    headers = mock_requests_get["headers"]
    assert headers["Accept"] == "application/fhir+json"
    assert headers["Authorization"] == "Bearer test-token"
    assert headers["X-Correlation-ID"] == "corr-1"
    UUID(headers["X-Request-ID"])


def test_explicit_request_id_is_used(
    client: RegistryClient, mock_requests_get: dict[str, Any]
) -> None:
    request_id = "00000000-0000-4000-8000-000000000001"

    client.search_patients(SearchRequest(identifier="1"), request_id=request_id)

    assert mock_requests_get["headers"]["X-Request-ID"] == request_id


def test_authorization_header_omitted_without_token(
    mock_requests_get: dict[str, Any],
) -> None:
    RegistryClient(base_url=BASE_URL).search_patients(SearchRequest(identifier="1"))

    assert "Authorization" not in mock_requests_get["headers"]


def test_pages_walk_through_all_matches(
    client: RegistryClient,
    stub: RegistryFhirApiStub,
    mock_requests_get: dict[str, Any],
) -> None:
    _seed_lopez_family(stub, 25)

    pages = [
        client.search_patients(
            SearchRequest(given_name="Ana", family_name="Lopez", page=page)
        )
        for page in (1, 2, 3)
    ]

    assert [len(p.results) for p in pages] == [10, 10, 5]
    assert {p.total for p in pages} == {25}
    ids = [r.id for p in pages for r in p.results]
    assert ids == [f"p-{i:03d}" for i in range(25)]
    assert [call["_getpagesoffset"] for call in stub.calls] == ["0", "10", "20"]


def test_no_match_is_an_empty_result_not_an_error(
    client: RegistryClient, mock_requests_get: dict[str, Any]
) -> None:
    result = client.search_patients(SearchRequest(identifier="0000000000000"))

    assert result == PagedResult(results=(), total=0)


def test_http_error_is_wrapped(
    stub: RegistryFhirApiStub, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _get_without_request_id(url: str, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers"))
        headers.pop("X-Request-ID")
        return stub.get(url, headers=headers, **kwargs)

    monkeypatch.setattr(requests, "get", _get_without_request_id)

    with pytest.raises(ExternalServiceError) as exc_info:
        RegistryClient(base_url=BASE_URL).search_patients(SearchRequest(identifier="1"))

    assert "400" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, requests.HTTPError)


def test_unknown_path_is_an_external_error(
    client: RegistryClient, stub: RegistryFhirApiStub, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        requests, "get", lambda url, **kwargs: stub.get(url + "/extra", **kwargs)
    )

    with pytest.raises(ExternalServiceError, match="404 Not Found"):
        client.search_patients(SearchRequest(identifier="1"))


def test_transport_error_is_wrapped(
    client: RegistryClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _refuse(*args: Any, **kwargs: Any) -> requests.Response:
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "get", _refuse)

    with pytest.raises(ExternalServiceError, match="connection refused"):
        client.search_patients(SearchRequest(identifier="1"))


def test_non_json_body_is_an_external_error(
    client: RegistryClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    response = requests.Response()
    response.status_code = 200
    response._content = b"<html>maintenance</html>"  # noqa: SLF001
    monkeypatch.setattr(requests, "get", lambda *args, **kwargs: response)

    with pytest.raises(ExternalServiceError, match="not JSON"):
        client.search_patients(SearchRequest(identifier="1"))


class TestCancellation:
    def test_cancelled_before_call_never_hits_the_network(
        self,
        client: RegistryClient,
        stub: RegistryFhirApiStub,
        mock_requests_get: dict[str, Any],
    ) -> None:
        token = CancellationToken()
        token.cancel()

        with pytest.raises(SearchCancelled):
            client.search_patients(SearchRequest(identifier="1"), cancel_token=token)

        assert stub.calls == []

    def test_cancelled_while_in_flight_discards_response(
        self,
        client: RegistryClient,
        stub: RegistryFhirApiStub,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        token = CancellationToken()

        def _get_then_cancel(url: str, **kwargs: Any) -> requests.Response:
            response = stub.get(url, **kwargs)
            token.cancel()
            return response

        monkeypatch.setattr(requests, "get", _get_then_cancel)

        with pytest.raises(SearchCancelled):
            client.search_patients(
                SearchRequest(identifier="1234567890101"), cancel_token=token
            )

    def test_transport_error_after_cancel_is_reported_as_cancelled(
        self, client: RegistryClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        token = CancellationToken()

        def _cancel_then_fail(*args: Any, **kwargs: Any) -> requests.Response:
            token.cancel()
            raise requests.ConnectionError("connection reset")

        monkeypatch.setattr(requests, "get", _cancel_then_fail)

        with pytest.raises(SearchCancelled):
            client.search_patients(SearchRequest(identifier="1"), cancel_token=token)

    def test_cancelled_is_not_an_external_service_error(self) -> None:
        assert not issubclass(SearchCancelled, ExternalServiceError)
        assert not issubclass(ExternalServiceError, SearchCancelled)
