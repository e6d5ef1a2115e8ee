import logging
import uuid
from typing import Any, cast

import requests

from registry_search.cancellation import CancellationToken, SearchCancelled
from registry_search.query_builder import SearchRequest, build
from registry_search.result_mapper import PagedResult, parse

logger = logging.getLogger(__name__)


class ExternalServiceError(Exception):
    """
    Raised when the registry request fails.

    Wraps requests exceptions so callers are not coupled to requests exception
    types. Never raised for a cancelled search; see
    :class:`registry_search.cancellation.SearchCancelled`.
    """


class RegistryClient:
    """
    Simple client for the national registry's FHIR R4 patient search (GET /Patient).

    Usage:

        client = RegistryClient(base_url="https://registry.example/ws/fhir2/R4")

        page = client.search_patients(
            SearchRequest(given_name="Ana Maria", family_name="Lopez", page=2),
        )

        for patient in page.results:
            print(patient.full_name)
    """

    DEFAULT_URL = "/ws/fhir2/R4"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        *,
        auth_token: str | None = None,
        timeout: int = 10,
    ) -> None:
        """
        :param base_url: Base URL of the registry FHIR API. Trailing slashes are
            stripped.
        :param auth_token: Optional OAuth2 bearer token (without 'Bearer ' prefix)
        :param timeout: Default timeout in seconds for HTTP calls
        """
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.timeout = timeout

    def _build_headers(
        self,
        *,
        request_id: str | None = None,
        correlation_id: str | None = None,
    ) -> dict[str, str]:
        headers = {
            "Accept": "application/fhir+json",
            "X-Request-ID": request_id or str(uuid.uuid4()),
        }

        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        return headers

    def search_patients(
        self,
        request: SearchRequest,
        *,
        cancel_token: CancellationToken | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
        timeout: int | None = None,
    ) -> PagedResult:
        """
        Fetch one page of registry matches for ``request``.

        Criteria are not validated here; see
        :func:`registry_search.query_builder.validate_search_criteria`.

        :param request: Search fields and paging.
        :param cancel_token: Token checked before the call and again once the
            response arrives.
        :param request_id: Override X-Request-ID (otherwise auto-generated UUID)
        :param correlation_id: Optional X-Correlation-ID
        :param timeout: Per-call timeout (defaults to client-level timeout)
        :returns: The normalised page of results.
        :raises SearchCancelled: If the token was cancelled at either check.
        :raises ExternalServiceError: If the request fails or the body is not JSON.
        """
        token = cancel_token or CancellationToken()
        token.raise_if_cancelled()

        bundle = self._get_patient_bundle(
            request,
            token=token,
            request_id=request_id,
            correlation_id=correlation_id,
            timeout=timeout,
        )

        page = parse(bundle, limit=request.page_size)
        logger.info(
            "Registry search returned %d of %d matches (page %d)",
            len(page.results),
            page.total,
            request.page,
        )
        return page

    def _get_patient_bundle(
        self,
        request: SearchRequest,
        *,
        token: CancellationToken,
        request_id: str | None,
        correlation_id: str | None,
        timeout: int | None,
    ) -> dict[str, Any]:
        headers = self._build_headers(
            request_id=request_id,
            correlation_id=correlation_id,
        )

        url = f"{self.base_url}/Patient"

        try:
            response = requests.get(
                url,
                headers=headers,
                params=build(request),
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as err:
            if token.cancelled:
                raise SearchCancelled("Registry search was cancelled") from err
            logger.warning("Registry /Patient request failed: %s", err)
            raise ExternalServiceError(
                f"Registry /Patient request failed: {err}"
            ) from err

        # A late response for a superseded search is dropped, success or not.
        token.raise_if_cancelled()

        try:
            response.raise_for_status()
        except requests.HTTPError as err:
            logger.warning(
                "Registry /Patient returned %s %s",
                err.response.status_code,
                err.response.reason,
            )
            raise ExternalServiceError(
                f"Registry /Patient request failed: {err.response.status_code} "
                f"{err.response.reason}"
            ) from err

        try:
            body = response.json()
        except ValueError as err:
            raise ExternalServiceError(
                "Registry /Patient returned a body that is not JSON"
            ) from err

        return cast("dict[str, Any]", body)
