"""
Search session for one registration form.

Holds the caller-visible state (current page of results and total count) and
makes sure only the most recent search can change it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace

from registry_search.cancellation import CancellationToken, SearchCancelled
from registry_search.prefill import RegistrationPrefill, prefill_from_summary
from registry_search.query_builder import (
    DEFAULT_PAGE_SIZE,
    SearchRequest,
    validate_search_criteria,
)
from registry_search.registry_client import RegistryClient
from registry_search.result_mapper import PagedResult, PatientSummary

logger = logging.getLogger(__name__)


class SearchSession:
    """
    Orchestrates validation -> registry search -> result state -> selection.

    Entry points:
        - ``search(request) -> PagedResult | None``
        - ``change_page(page, page_size) -> PagedResult | None``
        - ``select(patient_id) -> RegistrationPrefill``
        - ``cancel()``

    Starting a search cancels the one before it. A search that returns after it
    has been cancelled or superseded leaves ``results`` and ``total`` untouched.
    """

    def __init__(self, client: RegistryClient) -> None:
        self.client = client
        self.results: tuple[PatientSummary, ...] = ()
        self.total = 0
        self.page = 1
        self.page_size = DEFAULT_PAGE_SIZE

        self._lock = threading.Lock()
        self._token: CancellationToken | None = None
        self._last_request: SearchRequest | None = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._token is not None

    def search(self, request: SearchRequest) -> PagedResult | None:
        """
        Run a new search, replacing any search still in flight.

        :param request: Search fields and paging.
        :returns: The committed page, or ``None`` if this search was cancelled or
            superseded before it finished.
        :raises InvalidSearchCriteria: If the request has neither a DPI nor a given
            and family name. Raised before any network call.
        :raises ExternalServiceError: If the registry request fails.
        """
        validate_search_criteria(request)

        token = CancellationToken()
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = token
            self._last_request = request

        try:
            page = self.client.search_patients(request, cancel_token=token)
        except SearchCancelled:
            logger.debug("Discarding cancelled registry search (page %d)", request.page)
            return None
        finally:
            with self._lock:
                if self._token is token:
                    self._token = None

        with self._lock:
            if token.cancelled or self._last_request is not request:
                logger.debug("Discarding superseded registry search")
                return None
            self.results = page.results
            self.total = page.total
            self.page = request.page
            self.page_size = request.page_size

        if page.total == 0:
            logger.info("No patients matched the search criteria")
        return page

    def change_page(
        self, page: int, page_size: int | None = None
    ) -> PagedResult | None:
        """
        Re-run the last search for another page (or page size).

        :raises RuntimeError: If no search has been run yet.
        """
        with self._lock:
            last = self._last_request
        if last is None:
            raise RuntimeError("No search to paginate")

        return self.search(
            replace(last, page=page, page_size=page_size or last.page_size)
        )

    def cancel(self) -> None:
        """Abandon the search in flight, if any. Its result will be ignored."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()
                self._token = None

    def select(self, patient_id: str) -> RegistrationPrefill:
        """
        Build the form pre-fill for one of the currently shown results.

        :param patient_id: ``id`` of a result on the current page.
        :raises LookupError: If no result on the current page has that id.
        """
        for summary in self.results:
            if summary.id == patient_id:
                return prefill_from_summary(summary)
        raise LookupError(f"Patient {patient_id!r} is not on the current page")
