import logging
import os
from typing import Any

from flask import Flask, request

from registry_search.prefill import prefill_from_summary
from registry_search.query_builder import (
    DEFAULT_PAGE_SIZE,
    InvalidSearchCriteria,
    SearchRequest,
    validate_search_criteria,
)
from registry_search.registry_client import ExternalServiceError, RegistryClient
from registry_search.result_mapper import PatientSummary

logger = logging.getLogger(__name__)

app = Flask(__name__)


def get_app_host() -> str:
    host = os.getenv("FLASK_HOST")
    if host is None:
        raise RuntimeError("FLASK_HOST environment variable is not set.")
    return host


def get_app_port() -> int:
    port = os.getenv("FLASK_PORT")
    if port is None:
        raise RuntimeError("FLASK_PORT environment variable is not set.")
    return int(port)


def get_registry_timeout() -> int:
    raw = os.getenv("REGISTRY_TIMEOUT", "10")
    try:
        timeout = int(raw)
    except ValueError:
        timeout = 0
    if timeout < 1:
        raise RuntimeError(
            f"REGISTRY_TIMEOUT must be a positive number of seconds, got {raw!r}."
        )
    return timeout


def get_registry_client() -> RegistryClient:
    """Build a client from ``REGISTRY_*`` environment variables."""
    return RegistryClient(
        base_url=os.getenv("REGISTRY_BASE_URL", RegistryClient.DEFAULT_URL),
        auth_token=os.getenv("REGISTRY_AUTH_TOKEN") or None,
        timeout=get_registry_timeout(),
    )


def _error(status_code: int, message: str) -> tuple[dict[str, str], int]:
    return {"error": message}, status_code


def _positive_int_arg(name: str, default: int) -> int:
    raw = request.args.get(name, "").strip()
    if not raw:
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


@app.route("/patient-search", methods=["GET"])
def patient_search() -> tuple[dict[str, Any], int]:
    """Search the national registry with the registration form's fields."""
    try:
        search_request = SearchRequest.from_form(
            dpi=request.args.get("dpi"),
            first_name=request.args.get("firstName"),
            second_name=request.args.get("secondName"),
            family=request.args.get("family"),
            birthdate=request.args.get("birthdate"),
            page=_positive_int_arg("page", 1),
            page_size=_positive_int_arg("pageSize", DEFAULT_PAGE_SIZE),
        )
    except ValueError as err:
        return _error(400, f"Invalid paging parameters: {err}")

    try:
        validate_search_criteria(search_request)
    except InvalidSearchCriteria as err:
        return _error(400, str(err))

    client = get_registry_client()
    try:
        page = client.search_patients(
            search_request,
            correlation_id=request.headers.get("X-Correlation-ID"),
        )
    except ExternalServiceError as err:
        logger.warning("Patient search failed: %s", err)
        return _error(502, str(err))

    return page.to_json(), 200


@app.route("/patient-search/resolve", methods=["POST"])
def resolve_selected_patient() -> tuple[dict[str, Any], int]:
    """Turn one selected search result into registration form values."""
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        return _error(400, "Request body must be a JSON object")

    patient_id = str(data.get("id") or data.get("uuid") or "")
    summary = PatientSummary(
        id=patient_id,
        uuid=str(data.get("uuid") or patient_id),
        full_name=str(data.get("name") or ""),
        gender=str(data.get("gender") or ""),
        birth_date=str(data.get("birthDate") or ""),
    )
    return prefill_from_summary(summary).to_json(), 200


@app.route("/health", methods=["GET"])
def health_check() -> tuple[dict[str, Any], int]:
    """Health check endpoint."""
    return {"status": "healthy"}, 200


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    get_registry_timeout()
    app.run(host=get_app_host(), port=get_app_port())
