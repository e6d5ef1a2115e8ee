"""Pytest configuration and shared fixtures for registry search integration tests."""

import pytest
import requests
from flask import Flask
from flask.testing import FlaskClient
from registry_search.app import app as flask_app
from stubs.stub_registry import RegistryFhirApiStub


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch) -> Flask:
    """Create and configure a test instance of the Flask application."""
    monkeypatch.setenv("REGISTRY_BASE_URL", "http://registry.test/ws/fhir2/R4")
    flask_app.config.update(
        {
            "TESTING": True,
        }
    )

    return flask_app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def registry(monkeypatch: pytest.MonkeyPatch) -> RegistryFhirApiStub:
    """
    Serve every outbound ``requests.get`` from an in-memory registry.

    The stub starts empty; tests add the patients they need.
    """
    stub = RegistryFhirApiStub(strict_headers=True)
    stub.clear()
    monkeypatch.setattr(requests, "get", stub.get)
    return stub
