# tests/conftest.py

import sys
import os
import pytest

# This adds the service root (one level up from tests/) to the path globally for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# --- Environment Configuration ---
def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated, no network).")
    config.addinivalue_line(
        "markers",
        "integration: Route-level tests through the Flask test client with mocked upstreams.",
    )

def pytest_collection_modifyitems(config, items):
    # auto-tag tests by folder so `-m unit|integration` works consistently
    for item in items:
        path = str(item.fspath)
        if f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)
        elif f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)

# -------------------------------------------------------------------
# Flask app and client fixtures
# -------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    from app import app as flask_app
    flask_app.config["TESTING"] = True
    yield flask_app

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def api_key_env(monkeypatch):
    monkeypatch.setenv("INTRINIO_API_KEY", "test_key")
    yield "test_key"
