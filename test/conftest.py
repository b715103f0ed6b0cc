"""
Shared test fixtures for nearest-bart.

Provides:
- BART fixture data loaders
- Fake BART server for client and E2E tests
"""

import json
from pathlib import Path

import pytest
from pytest_httpserver import HTTPServer

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "bart"


# ---------------------------------------------------------------------------
# Fixture data loaders
# ---------------------------------------------------------------------------

def load_fixture(name: str) -> dict:
    """Load a JSON fixture from test/fixtures/bart/."""
    with open(FIXTURES_DIR / name) as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Fake BART server
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def fake_bart_server():
    """
    A real HTTP server that impersonates api.bart.gov.

    Serves fixture JSON responses. Tests configure what the server returns
    by clearing it and registering new expectations.
    """
    server = HTTPServer(host="127.0.0.1")
    server.expect_request("/stn.aspx").respond_with_json(load_fixture("stations.json"))
    server.expect_request("/etd.aspx").respond_with_json(load_fixture("etd_12th.json"))
    server.start()
    yield server
    server.clear()
    if server.is_running():
        server.stop()

