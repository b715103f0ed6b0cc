"""Tests for FastAPI endpoints (TestClient with mocked NearbyDeparturesService)."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from nearest_bart.config import AppConfig
from nearest_bart.location import QueryLocationProvider
from nearest_bart.models import (
    Coordinate,
    Departure,
    FailureKind,
    LineDirectionKey,
    LocationSource,
    NearbyDepartures,
    PipelineFailure,
    Stage,
    Station,
    TravelDirection,
)


NOW = datetime(2026, 10, 19, 15, 4, tzinfo=timezone(timedelta(hours=-7)))


def _make_departure(minutes=5):
    return Departure(
        destination="Richmond",
        destination_code="RICH",
        minutes=minutes,
        clock_time="3:09 PM",
        departs_at=NOW + timedelta(minutes=minutes),
        cars=8,
        raw_direction="North",
        key=LineDirectionKey.red_east,
    )


def _make_result():
    return NearbyDepartures(
        station=Station(
            code="12TH",
            name="12th St. Oakland City Center",
            address="1245 Broadway",
            location=Coordinate(latitude=37.803768, longitude=-122.271450),
        ),
        distance_km=0.4,
        direction=TravelDirection.eastbound,
        distance_from_reference_miles=8.3,
        board={LineDirectionKey.red_east: [_make_departure(5), _make_departure(20)]},
        location=Coordinate(latitude=37.80, longitude=-122.27),
        location_source=LocationSource.live,
        generated_at=NOW,
        next_refresh_at=NOW + timedelta(minutes=1),
    )


@pytest.fixture()
def mock_service():
    mock = AsyncMock()
    mock.get_nearby.return_value = _make_result()
    return mock


def _client_for(mock_service, api_key=None):
    import nearest_bart.app as app_module

    @asynccontextmanager
    async def noop_lifespan(app):
        yield

    original_lifespan = app_module.app.router.lifespan_context
    app_module.app.router.lifespan_context = noop_lifespan
    app_module._departures_service = mock_service
    app_module._config = AppConfig(api_key=api_key)
    try:
        with TestClient(app_module.app, raise_server_exceptions=False) as c:
            yield c
    finally:
        app_module._departures_service = None
        app_module._config = None
        app_module.app.router.lifespan_context = original_lifespan


@pytest.fixture()
def client(mock_service):
    """TestClient with mocked service and no auth."""
    yield from _client_for(mock_service)


@pytest.fixture()
def auth_client(mock_service):
    """TestClient with mocked service and API key auth enabled."""
    yield from _client_for(mock_service, api_key="test-secret")


class TestHealthEndpoint:
    def test_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_no_auth_needed(self, auth_client):
        resp = auth_client.get("/health")
        assert resp.status_code == 200


class TestDeparturesEndpoint:
    def test_returns_result(self, client):
        resp = client.get("/v1/departures", params={"lat": 37.80, "lon": -122.27})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["station"]["code"] == "12TH"
        assert data["direction"] == "Eastbound"
        assert data["location_source"] == "live"
        assert [d["minutes"] for d in data["board"]["RedE"]] == [5, 20]

    def test_passes_query_location(self, client, mock_service):
        client.get("/v1/departures", params={"lat": 37.80, "lon": -122.27})
        provider = mock_service.get_nearby.await_args.args[0]
        assert isinstance(provider, QueryLocationProvider)

    def test_failure_body(self, client, mock_service):
        mock_service.get_nearby.return_value = PipelineFailure(
            kind=FailureKind.upstream_unavailable, stage=Stage.directory, message="down"
        )
        resp = client.get("/v1/departures")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "error"
        assert data["kind"] == "upstream_unavailable"
        assert data["stage"] == "directory"

    def test_non_numeric_lat_rejected(self, client):
        resp = client.get("/v1/departures", params={"lat": "north", "lon": -122.27})
        assert resp.status_code == 422

    def test_not_ready(self, client):
        import nearest_bart.app as app_module

        app_module._departures_service = None
        resp = client.get("/v1/departures")
        assert resp.status_code == 503


class TestViewEndpoints:
    def test_summary(self, client):
        resp = client.get("/v1/departures/summary", params={"lat": 37.80, "lon": -122.27})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["departures"][0]["text"] == "Richmond: 5 min"
        assert data["departures"][0]["following"] == "+20"

    def test_summary_failure(self, client, mock_service):
        mock_service.get_nearby.return_value = PipelineFailure(
            kind=FailureKind.no_location, message="nothing"
        )
        data = client.get("/v1/departures/summary").json()
        assert data["status"] == "error"
        assert data["message"] == "Waiting for location"

    def test_table(self, client):
        resp = client.get("/v1/departures/table", params={"lat": 37.80, "lon": -122.27})
        assert resp.status_code == 200
        data = resp.json()
        assert data["sections"][0]["title"] == "Red Line (Eastbound)"
        assert data["sections"][0]["rows"][0] == ["Richmond", "5 min", "8 car", "North"]


class TestAuthentication:
    def test_rejects_without_key(self, auth_client):
        resp = auth_client.get("/v1/departures")
        assert resp.status_code == 401

    def test_rejects_wrong_key(self, auth_client):
        resp = auth_client.get("/v1/departures", headers={"X-API-Key": "wrong"})
        assert resp.status_code == 401

    def test_accepts_correct_key(self, auth_client):
        resp = auth_client.get("/v1/departures", headers={"X-API-Key": "test-secret"})
        assert resp.status_code == 200

    def test_views_require_key(self, auth_client):
        assert auth_client.get("/v1/departures/summary").status_code == 401
        assert auth_client.get("/v1/departures/table").status_code == 401

    def test_rejected_request_does_not_run_pipeline(self, auth_client, mock_service):
        auth_client.get("/v1/departures")
        mock_service.get_nearby.assert_not_awaited()
