"""
FastAPI application for nearest-bart.

Lifespan manages httpx client, location cache, and departures service.
Routes: /v1/departures, /v1/departures/summary, /v1/departures/table, /health.
Optional API key authentication on /v1/* endpoints.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional, Union

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Security
from fastapi.security import APIKeyHeader

from nearest_bart.bart_client import BARTClient
from nearest_bart.board import NearbyDeparturesService
from nearest_bart.config import AppConfig, load_config
from nearest_bart.location import QueryLocationProvider
from nearest_bart.location_cache import JsonFileStore, LocationCache
from nearest_bart.models import (
    NearbyDepartures,
    PipelineFailure,
    PipelineResult,
    SummaryView,
    TableView,
)
from nearest_bart.views import build_summary, build_table

logger = logging.getLogger(__name__)

# Global references set during lifespan
_departures_service: Optional[NearbyDeparturesService] = None
_config: Optional[AppConfig] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load config, create HTTP client, location cache, service."""
    global _departures_service, _config

    # Configure logging
    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    _config = load_config()
    logger.info(
        "Loaded config: border=%.1f mi, refresh=%d min, location_max_age=%s",
        _config.border_threshold_miles,
        _config.refresh_interval_minutes,
        _config.location_max_age,
    )

    async with httpx.AsyncClient() as http_client:
        bart = BARTClient(
            http_client=http_client,
            base_url=_config.bart_base_url,
            api_key=_config.bart_api_key,
            timeout=_config.request_timeout,
        )
        location_cache = LocationCache(
            JsonFileStore(_config.location_cache_path),
            max_age=_config.location_max_age,
        )
        _departures_service = NearbyDeparturesService(
            config=_config, bart_client=bart, location_cache=location_cache
        )
        logger.info("Nearest BART ready")
        yield

    _departures_service = None
    _config = None


app = FastAPI(
    title="Nearest BART API",
    version="1.0.0",
    description="""
Real-time BART departures from the station nearest to you, in the direction you care about.

## Features

- **Nearest station**: great-circle search over the live station list
- **Direction aware**: eastbound or westbound trains depending on which side of the bay you are on
- **Resilient**: falls back to your last known location when no fix is sent
- **Two views**: compact summary for widgets, detailed table for full screens

## Location

Pass `lat` and `lon` query parameters. Omit both to reuse the last known location.

## Authentication

Optional API key via `X-API-Key` header. The `/health` endpoint is always unauthenticated.
    """.strip(),
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "departures",
            "description": "Departures from the nearest station",
        },
        {
            "name": "health",
            "description": "Service health check",
        },
    ],
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> None:
    """Check API key if one is configured."""
    if _config is None or _config.api_key is None:
        return  # No auth configured
    if api_key != _config.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def _run_pipeline(
    lat: Optional[float] = Query(default=None, description="Current latitude"),
    lon: Optional[float] = Query(default=None, description="Current longitude"),
) -> PipelineResult:
    if _departures_service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return await _departures_service.get_nearby(QueryLocationProvider(lat, lon))


@app.get(
    "/health",
    tags=["health"],
    summary="Health check",
    response_description="Service is healthy",
)
async def health():
    """
    Health check endpoint for monitoring and Docker health checks.

    Always returns HTTP 200 with a simple JSON response.
    No authentication required.
    """
    return {"status": "healthy"}


@app.get(
    "/v1/departures",
    response_model=Union[NearbyDepartures, PipelineFailure],
    dependencies=[Depends(verify_api_key)],
    tags=["departures"],
    summary="Departures from the nearest station",
    response_description="Filtered departure board, or a tagged failure",
)
async def get_departures(result: PipelineResult = Depends(_run_pipeline)):
    """
    Resolve the nearest station and return its departures in your direction.

    `status` is `ok` with the board, or `error` with `kind` one of
    `no_location`, `upstream_unavailable` (with `stage`), `invalid_input`.
    """
    return result


@app.get(
    "/v1/departures/summary",
    response_model=SummaryView,
    dependencies=[Depends(verify_api_key)],
    tags=["departures"],
    summary="Compact summary view",
)
async def get_summary(result: PipelineResult = Depends(_run_pipeline)):
    """Next train per line with up to two following, sized for a widget."""
    reference_name = _config.reference_name if _config is not None else "SF"
    return build_summary(result, reference_name=reference_name)


@app.get(
    "/v1/departures/table",
    response_model=TableView,
    dependencies=[Depends(verify_api_key)],
    tags=["departures"],
    summary="Detailed table view",
)
async def get_table(result: PipelineResult = Depends(_run_pipeline)):
    """Station details and up to three trains per line."""
    refresh = _config.refresh_interval_minutes if _config is not None else 1
    reference_name = _config.reference_name if _config is not None else "SF"
    return build_table(
        result, refresh_interval_minutes=refresh, reference_name=reference_name
    )
