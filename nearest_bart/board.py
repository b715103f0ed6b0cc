"""
Nearby-departures service: orchestrates location, BART client, aggregation
and direction filtering.

One call runs the whole pipeline once and returns either NearbyDepartures or
a PipelineFailure. Nothing is retried; the caller's refresh schedule decides
when to run again.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from nearest_bart.aggregation import aggregate
from nearest_bart.bart_client import BARTClient, BARTError
from nearest_bart.config import AppConfig
from nearest_bart.geo import classify_direction, distance_from_reference
from nearest_bart.lines import validate_line_table
from nearest_bart.location import LocationProvider, LocationUnavailable
from nearest_bart.location_cache import LocationCache
from nearest_bart.models import (
    Coordinate,
    FailureKind,
    LocationSource,
    NearbyDepartures,
    PipelineFailure,
    PipelineResult,
    Stage,
)
from nearest_bart.selection import InvalidInputError, filter_by_direction, resolve_nearest_station

logger = logging.getLogger(__name__)


class NearbyDeparturesService:
    """
    Main service class. Produces a PipelineResult for one location request.

    The location cache is the only state kept between calls: written on
    every live fix, read only when the live fix fails.
    """

    def __init__(
        self,
        config: AppConfig,
        bart_client: BARTClient,
        location_cache: LocationCache,
    ) -> None:
        validate_line_table()
        self._config = config
        self._bart = bart_client
        self._location_cache = location_cache

    async def get_nearby(self, location: LocationProvider) -> PipelineResult:
        """Run the pipeline once for the given location provider."""
        # 1-2. Live fix, else cached fix
        try:
            acquired = await self._acquire_location(location)
        except InvalidInputError as exc:
            logger.warning("Invalid location: %s", exc)
            return PipelineFailure(kind=FailureKind.invalid_input, message=str(exc))
        if acquired is None:
            return PipelineFailure(
                kind=FailureKind.no_location,
                message="No live location and no cached location",
            )
        coordinate, source = acquired

        # 3. Nearest station
        try:
            stations = await self._bart.fetch_stations()
            nearest = resolve_nearest_station(coordinate, stations)
        except BARTError as exc:
            logger.warning("Station directory unavailable: %s", exc)
            return self._upstream_failure(Stage.directory, exc)
        except InvalidInputError as exc:
            logger.warning("Cannot resolve station: %s", exc)
            return PipelineFailure(kind=FailureKind.invalid_input, message=str(exc))

        # 4. Departures, filtered by where the user is, not where the station is
        now = self._now()
        try:
            etd = await self._bart.fetch_departures(nearest.station.code)
        except BARTError as exc:
            logger.warning("Departures unavailable for %s: %s", nearest.station.code, exc)
            return self._upstream_failure(Stage.departures, exc)

        board = filter_by_direction(
            aggregate(etd, now),
            coordinate,
            reference=self._config.reference_point,
            border_miles=self._config.border_threshold_miles,
        )

        # 5. Result
        direction = classify_direction(
            coordinate, self._config.reference_point, self._config.border_threshold_miles
        )
        logger.info(
            "Nearest station %s (%.2f km, %s location), %s, %d lines",
            nearest.station.code,
            nearest.distance_km,
            source.value,
            direction.value,
            len(board),
        )
        return NearbyDepartures(
            station=nearest.station,
            distance_km=nearest.distance_km,
            direction=direction,
            distance_from_reference_miles=distance_from_reference(
                coordinate, self._config.reference_point
            ),
            board=board,
            location=coordinate,
            location_source=source,
            generated_at=now,
            next_refresh_at=now + timedelta(minutes=self._config.refresh_interval_minutes),
        )

    async def _acquire_location(
        self, location: LocationProvider
    ) -> Optional[tuple[Coordinate, LocationSource]]:
        """
        Live fix first, cached fix as fallback.

        Returns None when neither is available. InvalidInputError from the
        provider propagates.
        """
        try:
            coordinate = await location.current()
        except LocationUnavailable as exc:
            logger.info("No live location (%s), trying cache", exc)
        else:
            try:
                await self._location_cache.store(coordinate)
            except OSError as exc:
                logger.warning("Could not cache location: %s", exc)
            return coordinate, LocationSource.live

        cached = await self._location_cache.load()
        if cached is None:
            logger.warning("No cached location to fall back on")
            return None
        logger.info("Using cached location captured at %s", cached.captured_at.isoformat())
        return cached.coordinate, LocationSource.cached

    def _now(self) -> datetime:
        return datetime.now(self._config.tz)

    @staticmethod
    def _upstream_failure(stage: Stage, exc: BARTError) -> PipelineFailure:
        return PipelineFailure(
            kind=FailureKind.upstream_unavailable,
            stage=stage,
            message=str(exc),
        )
