"""
Pure selection logic: nearest station and direction filtering.

No I/O. Takes already-fetched stations and an aggregated board.
"""

from __future__ import annotations

from typing import Sequence

from nearest_bart.geo import (
    DEFAULT_BORDER_MILES,
    DEFAULT_REFERENCE_POINT,
    EARTH_RADIUS_KM,
    classify_direction,
    haversine_distance,
)
from nearest_bart.models import (
    Coordinate,
    Departure,
    DepartureBoard,
    NearestStationResult,
    Station,
    TravelDirection,
)


class InvalidInputError(ValueError):
    """Raised for inputs the pipeline cannot work with (empty directory, bad coordinate)."""


def resolve_nearest_station(
    current: Coordinate, directory: Sequence[Station]
) -> NearestStationResult:
    """
    Find the station closest to `current`.

    Distances are haversine kilometers. On a tie the station listed first
    wins. Raises InvalidInputError for an empty directory.
    """
    if not directory:
        raise InvalidInputError("Station directory is empty")

    best = directory[0]
    best_distance = haversine_distance(current, best.location, radius=EARTH_RADIUS_KM)
    for station in directory[1:]:
        distance = haversine_distance(current, station.location, radius=EARTH_RADIUS_KM)
        if distance < best_distance:
            best = station
            best_distance = distance

    return NearestStationResult(station=best, distance_km=best_distance)


def filter_by_direction(
    board: DepartureBoard,
    user: Coordinate,
    reference: Coordinate = DEFAULT_REFERENCE_POINT,
    border_miles: float = DEFAULT_BORDER_MILES,
) -> DepartureBoard:
    """
    Keep only the buckets heading the way the user cares about.

    The retained departures are sorted together by time and regrouped, so
    keys come out in order of their soonest departure and each bucket stays
    time ordered. Keys with nothing left are omitted; an empty board is a
    valid "no service this way" result.
    """
    want_eastbound = classify_direction(user, reference, border_miles) == TravelDirection.eastbound

    retained: list[Departure] = []
    for key, departures in board.items():
        if key.is_eastbound == want_eastbound:
            retained.extend(departures)

    # Stable: ties keep per-key order, then key order
    retained.sort(key=lambda d: d.departs_at)

    filtered: DepartureBoard = {}
    for departure in retained:
        filtered.setdefault(departure.key, []).append(departure)
    return filtered
