"""
Great-circle distance and the east/west side-of-the-bay heuristic.

Pure functions, no I/O.
"""

from __future__ import annotations

import math

from nearest_bart.models import Coordinate, TravelDirection

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_MILES = 3959.0

# San Francisco city centre
DEFAULT_REFERENCE_POINT = Coordinate(latitude=37.7749, longitude=-122.4194)
DEFAULT_BORDER_MILES = 7.0


def haversine_distance(
    a: Coordinate, b: Coordinate, radius: float = EARTH_RADIUS_KM
) -> float:
    """
    Great-circle distance between two points.

    The result is in the units of `radius` (kilometers by default).
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return radius * c


def distance_from_reference(
    point: Coordinate, reference: Coordinate = DEFAULT_REFERENCE_POINT
) -> float:
    """Miles from the reference point."""
    return haversine_distance(reference, point, radius=EARTH_RADIUS_MILES)


def classify_direction(
    point: Coordinate,
    reference: Coordinate = DEFAULT_REFERENCE_POINT,
    border_miles: float = DEFAULT_BORDER_MILES,
) -> TravelDirection:
    """
    Decide which travel direction matters at `point`.

    Inside the border radius is always westbound. Outside it, only longitude
    is compared, so points due north or south of the reference fall on
    whichever side their longitude puts them.
    """
    if distance_from_reference(point, reference) <= border_miles:
        return TravelDirection.westbound
    if point.longitude > reference.longitude:
        return TravelDirection.eastbound
    return TravelDirection.westbound
