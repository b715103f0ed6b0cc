"""
Location providers.

A provider answers "where is the user right now?" or raises
LocationUnavailable when it has no fix.
"""

from __future__ import annotations

from typing import Optional, Protocol

from pydantic import ValidationError

from nearest_bart.models import Coordinate
from nearest_bart.selection import InvalidInputError


class LocationUnavailable(Exception):
    """Raised when no live location fix is available."""


class LocationProvider(Protocol):
    """
    Source of the live fix.

    current() must raise LocationUnavailable when there is no fix, whatever
    the cause (a timeout, say). Only that exception sends the pipeline to the
    cached location; anything else propagates.
    """

    async def current(self) -> Coordinate:
        ...


class QueryLocationProvider:
    """
    Live location supplied by the requesting client.

    Both values missing means the client has no fix. A half-specified or
    out-of-range coordinate is invalid input, not a missing fix.
    """

    def __init__(self, latitude: Optional[float], longitude: Optional[float]) -> None:
        self._latitude = latitude
        self._longitude = longitude

    async def current(self) -> Coordinate:
        if self._latitude is None and self._longitude is None:
            raise LocationUnavailable("Client sent no location")
        if self._latitude is None or self._longitude is None:
            raise InvalidInputError("Both lat and lon are required")
        try:
            return Coordinate(latitude=self._latitude, longitude=self._longitude)
        except ValidationError as exc:
            raise InvalidInputError(
                f"Invalid coordinate ({self._latitude}, {self._longitude})"
            ) from exc
