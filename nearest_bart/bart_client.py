"""
Async BART legacy API client.

Thin wrapper around httpx. Fetches the station list and real-time
estimated departures, validating the JSON envelope of each.
Raises BARTError on failures.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from nearest_bart.models import Coordinate, DestinationEstimates, RawEstimate, Station

logger = logging.getLogger(__name__)

# Public demo key published by BART
DEMO_API_KEY = "MW9S-E7SL-26DU-VV8V"


class BARTError(Exception):
    """Raised when a BART API call fails or returns an unexpected shape."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Wire envelopes
# ---------------------------------------------------------------------------


class _StationItem(BaseModel):
    abbr: str
    name: str
    address: str = ""
    city: str = ""
    gtfs_latitude: float = Field(ge=-90, le=90)
    gtfs_longitude: float = Field(ge=-180, le=180)


class _StationList(BaseModel):
    station: list[_StationItem]


class _StationsRoot(BaseModel):
    stations: _StationList


class _StationsEnvelope(BaseModel):
    root: _StationsRoot


class _EstimateItem(BaseModel):
    minutes: int = Field(ge=0)
    direction: str
    length: int = 0
    platform: Optional[str] = None

    @field_validator("minutes", mode="before")
    @classmethod
    def leaving_is_zero(cls, value: Any) -> Any:
        # The feed sends "Leaving" instead of a number for boarding trains;
        # anything that is not a whole number is read the same way
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().isdecimal():
            return int(value.strip())
        return 0

    @field_validator("length", mode="before")
    @classmethod
    def blank_length_is_zero(cls, value: Any) -> Any:
        if value in ("", None):
            return 0
        return value


class _EtdItem(BaseModel):
    destination: str
    abbreviation: str
    estimate: list[_EstimateItem] = Field(default_factory=list)


class _EtdStation(BaseModel):
    abbr: str
    etd: Optional[list[_EtdItem]] = None


class _EtdMessage(BaseModel):
    warning: Optional[str] = None


class _EtdRoot(BaseModel):
    station: list[_EtdStation] = Field(min_length=1)
    # "" on normal replies, an object when BART has something to say
    message: Union[_EtdMessage, str, None] = None

    @property
    def warning(self) -> Optional[str]:
        if isinstance(self.message, _EtdMessage):
            return self.message.warning
        return None


class _EtdEnvelope(BaseModel):
    root: _EtdRoot


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class BARTClient:
    """Async client for the BART legacy (api.bart.gov) JSON API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.bart.gov/api",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key or DEMO_API_KEY
        self._timeout = timeout

    async def fetch_stations(self) -> list[Station]:
        """
        Fetch the full station directory.

        Raises BARTError on HTTP failures or if `root.stations.station`
        is missing or malformed.
        """
        body = await self._fetch("/stn.aspx", {"cmd": "stns"})
        try:
            envelope = _StationsEnvelope.model_validate(body)
        except ValidationError as exc:
            logger.error("Unexpected station list shape: %s", exc)
            raise BARTError(f"Malformed station list: {exc.error_count()} errors") from exc

        return [
            Station(
                code=item.abbr,
                name=item.name,
                address=item.address,
                city=item.city,
                location=Coordinate(
                    latitude=item.gtfs_latitude, longitude=item.gtfs_longitude
                ),
            )
            for item in envelope.root.stations.station
        ]

    async def fetch_departures(self, station_code: str) -> list[DestinationEstimates]:
        """
        Fetch estimated departures for one station.

        Returns an empty list when BART reports no service (no `etd`, with
        a `message.warning`). Raises BARTError on HTTP failures or if
        `root.station[0].etd` is otherwise missing or malformed.
        """
        body = await self._fetch("/etd.aspx", {"cmd": "etd", "orig": station_code})
        try:
            envelope = _EtdEnvelope.model_validate(body)
        except ValidationError as exc:
            logger.error("Unexpected ETD shape for %s: %s", station_code, exc)
            raise BARTError(f"Malformed departures for {station_code}: {exc.error_count()} errors") from exc

        station = envelope.root.station[0]
        if station.etd is None:
            if envelope.root.warning:
                logger.info("No departures from %s: %s", station_code, envelope.root.warning)
                return []
            raise BARTError(f"Malformed departures for {station_code}: missing etd")

        return [
            DestinationEstimates(
                destination_code=etd.abbreviation,
                destination_name=etd.destination,
                estimates=[
                    RawEstimate(
                        minutes=estimate.minutes,
                        direction=estimate.direction,
                        cars=estimate.length,
                        platform=estimate.platform,
                    )
                    for estimate in etd.estimate
                ],
            )
            for etd in station.etd
        ]

    async def _fetch(self, path: str, params: dict) -> Any:
        """Make an HTTP GET request to the BART API and return the decoded JSON."""
        url = f"{self._base_url}{path}"
        params = {**params, "key": self._api_key, "json": "y"}
        try:
            response = await self._http.get(url, params=params, timeout=self._timeout)
        except httpx.HTTPError as exc:
            logger.error("BART request failed: %s %s -> %s", "GET", url, exc)
            raise BARTError(f"Connection error: {exc}") from exc

        if response.status_code != 200:
            raise BARTError(
                f"BART returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise BARTError(f"BART returned invalid JSON: {exc}") from exc
