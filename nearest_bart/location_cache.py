"""
Last-known-location cache backed by a small key-value store.

The only state that survives between pipeline runs. Reads never raise:
a missing, unreadable or corrupt entry is reported as no value.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from nearest_bart.models import CachedLocation, Coordinate

logger = logging.getLogger(__name__)

LAST_KNOWN_LOCATION = "lastKnownLocation"


class KeyValueStore(Protocol):
    """String key-value persistence."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class JsonFileStore:
    """
    Key-value store kept as one JSON object in a file.

    File I/O runs in a worker thread so callers can await it.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read)
        value = data.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        with open(self._path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self._path} does not hold an object")
        return data

    def _write(self, key: str, value: str) -> None:
        try:
            data = self._read()
        except (OSError, ValueError):
            data = {}
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f)
        tmp.replace(self._path)


class LocationCache:
    """
    Stores the last live coordinate with its capture time.

    - store(): overwrite with a new fix stamped now.
    - load(): last fix, or None if absent, unreadable, or older than max_age.
    """

    def __init__(self, store: KeyValueStore, max_age: Optional[float] = None) -> None:
        self._store = store
        self._max_age = max_age
        self._clock = time.time  # overridable for testing

    async def store(self, coordinate: Coordinate) -> None:
        payload = {
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
            "timestamp": int(self._clock() * 1000),
        }
        await self._store.set(LAST_KNOWN_LOCATION, json.dumps(payload))

    async def load(self) -> Optional[CachedLocation]:
        try:
            raw = await self._store.get(LAST_KNOWN_LOCATION)
        except (OSError, ValueError) as exc:
            logger.warning("Location cache unreadable: %s", exc)
            return None
        if raw is None:
            return None

        try:
            payload = json.loads(raw)
            cached = CachedLocation(
                coordinate=Coordinate(
                    latitude=payload["latitude"], longitude=payload["longitude"]
                ),
                captured_at_ms=payload["timestamp"],
            )
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            logger.warning("Discarding corrupt cached location: %s", exc)
            return None

        if self._max_age is not None:
            age = self._clock() - cached.captured_at_ms / 1000
            if age > self._max_age:
                logger.info("Cached location is %.0fs old, past max age %.0fs", age, self._max_age)
                return None
        return cached
