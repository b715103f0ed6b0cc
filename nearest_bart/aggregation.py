"""
Departure aggregation.

No I/O. Turns per-destination ETD estimates into a DepartureBoard keyed by
canonical line + direction, each bucket ordered by departure time.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from nearest_bart.lines import line_direction_key
from nearest_bart.models import (
    Departure,
    DepartureBoard,
    DestinationEstimates,
    LineDirectionKey,
)

logger = logging.getLogger(__name__)


def format_clock_time(moment: datetime) -> str:
    """
    Format as a 12-hour clock time, e.g. "3:07 PM".

    Midnight is 12 AM and noon is 12 PM.
    """
    ampm = "PM" if moment.hour >= 12 else "AM"
    hours = moment.hour % 12 or 12
    return f"{hours}:{moment.minute:02d} {ampm}"


def empty_board() -> DepartureBoard:
    """A board with every canonical key present and no departures."""
    return {key: [] for key in LineDirectionKey}


def aggregate(etd: list[DestinationEstimates], now: datetime) -> DepartureBoard:
    """
    Bucket estimates by line + direction.

    Args:
        etd: Per-destination estimates for one station.
        now: Reference time; departs_at = now + minutes. Clock times are
             formatted in now's timezone.

    Returns:
        A board holding all eight keys. Estimates whose (destination,
        direction) pair is not in the line table are dropped.
    """
    board = empty_board()

    for destination in etd:
        for estimate in destination.estimates:
            key = line_direction_key(destination.destination_code, estimate.direction)
            if key is None:
                logger.debug(
                    "Dropping estimate for unmapped %s/%s",
                    destination.destination_code,
                    estimate.direction,
                )
                continue

            departs_at = now + timedelta(minutes=estimate.minutes)
            board[key].append(
                Departure(
                    destination=destination.destination_name,
                    destination_code=destination.destination_code,
                    minutes=estimate.minutes,
                    clock_time=format_clock_time(departs_at),
                    departs_at=departs_at,
                    cars=estimate.cars,
                    raw_direction=estimate.direction,
                    key=key,
                    platform=estimate.platform,
                )
            )

    # list.sort is stable, so equal times keep feed order
    for departures in board.values():
        departures.sort(key=lambda d: d.departs_at)

    return board
