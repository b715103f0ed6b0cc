"""
Presentation data for the compact summary and the detailed table.

Both views read only the pipeline result; every failure kind gets its own
human-readable state.
"""

from __future__ import annotations

from nearest_bart.aggregation import format_clock_time
from nearest_bart.models import (
    Departure,
    FailureKind,
    NearbyDepartures,
    PipelineFailure,
    PipelineResult,
    SummaryLine,
    SummaryView,
    TableSection,
    TableView,
)

HEADER = "Nearest BART Station"

FAILURE_MESSAGES = {
    FailureKind.no_location: "Waiting for location",
    FailureKind.upstream_unavailable: "Service error - check connectivity or API key",
    FailureKind.invalid_input: "Invalid location",
}

EAST_INDICATOR = "→●"
WEST_INDICATOR = "●←"


def minutes_label(departure: Departure) -> str:
    """'Leaving' for a boarding train, else 'N min'."""
    if departure.arriving:
        return "Leaving"
    return f"{departure.minutes} min"


def failure_message(failure: PipelineFailure) -> str:
    return FAILURE_MESSAGES[failure.kind]


def _direction_text(result: NearbyDepartures, reference_name: str) -> str:
    return (
        f"{result.direction.value} "
        f"({result.distance_from_reference_miles:.1f} mi from {reference_name})"
    )


def _no_trains_text(result: NearbyDepartures) -> str:
    return f"No {result.direction.value.lower()} trains at this time"


def build_summary(result: PipelineResult, reference_name: str = "SF") -> SummaryView:
    """Widget-sized view: next train per line plus up to two more."""
    if isinstance(result, PipelineFailure):
        return SummaryView(status="error", header=HEADER, message=failure_message(result))

    departures = []
    for key, trains in result.board.items():
        if not trains:
            continue
        first = trains[0]
        following = None
        if len(trains) > 1:
            following = "+" + ", ".join(
                str(t.minutes) if not t.arriving else "Leaving" for t in trains[1:3]
            )
        departures.append(
            SummaryLine(
                key=key,
                indicator=EAST_INDICATOR if key.is_eastbound else WEST_INDICATOR,
                text=f"{first.destination}: {minutes_label(first)}",
                following=following,
            )
        )

    return SummaryView(
        status="ok",
        header=HEADER,
        lines=[
            result.station.name,
            f"{result.distance_km:.1f} km away",
            _direction_text(result, reference_name),
        ],
        departures=departures,
        message=None if departures else _no_trains_text(result),
        footer=(
            f"Updated {format_clock_time(result.generated_at)} "
            f"(next: {format_clock_time(result.next_refresh_at)})"
        ),
    )


def build_table(
    result: PipelineResult,
    refresh_interval_minutes: int = 1,
    reference_name: str = "SF",
) -> TableView:
    """Detailed view: station info rows, then up to three trains per line."""
    if isinstance(result, PipelineFailure):
        return TableView(status="error", header=HEADER, message=failure_message(result))

    rows = [
        [result.station.name, f"{result.distance_km:.1f} km"],
        [result.station.address],
        [_direction_text(result, reference_name)],
        [
            f"Last Updated: {format_clock_time(result.generated_at)}\n"
            f"Next update in {refresh_interval_minutes} minutes "
            f"({format_clock_time(result.next_refresh_at)})"
        ],
    ]

    sections = []
    for key, trains in result.board.items():
        if not trains:
            continue
        sections.append(
            TableSection(
                title=f"{key.line.value} Line ({key.direction.value})",
                rows=[
                    [t.destination, minutes_label(t), f"{t.cars} car", t.raw_direction]
                    for t in trains[:3]
                ],
            )
        )

    return TableView(
        status="ok",
        header=HEADER,
        rows=rows,
        sections=sections,
        message=None if sections else _no_trains_text(result),
    )
