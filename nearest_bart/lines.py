"""
Static BART topology: which line and direction a (terminus, feed direction)
pair belongs to.

The ETD feed reports "North"/"South" per platform, but every line runs
logically east-west across the bay, so the feed direction is reinterpreted
per destination terminus.
"""

from __future__ import annotations

from typing import Optional

from nearest_bart.models import LineDirectionKey

K = LineDirectionKey

LINE_TABLE: dict[tuple[str, str], LineDirectionKey] = {
    # Yellow: Antioch / Pittsburg-Bay Point <-> SFO
    ("ANTC", "North"): K.yellow_east,
    ("ANTC", "South"): K.yellow_west,
    ("PITT", "North"): K.yellow_east,
    ("PITT", "South"): K.yellow_west,
    ("SFIA", "North"): K.yellow_east,
    ("SFIA", "South"): K.yellow_west,
    # Red: Richmond <-> Millbrae
    ("MLBR", "North"): K.red_east,
    ("MLBR", "South"): K.red_west,
    ("RICH", "North"): K.red_east,
    # Orange: Berryessa <-> Richmond
    ("RICH", "South"): K.orange_west,
    ("BERY", "North"): K.orange_west,
    # Green: Berryessa <-> Daly City
    ("BERY", "South"): K.green_east,
    ("DALY", "North"): K.green_east,
    ("DALY", "South"): K.green_west,
}

FEED_DIRECTIONS = ("North", "South")


def line_direction_key(destination_code: str, direction: str) -> Optional[LineDirectionKey]:
    """Look up the canonical key. Unknown pairs return None and are dropped."""
    return LINE_TABLE.get((destination_code, direction))


def validate_line_table(table: Optional[dict[tuple[str, str], LineDirectionKey]] = None) -> None:
    """
    Check the table is complete.

    Every known terminus must map both feed directions, and every value
    must be a LineDirectionKey. Not every key needs an entry. Raises
    ValueError otherwise.
    """
    if table is None:
        table = LINE_TABLE

    codes = {code for code, _ in table}
    missing = sorted(
        f"{code}/{direction}"
        for code in codes
        for direction in FEED_DIRECTIONS
        if (code, direction) not in table
    )
    if missing:
        raise ValueError(f"Line table missing entries: {', '.join(missing)}")

    unknown = sorted(
        f"{code}/{direction}"
        for (code, direction), key in table.items()
        if not isinstance(key, LineDirectionKey)
    )
    if unknown:
        raise ValueError(f"Line table entries with unknown keys: {', '.join(unknown)}")
