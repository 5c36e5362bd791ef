"""Export formatters: pretty JSON and RFC-4180 CSV."""

import csv
import io
import json
from datetime import date
from typing import Callable, Iterable, Optional

from station_telemetry.models import LogEntry

CSV_HEADER = ["Timestamp", "Level", "Category", "Page", "Message", "Data"]


def format_json(entries: Iterable[LogEntry]) -> str:
    """Return the full entry list as an indented JSON array."""
    return json.dumps([e.to_dict() for e in entries], indent=2, default=str)


def format_csv(entries: Iterable[LogEntry]) -> str:
    """Return a header row plus one row per entry.

    Fields containing delimiters, quotes or newlines are quoted, so a CSV
    reader always recovers exactly one record per entry.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for e in entries:
        writer.writerow([
            e.timestamp,
            e.level.name,
            e.category.value,
            e.page,
            e.message,
            json.dumps(e.data if e.data is not None else {}, default=str),
        ])
    return buf.getvalue().rstrip("\n")


_FORMATTERS = {
    "json": format_json,
    "csv": format_csv,
}


def get_formatter(fmt: str = "json") -> Callable[[Iterable[LogEntry]], str]:
    try:
        return _FORMATTERS[fmt.lower()]
    except KeyError:
        raise ValueError(f"Unsupported export format: {fmt!r}") from None


def export_filename(fmt: str, day: Optional[date] = None) -> str:
    """Download name used by the viewer, e.g. ``logs_2024-01-15.csv``."""
    if day is None:
        day = date.today()
    return f"logs_{day.isoformat()}.{fmt.lower()}"
