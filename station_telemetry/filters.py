"""Filter predicates for log entries: level, category, page, time range, search."""

import json
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from station_telemetry.models import LogCategory, LogEntry, LogLevel


def filter_by_level(entry: LogEntry, level: LogLevel) -> bool:
    """True if entry is at least as severe as ``level``."""
    return entry.level >= level


def filter_by_category(entry: LogEntry, category: LogCategory) -> bool:
    return entry.category == category


def filter_by_page(entry: LogEntry, page: str) -> bool:
    return entry.page == page


def filter_by_time_range(
    entry: LogEntry, start_time: Optional[str], end_time: Optional[str]
) -> bool:
    """True if the entry timestamp falls within [start_time, end_time].

    Both bounds are ISO strings in the entry timestamp format and compared
    lexically.
    """
    if start_time and entry.timestamp < start_time:
        return False
    if end_time and entry.timestamp > end_time:
        return False
    return True


def filter_by_search(entry: LogEntry, keyword: str) -> bool:
    """Case-insensitive match against message, page and the serialised data."""
    keyword = keyword.lower()
    if keyword in entry.message.lower() or keyword in entry.page.lower():
        return True
    data = json.dumps(entry.data if entry.data is not None else {}, default=str)
    return keyword in data.lower()


def parse_level(value) -> LogLevel:
    """Accept a LogLevel, an ordinal, or a level name (``WARN``/``warning``)."""
    if isinstance(value, LogLevel):
        return value
    text = str(value).strip()
    if text.isdigit():
        return LogLevel(int(text))
    name = text.upper()
    if name == "WARNING":
        name = "WARN"
    try:
        return LogLevel[name]
    except KeyError:
        raise ValueError(f"Unknown log level: {value!r}") from None


def parse_category(value) -> LogCategory:
    if isinstance(value, LogCategory):
        return value
    try:
        return LogCategory(str(value).strip().upper())
    except ValueError:
        raise ValueError(f"Unknown log category: {value!r}") from None


@dataclass
class LogFilter:
    level: Optional[LogLevel] = None
    category: Optional[LogCategory] = None
    page: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    search: Optional[str] = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "LogFilter":
        """Build a filter from query-string style values. Raises ValueError."""
        level = params.get("level")
        category = params.get("category")
        return cls(
            level=parse_level(level) if level not in (None, "") else None,
            category=parse_category(category) if category else None,
            page=params.get("page") or None,
            start_time=params.get("start_time") or None,
            end_time=params.get("end_time") or None,
            search=params.get("search") or None,
        )

    def build_predicate(self) -> Callable[[LogEntry], bool]:
        """Return a function that ANDs all active predicates together."""
        predicates = []

        if self.level is not None:
            level = self.level
            predicates.append(lambda entry, l=level: filter_by_level(entry, l))

        if self.category is not None:
            category = self.category
            predicates.append(lambda entry, c=category: filter_by_category(entry, c))

        if self.page:
            page = self.page
            predicates.append(lambda entry, p=page: filter_by_page(entry, p))

        if self.start_time or self.end_time:
            start, end = self.start_time, self.end_time
            predicates.append(
                lambda entry, s=start, e=end: filter_by_time_range(entry, s, e)
            )

        if self.search:
            keyword = self.search
            predicates.append(lambda entry, k=keyword: filter_by_search(entry, k))

        def combined(entry: LogEntry) -> bool:
            return all(p(entry) for p in predicates)

        return combined
