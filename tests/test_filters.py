"""Tests for filter predicates and LogFilter parsing."""

import pytest

from station_telemetry.filters import (
    LogFilter,
    filter_by_level,
    filter_by_search,
    filter_by_time_range,
    parse_category,
    parse_level,
)
from station_telemetry.models import LogCategory, LogEntry, LogLevel


def make_entry(level=LogLevel.INFO, category=LogCategory.API, page="Readings",
               message="Pump reading saved", timestamp="2024-01-15T10:30:00.000Z", data=None):
    return LogEntry(
        id="log_x",
        timestamp=timestamp,
        level=level,
        category=category,
        message=message,
        page=page,
        session_id="s",
        user_agent="ua",
        url="",
        data=data,
    )


class TestPredicates:
    def test_level_is_inclusive(self):
        assert filter_by_level(make_entry(level=LogLevel.WARN), LogLevel.WARN)
        assert filter_by_level(make_entry(level=LogLevel.CRITICAL), LogLevel.WARN)
        assert not filter_by_level(make_entry(level=LogLevel.INFO), LogLevel.WARN)

    def test_time_range_inclusive(self):
        entry = make_entry(timestamp="2024-01-15T10:30:00.000Z")
        assert filter_by_time_range(entry, "2024-01-15T10:30:00.000Z", "2024-01-15T10:30:00.000Z")
        assert not filter_by_time_range(entry, "2024-01-15T10:31:00.000Z", None)
        assert not filter_by_time_range(entry, None, "2024-01-15T10:29:59.999Z")

    def test_search_covers_message_page_and_data(self):
        entry = make_entry(data={"tank": "Diesel-2"})
        assert filter_by_search(entry, "PUMP")
        assert filter_by_search(entry, "readings")
        assert filter_by_search(entry, "diesel-2")
        assert not filter_by_search(entry, "unleaded")


class TestLogFilter:
    def test_empty_filter_matches_everything(self):
        assert LogFilter().build_predicate()(make_entry(level=LogLevel.DEBUG))

    def test_filters_compose_with_and(self):
        f = LogFilter(level=LogLevel.ERROR, category=LogCategory.API, page="Readings")
        pred = f.build_predicate()
        assert pred(make_entry(level=LogLevel.ERROR))
        assert not pred(make_entry(level=LogLevel.WARN))
        assert not pred(make_entry(level=LogLevel.ERROR, category=LogCategory.ERROR))
        assert not pred(make_entry(level=LogLevel.ERROR, page="Tanks"))

    def test_from_params(self):
        f = LogFilter.from_params({"level": "warn", "category": "api", "page": "Tanks", "search": ""})
        assert f.level is LogLevel.WARN
        assert f.category is LogCategory.API
        assert f.page == "Tanks"
        assert f.search is None

    def test_from_params_rejects_unknown_values(self):
        with pytest.raises(ValueError):
            LogFilter.from_params({"level": "LOUD"})
        with pytest.raises(ValueError):
            LogFilter.from_params({"category": "METRICS"})


class TestParsing:
    @pytest.mark.parametrize("value,expected", [
        ("DEBUG", LogLevel.DEBUG),
        ("warning", LogLevel.WARN),
        ("3", LogLevel.ERROR),
        (LogLevel.CRITICAL, LogLevel.CRITICAL),
    ])
    def test_parse_level(self, value, expected):
        assert parse_level(value) is expected

    def test_parse_category(self):
        assert parse_category("user_action") is LogCategory.USER_ACTION
