"""Tests for JSON and CSV export."""

import csv
import io
import json
from datetime import date

import pytest

from station_telemetry.exporter import CSV_HEADER, export_filename, get_formatter
from station_telemetry.models import LogEntry


def _populate(event_logger):
    event_logger.set_current_page("Payments")
    event_logger.info("Payment recorded", {"client": "Acme Haulage", "amount": 150.0})
    event_logger.user_action("Exported report")
    event_logger.error("Payment failed", {"reason": 'card "declined", retry later'})
    event_logger.warn("Multi-line\nmessage")


class TestJsonExport:
    def test_round_trip_matches_get_logs(self, event_logger):
        _populate(event_logger)
        exported = event_logger.export_logs("json")
        restored = [LogEntry.from_dict(d) for d in json.loads(exported)]
        assert restored == event_logger.get_logs()

    def test_pretty_printed(self, event_logger):
        event_logger.info("x")
        assert "\n  " in event_logger.export_logs("json")

    def test_empty_buffer(self, event_logger):
        assert json.loads(event_logger.export_logs()) == []


class TestCsvExport:
    def test_header_plus_one_row_per_entry(self, event_logger):
        _populate(event_logger)
        rows = list(csv.reader(io.StringIO(event_logger.export_logs("csv"))))
        assert rows[0] == CSV_HEADER
        assert len(rows) == 1 + len(event_logger.get_logs())

    def test_row_contents(self, event_logger):
        event_logger.set_current_page("Prices")
        event_logger.info("Price updated", {"fuel": "diesel"})
        rows = list(csv.reader(io.StringIO(event_logger.export_logs("csv"))))
        entry = event_logger.get_logs()[0]
        assert rows[1] == [
            entry.timestamp, "INFO", "BUSINESS_LOGIC", "Prices", "Price updated",
            json.dumps({"fuel": "diesel"}),
        ]

    def test_missing_data_written_as_empty_object(self, event_logger):
        event_logger.navigation("Dashboard", "Tanks")
        rows = list(csv.reader(io.StringIO(event_logger.export_logs("csv"))))
        assert rows[1][5] == "{}"

    def test_embedded_delimiters_survive(self, event_logger):
        event_logger.error("Payment failed, retry", {"reason": 'card "declined"'})
        event_logger.warn("Multi-line\nmessage")
        rows = list(csv.reader(io.StringIO(event_logger.export_logs("csv"))))
        assert len(rows) == 3
        messages = {r[4] for r in rows[1:]}
        assert messages == {"Payment failed, retry", "Multi-line\nmessage"}
        assert any(json.loads(r[5]) == {"reason": 'card "declined"'} for r in rows[1:])


def test_unknown_format_rejected(event_logger):
    with pytest.raises(ValueError):
        event_logger.export_logs("xml")


def test_get_formatter_case_insensitive():
    assert get_formatter("CSV") is get_formatter("csv")


def test_export_filename():
    assert export_filename("csv", date(2024, 1, 15)) == "logs_2024-01-15.csv"
    assert export_filename("json").startswith("logs_")
