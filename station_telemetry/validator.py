"""Validation of log entries arriving at the collector.

The JSON schema on disk describes the wire shape of an entry. The closed
sets (categories, severity range) are bound from :class:`LogCategory` and
:class:`LogLevel` when the schema is loaded, so the two cannot drift apart.
"""

import json
import pathlib
from collections import Counter
from datetime import datetime

import jsonschema

from station_telemetry.models import LogCategory, LogEntry, LogLevel

DEFAULT_SCHEMA_PATH = pathlib.Path(__file__).parent / "schemas" / "log_entry.json"


def load_schema(schema_path=None) -> dict:
    """Read the entry schema and bind the category and level sets into it."""
    with open(schema_path or DEFAULT_SCHEMA_PATH, "r") as f:
        schema = json.load(f)

    props = schema["properties"]
    props["category"]["enum"] = [c.value for c in LogCategory]
    props["level"]["minimum"] = int(min(LogLevel))
    props["level"]["maximum"] = int(max(LogLevel))
    return schema


def _describe(error: jsonschema.ValidationError) -> str:
    if error.path:
        return f"{error.json_path}: {error.message}"
    return error.message


def _timestamp_error(payload):
    try:
        datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00"))
    except ValueError:
        return f"$.timestamp: {payload['timestamp']!r} is not an ISO-8601 timestamp"
    return None


class LogEntryValidator:
    """Turns untrusted payloads into :class:`LogEntry` objects.

    Keeps running counts of accepted and rejected payloads, rejection
    reasons, and accepted entries per category.
    """

    def __init__(self, schema_path=None):
        self._validator = jsonschema.Draft202012Validator(load_schema(schema_path))
        self.reset_stats()

    def parse(self, payload):
        """Validate ``payload`` and build the entry it describes.

        Returns:
            tuple: (entry: LogEntry or None, errors: list[str])
        """
        self._total += 1
        errors = list(self._validator.iter_errors(payload))
        if errors:
            return self._reject([(e.validator, _describe(e)) for e in errors])

        message = _timestamp_error(payload)
        if message is not None:
            return self._reject([("format", message)])

        entry = LogEntry.from_dict(payload)
        self._valid += 1
        self._categories[entry.category.value] += 1
        return entry, []

    def validate(self, payload):
        """Return ``(is_valid, errors)`` without keeping the parsed entry."""
        entry, errors = self.parse(payload)
        return entry is not None, errors

    def _reject(self, problems):
        self._invalid += 1
        for kind, _ in problems:
            self._error_types[kind] += 1
        return None, [message for _, message in problems]

    def get_stats(self):
        return {
            "total": self._total,
            "valid": self._valid,
            "invalid": self._invalid,
            "error_types": dict(self._error_types),
            "by_category": dict(self._categories),
        }

    def reset_stats(self):
        self._total = 0
        self._valid = 0
        self._invalid = 0
        self._error_types = Counter()
        self._categories = Counter()
