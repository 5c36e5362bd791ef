import collections
import threading
from typing import Optional

from station_telemetry.filters import LogFilter
from station_telemetry.models import LogEntry


class LogStore:
    """Thread-safe in-memory log storage backed by a bounded deque."""

    def __init__(self, max_logs=1000):
        if max_logs < 1:
            raise ValueError("max_logs must be at least 1")
        self._logs = collections.deque(maxlen=max_logs)
        self._lock = threading.Lock()
        self._total_count = 0

    def add(self, entry: LogEntry):
        """Append an entry, evicting the oldest one when the store is full."""
        with self._lock:
            self._logs.append(entry)
            self._total_count += 1

    def snapshot(self) -> list:
        """Return all entries in insertion order."""
        with self._lock:
            return list(self._logs)

    def query(self, log_filter: Optional[LogFilter] = None) -> list:
        """Return matching entries, newest timestamp first.

        Entries sharing a timestamp come out most recently added first.
        Returned entries carry their own copy of the payload.
        """
        entries = self.snapshot()
        entries.reverse()
        if log_filter is not None:
            predicate = log_filter.build_predicate()
            entries = [e for e in entries if predicate(e)]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return [e.detached() for e in entries]

    @property
    def max_logs(self):
        return self._logs.maxlen

    @property
    def total_count(self):
        """Total number of entries added since creation or the last clear."""
        with self._lock:
            return self._total_count

    def __len__(self):
        with self._lock:
            return len(self._logs)

    def clear(self):
        """Clear all entries and reset the total count."""
        with self._lock:
            self._logs.clear()
            self._total_count = 0
