"""Page-load performance capture."""

import time
from typing import Mapping, Optional

from station_telemetry.models import LogCategory, LogLevel, PerformanceInfo

TIMING_KEYS = (
    "navigation_start",
    "response_start",
    "dom_content_loaded_end",
    "load_event_end",
)


def capture_page_load(event_logger, timing: Optional[Mapping[str, float]],
                      memory_usage: Optional[int] = None):
    """Emit one ``Page Load Performance`` entry from navigation timing marks.

    ``timing`` holds millisecond marks keyed by :data:`TIMING_KEYS`. Returns
    the entry, or None when no usable timing data is available.
    """
    if not timing or any(timing.get(k) is None for k in TIMING_KEYS):
        return None

    start = timing["navigation_start"]
    load_time = timing["load_event_end"] - start
    perf = PerformanceInfo(duration=load_time, memory_usage=memory_usage)
    return event_logger.log(
        LogLevel.INFO,
        LogCategory.PERFORMANCE,
        "Page Load Performance",
        {
            "performance": perf.to_dict(),
            "timing": {
                "domContentLoaded": timing["dom_content_loaded_end"] - start,
                "firstPaint": timing["response_start"] - start,
                "totalLoad": load_time,
            },
        },
        performance=perf,
    )


class StartupTimer:
    """Collects navigation-style timing marks for a Python process."""

    def __init__(self, clock=None):
        self._clock = clock or time.monotonic
        self._marks = {"navigation_start": self._now()}

    def _now(self) -> float:
        return self._clock() * 1000

    def mark_response(self):
        """First byte of the initial payload arrived."""
        self._marks["response_start"] = self._now()

    def mark_ready(self):
        """Content is parsed and usable."""
        self._marks["dom_content_loaded_end"] = self._now()

    def mark_loaded(self):
        self._marks["load_event_end"] = self._now()

    @property
    def timing(self) -> dict:
        return dict(self._marks)

    def capture(self, event_logger, memory_usage: Optional[int] = None):
        """Mark load complete (if not yet marked) and record the entry."""
        if "load_event_end" not in self._marks:
            self.mark_loaded()
        return capture_page_load(event_logger, self._marks, memory_usage)
