from station_telemetry.models import LogCategory, LogLevel
from station_telemetry.performance import StartupTimer, capture_page_load


def test_capture_page_load(event_logger):
    timing = {
        "navigation_start": 1000.0,
        "response_start": 1120.0,
        "dom_content_loaded_end": 1450.0,
        "load_event_end": 1900.0,
    }
    entry = capture_page_load(event_logger, timing, memory_usage=52_428_800)
    assert entry.message == "Page Load Performance"
    assert entry.level is LogLevel.INFO
    assert entry.category is LogCategory.PERFORMANCE
    assert entry.performance.duration == 900.0
    assert entry.performance.memory_usage == 52_428_800
    assert entry.data["timing"] == {
        "domContentLoaded": 450.0,
        "firstPaint": 120.0,
        "totalLoad": 900.0,
    }


def test_no_timing_no_entry(event_logger):
    assert capture_page_load(event_logger, None) is None
    assert capture_page_load(event_logger, {"navigation_start": 1.0}) is None
    assert event_logger.get_logs() == []


def test_startup_timer():
    ticks = iter([1.0, 1.25, 1.5, 2.0])
    timer = StartupTimer(clock=lambda: next(ticks))
    timer.mark_response()
    timer.mark_ready()
    timer.mark_loaded()
    assert timer.timing == {
        "navigation_start": 1000.0,
        "response_start": 1250.0,
        "dom_content_loaded_end": 1500.0,
        "load_event_end": 2000.0,
    }


def test_startup_timer_capture(event_logger):
    ticks = iter([0.0, 0.125, 0.25, 0.5])
    timer = StartupTimer(clock=lambda: next(ticks))
    timer.mark_response()
    timer.mark_ready()
    entry = timer.capture(event_logger)
    assert entry.performance.duration == 500.0
    assert event_logger.get_logs() == [entry]
