"""Session-scoped event logger for the fuel station dashboard.

An :class:`EventLogger` is constructed explicitly and handed to whatever
needs it (pages, handlers, the HTTP transport, the error hooks). Each
instance owns its own bounded :class:`LogStore` and session id, so separate
instances never share entries.

Every entry is also mirrored to the ``station_telemetry.console`` stdlib
logger at the matching level, and optionally queued for remote forwarding.
"""

import logging
import platform
import time
from typing import Any, Optional

from station_telemetry.exporter import get_formatter
from station_telemetry.filters import LogFilter
from station_telemetry.models import (
    ApiCallInfo,
    ErrorInfo,
    LogCategory,
    LogEntry,
    LogLevel,
    PerformanceInfo,
    copy_data,
    generate_id,
    iso_timestamp,
)
from station_telemetry.store import LogStore

logger = logging.getLogger(__name__)
console = logging.getLogger("station_telemetry.console")

_CONSOLE_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


def default_user_agent() -> str:
    return f"station-telemetry (Python {platform.python_version()}; {platform.system()})"


class EventLogger:
    def __init__(
        self,
        max_logs: int = 1000,
        forwarder=None,
        user_agent: Optional[str] = None,
        url: str = "",
    ):
        self._store = LogStore(max_logs=max_logs)
        self._forwarder = forwarder
        self._session_id = generate_id("session")
        self._current_page = ""
        self._user_id: Optional[str] = None
        self._user_agent = user_agent if user_agent is not None else default_user_agent()
        self._url = url

    @classmethod
    def from_config(cls, config, forwarder=None, url: str = ""):
        """Build a logger from a :class:`Config`, wiring up forwarding if enabled."""
        if forwarder is None and config.forwarding_enabled:
            from station_telemetry.forwarder import LogForwarder

            fwd = config["forwarding"]
            forwarder = LogForwarder(
                config.forwarding_url,
                queue_size=fwd["queue_size"],
                timeout=fwd["timeout"],
            )
        return cls(
            max_logs=config["storage"]["max_logs"],
            forwarder=forwarder,
            url=url,
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def current_page(self) -> str:
        return self._current_page

    @property
    def forwarder(self):
        return self._forwarder

    def set_current_page(self, page: str) -> None:
        self._current_page = page

    def set_user_id(self, user_id: Optional[str]) -> None:
        self._user_id = user_id

    def set_url(self, url: str) -> None:
        self._url = url

    def _create_entry(self, level, category, message, data, error, performance, api_call):
        return LogEntry(
            id=generate_id("log"),
            timestamp=iso_timestamp(),
            level=LogLevel(level),
            category=LogCategory(category),
            message=message,
            page=self._current_page,
            session_id=self._session_id,
            user_agent=self._user_agent,
            url=self._url,
            data=copy_data(data),
            error=error,
            performance=performance,
            api_call=api_call,
            user_id=self._user_id,
        )

    def log(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        data: Any = None,
        *,
        error: Optional[ErrorInfo] = None,
        performance: Optional[PerformanceInfo] = None,
        api_call: Optional[ApiCallInfo] = None,
    ) -> LogEntry:
        entry = self._create_entry(level, category, message, data, error, performance, api_call)
        self._store.add(entry)

        text = f"[{entry.category.value}] {message}"
        if data is not None:
            console.log(_CONSOLE_LEVELS[entry.level], "%s %r", text, data)
        else:
            console.log(_CONSOLE_LEVELS[entry.level], "%s", text)

        if self._forwarder is not None:
            try:
                self._forwarder.submit(entry)
            except Exception:
                logger.exception("Log forwarder rejected entry %s", entry.id)

        return entry.detached()

    # Convenience methods

    def debug(self, message: str, data: Any = None) -> LogEntry:
        return self.log(LogLevel.DEBUG, LogCategory.BUSINESS_LOGIC, message, data)

    def info(self, message: str, data: Any = None) -> LogEntry:
        return self.log(LogLevel.INFO, LogCategory.BUSINESS_LOGIC, message, data)

    def warn(self, message: str, data: Any = None) -> LogEntry:
        return self.log(LogLevel.WARN, LogCategory.BUSINESS_LOGIC, message, data)

    def error(self, message: str, data: Any = None, exc: Optional[BaseException] = None) -> LogEntry:
        err = ErrorInfo.from_exception(exc) if exc is not None else None
        return self.log(LogLevel.ERROR, LogCategory.ERROR, message, data, error=err)

    def critical(self, message: str, data: Any = None, exc: Optional[BaseException] = None) -> LogEntry:
        err = ErrorInfo.from_exception(exc) if exc is not None else None
        return self.log(LogLevel.CRITICAL, LogCategory.ERROR, message, data, error=err)

    def api_call(
        self,
        method: str,
        url: str,
        start_time: float,
        status: Optional[int] = None,
        request_size: Optional[int] = None,
        response_size: Optional[int] = None,
    ) -> LogEntry:
        """Record a completed HTTP exchange.

        ``start_time`` is a ``time.monotonic()`` reading taken at dispatch;
        the response time is reported in milliseconds.
        """
        response_time = round((time.monotonic() - start_time) * 1000, 3)
        info = ApiCallInfo(
            method=method,
            url=url,
            response_time=response_time,
            status=status,
            request_size=request_size,
            response_size=response_size,
        )
        return self.log(
            LogLevel.INFO, LogCategory.API, f"API Call: {method} {url}",
            {"apiCall": info.to_dict()}, api_call=info,
        )

    def user_action(self, action: str, data: Any = None) -> LogEntry:
        return self.log(LogLevel.INFO, LogCategory.USER_ACTION, f"User Action: {action}", data)

    def form_submission(self, form_name: str, success: bool, data: Any = None) -> LogEntry:
        return self.log(
            LogLevel.INFO if success else LogLevel.ERROR,
            LogCategory.FORM_SUBMISSION,
            f"Form Submission: {form_name} - {'Success' if success else 'Failed'}",
            data,
        )

    def navigation(self, from_page: str, to_page: str) -> LogEntry:
        return self.log(LogLevel.INFO, LogCategory.NAVIGATION, f"Navigation: {from_page} → {to_page}")

    # Queries

    def get_logs(self, log_filter: Optional[LogFilter] = None) -> list:
        """Return a newest-first snapshot of the buffer, optionally filtered."""
        return self._store.query(log_filter)

    def export_logs(self, fmt: str = "json") -> str:
        """Export the whole buffer as ``json`` or ``csv``."""
        formatter = get_formatter(fmt)
        return formatter(self.get_logs())

    def clear_logs(self) -> None:
        self._store.clear()

    def get_session_info(self) -> dict:
        return {
            "sessionId": self._session_id,
            "currentPage": self._current_page,
            "logCount": len(self._store),
        }

    def close(self) -> None:
        if self._forwarder is not None:
            self._forwarder.close()
