"""Log entry model: levels, categories and the immutable LogEntry record."""

import copy
import json
import random
import string
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Optional

_BASE36 = string.digits + string.ascii_lowercase


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    CRITICAL = 4


class LogCategory(str, Enum):
    API = "API"
    USER_ACTION = "USER_ACTION"
    FORM_SUBMISSION = "FORM_SUBMISSION"
    NAVIGATION = "NAVIGATION"
    ERROR = "ERROR"
    PERFORMANCE = "PERFORMANCE"
    SECURITY = "SECURITY"
    DATABASE = "DATABASE"
    AUTHENTICATION = "AUTHENTICATION"
    BUSINESS_LOGIC = "BUSINESS_LOGIC"


@dataclass(frozen=True)
class ErrorInfo:
    name: str
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException, stack: Optional[str] = None) -> "ErrorInfo":
        return cls(name=type(exc).__name__, message=str(exc), stack=stack)

    def to_dict(self) -> dict:
        d = {"name": self.name, "message": self.message}
        if self.stack is not None:
            d["stack"] = self.stack
        return d


@dataclass(frozen=True)
class PerformanceInfo:
    duration: float
    memory_usage: Optional[int] = None

    def to_dict(self) -> dict:
        d: dict = {"duration": self.duration}
        if self.memory_usage is not None:
            d["memoryUsage"] = self.memory_usage
        return d


@dataclass(frozen=True)
class ApiCallInfo:
    method: str
    url: str
    response_time: float
    status: Optional[int] = None
    request_size: Optional[int] = None
    response_size: Optional[int] = None

    def to_dict(self) -> dict:
        d: dict = {
            "method": self.method,
            "url": self.url,
            "responseTime": self.response_time,
        }
        for key, value in (
            ("status", self.status),
            ("requestSize", self.request_size),
            ("responseSize", self.response_size),
        ):
            if value is not None:
                d[key] = value
        return d


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: str
    level: LogLevel
    category: LogCategory
    message: str
    page: str
    session_id: str
    user_agent: str
    url: str
    data: Optional[Any] = None
    error: Optional[ErrorInfo] = None
    performance: Optional[PerformanceInfo] = None
    api_call: Optional[ApiCallInfo] = None
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialise to the wire/export shape (camelCase keys, unset fields omitted)."""
        d: dict = {
            "id": self.id,
            "timestamp": self.timestamp,
            "level": int(self.level),
            "category": self.category.value,
            "message": self.message,
            "page": self.page,
            "sessionId": self.session_id,
            "userAgent": self.user_agent,
            "url": self.url,
        }
        if self.user_id is not None:
            d["userId"] = self.user_id
        if self.data is not None:
            d["data"] = copy_data(self.data)
        if self.error is not None:
            d["error"] = self.error.to_dict()
        if self.performance is not None:
            d["performance"] = self.performance.to_dict()
        if self.api_call is not None:
            d["apiCall"] = self.api_call.to_dict()
        return d

    def detached(self) -> "LogEntry":
        """Return an equal entry whose payload shares no objects with this one."""
        if self.data is None:
            return self
        return replace(self, data=copy_data(self.data))

    @classmethod
    def from_dict(cls, d: dict) -> "LogEntry":
        """Rebuild an entry from the output of :meth:`to_dict`."""
        error = d.get("error")
        perf = d.get("performance")
        api = d.get("apiCall")
        return cls(
            id=d["id"],
            timestamp=d["timestamp"],
            level=LogLevel(d["level"]),
            category=LogCategory(d["category"]),
            message=d["message"],
            page=d.get("page", ""),
            session_id=d["sessionId"],
            user_agent=d.get("userAgent", ""),
            url=d.get("url", ""),
            data=d.get("data"),
            error=ErrorInfo(error["name"], error["message"], error.get("stack")) if error else None,
            performance=(
                PerformanceInfo(perf["duration"], perf.get("memoryUsage")) if perf else None
            ),
            api_call=(
                ApiCallInfo(
                    method=api["method"],
                    url=api["url"],
                    response_time=api["responseTime"],
                    status=api.get("status"),
                    request_size=api.get("requestSize"),
                    response_size=api.get("responseSize"),
                )
                if api
                else None
            ),
            user_id=d.get("userId"),
        )


def copy_data(data: Any) -> Any:
    """Deep copy of an entry payload.

    Payloads that cannot be deep-copied (open files, locks ...) are reduced to
    their JSON form, the same way the exporter renders them.
    """
    if data is None:
        return None
    try:
        return copy.deepcopy(data)
    except Exception:
        return json.loads(json.dumps(data, default=str))


def _random_suffix(length: int = 9) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def generate_id(prefix: str) -> str:
    """Return ``<prefix>_<epoch-ms>_<random>``. Unique in practice, not guaranteed."""
    return f"{prefix}_{int(time.time() * 1000)}_{_random_suffix()}"


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
