"""HTTP request/response logging for httpx clients.

The instrumented transports sit between an ``httpx.Client`` and its real
transport, so every exchange made through the shared client is recorded
without the calling code knowing about it. Per-request state (correlation
id, start time, request size) lives in the local scope of the wrapped call.
"""

import errno
import itertools
import json
import logging
import time

import httpx

from station_telemetry.models import LogCategory, LogLevel

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://fuel-station-backend.onrender.com"
DEFAULT_TIMEOUT = 10.0
SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie", "proxy-authorization"}

_request_ids = itertools.count(1)


def next_request_id() -> str:
    return f"req_{next(_request_ids)}"


def _mask_headers(headers) -> dict:
    return {
        k: ("***" if k.lower() in SENSITIVE_HEADERS else v)
        for k, v in headers.items()
    }


def _decode_body(raw: bytes):
    """Best-effort readable form of a body: parsed JSON, text, or None."""
    if not raw:
        return None
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return f"<{len(raw)} bytes>"
    try:
        return json.loads(text)
    except ValueError:
        return text


def _request_body(request: httpx.Request) -> bytes:
    try:
        return request.content
    except httpx.RequestNotRead:
        # Streaming upload; the body is not available without consuming it
        return b""


def _error_code(exc: BaseException):
    """Symbolic errno (``ECONNREFUSED`` ...) from the exception chain, if any."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        num = getattr(exc, "errno", None)
        if isinstance(num, int):
            return errno.errorcode.get(num, str(num))
        exc = exc.__cause__ or exc.__context__
    return None


class _Exchange:
    """Bookkeeping for one in-flight request."""

    def __init__(self, request: httpx.Request):
        self.request_id = next_request_id()
        self.start = time.monotonic()
        self.method = request.method.upper()
        self.url = str(request.url).split("?", 1)[0]
        self.params = dict(request.url.params)
        self.headers = _mask_headers(request.headers)
        raw = _request_body(request)
        self.body = _decode_body(raw)

        size = len(raw)
        if self.params:
            size += len(json.dumps(self.params))
        self.request_size = size

    @property
    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self.start) * 1000, 3)


class ExchangeRecorder:
    """Turns request/response/error events into event log entries.

    Every method swallows its own failures so that a logging problem never
    changes the outcome of the request being observed.
    """

    def __init__(self, event_logger):
        self._logger = event_logger

    def on_request(self, request: httpx.Request):
        try:
            ex = _Exchange(request)
            self._logger.log(
                LogLevel.DEBUG, LogCategory.API, f"API Request: {ex.method} {ex.url}",
                {
                    "requestId": ex.request_id,
                    "method": ex.method,
                    "url": ex.url,
                    "headers": ex.headers,
                    "params": ex.params,
                    "data": ex.body,
                    "requestSize": ex.request_size,
                },
            )
            return ex
        except Exception:
            logger.exception("Failed to log outgoing request")
            return None

    def on_response(self, ex, response: httpx.Response):
        if ex is None:
            return
        try:
            if response.is_error:
                self._log_failure(
                    ex,
                    status=response.status_code,
                    name="HTTPStatusError",
                    message=f"Request failed with status code {response.status_code}",
                    code=None,
                    status_text=response.reason_phrase,
                    body=_decode_body(response.content),
                )
                return

            response_size = len(response.content)
            self._logger.api_call(
                ex.method, ex.url, ex.start,
                status=response.status_code,
                request_size=ex.request_size,
                response_size=response_size,
            )
            self._logger.log(
                LogLevel.DEBUG, LogCategory.API,
                f"API Response: {response.status_code} {ex.method} {ex.url}",
                {
                    "requestId": ex.request_id,
                    "status": response.status_code,
                    "statusText": response.reason_phrase,
                    "headers": _mask_headers(response.headers),
                    "data": _decode_body(response.content),
                    "responseTime": ex.elapsed_ms,
                    "requestSize": ex.request_size,
                    "responseSize": response_size,
                },
            )
        except Exception:
            logger.exception("Failed to log response for %s", ex.request_id)

    def on_error(self, ex, exc: BaseException):
        if ex is None:
            return
        try:
            self._log_failure(
                ex,
                status=None,
                name=type(exc).__name__,
                message=str(exc),
                code=_error_code(exc),
            )
        except Exception:
            logger.exception("Failed to log transport error for %s", ex.request_id)

    def _log_failure(self, ex, *, status, name, message, code, status_text=None, body=None):
        self._logger.log(
            LogLevel.ERROR, LogCategory.API,
            f"API Error: {status or 'NETWORK'} {ex.method} {ex.url}",
            {
                "requestId": ex.request_id,
                "error": {
                    "name": name,
                    "message": message,
                    "code": code,
                    "status": status,
                    "statusText": status_text,
                    "data": body,
                },
                "config": {
                    "method": ex.method,
                    "url": ex.url,
                    "headers": ex.headers,
                    "params": ex.params,
                    "data": ex.body,
                },
                "responseTime": ex.elapsed_ms,
                "requestSize": ex.request_size,
            },
        )


class InstrumentedTransport(httpx.BaseTransport):
    """Synchronous transport wrapper that records every exchange."""

    def __init__(self, event_logger, transport: httpx.BaseTransport | None = None):
        self._transport = transport if transport is not None else httpx.HTTPTransport()
        self._recorder = ExchangeRecorder(event_logger)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        ex = self._recorder.on_request(request)
        try:
            response = self._transport.handle_request(request)
            response.read()
        except Exception as exc:
            self._recorder.on_error(ex, exc)
            raise
        self._recorder.on_response(ex, response)
        return response

    def close(self) -> None:
        self._transport.close()


class AsyncInstrumentedTransport(httpx.AsyncBaseTransport):
    """Asynchronous twin of :class:`InstrumentedTransport`."""

    def __init__(self, event_logger, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()
        self._recorder = ExchangeRecorder(event_logger)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        ex = self._recorder.on_request(request)
        try:
            response = await self._transport.handle_async_request(request)
            await response.aread()
        except Exception as exc:
            self._recorder.on_error(ex, exc)
            raise
        self._recorder.on_response(ex, response)
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()


def _raise_for_status(response: httpx.Response):
    if response.is_error:
        response.raise_for_status()


async def _araise_for_status(response: httpx.Response):
    if response.is_error:
        response.raise_for_status()


def _client_settings(config):
    if config is None:
        return DEFAULT_BASE_URL, DEFAULT_TIMEOUT
    api = config["api"]
    return api["base_url"], api["timeout"]


def create_api_client(event_logger, config=None, transport=None) -> httpx.Client:
    """Build the dashboard's shared, instrumented HTTP client.

    4xx and 5xx replies raise ``httpx.HTTPStatusError`` from a response hook.
    Redirects are returned or followed the way a plain client handles them.
    """
    base_url, timeout = _client_settings(config)
    return httpx.Client(
        base_url=base_url,
        timeout=timeout,
        headers={"Content-Type": "application/json"},
        transport=InstrumentedTransport(event_logger, transport),
        event_hooks={"response": [_raise_for_status]},
    )


def create_async_api_client(event_logger, config=None, transport=None) -> httpx.AsyncClient:
    base_url, timeout = _client_settings(config)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers={"Content-Type": "application/json"},
        transport=AsyncInstrumentedTransport(event_logger, transport),
        event_hooks={"response": [_araise_for_status]},
    )
