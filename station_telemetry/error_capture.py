"""Capture uncaught exceptions from the interpreter, threads and asyncio.

Hooks are chained: the previous handler always runs after the entry is
recorded, so uncaught errors still behave normally.
"""

import logging
import sys
import threading
import traceback

from station_telemetry.models import ErrorInfo, LogCategory, LogLevel

logger = logging.getLogger(__name__)


def _source_location(tb):
    """Return (filename, lineno) of the innermost frame of a traceback."""
    if tb is None:
        return None, None
    frames = traceback.extract_tb(tb)
    if not frames:
        return None, None
    last = frames[-1]
    return last.filename, last.lineno


def _format_stack(exc_type, exc_value, tb):
    return "".join(traceback.format_exception(exc_type, exc_value, tb))


class ErrorCapture:
    """Installs global error hooks that record into an :class:`EventLogger`."""

    def __init__(self, event_logger):
        self._logger = event_logger
        self._prev_excepthook = None
        self._prev_threading_hook = None
        self._loops = {}
        self._installed = False

    @property
    def installed(self):
        return self._installed

    @property
    def watched_loops(self):
        """Open event loops whose exception handler is currently hooked."""
        self._forget_closed_loops()
        return tuple(self._loops)

    def install(self):
        if self._installed:
            return self
        self._prev_excepthook = sys.excepthook
        self._prev_threading_hook = threading.excepthook
        sys.excepthook = self._excepthook
        threading.excepthook = self._threading_excepthook
        self._installed = True
        return self

    def uninstall(self):
        for loop, prev in list(self._loops.items()):
            if not loop.is_closed():
                loop.set_exception_handler(prev)
        self._loops.clear()
        if not self._installed:
            return
        sys.excepthook = self._prev_excepthook
        threading.excepthook = self._prev_threading_hook
        self._installed = False

    def __enter__(self):
        return self.install()

    def __exit__(self, exc_type, exc, tb):
        self.uninstall()
        return False

    def record_exception(self, exc_type, exc_value, tb, **extra):
        """Record one ``Global Error`` entry for an uncaught exception."""
        try:
            filename, lineno = _source_location(tb)
            error = ErrorInfo(
                name=exc_type.__name__ if exc_type is not None else "Unknown",
                message=str(exc_value),
                stack=_format_stack(exc_type, exc_value, tb),
            )
            data = {
                "error": error.to_dict(),
                "filename": filename,
                "lineno": lineno,
                "colno": None,
            }
            data.update(extra)
            return self._logger.log(
                LogLevel.ERROR, LogCategory.ERROR, "Global Error", data, error=error,
            )
        except Exception:
            logger.exception("Failed to record uncaught exception")
            return None

    def _excepthook(self, exc_type, exc_value, tb):
        self.record_exception(exc_type, exc_value, tb)
        self._prev_excepthook(exc_type, exc_value, tb)

    def _threading_excepthook(self, args):
        # SystemExit in a thread is not an error
        if args.exc_type is not SystemExit:
            thread_name = args.thread.name if args.thread is not None else None
            self.record_exception(
                args.exc_type, args.exc_value, args.exc_traceback, thread=thread_name,
            )
        self._prev_threading_hook(args)

    # asyncio

    def install_asyncio(self, loop):
        """Record unhandled exceptions reported by ``loop``.

        Covers never-retrieved task exceptions and errors raised from
        callbacks, the asyncio equivalent of unhandled promise rejections.
        """
        self._forget_closed_loops()
        if loop in self._loops:
            return
        self._loops[loop] = loop.get_exception_handler()
        loop.set_exception_handler(self._asyncio_handler)

    def _forget_closed_loops(self):
        closed = [loop for loop in self._loops if loop.is_closed()]
        for loop in closed:
            del self._loops[loop]

    def _asyncio_handler(self, loop, context):
        try:
            exc = context.get("exception")
            if exc is not None:
                error = ErrorInfo(
                    name="PromiseRejection",
                    message=str(exc) or type(exc).__name__,
                    stack=_format_stack(type(exc), exc, exc.__traceback__),
                )
            else:
                error = ErrorInfo(
                    name="PromiseRejection",
                    message=str(context.get("message", "Unhandled exception in event loop")),
                )
            self._logger.log(
                LogLevel.ERROR, LogCategory.ERROR, "Unhandled Promise Rejection",
                {"error": error.to_dict()}, error=error,
            )
        except Exception:
            logger.exception("Failed to record asyncio exception")

        prev = self._loops.get(loop)
        if prev is not None:
            prev(loop, context)
        else:
            loop.default_exception_handler(context)
