"""Console logging setup."""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO", fmt: str = DEFAULT_FORMAT) -> None:
    """Send stdlib logging, including mirrored event log entries, to stderr.

    *level* is a name like ``"DEBUG"``; the event log's ``WARN`` is accepted
    as an alias for ``WARNING``.
    """
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    log_level = getattr(logging, name, logging.INFO)
    logging.basicConfig(level=log_level, format=fmt, stream=sys.stderr)
