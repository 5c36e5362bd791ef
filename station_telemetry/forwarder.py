"""Best-effort remote forwarding of log entries over HTTP."""

import json
import logging
import queue
import threading

import httpx

logger = logging.getLogger(__name__)


class LogForwarder:
    """Bounded producer-consumer queue that POSTs entries to a collector.

    ``submit`` never blocks and never raises: when the queue is full the
    entry is dropped and counted. A single daemon thread drains the queue
    and sends one entry per request, without retry.
    """

    def __init__(self, url: str, queue_size: int = 500, timeout: float = 5.0,
                 client: httpx.Client | None = None):
        self._url = url
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._sent = 0
        self._failed = 0
        self._dropped = 0
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._consumer_loop, name="log-forwarder", daemon=True,
        )
        self._thread.start()

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                "sent": self._sent,
                "failed": self._failed,
                "dropped": self._dropped,
                "queued": self._queue.qsize(),
            }

    def submit(self, entry) -> bool:
        """Queue an entry for delivery. Returns False if it was dropped."""
        if self._stopped.is_set():
            with self._lock:
                self._dropped += 1
            return False

        try:
            payload = json.dumps(entry.to_dict(), default=str)
            self._queue.put_nowait(payload)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            logger.warning("Forwarding queue full, dropping log entry")
            return False
        except (TypeError, ValueError) as exc:
            with self._lock:
                self._dropped += 1
            logger.warning("Could not serialise log entry for forwarding: %s", exc)
            return False
        return True

    def _consumer_loop(self):
        while True:
            payload = self._queue.get()
            if payload is None:
                return
            self._send(payload)

    def _send(self, payload: str):
        try:
            resp = self._client.post(
                self._url,
                content=payload,
                headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            with self._lock:
                self._failed += 1
            logger.error("Failed to send log to backend: %s", exc)
            return
        except Exception:
            with self._lock:
                self._failed += 1
            logger.exception("Unexpected error while forwarding log entry")
            return

        with self._lock:
            self._sent += 1

    def close(self, timeout: float = 5.0):
        """Stop accepting entries, deliver what is queued, then shut down."""
        if self._stopped.is_set():
            return
        self._stopped.set()
        # Poison pill goes behind everything already queued
        self._queue.put(None)
        self._thread.join(timeout=timeout)
        self._client.close()
        logger.info(
            "Log forwarder finished: sent=%d, failed=%d, dropped=%d",
            self._sent, self._failed, self._dropped,
        )
