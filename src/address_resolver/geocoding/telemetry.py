"""
Best-effort telemetry sinks.

NullTelemetry is the default and discards everything. IngestClient queues
events and POSTs them in small batches from a daemon thread; it never
raises into callers and backs off entirely after repeated failures.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import deque
from typing import Any, Optional

import requests

from .base import TelemetrySink
from .throttling import TokenBucket

logger = logging.getLogger(__name__)


def safe_emit(sink: Optional[TelemetrySink], event: str, **data: Any) -> None:
    """Emit to ``sink`` if there is one; a failing sink is logged and ignored."""
    if sink is None:
        return
    try:
        sink.emit(event, **data)
    except Exception as e:
        logger.debug(f"Telemetry sink failed on {event!r}: {e}")


class NullTelemetry(TelemetrySink):
    def emit(self, event: str, **data: Any) -> None:
        pass

    def close(self) -> None:
        pass


class IngestClient(TelemetrySink):
    """
    Fire-and-forget event shipper.

    Events are sent as ``{"events": [...]}`` to ``{ingest_url}/ingest/{session_id}``
    in batches of at most ``batch_size``, no more than one request per
    ``min_interval_s``. After ``max_failures`` consecutive failures the
    client drops its queue and ignores events for ``cooldown_s``.
    """

    def __init__(
        self,
        ingest_url: str,
        session_id: Optional[str] = None,
        batch_size: int = 25,
        min_interval_s: float = 0.5,
        timeout_s: float = 2.0,
        max_failures: int = 3,
        cooldown_s: float = 60.0,
        background: bool = True,
    ):
        self.url = f"{ingest_url.rstrip('/')}/ingest/{session_id or uuid.uuid4()}"
        self.batch_size = batch_size
        self.timeout_s = timeout_s
        self.max_failures = max_failures
        self.cooldown_s = cooldown_s
        self.background = background
        self.min_interval_s = min_interval_s

        self.limiter = TokenBucket(rate=1.0 / min_interval_s, capacity=1)
        self.queue: deque[dict[str, Any]] = deque()
        self.lock = threading.Lock()
        self.consecutive_failures = 0
        self.disabled_until: Optional[float] = None

        self._wakeup = threading.Event()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def disabled(self) -> bool:
        return self.disabled_until is not None and time.monotonic() < self.disabled_until

    @property
    def pending(self) -> int:
        return len(self.queue)

    def emit(self, event: str, **data: Any) -> None:
        if self.disabled:
            return
        if self.disabled_until is not None:
            logger.debug("Ingest cooldown expired, re-enabling")
            self.disabled_until = None
            self.consecutive_failures = 0

        with self.lock:
            self.queue.append({"event": event, "timestamp": time.time(), **data})
        if self.background:
            self._ensure_worker()
            self._wakeup.set()

    def _ensure_worker(self) -> None:
        with self.lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._run, name="ingest-client", daemon=True)
                self._worker.start()

    def _run(self) -> None:
        while not self._stop.is_set():
            self._wakeup.wait(timeout=self.min_interval_s)
            self._wakeup.clear()
            while self.queue and not self._stop.is_set():
                self.limiter.acquire()
                self.send_batch()

    def send_batch(self) -> bool:
        """Send one batch now. Returns True when a batch was delivered."""
        if self.disabled:
            return False
        with self.lock:
            batch = [self.queue.popleft() for _ in range(min(self.batch_size, len(self.queue)))]
        if not batch:
            return False

        try:
            response = requests.post(self.url, json={"events": batch}, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            self._record_failure(e)
            return False

        self.consecutive_failures = 0
        logger.debug(f"Ingest batch sent: {len(batch)} events, {self.pending} queued")
        return True

    def flush(self) -> None:
        """Send every queued batch synchronously."""
        while self.queue and not self.disabled:
            self.limiter.acquire()
            if not self.send_batch() and self.disabled:
                break

    def _record_failure(self, error: Exception) -> None:
        self.consecutive_failures += 1
        logger.debug(f"Ingest failure {self.consecutive_failures}/{self.max_failures}: {error}")
        if self.consecutive_failures >= self.max_failures:
            self.disabled_until = time.monotonic() + self.cooldown_s
            with self.lock:
                dropped = len(self.queue)
                self.queue.clear()
            logger.warning(f"Ingest disabled for {self.cooldown_s:.0f}s, dropped {dropped} queued events")

    def close(self) -> None:
        self._stop.set()
        self._wakeup.set()
        if self._worker is not None:
            self._worker.join(timeout=self.timeout_s)
