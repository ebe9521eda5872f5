"""
Request pacing for provider adapters and the ingest client.

Provider adapters keep a minimum delay between their own successive calls
on each worker thread (PerWorkerRateGate). The telemetry client paces its
sender with a TokenBucket.
"""

from __future__ import annotations

import time
import threading
from typing import Optional

from .base import RateLimiter


class TokenBucket(RateLimiter):
    """
    Tokens refill continuously at ``rate`` per second up to ``capacity``.

    A request spends one token; ``acquire`` polls until enough are
    available. Safe to share between threads.
    """

    def __init__(self, rate: float, capacity: Optional[int] = None):
        """
        Args:
            rate: Requests per second
            capacity: Burst size, two seconds' worth of tokens by default
        """
        if rate <= 0:
            raise ValueError("rate must be > 0")

        self.rate = float(rate)
        self.capacity = capacity or max(1, int(rate * 2))
        self.tokens = float(self.capacity)
        self.last_refill = time.perf_counter()
        self.lock = threading.Lock()

    def _refill(self) -> None:
        now = time.perf_counter()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now

    def try_acquire(self, count: int = 1) -> bool:
        """Spend ``count`` tokens if the bucket holds them, without blocking."""
        with self.lock:
            self._refill()
            if self.tokens < count:
                return False
            self.tokens -= count
            return True

    def acquire(self, count: int = 1) -> None:
        if count <= 0:
            raise ValueError("count must be > 0")
        while not self.try_acquire(count):
            time.sleep(0.005)

    def wait(self) -> None:
        self.acquire(1)


class SimpleRateGate(RateLimiter):
    """Fixed minimum interval between requests; the first one passes at once."""

    def __init__(self, min_interval_s: float):
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")

        self.min_interval_s = float(min_interval_s)
        self.next_allowed = time.perf_counter()
        self.lock = threading.Lock()

    def acquire(self, count: int = 1) -> None:
        with self.lock:
            delay = self.next_allowed - time.perf_counter()
            if delay > 0:
                time.sleep(delay)
            self.next_allowed = time.perf_counter() + self.min_interval_s * count

    def wait(self) -> None:
        self.acquire(1)


class PerWorkerRateGate(RateLimiter):
    """
    Minimum delay between successive calls made by the same thread.

    Each worker thread lazily gets its own SimpleRateGate, so one worker
    waiting never blocks another.
    """

    def __init__(self, min_interval_s: float):
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.min_interval_s = float(min_interval_s)
        self._local = threading.local()

    def _gate(self) -> SimpleRateGate:
        gate = getattr(self._local, "gate", None)
        if gate is None:
            gate = self._local.gate = SimpleRateGate(self.min_interval_s)
        return gate

    def acquire(self, count: int = 1) -> None:
        self._gate().acquire(count)

    def wait(self) -> None:
        self._gate().wait()


class NoOpRateLimiter(RateLimiter):
    """Never waits. Used in tests and for local mock providers."""

    def wait(self) -> None:
        pass

    def acquire(self, count: int = 1) -> None:
        pass
