from __future__ import annotations

import threading
import time

import pytest

from address_resolver.geocoding.throttling import PerWorkerRateGate, SimpleRateGate, TokenBucket


def test_simple_gate_enforces_interval():
    gate = SimpleRateGate(0.05)

    start = time.perf_counter()
    for _ in range(3):
        gate.wait()
    elapsed = time.perf_counter() - start

    assert elapsed >= 0.09


def test_per_worker_gate_does_not_serialize_threads():
    gate = PerWorkerRateGate(0.2)
    finished = []

    def worker():
        gate.wait()
        finished.append(time.perf_counter())

    start = time.perf_counter()
    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    # first call on each thread passes immediately
    assert max(finished) - start < 0.2


def test_token_bucket_try_acquire():
    bucket = TokenBucket(rate=1.0, capacity=2)

    assert bucket.try_acquire()
    assert bucket.try_acquire()
    assert not bucket.try_acquire()


@pytest.mark.parametrize("bad", [0, -1])
def test_token_bucket_rejects_bad_rate(bad):
    with pytest.raises(ValueError):
        TokenBucket(rate=bad)


def test_gates_reject_negative_interval():
    with pytest.raises(ValueError):
        SimpleRateGate(-1)
    with pytest.raises(ValueError):
        PerWorkerRateGate(-1)
