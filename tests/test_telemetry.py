from __future__ import annotations

import threading

import pytest
import requests

from address_resolver.geocoding import telemetry as telemetry_module
from address_resolver.geocoding.telemetry import IngestClient, NullTelemetry, safe_emit


class FakePost:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def __call__(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.fail:
            raise requests.ConnectionError("ingest down")
        return FakeResponse()


class FakeResponse:
    def raise_for_status(self):
        pass


@pytest.fixture
def post(monkeypatch):
    fake = FakePost()
    monkeypatch.setattr(telemetry_module.requests, "post", fake)
    return fake


def make_client(**kwargs):
    kwargs.setdefault("min_interval_s", 0.01)
    return IngestClient("http://ingest.local/", session_id="run-1", background=False, **kwargs)


def test_batches_are_capped(post):
    client = make_client()
    for i in range(30):
        client.emit("row_done", row=i)

    client.flush()

    assert [len(payload["events"]) for _, payload, _ in post.calls] == [25, 5]
    assert post.calls[0][0] == "http://ingest.local/ingest/run-1"
    assert post.calls[0][1]["events"][0]["event"] == "row_done"
    assert post.calls[0][2] == 2.0
    assert client.pending == 0


def test_repeated_failures_disable_and_drop_queue(post):
    post.fail = True
    client = make_client(batch_size=1)
    for i in range(5):
        client.emit("row_done", row=i)

    client.flush()

    assert len(post.calls) == 3
    assert client.disabled
    assert client.pending == 0

    client.emit("ignored")
    assert client.pending == 0


def test_success_resets_failure_count(post):
    client = make_client(batch_size=1)
    post.fail = True
    client.emit("a")
    client.send_batch()
    assert client.consecutive_failures == 1

    post.fail = False
    client.emit("b")
    assert client.send_batch()
    assert client.consecutive_failures == 0


def test_random_session_id_when_missing():
    client = IngestClient("http://ingest.local", background=False)

    assert client.url.startswith("http://ingest.local/ingest/")
    assert len(client.url.rsplit("/", 1)[1]) == 36


def test_null_telemetry_accepts_anything():
    sink = NullTelemetry()
    sink.emit("anything", a=1)
    sink.close()


def test_concurrent_emits_start_one_sender(post):
    client = IngestClient("http://ingest.local", session_id="run-2", min_interval_s=0.01)
    barrier = threading.Barrier(8)

    def emit():
        barrier.wait()
        client.emit("row_done")

    threads = [threading.Thread(target=emit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    senders = [t for t in threading.enumerate() if t.name == "ingest-client"]
    client.close()
    assert len(senders) == 1


def test_safe_emit_swallows_sink_failures():
    class FailingSink(NullTelemetry):
        def emit(self, event, **data):
            raise RuntimeError("sink down")

    safe_emit(FailingSink(), "batch_started", total_rows=1)
    safe_emit(None, "batch_started")
