import httpx
import pytest

from grading.errors import ReadinessTimeoutError
from grading.http_client import ApiClient
from grading.managers.readiness_probe import ReadinessProbe


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_probe(handler, clock, interval=1.0):
    def factory(base_url, timeout):
        return ApiClient(base_url, timeout=timeout, transport=httpx.MockTransport(handler))

    return ReadinessProbe(path="/", interval=interval, client_factory=factory, clock=clock, sleep=clock.sleep)


def refusing_until(attempt_ready, status=404):
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] < attempt_ready:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(status, text="Cannot GET /")

    return handler, calls


def test_ready_after_connection_refused():
    clock = FakeClock()
    handler, calls = refusing_until(3)

    make_probe(handler, clock).wait("http://localhost:3000", timeout=30)

    assert calls["count"] == 3
    assert clock.sleeps == [1.0, 1.0]


def test_error_status_counts_as_ready():
    clock = FakeClock()
    handler, calls = refusing_until(1, status=500)

    make_probe(handler, clock).wait("http://localhost:3000", timeout=30)

    assert calls["count"] == 1
    assert clock.sleeps == []


def test_timeout_when_never_answering():
    clock = FakeClock()
    handler, calls = refusing_until(1000)

    with pytest.raises(ReadinessTimeoutError, match="readiness_timeout"):
        make_probe(handler, clock).wait("http://localhost:3000", timeout=5)

    assert clock.now <= 5
    assert calls["count"] == 6


def test_exited_process_fails_fast():
    clock = FakeClock()
    handler, calls = refusing_until(1000)

    with pytest.raises(ReadinessTimeoutError, match="server_exited_before_ready"):
        make_probe(handler, clock).wait("http://localhost:3000", timeout=30, is_alive=lambda: False)

    assert calls["count"] == 1
