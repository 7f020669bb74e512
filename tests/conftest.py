import time
import threading
from collections import deque

import pytest

from prober import Prober
import util


class FakeProber(Prober):
    """
    script: dict host -> PingStats dict (or Exception instance to raise).
    Hosts missing from the script answer with `default_latency`.
    Records every call and the peak number of concurrent probes.
    """

    def __init__(self, script=None, delay=0.0, default_latency=10.0):
        self.script = dict(script or {})
        self.delay = delay
        self.default_latency = default_latency
        self.calls = deque()
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def probe(self, host, count, timeout, family):
        with self._lock:
            self.calls.append((host, count, timeout, family))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            scripted = self.script.get(host)
            if isinstance(scripted, Exception):
                raise scripted
            if scripted is not None:
                return scripted
            return ok_stats(self.default_latency)
        finally:
            with self._lock:
                self.in_flight -= 1


def ok_stats(avg, loss=0.0):
    return {
        "reachable": True,
        "status": "ok",
        "avg_latency_ms": avg,
        "min_latency_ms": avg,
        "max_latency_ms": avg,
        "packet_loss": loss,
        "error": None,
    }


def unreachable_stats():
    return util.failed_stats("unreachable", packet_loss=100.0)


@pytest.fixture
def fake_prober():
    return FakeProber


@pytest.fixture
def write_conf(tmp_path):
    def _write(name, body):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)
        return str(path)

    return _write
