import threading
import time

import pytest

from fluent_tagged_logger.collector import ForwardCollector
from fluent_tagged_logger.logger import FluentLogger


class RecordingSink:
    """Sink that keeps every post in memory."""

    def __init__(self):
        self.posts: list[tuple[str, dict]] = []
        self.closed = False

    def post(self, tag, record):
        self.posts.append((tag, record))
        return True

    def close(self):
        self.closed = True

    @property
    def records(self) -> list[dict]:
        return [record for _, record in self.posts]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_logger(sink):
    """Build a FluentLogger on the recording sink with per-test overrides."""

    def _make(**overrides):
        options = {"tag": "app"}
        options.update(overrides)
        return FluentLogger(sink, **options)

    return _make


@pytest.fixture
def collector():
    """Run a ForwardCollector on an ephemeral port. Yields (collector, host, port)."""
    shutdown = threading.Event()
    server = ForwardCollector("127.0.0.1", 0, shutdown)
    t = threading.Thread(target=server.start, daemon=True)
    t.start()
    for _ in range(50):
        if server.server_address:
            break
        time.sleep(0.02)
    host, port = server.server_address
    yield server, host, port
    server.stop()
