import threading
import time

import pytest

from loopback import LoopbackConnection


class RecordingListener:
    """Collects lines delivered by a connection's response sink."""

    def __init__(self):
        self.lines = []
        self._cond = threading.Condition()

    def __call__(self, line):
        with self._cond:
            self.lines.append(line)
            self._cond.notify_all()

    def wait_for(self, count, timeout=2.0):
        """Block until at least ``count`` lines arrived; return a copy."""
        deadline = time.monotonic() + timeout
        with self._cond:
            while len(self.lines) < count:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._cond.wait(remaining)
            return list(self.lines)

    def clear(self):
        with self._cond:
            self.lines.clear()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def connection(listener):
    conn = LoopbackConnection()
    conn.add_listener(listener)
    yield conn
    conn.close()
