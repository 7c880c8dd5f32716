"""Response sink: line framing and fan-out to connection listeners.

The simulator emits raw UTF-8 fragments. The sink buffers them, splits on
newlines and hands each complete line to every registered listener. A
listener that raises is logged and skipped; the others still get the line.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, List, Union

logger = logging.getLogger(__name__)


class ConnectionListener:
    """Observer interface. Plain callables taking one ``str`` also work."""

    def on_message(self, line: str):
        raise NotImplementedError


Listener = Union[ConnectionListener, Callable[[str], None]]


class ResponseSink:
    """Collects emitted bytes and dispatches complete lines to listeners."""

    def __init__(self, encoding: str = "utf-8"):
        self._encoding = encoding
        self._listeners: List[Listener] = []
        self._buffer = bytearray()
        self._lock = threading.Lock()

    def add_listener(self, listener: Listener):
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> List[Listener]:
        with self._lock:
            return list(self._listeners)

    def handle_response(self, data: bytes):
        """Accept an emitted fragment; dispatch every line it completes."""
        with self._lock:
            self._buffer.extend(data)
            lines = []
            while True:
                idx = self._buffer.find(b"\n")
                if idx < 0:
                    break
                raw = bytes(self._buffer[:idx])
                del self._buffer[: idx + 1]
                lines.append(raw.rstrip(b"\r").decode(self._encoding, errors="replace"))
            listeners = list(self._listeners)

        # Dispatch outside the lock; listeners may add or remove listeners
        for line in lines:
            for listener in listeners:
                self._notify(listener, line)

    def reset(self):
        """Drop any partial line still buffered."""
        with self._lock:
            self._buffer = bytearray()

    @staticmethod
    def _notify(listener: Listener, line: str):
        try:
            if isinstance(listener, ConnectionListener):
                listener.on_message(line)
            else:
                listener(line)
        except Exception:
            logger.warning(f"Listener {listener!r} failed handling {line!r}", exc_info=True)
