"""Transport abstractions (Serial + Loopback + Mock)

Keep this small and explicit. SerialTransport wraps pyserial for real (or
virtual) ports. LoopbackTransport puts a LoopbackConnection behind the same
byte-oriented interface so client code can run against a simulated
controller. MockTransport is for unit tests and serves queued responses.
"""

from __future__ import annotations
import threading
import time
from typing import Optional

from .connection import LoopbackConnection
from .constants import LoopbackConstants


class TransportBase:
    def write(self, data: bytes) -> int:  # returns bytes written
        raise NotImplementedError

    def read(self, size: int = 1) -> bytes:
        raise NotImplementedError

    def readline(self) -> bytes:
        raise NotImplementedError

    def set_timeout(self, timeout: float):
        raise NotImplementedError

    def reset_input_buffer(self):
        raise NotImplementedError

    def reset_output_buffer(self):
        raise NotImplementedError

    def close(self):
        raise NotImplementedError


class SerialTransport(TransportBase):
    def __init__(
        self, port: str = "/dev/ttyUSB0", baudrate: int = 115200, timeout: float = 2.0
    ):
        import serial

        self._ser = serial.Serial(port, baudrate, timeout=timeout)

    @property
    def port(self) -> str:
        return self._ser.port

    def write(self, data: bytes) -> int:
        return self._ser.write(data)

    def read(self, size: int = 1) -> bytes:
        return self._ser.read(size)

    def readline(self) -> bytes:
        return self._ser.readline()

    def set_timeout(self, timeout: float):
        self._ser.timeout = timeout

    def reset_input_buffer(self):
        self._ser.reset_input_buffer()

    def reset_output_buffer(self):
        self._ser.reset_output_buffer()

    def close(self):
        self._ser.close()


class LoopbackTransport(TransportBase):
    """Byte transport answered by a simulated controller.

    Opens the underlying LoopbackConnection on construction. Response lines
    are buffered (newline-terminated) until read.

    Usage:
        t = LoopbackTransport("loopback://grbl", response_delay_ms=0)
        t.readline()        # b"\\n" (boot blank line)
        t.readline()        # b"Grbl 1.1h ['$' for help]\\n"
        t.write(b"G0 X1\\n")
        t.readline()        # b"ok\\n"
    """

    def __init__(
        self,
        uri: str = LoopbackConstants.DEFAULT_URI,
        response_delay_ms: Optional[int] = None,
        timeout: float = 2.0,
        byte_logger=None,
    ):
        self._rx = bytearray()
        self._cond = threading.Condition()
        self._timeout = timeout
        self._byte_logger = byte_logger

        self.connection = LoopbackConnection(uri, response_delay_ms)
        self.connection.add_listener(self._on_line)
        self.connection.open()

    def _on_line(self, line: str):
        data = line.encode("utf-8") + b"\n"
        if self._byte_logger:
            self._byte_logger.log_recv(data)
        with self._cond:
            self._rx.extend(data)
            self._cond.notify_all()

    def _wait_for(self, predicate) -> bool:
        deadline = time.monotonic() + self._timeout
        with self._cond:
            while not predicate():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True

    def write(self, data: bytes) -> int:
        if self._byte_logger:
            self._byte_logger.log_send(bytes(data))
        return self.connection.write(bytes(data))

    def read(self, size: int = 1) -> bytes:
        self._wait_for(lambda: len(self._rx) > 0)
        with self._cond:
            out = bytes(self._rx[:size])
            del self._rx[:size]
            return out

    def readline(self) -> bytes:
        """Return one line including b"\\n", or whatever arrived before the timeout."""
        self._wait_for(lambda: b"\n" in self._rx)
        with self._cond:
            idx = self._rx.find(b"\n")
            end = len(self._rx) if idx < 0 else idx + 1
            out = bytes(self._rx[:end])
            del self._rx[:end]
            return out

    @property
    def in_waiting(self) -> int:
        with self._cond:
            return len(self._rx)

    def set_timeout(self, timeout: float):
        self._timeout = timeout

    def reset_input_buffer(self):
        with self._cond:
            self._rx = bytearray()

    def reset_output_buffer(self):
        # Writes go straight to the command queue; nothing to flush
        pass

    def close(self):
        self.connection.close()
        self.connection.remove_listener(self._on_line)


class MockTransport(TransportBase):
    """Simple mock transport for unit tests.

    Usage:
        m = MockTransport()
        m.queue_response(b"G0 X1\\n")
        m.readline()     # b"G0 X1\\n"
        m.write(b"ok\\n")
        m.writes         # [b"ok\\n"]
    """

    def __init__(self):
        self._write_log = []
        self._resp = bytearray()
        self._timeout = 1.0
        self.closed = False

    def queue_response(self, data: bytes):
        self._resp.extend(data)

    def write(self, data: bytes) -> int:
        self._write_log.append(bytes(data))
        return len(data)

    def read(self, size: int = 1) -> bytes:
        if not self._resp:
            return b""
        out = bytes(self._resp[:size])
        del self._resp[:size]
        return out

    def readline(self) -> bytes:
        if not self._resp:
            # Mimic a serial read timeout without really waiting the full period
            time.sleep(min(self._timeout, 0.01))
            return b""
        idx = self._resp.find(b"\n")
        end = len(self._resp) if idx < 0 else idx + 1
        out = bytes(self._resp[:end])
        del self._resp[:end]
        return out

    def set_timeout(self, timeout: float):
        self._timeout = timeout

    def reset_input_buffer(self):
        self._resp = bytearray()

    def reset_output_buffer(self):
        self._write_log = []

    def close(self):
        self._resp = bytearray()
        self.closed = True

    @property
    def writes(self):
        return list(self._write_log)
