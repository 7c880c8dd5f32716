"""Expose a simulated controller on a serial port.

Point the bridge at one end of a virtual null modem, e.g.

    socat -d -d pty,raw,echo=0,link=/tmp/cnc0 pty,raw,echo=0,link=/tmp/cnc1

run ``loopback-sim bridge --port /tmp/cnc0 --uri loopback://grbl`` and
connect the client under test to /tmp/cnc1.
"""

from __future__ import annotations
import logging
import threading
from typing import Optional

from .connection import LoopbackConnection
from .transport import TransportBase

logger = logging.getLogger(__name__)

# Single-byte commands GRBL clients send without a line terminator
REALTIME_COMMANDS = {b"?", b"~", b"!", b"\x18"}


class SerialBridge:
    """Forward port lines to a LoopbackConnection and responses back to the port.

    The bridge owns both ends once constructed; close() closes them.
    """

    def __init__(self, transport: TransportBase, connection: LoopbackConnection, byte_logger=None):
        self.transport = transport
        self.connection = connection
        self._byte_logger = byte_logger
        self._stop = threading.Event()
        self._pending = b""
        self.lines_forwarded = 0
        connection.add_listener(self._on_line)

    def _on_line(self, line: str):
        data = line.encode("utf-8") + b"\n"
        if self._byte_logger:
            self._byte_logger.log_recv(data)
        self.transport.write(data)

    def _forward(self, data: bytes):
        if self._byte_logger:
            self._byte_logger.log_send(data, "BRIDGE")
        self.connection.send(data.decode("utf-8", errors="replace"))
        self.lines_forwarded += 1

    def poll(self) -> bool:
        """Read once from the port and forward what is complete.

        Returns False when the port read failed and the bridge should stop.
        """
        try:
            chunk = self.transport.readline()
        except OSError as e:
            logger.error(f"Serial read failed: {e}")
            if self._byte_logger:
                self._byte_logger.log_error(str(e))
            return False

        if not chunk:
            return True

        data = self._pending + chunk
        # A real-time byte can arrive glued to the front of the next line
        while len(data) > 1 and data[:1] in REALTIME_COMMANDS and data[1:2] not in (b"\r", b"\n"):
            self._forward(data[:1])
            data = data[1:]

        if data.endswith(b"\n"):
            self._pending = b""
            self._forward(data)
        elif data.strip() in REALTIME_COMMANDS:
            self._pending = b""
            self._forward(data)
        else:
            # Partial line: wait for the rest
            self._pending = data
        return True

    def run(self, stop_event: Optional[threading.Event] = None):
        """Bridge until stop() (or ``stop_event``) is set or the port fails."""
        if not self.connection.is_open:
            self.connection.open()
        logger.info(f"Bridging {self.connection.mode.name} simulator")

        while not self._stop.is_set() and not (stop_event and stop_event.is_set()):
            if not self.poll():
                break

        logger.info(f"Bridge stopped after {self.lines_forwarded} command(s)")

    def stop(self):
        self._stop.set()

    def close(self):
        self.stop()
        self.connection.close()
        self.connection.remove_listener(self._on_line)
        self.transport.close()
