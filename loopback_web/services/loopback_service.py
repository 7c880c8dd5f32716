"""Loopback simulator service for managing the active simulated device"""

from typing import List, Optional, Tuple
import logging
import threading
import time

from loopback.byte_logger import interpret
from loopback.constants import LoopbackConstants
from loopback.modes import SimulatorMode
from loopback.transport import LoopbackTransport

logger = logging.getLogger(__name__)


class LoopbackDeviceManager:
    """Manages the active simulator connection and its state"""

    def __init__(self):
        self.transport: Optional[LoopbackTransport] = None
        self.uri: Optional[str] = None
        self.lock = threading.RLock()

    def connect(self, uri: str, delay_ms: int = LoopbackConstants.DEFAULT_RESPONSE_DELAY_MS, settle_ms: int = 100) -> Tuple[SimulatorMode, List[str]]:
        """Open a simulator, replacing any previous one.

        Args:
            uri: Loopback connection string
            delay_ms: Simulated response delay
            settle_ms: How long to collect boot messages

        Returns:
            (mode, boot message lines emitted on open)

        Raises:
            ConfigurationError: If the URI cannot be parsed
        """
        with self.lock:
            self.disconnect()
            transport = LoopbackTransport(uri, response_delay_ms=delay_ms, timeout=settle_ms / 1000.0)
            self.transport = transport
            self.uri = uri
            banner = []
            while True:
                line = transport.readline()
                if not line:
                    break
                banner.append(line.decode("utf-8").rstrip("\n"))
            mode = transport.connection.mode
            logger.info(f"Connected to simulator {uri} ({mode.name})")
            return mode, banner

    def disconnect(self) -> bool:
        """Close the active simulator. Safe to call when nothing is open."""
        with self.lock:
            if self.transport:
                self.transport.close()
                logger.info(f"Disconnected from simulator {self.uri}")
            self.transport = None
            self.uri = None
            return True

    def is_connected(self) -> bool:
        """Check if a simulator is open"""
        with self.lock:
            return self.transport is not None and self.transport.connection.is_open

    def status(self) -> dict:
        """Snapshot of the active simulator, taken under the lock."""
        with self.lock:
            connected = self.is_connected()
            connection = self.transport.connection if connected else None
            return {
                "connected": connected,
                "uri": self.uri,
                "mode": connection.mode.value if connection else None,
                "delay_ms": connection.response_delay_ms if connection else None,
            }


class LoopbackService:
    """Service for simulator operations"""

    def __init__(self, device_manager: LoopbackDeviceManager):
        self.device = device_manager

    def send_command(
        self,
        command: str,
        timeout: float = 2.0,
        settle_ms: int = 120,
        flush_input: bool = True,
    ) -> tuple[bool, dict]:
        """Send one command and collect the response lines.

        Waits up to ``timeout`` for the first line, then keeps collecting
        until no new line arrives for ``settle_ms``. Commands that produce no
        response (GRBL real-time commands) return after ``timeout``.
        """
        if not command:
            return False, {"success": False, "error": "Empty command"}

        timeout = max(0.05, min(float(timeout), 30.0))
        settle_ms = max(10, min(int(settle_ms), 1000))
        if not command.endswith("\n"):
            command += "\n"

        with self.device.lock:
            # disconnect() may have run since the request arrived
            if not self.device.is_connected():
                return False, {"success": False, "error": "Simulator not connected"}
            transport = self.device.transport
            if flush_input:
                transport.reset_input_buffer()

            tx_time = time.time()
            transport.write(command.encode("utf-8"))

            lines = []
            transport.set_timeout(timeout)
            while True:
                raw = transport.readline()
                if not raw:
                    break
                lines.append(raw.decode("utf-8").rstrip("\n"))
                transport.set_timeout(settle_ms / 1000.0)
            elapsed_ms = (time.time() - tx_time) * 1000

        return True, {
            "success": True,
            "command": command.rstrip("\n"),
            "lines": lines,
            "kinds": [interpret(line.encode("utf-8")) for line in lines],
            "elapsed_ms": round(elapsed_ms, 1),
        }
