"""Loopback connection: a simulated controller behind a serial-style API.

Usage:
    conn = LoopbackConnection()
    conn.set_uri("loopback://grbl")
    conn.add_listener(print)
    conn.open()            # emits the GRBL banner
    conn.send("G0 X10\\n")  # answered with "ok" by the worker thread
    conn.close()

Threading model:
    send() only appends to an unbounded FIFO and returns. One daemon worker
    per open connection takes commands in order, waits the configured delay,
    synthesizes the response and emits it to the listeners. Responses are
    therefore emitted in exactly the order commands were sent.

    close() signals the worker through a cancellation event, waits up to
    LoopbackConstants.CLOSE_TIMEOUT_S for it to stop and then DROPS every
    command still queued. Commands sent right before close() may never be
    answered. open() and close() must not race each other on one instance.
"""

from __future__ import annotations
import logging
import queue
import threading
from typing import List, Optional, Union

from . import responses
from .constants import LoopbackConstants
from .devices import LoopbackDevice, list_devices
from .errors import AlreadyOpenError, NotOpenError, UnsupportedCapabilityError
from .listeners import Listener, ResponseSink
from .modes import SimulatorMode, SimulatorState, parse_uri

logger = logging.getLogger(__name__)

# Wakes a worker blocked on an empty queue during close()
_STOP = object()


class LoopbackConnection:
    """Serial-style connection answered by a simulated controller."""

    def __init__(self, uri: Optional[str] = None, response_delay_ms: Optional[int] = None):
        self._state = SimulatorState()
        self._sink = ResponseSink()
        self._open = False
        self._commands: "queue.Queue" = queue.Queue()
        self._cancel = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self.uri: Optional[str] = None

        if uri is not None:
            self.set_uri(uri)
        if response_delay_ms is not None:
            self.set_response_delay(response_delay_ms)

    # --- configuration -------------------------------------------------

    def set_uri(self, uri: str):
        """Configure the simulator from a connection string.

        Raises ConfigurationError if uri is not a string; the current
        configuration is kept in that case. Reconfigure only while closed: a
        running worker keeps the configuration it was opened with.
        """
        self._state = parse_uri(uri, self._state)
        self.uri = uri
        if self._open:
            logger.warning("Loopback reconfigured while open; takes effect on next open")

    def set_response_delay(self, delay_ms: int):
        """Set the simulated processing delay (ms). Negative values clamp to 0."""
        self._state = self._state.with_delay(delay_ms)

    @property
    def state(self) -> SimulatorState:
        return self._state

    @property
    def mode(self) -> SimulatorMode:
        return self._state.mode

    @property
    def response_delay_ms(self) -> int:
        return self._state.response_delay_ms

    @property
    def custom_response(self) -> str:
        return self._state.custom_response

    # --- listeners -----------------------------------------------------

    def add_listener(self, listener: Listener):
        self._sink.add_listener(listener)

    def remove_listener(self, listener: Listener):
        self._sink.remove_listener(listener)

    # --- lifecycle -----------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> bool:
        """Open the connection and start the response worker.

        Raises:
            AlreadyOpenError: If the connection is already open
        """
        if self._open:
            raise AlreadyOpenError("Loopback connection is already open")

        state = self._state
        commands: "queue.Queue" = queue.Queue()
        cancel = threading.Event()

        self._commands = commands
        self._cancel = cancel
        self._sink.reset()
        self._open = True

        # Boot chatter goes out before the worker can answer anything
        for message in responses.boot_messages(state.mode):
            self._emit(message)

        self._worker = threading.Thread(
            target=self._process_commands,
            args=(state, commands, cancel),
            name=LoopbackConstants.WORKER_THREAD_NAME,
            daemon=True,
        )
        self._worker.start()

        logger.info(f"Loopback connection opened in {state.mode.name} mode")
        return True

    def close(self):
        """Stop the worker and drop unanswered commands. No-op when closed."""
        if not self._open:
            return

        self._open = False
        self._cancel.set()
        self._commands.put(_STOP)

        worker = self._worker
        self._worker = None
        if worker is not None and worker is not threading.current_thread():
            worker.join(LoopbackConstants.CLOSE_TIMEOUT_S)
            if worker.is_alive():
                logger.warning(
                    f"Loopback worker did not stop within {LoopbackConstants.CLOSE_TIMEOUT_S}s"
                )

        dropped = self._drain(self._commands)
        if dropped:
            logger.info(f"Loopback connection closed, {dropped} pending command(s) dropped")
        else:
            logger.info("Loopback connection closed")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # --- producer side -------------------------------------------------

    def send(self, command: str):
        """Queue a command for the simulator; never waits for the response.

        Raises:
            NotOpenError: If the connection is closed
        """
        if not self._open:
            raise NotOpenError("Connection is not open")
        logger.debug(f"Loopback received: {command.strip()!r}")
        self._commands.put(command)

    def write(self, data: Union[str, bytes]) -> int:
        """Host-side write entry point; funnels into send()."""
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        self.send(text)
        return len(data)

    def send_byte_immediately(self, value: int):
        """Accept a real-time control byte.

        Real-time bytes are not emulated on a separate channel: the byte is
        logged and no response is produced.
        """
        if not self._open:
            raise NotOpenError("Connection is not open")
        logger.debug(f"Loopback received byte: 0x{value & 0xFF:02X}")

    def xmodem_receive(self) -> bytes:
        raise UnsupportedCapabilityError("XModem not supported in loopback mode")

    def xmodem_send(self, data: bytes):
        raise UnsupportedCapabilityError("XModem not supported in loopback mode")

    # --- discovery -----------------------------------------------------

    def get_devices(self) -> List[LoopbackDevice]:
        return list_devices()

    # --- consumer side -------------------------------------------------

    def _process_commands(self, state: SimulatorState, commands: "queue.Queue", cancel: threading.Event):
        delay_s = state.response_delay_s
        while not cancel.is_set():
            command = commands.get()
            if command is _STOP or cancel.is_set():
                break

            # Event.wait returns True when cancelled mid-delay: abandon the command
            if delay_s > 0 and cancel.wait(delay_s):
                break

            try:
                response = responses.generate_response(state.mode, command, state.custom_response)
                if response:
                    self._emit(response)
            except Exception:
                logger.warning("Error processing command in loopback", exc_info=True)

        logger.debug("Loopback worker stopped")

    def _emit(self, response: str):
        try:
            self._sink.handle_response(response.encode("utf-8"))
            logger.debug(f"Loopback sent: {response.strip()!r}")
        except Exception:
            logger.warning("Error simulating response", exc_info=True)

    @staticmethod
    def _drain(commands: "queue.Queue") -> int:
        dropped = 0
        while True:
            try:
                item = commands.get_nowait()
            except queue.Empty:
                return dropped
            if item is not _STOP:
                dropped += 1
