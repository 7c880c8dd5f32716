"""Loopback CNC controller simulator - serial-style endpoint without hardware.

Emulates GRBL and TinyG firmware chatter (plus echo and fixed-response modes)
behind a connection with open/send/close semantics. Pure Python, threads only.
"""

from .connection import LoopbackConnection
from .devices import LoopbackDevice, list_devices
from .errors import (
    AlreadyOpenError,
    ConfigurationError,
    LoopbackError,
    NotOpenError,
    UnsupportedCapabilityError,
)
from .listeners import ConnectionListener, ResponseSink
from .modes import SimulatorMode, SimulatorState, parse_uri
from .responses import generate_response
from .transport import LoopbackTransport, MockTransport, SerialTransport

__all__ = [
    "LoopbackConnection",
    "LoopbackDevice",
    "list_devices",
    "LoopbackError",
    "ConfigurationError",
    "AlreadyOpenError",
    "NotOpenError",
    "UnsupportedCapabilityError",
    "ConnectionListener",
    "ResponseSink",
    "SimulatorMode",
    "SimulatorState",
    "parse_uri",
    "generate_response",
    "LoopbackTransport",
    "MockTransport",
    "SerialTransport",
]
__version__ = "0.1.0"
