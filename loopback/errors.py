"""Exceptions raised by the loopback simulator."""


class LoopbackError(Exception):
    """Base class for loopback simulator errors."""


class ConfigurationError(LoopbackError):
    """Raised when a connection string cannot be parsed at all."""


class ConnectionStateError(LoopbackError):
    """Raised when an operation is not valid in the current lifecycle state."""


class AlreadyOpenError(ConnectionStateError):
    """Raised by open() on a connection that is already open."""


class NotOpenError(ConnectionStateError):
    """Raised when sending on a closed connection."""


class UnsupportedCapabilityError(LoopbackError, NotImplementedError):
    """Raised by entry points the simulator deliberately does not implement."""
