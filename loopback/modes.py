"""Simulator modes and connection-string parsing.

A loopback connection string looks like::

    loopback://grbl
    loopback://tinyg
    loopback://custom?response=CUSTOM_OK\\n

The part between the scheme separator and an optional ``?`` selects the
simulator mode. Only ``custom`` reads a query parameter (``response``).
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .constants import LoopbackConstants
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class SimulatorMode(Enum):
    """Controller types the loopback connection can pretend to be."""

    ECHO = "echo"
    GRBL = "grbl"
    TINYG = "tinyg"
    CUSTOM = "custom"

    @classmethod
    def from_text(cls, text: Optional[str]) -> "SimulatorMode":
        """Case-insensitive lookup; unknown or empty text falls back to ECHO."""
        key = (text or "").strip().lower()
        for mode in cls:
            if mode.value == key:
                return mode
        return cls.ECHO


@dataclass(frozen=True)
class SimulatorState:
    """Configuration owned by one connection instance.

    The worker receives a snapshot of this value when the connection opens,
    so reconfiguring a connection never changes a running worker.
    """

    mode: SimulatorMode = SimulatorMode.ECHO
    custom_response: str = LoopbackConstants.DEFAULT_CUSTOM_RESPONSE
    response_delay_ms: int = LoopbackConstants.DEFAULT_RESPONSE_DELAY_MS

    def __post_init__(self):
        object.__setattr__(self, "response_delay_ms", max(0, int(self.response_delay_ms)))

    @property
    def response_delay_s(self) -> float:
        return self.response_delay_ms / 1000.0

    def with_delay(self, delay_ms: int) -> "SimulatorState":
        """Return a copy with a new (clamped) response delay."""
        return replace(self, response_delay_ms=delay_ms)


def _query_value(query: str, name: str) -> Optional[str]:
    """Return the raw value of ``name`` in ``query``, terminated by '&' or end."""
    marker = f"{name}="
    start = query.find(marker)
    if start < 0:
        return None
    start += len(marker)
    end = query.find("&", start)
    return query[start:] if end < 0 else query[start:end]


def decode_literal(text: str) -> str:
    """Turn the two-character escape ``\\n`` into a real line break."""
    return text.replace("\\n", "\n")


def parse_uri(uri: str, base: Optional[SimulatorState] = None) -> SimulatorState:
    """Parse a loopback connection string into a SimulatorState.

    Args:
        uri: Connection string, ``scheme://mode[?response=<literal>]``
        base: State to start from (keeps its delay and custom literal).
              Defaults to a fresh SimulatorState.

    Returns:
        New SimulatorState with the parsed mode (and literal for custom mode)

    Raises:
        ConfigurationError: If the value is not a string at all.
            An unrecognized mode is not an error; it selects ECHO, and so
            does a string without a scheme separator.
    """
    state = base if base is not None else SimulatorState()

    try:
        _, found, rest = uri.partition(LoopbackConstants.SCHEME_SEPARATOR)
        mode_text, _, query = rest.partition("?") if found else ("", "", "")

        mode = SimulatorMode.from_text(mode_text)
        custom_response = state.custom_response
        if mode is SimulatorMode.CUSTOM:
            response = _query_value(query, "response")
            if response is not None and response.strip():
                custom_response = decode_literal(response)
    except (AttributeError, TypeError) as e:
        raise ConfigurationError(f"Couldn't parse connection string {uri!r}") from e

    logger.info(f"Loopback connection configured with mode: {mode.name}")
    return replace(state, mode=mode, custom_response=custom_response)
