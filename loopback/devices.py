"""Static catalog of loopback pseudo-devices for device pickers and fixtures."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .constants import LoopbackConstants


@dataclass(frozen=True)
class LoopbackDevice:
    """A selectable simulated endpoint. ``address`` is the simulator mode."""

    address: str
    description: str
    manufacturer: str = LoopbackConstants.MANUFACTURER
    port: Optional[int] = None

    @property
    def uri(self) -> str:
        return f"{LoopbackConstants.SCHEME}{LoopbackConstants.SCHEME_SEPARATOR}{self.address}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON"""
        return {
            "address": self.address,
            "description": self.description,
            "manufacturer": self.manufacturer,
            "port": self.port,
            "uri": self.uri,
        }


_CATALOG = (
    ("echo", "Echo loopback (testing)"),
    ("grbl", "GRBL Simulator"),
    ("tinyg", "TinyG Simulator"),
    ("custom", "Custom response mode"),
)


def list_devices() -> List[LoopbackDevice]:
    """Return the fixed, ordered device list. No discovery is performed."""
    return [LoopbackDevice(address, description) for address, description in _CATALOG]
