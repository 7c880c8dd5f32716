"""Service layer for loopback simulator operations"""

from .loopback_service import LoopbackDeviceManager, LoopbackService

__all__ = ['LoopbackDeviceManager', 'LoopbackService']
