"""Port discovery and connection management."""

from .device_manager import DeviceManager, DeviceStatus
from .ports import FoundPort, PortRole, collapse_alias_ports, list_ports

__all__ = [
    "DeviceManager",
    "DeviceStatus",
    "FoundPort",
    "PortRole",
    "collapse_alias_ports",
    "list_ports",
]
