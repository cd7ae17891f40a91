"""Host-side library for controlling a Jumperless breadboard over serial."""

from __future__ import annotations

from .config import DeviceConfig, load_config, save_config
from .errors import (
    DeviceConnectionError,
    DiscoveryError,
    JumperlessError,
    ProtocolError,
    RequestFailed,
    ResponseTimeout,
    TransportError,
)
from .services import DeviceManager, DeviceStatus, FoundPort, PortRole, list_ports
from .settings import configure_logging
from .transport import Device, FileActivityLogger, NullActivityLogger

__all__ = [
    "Device",
    "DeviceConfig",
    "DeviceConnectionError",
    "DeviceManager",
    "DeviceStatus",
    "DiscoveryError",
    "FileActivityLogger",
    "FoundPort",
    "JumperlessError",
    "NullActivityLogger",
    "PortRole",
    "ProtocolError",
    "RequestFailed",
    "ResponseTimeout",
    "TransportError",
    "configure_logging",
    "list_ports",
    "load_config",
    "save_config",
]
