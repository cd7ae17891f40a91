"""Keeps a working connection to the board available to callers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from ..config import DeviceConfig
from ..errors import DiscoveryError, JumperlessError
from ..settings import (
    DEFAULT_BAUDRATE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RESPONSE_TIMEOUT,
    PRODUCT_NAME,
)
from ..transport import ActivityLogger, Device, FileActivityLogger
from .ports import FoundPort, PortRole, list_ports

__all__ = ["DeviceManager", "DeviceStatus"]

T = TypeVar("T")
DeviceFactory = Callable[[str], Device]

logger = logging.getLogger(__name__)


@dataclass
class DeviceStatus:
    connected: bool


class DeviceManager:
    """Finds the board, opens it on demand and reopens it after failures.

    With a fixed *port* discovery is skipped and that port is always used.
    Otherwise the first port classified as primary by :func:`list_ports` is
    opened. Calls through :meth:`with_device` are serialized.
    """

    def __init__(
        self,
        port: Optional[str] = None,
        *,
        activity_log: Optional[ActivityLogger] = None,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        product_name: str = PRODUCT_NAME,
        device_factory: Optional[DeviceFactory] = None,
    ) -> None:
        self.port = port or None
        self.product_name = product_name
        self.baudrate = baudrate
        self.read_timeout = read_timeout
        self.response_timeout = response_timeout
        self._activity_log = activity_log
        self._device_factory = device_factory
        self._device: Optional[Device] = None
        self._lock = threading.RLock()
        if self.port:
            logger.info("Initialize DeviceManager with fixed port %s", self.port)
        else:
            logger.info("Initialize DeviceManager with dynamic port detection")

    @classmethod
    def from_config(cls, config: DeviceConfig) -> "DeviceManager":
        activity_log = FileActivityLogger(config.activity_log) if config.activity_log else None
        return cls(
            config.port or None,
            activity_log=activity_log,
            baudrate=config.baudrate,
            read_timeout=config.read_timeout,
            response_timeout=config.response_timeout,
        )

    def __enter__(self) -> "DeviceManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def list_ports(self) -> List[FoundPort]:
        return list_ports(self.product_name)

    def with_device(self, operation: Callable[[Device], T]) -> T:
        """Run *operation* against an open device, opening one if needed.

        Any failure of *operation* drops the connection so the next call
        starts from a fresh one.
        """
        with self._lock:
            device = self._ensure_device()
            try:
                return operation(device)
            except Exception as exc:
                logger.error("Error communicating with device: %s", exc)
                self.close_device()
                raise

    def status(self) -> DeviceStatus:
        try:
            self.with_device(lambda _device: None)
        except JumperlessError:
            return DeviceStatus(connected=False)
        return DeviceStatus(connected=True)

    def close_device(self) -> None:
        with self._lock:
            device, self._device = self._device, None
            if device is not None:
                device.close()

    def close(self) -> None:
        self.close_device()
        if self._activity_log is not None:
            self._activity_log.close()

    def _ensure_device(self) -> Device:
        device = self._device
        if device is not None and device.is_alive():
            return device
        if device is not None:
            logger.warning("Connection to %s was lost", device.port)
            self.close_device()
        logger.info("Attempting to open device")
        port = self._port_path()
        self._device = self._open(port)
        logger.info("Connected to jumperless on port %s", port)
        return self._device

    def _open(self, port: str) -> Device:
        if self._device_factory is not None:
            return self._device_factory(port)
        return Device.open(
            port,
            baudrate=self.baudrate,
            read_timeout=self.read_timeout,
            response_timeout=self.response_timeout,
            activity_log=self._activity_log,
        )

    def _port_path(self) -> str:
        if self.port:
            return self.port
        for found in self.list_ports():
            if found.role is PortRole.PRIMARY:
                logger.debug("Found primary port %s", found.port_name)
                return found.port_name
        raise DiscoveryError("No matching serial port found")
