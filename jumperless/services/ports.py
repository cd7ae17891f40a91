"""Serial port discovery and role classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import serial.tools.list_ports

from ..errors import DiscoveryError
from ..settings import PRODUCT_NAME

__all__ = ["PortRole", "FoundPort", "collapse_alias_ports", "list_ports"]

# macOS exposes every serial port twice. Only the callout node behaves with
# exclusive opens.
ALIAS_PREFIX = "/dev/cu."
DIALIN_PREFIX = "/dev/tty."

logger = logging.getLogger(__name__)


class PortRole(Enum):
    UNKNOWN = "Unknown"
    PRIMARY = "Primary"
    SECONDARY = "SecondaryControlChannel"

    def __str__(self) -> str:
        return self.value


@dataclass
class FoundPort:
    """A serial port seen during discovery together with its role."""

    info: Any
    role: PortRole

    @property
    def port_name(self) -> str:
        return self.info.device

    @property
    def usb_id(self) -> Tuple[Optional[int], Optional[int]]:
        return (self.info.vid, self.info.pid)


def collapse_alias_ports(infos: Sequence[Any]) -> List[Any]:
    """Drop ``/dev/tty.*`` duplicates when ``/dev/cu.*`` nodes are present too."""

    names = [info.device for info in infos]
    has_alias = any(name.startswith(ALIAS_PREFIX) for name in names)
    has_dialin = any(name.startswith(DIALIN_PREFIX) for name in names)
    if has_alias and has_dialin:
        return [info for info in infos if info.device.startswith(ALIAS_PREFIX)]
    return list(infos)


def list_ports(product_name: str = PRODUCT_NAME) -> List[FoundPort]:
    """List USB serial ports and pick out the ones belonging to the board.

    Ports are grouped by USB vendor/product id. A matching group with one port
    yields the primary port. With two ports, the board also exposes the UART
    of its microcontroller; only the port names tell them apart, and the
    greater name is the primary one.
    """

    try:
        infos = list(serial.tools.list_ports.comports())
    except Exception as exc:
        raise DiscoveryError(f"Failed to list available ports: {exc}") from exc

    by_usb_id: Dict[Tuple[int, int], List[Any]] = {}
    for info in infos:
        vid = getattr(info, "vid", None)
        pid = getattr(info, "pid", None)
        if vid is None or pid is None:
            logger.warning("Ignoring port %s: not a USB serial port", info.device)
            continue
        logger.debug("Checking port %s (USB %04x:%04x)", info.device, vid, pid)
        by_usb_id.setdefault((vid, pid), []).append(info)

    found: List[FoundPort] = []
    for (vid, pid), group in by_usb_id.items():
        if getattr(group[0], "product", None) != product_name:
            found.extend(FoundPort(info, PortRole.UNKNOWN) for info in group)
            continue

        group = collapse_alias_ports(group)
        if len(group) == 1:
            logger.debug("Matching USB device %04x:%04x with single port", vid, pid)
            found.append(FoundPort(group[0], PortRole.PRIMARY))
        elif len(group) == 2:
            secondary, primary = sorted(group, key=lambda info: info.device)
            logger.debug(
                "Matching USB device %04x:%04x with two ports: primary=%s, secondary=%s",
                vid,
                pid,
                primary.device,
                secondary.device,
            )
            found.append(FoundPort(primary, PortRole.PRIMARY))
            found.append(FoundPort(secondary, PortRole.SECONDARY))
        else:
            logger.error(
                "Matching USB device %04x:%04x with more than two ports: %s",
                vid,
                pid,
                [info.device for info in group],
            )
    return found
