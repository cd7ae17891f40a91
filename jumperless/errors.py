"""Exception types raised by the Jumperless host library."""

from __future__ import annotations

__all__ = [
    "JumperlessError",
    "DeviceConnectionError",
    "TransportError",
    "ResponseTimeout",
    "RequestFailed",
    "ProtocolError",
    "DiscoveryError",
]


class JumperlessError(Exception):
    """Base class for every failure surfaced by this package."""


class DeviceConnectionError(JumperlessError):
    """The serial port could not be opened."""


class TransportError(JumperlessError):
    """The link to the board broke while a request was in flight."""


class ResponseTimeout(TransportError):
    """No acknowledgement arrived within the response window."""


class RequestFailed(JumperlessError):
    """The board answered a request with a negative acknowledgement."""

    def __init__(self, message: str, sequence: int | None = None) -> None:
        super().__init__(message)
        self.sequence = sequence


class ProtocolError(JumperlessError):
    """A token or line did not match the wire grammar."""


class DiscoveryError(JumperlessError):
    """Serial ports could not be enumerated or no board was found."""
