"""Serial transport for talking to a Jumperless board."""

from .activity_log import ActivityLogger, FileActivityLogger, NullActivityLogger
from .device import Device, MessageCollector, RawResponse

__all__ = [
    "ActivityLogger",
    "Device",
    "FileActivityLogger",
    "MessageCollector",
    "NullActivityLogger",
    "RawResponse",
]
