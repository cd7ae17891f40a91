"""Instructions sent to the board and messages received from it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .model import Bridge, ChipStatus, Color, Net, SupplySwitchPos

__all__ = [
    "Ack",
    "Nack",
    "NetlistBegin",
    "NetlistEnd",
    "NetRecord",
    "BridgelistReport",
    "SupplySwitchReport",
    "ChipStatusBegin",
    "ChipStatusEnd",
    "ChipStatusRecord",
    "Unrecognized",
    "Message",
    "GetNetlist",
    "SetNetlist",
    "GetBridgelist",
    "SetBridgelist",
    "GetSupplySwitch",
    "SetSupplySwitch",
    "Lightnet",
    "GetChipStatus",
    "Raw",
    "Instruction",
]


# Board -> host


@dataclass(frozen=True)
class Ack:
    """``::ok``, optionally closing the request with this sequence number."""

    sequence: Optional[int] = None

    def closes(self, sequence: int) -> bool:
        return self.sequence is None or self.sequence == sequence


@dataclass(frozen=True)
class Nack:
    """``::error``, optionally rejecting the request with this sequence number."""

    sequence: Optional[int] = None

    def closes(self, sequence: int) -> bool:
        return self.sequence is None or self.sequence == sequence


@dataclass(frozen=True)
class NetlistBegin:
    pass


@dataclass(frozen=True)
class NetlistEnd:
    pass


# Not frozen: a Net is mutable.
@dataclass
class NetRecord:
    net: Net


@dataclass(frozen=True)
class BridgelistReport:
    bridges: Tuple[Bridge, ...] = ()


@dataclass(frozen=True)
class SupplySwitchReport:
    position: SupplySwitchPos


@dataclass(frozen=True)
class ChipStatusBegin:
    pass


@dataclass(frozen=True)
class ChipStatusEnd:
    pass


@dataclass(frozen=True)
class ChipStatusRecord:
    status: ChipStatus


@dataclass(frozen=True)
class Unrecognized:
    """A protocol line the grammar could not make sense of."""

    line: str


Message = Union[
    Ack,
    Nack,
    NetlistBegin,
    NetlistEnd,
    NetRecord,
    BridgelistReport,
    SupplySwitchReport,
    ChipStatusBegin,
    ChipStatusEnd,
    ChipStatusRecord,
    Unrecognized,
]


# Host -> board


@dataclass(frozen=True)
class GetNetlist:
    pass


@dataclass
class SetNetlist:
    nets: List[Net]


@dataclass(frozen=True)
class GetBridgelist:
    pass


@dataclass(frozen=True)
class SetBridgelist:
    bridges: Tuple[Bridge, ...]


@dataclass(frozen=True)
class GetSupplySwitch:
    pass


@dataclass(frozen=True)
class SetSupplySwitch:
    position: SupplySwitchPos


@dataclass(frozen=True)
class Lightnet:
    name: str
    color: Color


@dataclass(frozen=True)
class GetChipStatus:
    pass


@dataclass(frozen=True)
class Raw:
    """Escape hatch for commands this library does not model yet."""

    command: str
    args: str = ""


Instruction = Union[
    GetNetlist,
    SetNetlist,
    GetBridgelist,
    SetBridgelist,
    GetSupplySwitch,
    SetSupplySwitch,
    Lightnet,
    GetChipStatus,
    Raw,
]
