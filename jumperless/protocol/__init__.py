"""Data model and wire grammar for the Jumperless serial protocol."""

from .grammar import (
    PREFIX,
    format_instruction,
    parse_bridges,
    parse_line,
    parse_wire_color,
    split_instruction,
)
from .messages import (
    Ack,
    BridgelistReport,
    ChipStatusBegin,
    ChipStatusEnd,
    ChipStatusRecord,
    GetBridgelist,
    GetChipStatus,
    GetNetlist,
    GetSupplySwitch,
    Instruction,
    Lightnet,
    Message,
    Nack,
    NetlistBegin,
    NetlistEnd,
    NetRecord,
    Raw,
    SetBridgelist,
    SetNetlist,
    SetSupplySwitch,
    SupplySwitchReport,
    Unrecognized,
)
from .model import (
    NODE_ALIASES,
    Bridge,
    Bridgelist,
    ChipStatus,
    Color,
    Column,
    NamedNode,
    Net,
    Node,
    SupplySwitchPos,
    node_token,
    parse_node,
)

__all__ = [
    "PREFIX",
    "format_instruction",
    "parse_bridges",
    "parse_line",
    "parse_wire_color",
    "split_instruction",
    "Ack",
    "BridgelistReport",
    "ChipStatusBegin",
    "ChipStatusEnd",
    "ChipStatusRecord",
    "GetBridgelist",
    "GetChipStatus",
    "GetNetlist",
    "GetSupplySwitch",
    "Instruction",
    "Lightnet",
    "Message",
    "Nack",
    "NetlistBegin",
    "NetlistEnd",
    "NetRecord",
    "Raw",
    "SetBridgelist",
    "SetNetlist",
    "SetSupplySwitch",
    "SupplySwitchReport",
    "Unrecognized",
    "NODE_ALIASES",
    "Bridge",
    "Bridgelist",
    "ChipStatus",
    "Color",
    "Column",
    "NamedNode",
    "Net",
    "Node",
    "SupplySwitchPos",
    "node_token",
    "parse_node",
]
