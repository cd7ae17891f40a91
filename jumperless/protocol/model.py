"""Data shapes exchanged with the board: nodes, nets, bridges and friends."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union

from ..errors import ProtocolError

__all__ = [
    "NamedNode",
    "Column",
    "Node",
    "NODE_ALIASES",
    "parse_node",
    "node_token",
    "Bridge",
    "Bridgelist",
    "Color",
    "Net",
    "SupplySwitchPos",
    "ChipStatus",
]

COLUMN_RANGE = range(1, 61)
_COLOR_PREFIXES = ("0x", "0X", "#")
_HEX_PAIR = re.compile(r"[0-9a-fA-F]{2}")
_DECIMAL = re.compile(r"[0-9]+")

logger = logging.getLogger(__name__)


class NamedNode(Enum):
    """Fixed connection points on the board, keyed by their canonical name."""

    GND = "GND"
    SUPPLY_5V = "SUPPLY_5V"
    SUPPLY_3V3 = "SUPPLY_3V3"
    DAC0 = "DAC0"
    DAC1 = "DAC1"
    ISENSE_MINUS = "ISENSE_MINUS"
    ISENSE_PLUS = "ISENSE_PLUS"
    ADC0 = "ADC0"
    ADC1 = "ADC1"
    ADC2 = "ADC2"
    ADC3 = "ADC3"
    NANO_D0 = "NANO_D0"
    NANO_D1 = "NANO_D1"
    NANO_D2 = "NANO_D2"
    NANO_D3 = "NANO_D3"
    NANO_D4 = "NANO_D4"
    NANO_D5 = "NANO_D5"
    NANO_D6 = "NANO_D6"
    NANO_D7 = "NANO_D7"
    NANO_D8 = "NANO_D8"
    NANO_D9 = "NANO_D9"
    NANO_D10 = "NANO_D10"
    NANO_D11 = "NANO_D11"
    NANO_D12 = "NANO_D12"
    NANO_D13 = "NANO_D13"
    NANO_A0 = "NANO_A0"
    NANO_A1 = "NANO_A1"
    NANO_A2 = "NANO_A2"
    NANO_A3 = "NANO_A3"
    NANO_A4 = "NANO_A4"
    NANO_A5 = "NANO_A5"
    NANO_A6 = "NANO_A6"
    NANO_A7 = "NANO_A7"
    NANO_RESET = "NANO_RESET"
    NANO_AREF = "NANO_AREF"
    RP_GPIO_0 = "RP_GPIO_0"
    RP_UART_Rx = "RP_UART_Rx"
    RP_UART_Tx = "RP_UART_Tx"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Column:
    """A numbered breadboard column."""

    number: int

    def __post_init__(self) -> None:
        if self.number not in COLUMN_RANGE:
            raise ProtocolError(f"Column out of range: {self.number}")

    def __str__(self) -> str:
        return str(self.number)


Node = Union[NamedNode, Column]


def _build_alias_table() -> dict:
    table = {member.value: member for member in NamedNode}
    n = NamedNode
    # Spellings the firmware uses in its own output. Not accepted in nodefiles.
    table.update(
        {
            "5V": n.SUPPLY_5V,
            "3V3": n.SUPPLY_3V3,
            "DAC0_5V": n.DAC0,
            "DAC1_8V": n.DAC1,
            "I_N": n.ISENSE_MINUS,
            "I_P": n.ISENSE_PLUS,
            "ADC0_5V": n.ADC0,
            "ADC1_5V": n.ADC1,
            "ADC2_5V": n.ADC2,
            "ADC3_8V": n.ADC3,
            "RESET": n.NANO_RESET,
            "AREF": n.NANO_AREF,
            "GPIO_0": n.RP_GPIO_0,
            "UART_Rx": n.RP_UART_Rx,
            "UART_Tx": n.RP_UART_Tx,
            "DAC 0": n.DAC0,
            "DAC 1": n.DAC1,
            "DAC_0": n.DAC0,
            "DAC_1": n.DAC1,
            "I_NEG": n.ISENSE_MINUS,
            "I_POS": n.ISENSE_PLUS,
            "ADC_0": n.ADC0,
            "ADC_1": n.ADC1,
            "ADC_2": n.ADC2,
            "ADC_3": n.ADC3,
            "GPIO_16": n.RP_UART_Rx,
            "GPIO_17": n.RP_UART_Tx,
        }
    )
    for pin in range(14):
        table[f"D{pin}"] = NamedNode[f"NANO_D{pin}"]
    for pin in range(8):
        table[f"A{pin}"] = NamedNode[f"NANO_A{pin}"]
    return table


NODE_ALIASES = _build_alias_table()


def parse_node(token: str) -> Node:
    """Resolve a wire token (column number, canonical name or alias) to a node."""

    if _DECIMAL.fullmatch(token):
        return Column(int(token))
    try:
        return NODE_ALIASES[token]
    except KeyError:
        raise ProtocolError(f"Unknown node: {token!r}") from None


def node_token(node: Node) -> str:
    """Return the canonical wire text for *node*."""

    return str(node)


@dataclass(frozen=True, eq=False)
class Bridge:
    """One wire between two nodes. Order of the ends does not matter."""

    a: Node
    b: Node

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bridge):
            return NotImplemented
        return (self.a, self.b) in ((other.a, other.b), (other.b, other.a))

    def __hash__(self) -> int:
        return hash(frozenset((self.a, self.b)))

    def __str__(self) -> str:
        return f"{node_token(self.a)}-{node_token(self.b)}"


Bridgelist = List[Bridge]


@dataclass(frozen=True)
class Color:
    r: int = 0
    g: int = 0
    b: int = 0

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b):
            if not 0 <= channel <= 0xFF:
                raise ValueError(f"Color channel out of range: {channel}")

    def __str__(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def __int__(self) -> int:
        return (self.r << 16) | (self.g << 8) | self.b

    @classmethod
    def from_hex(cls, digits: str) -> "Color":
        """Build a colour from six hex digits, reading a bad byte pair as ``0``."""

        if len(digits) != 6:
            raise ProtocolError(f"Invalid color: {digits!r}")
        channels = []
        for start in (0, 2, 4):
            pair = digits[start:start + 2]
            if _HEX_PAIR.fullmatch(pair):
                channels.append(int(pair, 16))
            else:
                logger.warning("Ignoring malformed color byte %r in %r", pair, digits)
                channels.append(0)
        return cls(*channels)

    @classmethod
    def parse(cls, text: str) -> "Color":
        """Parse ``#rrggbb``, ``0xrrggbb`` or bare ``rrggbb``."""

        digits = text.strip()
        for prefix in _COLOR_PREFIXES:
            if digits.startswith(prefix):
                digits = digits[len(prefix):]
                break
        if len(digits) != 6:
            raise ProtocolError(f"Invalid color: {text!r}")
        return cls.from_hex(digits)


@dataclass
class Net:
    """A named, colored group of nodes the board treats as joined."""

    index: int
    number: int
    nodes: List[Node] = field(default_factory=list)
    special: bool = False
    color: Color = field(default_factory=Color)
    machine: bool = False
    name: str = ""

    def to_wire_dict(self) -> dict:
        """Shape expected by the board for ``::netlist`` uploads."""

        return {
            "index": self.index,
            "number": self.number,
            "nodes": ",".join(node_token(node) for node in self.nodes),
            "special": self.special,
            "color": str(self.color),
            "machine": self.machine,
            "name": self.name,
        }


class SupplySwitchPos(Enum):
    """Position of the top rail supply switch.

    The board cannot sense the switch, so the host has to tell it where the
    switch is for the rails to be lit correctly.
    """

    V8 = "8V"
    V3_3 = "3.3V"
    V5 = "5V"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "SupplySwitchPos":
        try:
            return cls(text.strip())
        except ValueError:
            raise ProtocolError(f"Unknown supply switch position: {text!r}") from None


@dataclass(frozen=True)
class ChipStatus:
    """Crosspoint state of one switch chip; ``-1`` marks an unused lane."""

    chip: str
    x: Tuple[int, ...]
    y: Tuple[int, ...]
