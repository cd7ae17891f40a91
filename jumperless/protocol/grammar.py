"""Line grammar of the ``::``-prefixed Jumperless serial protocol.

Every protocol line starts with ``::``. Incoming lines are turned into
:mod:`~jumperless.protocol.messages` objects by :func:`parse_line`, which never
raises: anything it cannot make sense of comes back as
:class:`~jumperless.protocol.messages.Unrecognized` so the caller decides
whether that matters. Outgoing lines are produced by
:func:`format_instruction` in the shape ``::<name>:<seq>[<args>]``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List, Tuple

from ..errors import ProtocolError
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
from .model import Bridge, ChipStatus, Color, Net, SupplySwitchPos, parse_node

__all__ = [
    "PREFIX",
    "parse_line",
    "parse_wire_color",
    "parse_bridges",
    "format_instruction",
    "split_instruction",
]

PREFIX = "::"
CHIP_X_LANES = 16
CHIP_Y_LANES = 8

_ACK = re.compile(r"::(ok|error)(?::([0-9]+))?")
_BRACKETED = re.compile(r"::([a-z-]+)\[(.*)\]", re.DOTALL)
_INSTRUCTION = re.compile(r"::([^:\[\]]+):([0-9]+)\[(.*)\]", re.DOTALL)
_UNSIGNED = re.compile(r"[0-9]+")
_SIGNED = re.compile(r"-?[0-9]+")

_MARKERS = {
    "::netlist-begin": NetlistBegin(),
    "::netlist-end": NetlistEnd(),
    "::chipstatus-begin": ChipStatusBegin(),
    "::chipstatus-end": ChipStatusEnd(),
}

logger = logging.getLogger(__name__)


def parse_line(text: str) -> Message:
    """Parse one line received from the board."""

    line = text.strip()
    try:
        return _parse_message(line)
    except ProtocolError as exc:
        logger.warning("Unrecognized protocol line %r: %s", line, exc)
        return Unrecognized(line)


def _parse_message(line: str) -> Message:
    if not line.startswith(PREFIX):
        raise ProtocolError("missing '::' prefix")

    marker = _MARKERS.get(line)
    if marker is not None:
        return marker

    ack = _ACK.fullmatch(line)
    if ack:
        sequence = int(ack.group(2)) if ack.group(2) is not None else None
        return Ack(sequence) if ack.group(1) == "ok" else Nack(sequence)

    bracketed = _BRACKETED.fullmatch(line)
    if not bracketed:
        raise ProtocolError("unknown message shape")
    name, body = bracketed.groups()
    if "]" in body:
        raise ProtocolError("stray ']' inside brackets")

    if name == "net":
        return NetRecord(_parse_net(body))
    if name == "bridgelist":
        return BridgelistReport(tuple(parse_bridges(body)))
    if name == "supplyswitch":
        return SupplySwitchReport(SupplySwitchPos.parse(body))
    if name == "chipstatus":
        return ChipStatusRecord(_parse_chip_status(body))
    raise ProtocolError(f"unknown message {name!r}")


def _parse_u8(token: str, what: str) -> int:
    if not _UNSIGNED.fullmatch(token) or int(token) > 0xFF:
        raise ProtocolError(f"invalid {what}: {token!r}")
    return int(token)


def _parse_bool(token: str, what: str) -> bool:
    if token == "true":
        return True
    if token == "false":
        return False
    raise ProtocolError(f"invalid {what}: {token!r}")


def parse_wire_color(token: str) -> Color:
    """Parse the six hex digit colour field of a ``::net`` line.

    The firmware occasionally emits garbage for a single channel. A bad byte
    pair is read as ``0`` and the rest of the line is still parsed.
    """

    return Color.from_hex(token)


def _parse_net(body: str) -> Net:
    # The name is last and may itself contain commas.
    fields = body.split(",", 6)
    if len(fields) != 7:
        raise ProtocolError(f"expected 7 net fields, got {len(fields)}")
    index, number, nodes, special, color, machine, name = fields
    return Net(
        index=_parse_u8(index, "net index"),
        number=_parse_u8(number, "net number"),
        nodes=[parse_node(token) for token in nodes.split(";")],
        special=_parse_bool(special, "special flag"),
        color=parse_wire_color(color),
        machine=_parse_bool(machine, "machine flag"),
        name=name,
    )


def parse_bridges(body: str) -> List[Bridge]:
    """Parse ``a-b,c-d,...`` into bridges. An empty string is an empty list."""

    if not body:
        return []
    bridges = []
    for item in body.split(","):
        left, sep, right = item.partition("-")
        if not sep:
            raise ProtocolError(f"invalid bridge: {item!r}")
        bridges.append(Bridge(parse_node(left), parse_node(right)))
    return bridges


def _parse_chip_status(body: str) -> ChipStatus:
    fields = body.split(",")
    expected = 1 + CHIP_X_LANES + CHIP_Y_LANES
    if len(fields) != expected:
        raise ProtocolError(f"expected {expected} chip status fields, got {len(fields)}")
    chip, lanes = fields[0], fields[1:]
    if not chip:
        raise ProtocolError("missing chip identifier")
    for token in lanes:
        if not _SIGNED.fullmatch(token):
            raise ProtocolError(f"invalid chip lane: {token!r}")
    values = [int(token) for token in lanes]
    return ChipStatus(
        chip=chip,
        x=tuple(values[:CHIP_X_LANES]),
        y=tuple(values[CHIP_X_LANES:]),
    )


def format_instruction(instruction: Instruction, sequence: int) -> str:
    """Render *instruction* as a single protocol line, without line ending."""

    if isinstance(instruction, Raw):
        return f"::{instruction.command}:{sequence}[{instruction.args}]"
    if isinstance(instruction, GetNetlist):
        return f"::getnetlist:{sequence}[]"
    if isinstance(instruction, SetNetlist):
        payload = json.dumps(
            [net.to_wire_dict() for net in instruction.nets],
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return f"::netlist:{sequence}{payload}"
    if isinstance(instruction, GetBridgelist):
        return f"::getbridgelist:{sequence}[]"
    if isinstance(instruction, SetBridgelist):
        bridges = ",".join(str(bridge) for bridge in instruction.bridges)
        return f"::bridgelist:{sequence}[{bridges}]"
    if isinstance(instruction, GetSupplySwitch):
        return f"::getsupplyswitch:{sequence}[]"
    if isinstance(instruction, SetSupplySwitch):
        return f"::setsupplyswitch:{sequence}[{instruction.position.value}]"
    if isinstance(instruction, Lightnet):
        return f"::lightnet:{sequence}[{instruction.name}: 0x{int(instruction.color):06x}]"
    if isinstance(instruction, GetChipStatus):
        return f"::getchipstatus:{sequence}[]"
    raise TypeError(f"Unsupported instruction: {instruction!r}")


def split_instruction(line: str) -> Tuple[str, int, str]:
    """Break an outgoing line into ``(name, sequence, args)``.

    This is the board's side of the grammar; it lets a simulated board answer
    the host with the right sequence numbers.
    """

    match = _INSTRUCTION.fullmatch(line.strip())
    if not match:
        raise ProtocolError(f"not an instruction line: {line!r}")
    name, sequence, args = match.groups()
    return name, int(sequence), args
