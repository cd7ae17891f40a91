"""Serial connection to a Jumperless board with request/acknowledge handling."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple, Union

import serial

from ..errors import (
    DeviceConnectionError,
    ProtocolError,
    RequestFailed,
    ResponseTimeout,
    TransportError,
)
from ..protocol import (
    PREFIX,
    Ack,
    Bridge,
    BridgelistReport,
    ChipStatus,
    ChipStatusBegin,
    ChipStatusEnd,
    ChipStatusRecord,
    Color,
    GetBridgelist,
    GetChipStatus,
    GetNetlist,
    GetSupplySwitch,
    Instruction,
    Lightnet,
    Message,
    Nack,
    Net,
    NetlistBegin,
    NetlistEnd,
    NetRecord,
    Raw,
    SetBridgelist,
    SetNetlist,
    SetSupplySwitch,
    SupplySwitchPos,
    SupplySwitchReport,
    Unrecognized,
    format_instruction,
    parse_line,
)
from ..settings import DEFAULT_BAUDRATE, DEFAULT_READ_TIMEOUT, DEFAULT_RESPONSE_TIMEOUT
from .activity_log import ActivityLogger, NullActivityLogger

__all__ = ["Device", "RawResponse", "MessageCollector"]

MessageCollector = Callable[[Message], None]

INBOX_SIZE = 1024
JOIN_TIMEOUT = 2.0
# Longest run of bytes kept while waiting for a line break.
MAX_LINE_LENGTH = 16 * 1024

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ReaderFailure:
    reason: str


class RawResponse(NamedTuple):
    success: bool
    messages: List[Message]


class Device:
    """Owns one open serial connection to the board.

    A background thread reads lines, parses the ``::`` protocol lines and
    queues them. Requests are strictly one at a time: :meth:`send` writes an
    instruction tagged with a fresh sequence number and :meth:`await_ack`
    consumes queued messages until the matching ``::ok``/``::error`` shows up.
    """

    def __init__(
        self,
        handle,
        *,
        port: str = "",
        activity_log: Optional[ActivityLogger] = None,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ) -> None:
        self.port = port
        self.read_timeout = read_timeout
        self.response_timeout = response_timeout
        self._serial = handle
        self._activity = activity_log or NullActivityLogger()
        self._inbox: "queue.Queue[Union[Message, _ReaderFailure]]" = queue.Queue(
            maxsize=INBOX_SIZE
        )
        self._stop_reader = threading.Event()
        self._reader_thread: Optional[threading.Thread] = None
        self._sequence = 0
        self._sequence_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._activity.opened(port)
        self._start_reader()

    @classmethod
    def open(
        cls,
        port: str,
        *,
        baudrate: int = DEFAULT_BAUDRATE,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        activity_log: Optional[ActivityLogger] = None,
    ) -> "Device":
        """Open *port* and start reading from it."""
        try:
            handle = serial.Serial(port, baudrate, timeout=read_timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            raise DeviceConnectionError(
                f"Failed to open serial port {port}: {exc}"
            ) from exc
        _LOGGER.info("Opened serial port %s at %s baud", port, baudrate)
        return cls(
            handle,
            port=port,
            activity_log=activity_log,
            read_timeout=read_timeout,
            response_timeout=response_timeout,
        )

    def __enter__(self) -> "Device":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def is_alive(self) -> bool:
        """True while the reader thread runs. A dead reader means a dead link."""
        thread = self._reader_thread
        return bool(thread and thread.is_alive())

    def close(self) -> None:
        self._stop_reader.set()
        thread = self._reader_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=JOIN_TIMEOUT)
            if thread.is_alive():
                _LOGGER.warning("Reader for %s did not stop in time", self.port)
        self._reader_thread = None
        try:
            self._serial.close()
        except Exception:
            _LOGGER.debug("Failed to close serial port %s", self.port, exc_info=True)
        _LOGGER.info("Closed serial port %s", self.port)

    # -- requests -------------------------------------------------------

    def send(self, instruction: Instruction) -> int:
        """Write *instruction* and return the sequence number it was tagged with."""
        if not self.is_alive():
            raise TransportError(f"Connection to {self.port} is no longer alive")
        self._discard_stale()
        with self._sequence_lock:
            self._sequence += 1
            sequence = self._sequence
        line = format_instruction(instruction, sequence)
        self._activity.sent(line)
        try:
            with self._write_lock:
                self._serial.write(f"{line}\r\n".encode("utf-8"))
                self._serial.flush()
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Write to serial port {self.port} failed: {exc}") from exc
        return sequence

    def await_ack(
        self, sequence: int, collector: Optional[MessageCollector] = None
    ) -> None:
        """Block until the acknowledgement for *sequence* arrives.

        Everything else received in the meantime goes to *collector*.
        Acknowledgements without a sequence number close any request.

        Raises:
            RequestFailed: the board answered with ``::error``.
            ResponseTimeout: nothing closed the request within the response window.
            TransportError: the reader thread hit an IO error.
        """
        deadline = time.monotonic() + self.response_timeout
        while True:
            message = self._receive(deadline, sequence)
            if isinstance(message, Ack):
                if message.closes(sequence):
                    return
                _LOGGER.debug("Ignoring stale %r while waiting for %s", message, sequence)
            elif isinstance(message, Nack):
                if message.closes(sequence):
                    raise RequestFailed(
                        f"Board rejected request {sequence}", sequence=sequence
                    )
                _LOGGER.debug("Ignoring stale %r while waiting for %s", message, sequence)
            elif collector is not None:
                collector(message)

    def request(
        self, instruction: Instruction, collector: Optional[MessageCollector] = None
    ) -> int:
        sequence = self.send(instruction)
        self.await_ack(sequence, collector)
        return sequence

    # -- operations -----------------------------------------------------

    def netlist(self) -> List[Net]:
        """Retrieve the list of nets."""
        nets: List[Net] = []
        inside = False

        def collect(message: Message) -> None:
            nonlocal inside
            if isinstance(message, NetlistBegin):
                inside = True
            elif isinstance(message, NetlistEnd):
                inside = False
            elif isinstance(message, NetRecord) and inside:
                if any(net.index == message.net.index for net in nets):
                    raise ProtocolError(f"Duplicate net index {message.net.index}")
                nets.append(message.net)
            elif isinstance(message, Unrecognized) and inside:
                raise ProtocolError(f"Malformed net record: {message.line!r}")

        self.request(GetNetlist(), collect)
        return nets

    def set_netlist(self, nets: Iterable[Net]) -> None:
        """Upload a new list of nets."""
        self.request(SetNetlist(list(nets)))

    def bridgelist(self) -> List[Bridge]:
        """Retrieve the current list of bridges."""
        result: List[Tuple[Bridge, ...]] = []
        self.request(GetBridgelist(), _expect(BridgelistReport, result, "bridges"))
        if not result:
            raise ProtocolError("No ::bridgelist message received")
        return list(result[-1])

    def set_bridgelist(self, bridges: Iterable[Bridge]) -> None:
        """Replace the board's wiring with *bridges*."""
        self.request(SetBridgelist(tuple(bridges)))

    def clear_bridges(self) -> None:
        self.set_bridgelist([])

    def supply_switch(self) -> SupplySwitchPos:
        result: List[SupplySwitchPos] = []
        self.request(GetSupplySwitch(), _expect(SupplySwitchReport, result, "position"))
        if not result:
            raise ProtocolError("No ::supplyswitch message received")
        return result[-1]

    def set_supply_switch(self, position: Union[SupplySwitchPos, str]) -> None:
        if not isinstance(position, SupplySwitchPos):
            position = SupplySwitchPos.parse(position)
        self.request(SetSupplySwitch(position))

    def lightnet(self, name: str, color: Union[Color, str]) -> None:
        """Set the display color of the net called *name*."""
        if not isinstance(color, Color):
            color = Color.parse(color)
        self.request(Lightnet(name, color))

    def chip_status(self) -> List[ChipStatus]:
        statuses: List[ChipStatus] = []
        inside = False

        def collect(message: Message) -> None:
            nonlocal inside
            if isinstance(message, ChipStatusBegin):
                inside = True
            elif isinstance(message, ChipStatusEnd):
                inside = False
            elif isinstance(message, ChipStatusRecord) and inside:
                statuses.append(message.status)
            elif isinstance(message, Unrecognized) and inside:
                raise ProtocolError(f"Malformed chip status: {message.line!r}")

        self.request(GetChipStatus(), collect)
        return statuses

    def raw(self, command: str, args: str = "") -> RawResponse:
        """Send an arbitrary command and return everything it produced."""
        messages: List[Message] = []

        def collect(message: Message) -> None:
            if isinstance(message, Unrecognized):
                raise ProtocolError(f"Received unparsable line: {message.line!r}")
            messages.append(message)

        try:
            self.request(Raw(command, args), collect)
        except RequestFailed:
            return RawResponse(False, messages)
        return RawResponse(True, messages)

    # -- internals ------------------------------------------------------

    def _receive(self, deadline: float, sequence: int) -> Message:
        remaining = deadline - time.monotonic()
        try:
            if remaining <= 0:
                raise queue.Empty
            item = self._inbox.get(timeout=remaining)
        except queue.Empty:
            raise ResponseTimeout(
                f"Timeout while waiting for reply to request {sequence}"
            ) from None
        if isinstance(item, _ReaderFailure):
            raise TransportError(item.reason)
        return item

    def _discard_stale(self) -> None:
        while True:
            try:
                item = self._inbox.get_nowait()
            except queue.Empty:
                return
            if isinstance(item, _ReaderFailure):
                raise TransportError(item.reason)
            _LOGGER.debug("Discarding unsolicited %r", item)

    def _start_reader(self) -> None:
        self._stop_reader.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            name=f"Device[{self.port}]",
            daemon=True,
        )
        self._reader_thread.start()

    def _reader_loop(self) -> None:
        pending = b""
        overflowed = False
        while not self._stop_reader.is_set():
            try:
                raw = self._serial.readline()
            except Exception as exc:
                _LOGGER.error("Read from serial port %s failed: %s", self.port, exc)
                self._deliver(_ReaderFailure(f"Read from serial port failed: {exc}"))
                break
            if not raw:
                continue
            pending += raw
            if not pending.endswith(b"\n"):
                # Read timed out in the middle of a line.
                if len(pending) > MAX_LINE_LENGTH:
                    _LOGGER.warning(
                        "Dropping %d bytes from %s without a line break",
                        len(pending),
                        self.port,
                    )
                    pending = b""
                    overflowed = True
                continue
            if overflowed:
                # Tail of the line dropped above.
                pending = b""
                overflowed = False
                continue
            line = pending.decode("utf-8", errors="replace").rstrip("\r\n")
            pending = b""
            self._activity.received(line)
            if line.startswith(PREFIX):
                self._deliver(parse_line(line))
        self._stop_reader.set()

    def _deliver(self, item: Union[Message, _ReaderFailure]) -> None:
        while not self._stop_reader.is_set():
            try:
                self._inbox.put(item, timeout=self.read_timeout)
                return
            except queue.Full:
                continue


def _expect(kind, sink: list, attribute: str) -> MessageCollector:
    """Collector keeping *attribute* of every *kind* message, rejecting noise."""

    def collect(message: Message) -> None:
        if isinstance(message, kind):
            sink.append(getattr(message, attribute))
        elif isinstance(message, Unrecognized) and not sink:
            raise ProtocolError(f"Expected {kind.__name__}, got {message.line!r}")

    return collect
