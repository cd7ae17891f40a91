"""Activity logs recording raw traffic on a device connection."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

__all__ = ["ActivityLogger", "NullActivityLogger", "FileActivityLogger"]

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Receives connection events. The base class ignores all of them.

    ``sent`` is called from the caller's thread and ``received`` from the
    device reader thread, so implementations must be thread-safe.
    """

    def opened(self, path: str) -> None:
        pass

    def sent(self, line: str) -> None:
        pass

    def received(self, line: str) -> None:
        pass

    def close(self) -> None:
        pass


class NullActivityLogger(ActivityLogger):
    """Discards every event."""


class FileActivityLogger(ActivityLogger):
    """Append timestamped ``OPEN``/``SEND``/``RECV`` lines to a file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._handle = self.path.open("a", encoding="utf-8")

    def opened(self, path: str) -> None:
        self._write_line("OPEN", path)

    def sent(self, line: str) -> None:
        self._write_line("SEND", line)

    def received(self, line: str) -> None:
        self._write_line("RECV", line)

    def close(self) -> None:
        with self._lock:
            if not self._handle.closed:
                self._handle.close()

    def _write_line(self, tag: str, text: str) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        with self._lock:
            if self._handle.closed:
                return
            try:
                self._handle.write(f"[{stamp}] {tag} {text}\n")
                self._handle.flush()
            except OSError as exc:
                logger.error("Could not write activity log %s: %s", self.path, exc)
