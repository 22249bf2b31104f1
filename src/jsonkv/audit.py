"""Append-only audit log.

Every store operation hands a human-readable outcome message to
AuditLogger.log(), which appends one line to the sink:

    sroberts@talentpath.com 1563221866619
    ERROR: phone Invalid key on user.json 1563221866620

Sinks only need an ``append(line)`` method.  FileSink is the production
sink; MemorySink keeps lines in a list so callers can assert on entries
without touching the filesystem.

A failing sink never raises into the caller.  The failure is returned on
LogEntry.error and logged as a warning on the ``jsonkv.audit`` logger.
"""

from __future__ import annotations

import fcntl
import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from jsonkv.models import LogEntry

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("jsonkv.audit")


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class AuditSink(Protocol):
    def append(self, line: str) -> None: ...


class FileSink:
    """Append lines to a UTF-8 text file, creating it if absent."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock, self.path.open("a", encoding="utf-8", errors="backslashreplace") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.write(line)
            f.flush()

    def __repr__(self) -> str:
        return f"FileSink({str(self.path)!r})"


class MemorySink:
    """In-memory sink. ``lines`` holds raw lines, newline included."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        with self._lock:
            self.lines.append(line)

    @property
    def messages(self) -> list[str]:
        """Logged messages with the trailing timestamp stripped."""
        return [line.rstrip("\n").rsplit(" ", 1)[0] for line in self.lines]


class AuditLogger:
    """Timestamps messages and appends them to a sink."""

    def __init__(self, sink: AuditSink, clock: Callable[[], int] | None = None) -> None:
        self.sink = sink
        self.clock = clock or now_ms

    @classmethod
    def to_file(cls, path: Path | str) -> AuditLogger:
        return cls(FileSink(path))

    def log(self, message: str) -> LogEntry:
        entry = LogEntry(message=message, timestamp_ms=self.clock())
        try:
            self.sink.append(entry.line())
        except (OSError, ValueError) as exc:
            logger.warning("audit append failed (%s): %r", self.sink, message, exc_info=True)
            return LogEntry(message=entry.message, timestamp_ms=entry.timestamp_ms, error=str(exc))
        return entry
