"""Per-server log ring buffers, a broadcast aggregator and line formatting."""

from __future__ import annotations

import queue
import threading
import time
import weakref
import zlib
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

BROADCAST_CAPACITY = 1024

_PALETTE = (
    "\x1b[36m",  # cyan
    "\x1b[32m",  # green
    "\x1b[33m",  # yellow
    "\x1b[35m",  # magenta
    "\x1b[34m",  # blue
    "\x1b[96m",  # bright cyan
)
_RESET_FG = "\x1b[39m"


@dataclass(frozen=True)
class LogLine:
    """A log line captured from a managed server; ``timestamp`` is epoch seconds."""

    server: str
    timestamp: float
    message: str


class LogBuffer:
    """Bounded ring buffer of log lines; the oldest line is evicted when full."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._lines: deque[LogLine] = deque()
        self._lock = threading.Lock()

    def push(self, line: LogLine) -> None:
        with self._lock:
            if len(self._lines) >= self.capacity and self._lines:
                self._lines.popleft()
            self._lines.append(line)

    def snapshot(self) -> list[LogLine]:
        """All buffered lines, oldest first."""
        with self._lock:
            return list(self._lines)

    def snapshot_last(self, n: int) -> list[LogLine]:
        """The last ``n`` buffered lines (all of them if fewer exist)."""
        with self._lock:
            start = max(len(self._lines) - n, 0)
            return list(self._lines)[start:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


class _Subscription:
    """Receives every line broadcast by a ``LogAggregator``.

    When the subscriber falls more than the broadcast capacity behind, the
    oldest undelivered lines are dropped and ``lagged`` counts them.
    """

    def __init__(self, owner: LogAggregator, capacity: int) -> None:
        self._owner = weakref.ref(owner)
        self._lines: deque[LogLine] = deque(maxlen=capacity)
        self._cond = threading.Condition()
        self.lagged = 0

    def _deliver(self, line: LogLine) -> None:
        with self._cond:
            if len(self._lines) == self._lines.maxlen:
                self.lagged += 1
            self._lines.append(line)
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> LogLine:
        """Return the next line, raising ``queue.Empty`` if none arrives in time."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._lines, timeout):
                raise queue.Empty
            return self._lines.popleft()

    def drain(self) -> list[LogLine]:
        """Return and remove every line received so far."""
        with self._cond:
            lines = list(self._lines)
            self._lines.clear()
            return lines

    def close(self) -> None:
        owner = self._owner()
        if owner is not None:
            owner._unsubscribe(self)

    def __enter__(self) -> _Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class LogAggregator:
    """One ring buffer per server plus a broadcast of every pushed line."""

    def __init__(self, server_names: Iterable[str], capacity_per_server: int) -> None:
        self._buffers = {name: LogBuffer(capacity_per_server) for name in server_names}
        self._subscribers: weakref.WeakSet[_Subscription] = weakref.WeakSet()
        self._sub_lock = threading.Lock()

    def push(self, server: str, message: str) -> LogLine:
        """Record ``message`` for ``server`` stamped with the current time."""
        line = LogLine(server=server, timestamp=time.time(), message=message)
        buffer = self._buffers.get(server)
        if buffer is not None:
            buffer.push(line)
        with self._sub_lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            subscriber._deliver(line)
        return line

    def get_buffer(self, server: str) -> LogBuffer | None:
        return self._buffers.get(server)

    def subscribe(self) -> _Subscription:
        subscription = _Subscription(self, BROADCAST_CAPACITY)
        with self._sub_lock:
            self._subscribers.add(subscription)
        return subscription

    def _unsubscribe(self, subscription: _Subscription) -> None:
        with self._sub_lock:
            self._subscribers.discard(subscription)

    def snapshot_all(self) -> list[LogLine]:
        """Lines from every buffer merged and sorted by timestamp."""
        lines = [line for buffer in self._buffers.values() for line in buffer.snapshot()]
        lines.sort(key=lambda line: line.timestamp)
        return lines

    def server_names(self) -> list[str]:
        return list(self._buffers)


def _server_color(name: str) -> str:
    return _PALETTE[zlib.crc32(name.encode("utf-8")) % len(_PALETTE)]


def format_log_line(line: LogLine, color: bool = False) -> str:
    """Format as ``"server | YYYY-MM-DDTHH:MM:SSZ message"``, optionally coloured."""
    ts = format_system_time(line.timestamp)
    prefix = f"{_server_color(line.server)}{line.server}{_RESET_FG}" if color else line.server
    return f"{prefix} | {ts} {line.message}"


def format_system_time(timestamp: float) -> str:
    """Format epoch seconds as RFC 3339 UTC with second precision."""
    seconds = max(int(timestamp), 0)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")