"""Live feeds: bars arrive from a background producer and are consumed bar by bar.

A producer thread calls :meth:`LiveFeed.push` for every new bar and
:meth:`LiveFeed.close` when the stream ends. The consumer calls
:meth:`LiveFeed.next`, which blocks until a bar arrives, the stream ends or
the feed is cancelled. Each consumed bar is appended to ``data``.
"""

from __future__ import annotations

import json
import queue
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from tradebench.series import Bar, DataSeries

DEFAULT_BUFFER_SIZE = 256
_WAIT_SLICE = 0.05

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})\Z"
)


class BarParseError(ValueError):
    """Raised when a message cannot be turned into a bar."""


class LiveFeed:
    """A feed whose bars are pushed in by a producer while it runs."""

    def __init__(self, name: str, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if buffer_size <= 0:
            buffer_size = DEFAULT_BUFFER_SIZE
        self.name = name
        self.data = DataSeries(name)
        self._queue: queue.Queue[Bar] = queue.Queue(maxsize=buffer_size)
        self._cancelled = threading.Event()
        self._closed = threading.Event()

    @property
    def cancelled(self) -> bool:
        """True once the feed has been cancelled or stopped."""
        return self._cancelled.is_set()

    def _wait_cancelled(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._cancelled.wait(timeout)

    def load(self) -> None:
        """Nothing to load: live data streams in while the feed runs."""

    def start(self) -> None:
        """Begin producing bars. A plain feed is filled by explicit pushes."""

    def stop(self) -> None:
        """Shut the feed down."""
        self.cancel()

    def cancel(self) -> None:
        """Cancel the feed: producers stop and :meth:`next` returns False."""
        self._cancelled.set()

    def push(self, bar: Bar) -> bool:
        """Queue a bar, blocking while the buffer is full.

        Returns False if the feed was cancelled before the bar could be queued.
        """
        if self._closed.is_set():
            raise RuntimeError(f"live feed {self.name!r} is closed")
        while not self._cancelled.is_set():
            try:
                self._queue.put(bar, timeout=_WAIT_SLICE)
            except queue.Full:
                continue
            return True
        return False

    def close(self) -> None:
        """Mark the end of the stream; queued bars can still be consumed."""
        self._closed.set()

    def next(self) -> bool:
        """Wait for the next bar and append it to ``data``.

        Returns False when the stream has ended or the feed is cancelled.
        """
        while True:
            if self._cancelled.is_set():
                return False
            try:
                bar = self._queue.get(timeout=_WAIT_SLICE)
            except queue.Empty:
                if self._closed.is_set() and self._queue.empty():
                    return False
                continue
            self.data.forward()
            self.data.append_bar(bar)
            return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, bars={len(self.data)})"


def _parse_rfc3339(text: str) -> Optional[datetime]:
    match = _RFC3339.match(text)
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction = match.group(7) or ""
    microsecond = int((fraction + "000000")[:6])
    zone = match.group(8)
    try:
        if zone == "Z":
            tz = timezone.utc
        else:
            sign = 1 if zone[0] == "+" else -1
            offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
            tz = timezone(sign * offset)
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)
    except ValueError:
        return None


def _parse_time_text(text: str) -> datetime:
    parsed = _parse_rfc3339(text)
    if parsed is not None:
        return parsed
    try:
        return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        raise BarParseError(f"parse datetime {text!r}") from None


def _parse_time_value(value: Any) -> datetime:
    if isinstance(value, str):
        return _parse_time_text(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (ValueError, OverflowError, OSError) as exc:
            raise BarParseError(f"invalid unix timestamp {value!r}: {exc}") from exc
    raise BarParseError(f"unsupported timestamp type {type(value).__name__}")


def _number(obj: dict, key: str) -> float:
    value = obj.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BarParseError(f"parse bar JSON: field {key!r} is not a number")
    return float(value)


def parse_bar(data: Union[bytes, str]) -> Bar:
    """Parse the default JSON bar format.

    ``{"t": "2024-01-02T15:04:05Z", "o": 150.0, "h": 155.0, "l": 149.0,
    "c": 153.0, "v": 100000}``; ``t`` may also be a ``YYYY-MM-DD`` date or
    a number of unix seconds.
    """
    try:
        obj = json.loads(data)
    except (ValueError, TypeError) as exc:
        raise BarParseError(f"parse bar JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise BarParseError("parse bar JSON: expected an object")
    return Bar(
        timestamp=_parse_time_value(obj.get("t")),
        open=_number(obj, "o"),
        high=_number(obj, "h"),
        low=_number(obj, "l"),
        close=_number(obj, "c"),
        volume=_number(obj, "v"),
    )