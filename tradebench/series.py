"""Price bars and the time-aligned value lines that hold them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, Optional

NAN = math.nan


@dataclass(frozen=True)
class Bar:
    """One OHLCV bar."""

    timestamp: Optional[datetime]
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: float = 0.0
    open_interest: float = 0.0


class Line:
    """A growing series of floats addressed relative to its newest value.

    ``get(0)`` is the newest value, ``get(-1)`` the one before it, and so on.
    Positions outside the series read as NaN.
    """

    def __init__(self, values: Iterable[float] = ()) -> None:
        self._values = [float(v) for v in values]

    def forward(self) -> None:
        """Open a new slot at the head of the line, initially NaN."""
        self._values.append(NAN)

    def set(self, value: float) -> None:
        """Set the value of the newest slot."""
        if not self._values:
            raise IndexError("cannot set a value on a line with no slots")
        self._values[-1] = float(value)

    def get(self, ago: int = 0) -> float:
        """Return the value ``ago`` bars back from the newest (``ago`` <= 0)."""
        index = len(self._values) - 1 + ago
        if 0 <= index < len(self._values):
            return self._values[index]
        return NAN

    def __getitem__(self, ago: int) -> float:
        return self.get(ago)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    @property
    def cursor(self) -> int:
        """Index of the newest value, counted from the oldest."""
        return len(self._values) - 1

    def values(self) -> list[float]:
        """Return a copy of all values, oldest first."""
        return list(self._values)

    def __repr__(self) -> str:
        return f"Line(len={len(self._values)})"


def line_from_values(values: Iterable[float]) -> Line:
    """Build a line whose values, oldest first, are ``values``."""
    line = Line()
    for value in values:
        line.forward()
        line.set(value)
    return line


class DataSeries:
    """A named set of aligned OHLCV lines plus their timestamps."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.timestamps: list[Optional[datetime]] = []
        self.open = Line()
        self.high = Line()
        self.low = Line()
        self.close = Line()
        self.volume = Line()
        self.open_interest = Line()

    def _lines(self) -> tuple[Line, ...]:
        return (self.open, self.high, self.low, self.close, self.volume, self.open_interest)

    def forward(self) -> None:
        """Open a new bar slot on every line."""
        self.timestamps.append(None)
        for line in self._lines():
            line.forward()

    def append_bar(self, bar: Bar) -> None:
        """Write ``bar`` into the newest slot opened by :meth:`forward`."""
        if not self.timestamps:
            raise IndexError("forward() must be called before append_bar()")
        self.timestamps[-1] = bar.timestamp
        self.open.set(bar.open)
        self.high.set(bar.high)
        self.low.set(bar.low)
        self.close.set(bar.close)
        self.volume.set(bar.volume)
        self.open_interest.set(bar.open_interest)

    def bar(self, ago: int = 0) -> Bar:
        """Return the bar ``ago`` bars back from the newest."""
        index = len(self.timestamps) - 1 + ago
        if not 0 <= index < len(self.timestamps):
            raise IndexError(f"no bar at offset {ago} in a series of {len(self)} bars")
        return Bar(
            timestamp=self.timestamps[index],
            open=self.open.get(ago),
            high=self.high.get(ago),
            low=self.low.get(ago),
            close=self.close.get(ago),
            volume=self.volume.get(ago),
            open_interest=self.open_interest.get(ago),
        )

    def __len__(self) -> int:
        return len(self.timestamps)

    def __repr__(self) -> str:
        return f"DataSeries(name={self.name!r}, bars={len(self)})"