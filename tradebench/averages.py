"""Moving-average indicators computed over a whole series at once.

Each indicator pads its leading values with NaN so that its line stays aligned
with the series it was computed from.
"""

from __future__ import annotations

import math
from typing import Union

from tradebench.series import DataSeries, Line, line_from_values

Source = Union[DataSeries, Line]


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be at least 1, got {period}")


def _source_values(source: Source) -> list[float]:
    if isinstance(source, Line):
        return source.values()
    return source.close.values()


class Indicator:
    """Base for indicators: a primary output line and a readable name."""

    label = "IND"

    def __init__(self, line: Line, period: int) -> None:
        self.line = line
        self.period = period

    @property
    def name(self) -> str:
        return f"{self.label}({self.period})"

    def __repr__(self) -> str:
        return f"<{self.name}>"


def _sma_values(values: list[float], period: int) -> list[float]:
    out = [math.nan] * len(values)
    for i in range(period - 1, len(values)):
        out[i] = sum(values[i - period + 1 : i + 1]) / period
    return out


def _ema_values(values: list[float], period: int) -> list[float]:
    n = len(values)
    out = [math.nan] * n
    if n < period:
        return out
    first_valid = next((i for i, v in enumerate(values) if not math.isnan(v)), None)
    if first_valid is None or first_valid + period > n:
        return out

    k = 2.0 / (period + 1)
    seed = sum(values[first_valid : first_valid + period]) / period
    seed_idx = first_valid + period - 1
    out[seed_idx] = seed
    prev = seed
    for i in range(seed_idx + 1, n):
        value = values[i]
        if math.isnan(value):
            continue
        prev = value * k + prev * (1 - k)
        out[i] = prev
    return out


def ema_line(src: Line, period: int) -> Line:
    """EMA (k = 2/(period+1)) of ``src``, seeded with the SMA of its first
    ``period`` values after any leading NaNs."""
    _check_period(period)
    return line_from_values(_ema_values(src.values(), period))


class SMA(Indicator):
    """Simple moving average of the close (or of a given line)."""

    label = "SMA"

    def __init__(self, source: Source, period: int) -> None:
        _check_period(period)
        super().__init__(line_from_values(_sma_values(_source_values(source), period)), period)


class EMA(Indicator):
    """Exponential moving average of the close (or of a given line)."""

    label = "EMA"

    def __init__(self, source: Source, period: int) -> None:
        _check_period(period)
        super().__init__(line_from_values(_ema_values(_source_values(source), period)), period)


def sma_on_line(src: Line, period: int) -> SMA:
    """SMA computed over an arbitrary line."""
    return SMA(src, period)


def ema_on_line(src: Line, period: int) -> EMA:
    """EMA computed over an arbitrary line."""
    return EMA(src, period)


class WMA(Indicator):
    """Linearly weighted moving average; the newest bar weighs ``period``."""

    label = "WMA"

    def __init__(self, source: Source, period: int) -> None:
        _check_period(period)
        values = _source_values(source)
        denom = period * (period + 1) // 2
        out = [math.nan] * len(values)
        for i in range(period - 1, len(values)):
            window = values[i - period + 1 : i + 1]
            out[i] = sum(w * v for w, v in enumerate(window, start=1)) / denom
        super().__init__(line_from_values(out), period)


def _combine(weights: tuple[float, ...], lines: list[list[float]]) -> list[float]:
    out = []
    for column in zip(*lines):
        if any(math.isnan(v) for v in column):
            out.append(math.nan)
        else:
            out.append(sum(w * v for w, v in zip(weights, column)))
    return out


class DEMA(Indicator):
    """Double EMA: 2*EMA - EMA(EMA)."""

    label = "DEMA"

    def __init__(self, source: Source, period: int) -> None:
        _check_period(period)
        ema1 = _ema_values(_source_values(source), period)
        ema2 = _ema_values(ema1, period)
        super().__init__(line_from_values(_combine((2.0, -1.0), [ema1, ema2])), period)


class TEMA(Indicator):
    """Triple EMA: 3*EMA - 3*EMA(EMA) + EMA(EMA(EMA))."""

    label = "TEMA"

    def __init__(self, source: Source, period: int) -> None:
        _check_period(period)
        ema1 = _ema_values(_source_values(source), period)
        ema2 = _ema_values(ema1, period)
        ema3 = _ema_values(ema2, period)
        super().__init__(
            line_from_values(_combine((3.0, -3.0, 1.0), [ema1, ema2, ema3])), period
        )