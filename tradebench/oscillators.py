"""Oscillators, volatility bands and range indicators over a whole series.

Like the moving averages, every line is padded with leading NaNs so that it
stays aligned with the series it was computed from.
"""

from __future__ import annotations

import math

from tradebench.averages import Indicator, ema_line
from tradebench.series import DataSeries, Line, line_from_values


def _check_period(period: int, label: str = "period") -> None:
    if period < 1:
        raise ValueError(f"{label} must be at least 1, got {period}")


def _difference(left: list[float], right: list[float]) -> list[float]:
    return [
        math.nan if math.isnan(a) or math.isnan(b) else a - b
        for a, b in zip(left, right)
    ]


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


class RSI(Indicator):
    """Relative Strength Index of the close, with Wilder smoothing.

    Values lie in [0, 100]; the first ``period`` values are NaN.
    """

    label = "RSI"

    def __init__(self, data: DataSeries, period: int) -> None:
        _check_period(period)
        closes = data.close.values()
        n = len(closes)
        out = [math.nan] * n
        if n > period:
            changes = [b - a for a, b in zip(closes, closes[1:])]
            avg_gain = sum(d for d in changes[:period] if d > 0) / period
            avg_loss = sum(-d for d in changes[:period] if d <= 0) / period
            out[period] = _rsi_value(avg_gain, avg_loss)

            alpha = 1.0 / period
            for i, diff in enumerate(changes[period:], start=period + 1):
                gain = diff if diff > 0 else 0.0
                loss = -diff if diff <= 0 else 0.0
                avg_gain = alpha * gain + (1 - alpha) * avg_gain
                avg_loss = alpha * loss + (1 - alpha) * avg_loss
                out[i] = _rsi_value(avg_gain, avg_loss)
        super().__init__(line_from_values(out), period)


class MACD(Indicator):
    """Moving Average Convergence/Divergence.

    ``line`` is fast EMA minus slow EMA, ``signal`` its EMA and
    ``histogram`` the difference between the two.
    """

    label = "MACD"

    def __init__(
        self,
        data: DataSeries,
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9,
    ) -> None:
        _check_period(fast_period, "fast_period")
        _check_period(slow_period, "slow_period")
        _check_period(signal_period, "signal_period")
        fast = ema_line(data.close, fast_period).values()
        slow = ema_line(data.close, slow_period).values()
        macd_line = line_from_values(_difference(fast, slow))
        signal_line = ema_line(macd_line, signal_period)

        super().__init__(macd_line, slow_period)
        self.fast_period = fast_period
        self.slow_period = slow_period
        self.signal_period = signal_period
        self.signal: Line = signal_line
        self.histogram: Line = line_from_values(
            _difference(macd_line.values(), signal_line.values())
        )

    @property
    def name(self) -> str:
        return f"MACD({self.fast_period},{self.slow_period},{self.signal_period})"


class Stochastic(Indicator):
    """Stochastic oscillator: ``k`` (%K, clamped to [0, 100]) and ``d`` (%D).

    %K is 50 wherever the high/low range over the window is zero.
    """

    label = "Stoch"

    def __init__(self, data: DataSeries, k_period: int = 14, d_period: int = 3) -> None:
        _check_period(k_period, "k_period")
        _check_period(d_period, "d_period")
        highs = data.high.values()
        lows = data.low.values()
        closes = data.close.values()
        n = len(closes)

        k_vals = [math.nan] * n
        for i in range(k_period - 1, n):
            lowest = min(lows[i - k_period + 1 : i + 1])
            highest = max(highs[i - k_period + 1 : i + 1])
            spread = highest - lowest
            if spread < 1e-10:
                k_vals[i] = 50.0
            else:
                k = (closes[i] - lowest) / spread * 100
                k_vals[i] = min(max(k, 0.0), 100.0)

        d_vals = [math.nan] * n
        for i in range(k_period + d_period - 2, n):
            window = k_vals[i - d_period + 1 : i + 1]
            if not any(math.isnan(v) for v in window):
                d_vals[i] = sum(window) / d_period

        k_line = line_from_values(k_vals)
        super().__init__(k_line, k_period)
        self.k_period = k_period
        self.d_period = d_period
        self.k: Line = k_line
        self.d: Line = line_from_values(d_vals)

    @property
    def name(self) -> str:
        return f"Stoch({self.k_period},{self.d_period})"


class ATR(Indicator):
    """Average True Range with Wilder smoothing.

    The first true range is High - Low; the first ATR value is the mean of the
    first ``period`` true ranges.
    """

    label = "ATR"

    def __init__(self, data: DataSeries, period: int = 14) -> None:
        _check_period(period)
        highs = data.high.values()
        lows = data.low.values()
        closes = data.close.values()
        n = len(closes)

        true_ranges: list[float] = []
        prev_close: float | None = None
        for high, low, close in zip(highs, lows, closes):
            if prev_close is None:
                true_ranges.append(high - low)
            else:
                true_ranges.append(
                    max(high - low, abs(high - prev_close), abs(low - prev_close))
                )
            prev_close = close

        out = [math.nan] * n
        if n >= period:
            prev = sum(true_ranges[:period]) / period
            out[period - 1] = prev
            for i in range(period, n):
                prev = (prev * (period - 1) + true_ranges[i]) / period
                out[i] = prev

        super().__init__(line_from_values(out), period)
        self.true_range: Line = line_from_values(true_ranges)


class BollingerBands(Indicator):
    """Bollinger Bands: SMA of the close +/- ``k`` population standard deviations."""

    label = "BB"

    def __init__(self, data: DataSeries, period: int = 20, k: float = 2.0) -> None:
        _check_period(period)
        closes = data.close.values()
        n = len(closes)
        mid = [math.nan] * n
        upper = [math.nan] * n
        lower = [math.nan] * n
        for i in range(period - 1, n):
            window = closes[i - period + 1 : i + 1]
            mean = sum(window) / period
            stddev = math.sqrt(sum((v - mean) ** 2 for v in window) / period)
            mid[i] = mean
            upper[i] = mean + k * stddev
            lower[i] = mean - k * stddev

        mid_line = line_from_values(mid)
        super().__init__(mid_line, period)
        self.k = k
        self.mid: Line = mid_line
        self.upper: Line = line_from_values(upper)
        self.lower: Line = line_from_values(lower)

    @property
    def name(self) -> str:
        return f"BB({self.period},{self.k:.1f})"

    def band_width(self, ago: int = 0) -> float:
        """(Upper - Lower) / Mid * 100 at ``ago``; NaN if Mid is NaN or zero."""
        mid = self.mid.get(ago)
        if math.isnan(mid) or mid == 0:
            return math.nan
        return (self.upper.get(ago) - self.lower.get(ago)) / mid * 100

    def percent_b(self, close: float, ago: int = 0) -> float:
        """%B of ``close`` against the bands at ``ago``; NaN for a degenerate band."""
        lower = self.lower.get(ago)
        spread = self.upper.get(ago) - lower
        if math.isnan(spread) or spread < 1e-10:
            return math.nan
        return (close - lower) / spread