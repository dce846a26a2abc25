"""Render a price series and backtest results as an interactive HTML chart."""

from __future__ import annotations

import html
import json
import math
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from string import Template
from typing import Any, Optional, Union

from tradebench.series import DataSeries

# Path of the charting script the page loads; place it next to the chart.
CHART_SCRIPT = "lightweight-charts.standalone.production.js"

UP_COLOR = "#10b981"
DOWN_COLOR = "#ef4444"
UP_VOLUME_COLOR = "#10b98155"
DOWN_VOLUME_COLOR = "#ef444455"


class PlotError(Exception):
    """Raised when a chart cannot be built."""


@dataclass
class TradeRecord:
    """A trade to mark on the chart; a negative ``size`` is a short."""

    size: float
    entry_time: datetime
    entry_price: float
    exit_time: Optional[datetime] = None
    exit_price: float = 0.0
    is_open: bool = False
    pnl: float = 0.0
    pnl_comm: float = 0.0


@dataclass
class RunResult:
    """The outcome of a run: cash, value, trades and the equity per bar."""

    starting_cash: float
    final_value: float
    trades: list[TradeRecord] = field(default_factory=list)
    equity_curve: list[float] = field(default_factory=list)


_PAGE = Template("""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Strategy results</title>
  <script src="$script"></script>
  <style>
    body { font-family: sans-serif; background: #0b0e14; color: #fff; margin: 0; padding: 20px; }
    .header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 20px; }
    .header h1 { font-size: 1.5rem; margin: 0; color: #06b6d4; }
    .stats { display: flex; gap: 20px; font-size: 0.9rem; }
    .stat { background: #1f2937; padding: 10px 15px; border-radius: 8px; border: 1px solid #374151; }
    #chart { width: 100%; height: 70vh; }
    #equity { width: 100%; height: 20vh; margin-top: 10px; }
  </style>
</head>
<body>
  <div class="header">
    <h1>Strategy results</h1>
    <div class="stats">
      <div class="stat"><strong>Start Cash:</strong> $$$starting_cash</div>
      <div class="stat"><strong>Final Value:</strong> $$$final_value</div>
      <div class="stat"><strong>Trades:</strong> $trade_count</div>
    </div>
  </div>
  <div id="chart"></div>
  <div id="equity"></div>
  <script>
    const options = {
      layout: { textColor: '#d1d5db', background: { type: 'solid', color: '#111827' } },
      grid: { vertLines: { color: '#1f2937' }, horzLines: { color: '#1f2937' } },
      crosshair: { mode: LightweightCharts.CrosshairMode.Normal },
      timeScale: { timeVisible: true, secondsVisible: false }
    };
    const chart = LightweightCharts.createChart(document.getElementById('chart'), options);
    const candles = chart.addCandlestickSeries({
      upColor: '$up', downColor: '$down', borderVisible: false,
      wickUpColor: '$up', wickDownColor: '$down'
    });
    candles.setData($candles);
    candles.setMarkers($markers);
    const volume = chart.addHistogramSeries({
      color: '#374151', priceFormat: { type: 'volume' }, priceScaleId: ''
    });
    chart.priceScale('').applyOptions({ scaleMargins: { top: 0.8, bottom: 0 } });
    volume.setData($volumes);
    const equityChart = LightweightCharts.createChart(
      document.getElementById('equity'), { ...options, timeScale: { visible: false } });
    const equity = equityChart.addLineSeries({ color: '#8b5cf6', lineWidth: 2 });
    equity.setData($equity);
    chart.timeScale().subscribeVisibleLogicalRangeChange(range => {
      equityChart.timeScale().setVisibleLogicalRange(range);
    });
  </script>
</body>
</html>
""")


def _unix(moment: Optional[datetime]) -> int:
    if moment is None:
        raise PlotError("plotter: bar or trade has no timestamp")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return math.floor(moment.timestamp())


def _trade_markers(trade: TradeRecord) -> list[dict[str, Any]]:
    short = trade.size < 0
    markers = [
        {
            "time": _unix(trade.entry_time),
            "position": "aboveBar" if short else "belowBar",
            "color": DOWN_COLOR if short else UP_COLOR,
            "shape": "arrowDown" if short else "arrowUp",
            "text": f"Entry @ {trade.entry_price:.2f}",
        }
    ]
    if not trade.is_open:
        markers.append(
            {
                "time": _unix(trade.exit_time),
                "position": "belowBar" if short else "aboveBar",
                "color": UP_COLOR if short else DOWN_COLOR,
                "shape": "arrowUp" if short else "arrowDown",
                "text": f"Exit @ {trade.exit_price:.2f}",
            }
        )
    return markers


def build_chart_payload(data: DataSeries, result: RunResult) -> dict[str, list[dict[str, Any]]]:
    """Collect candles, volumes, equity points and trade markers, oldest first.

    Equity points are paired with bars by position, as far as the curve reaches.
    """
    length = len(data)
    if length == 0:
        raise PlotError("plotter: data series is empty")

    candles: list[dict[str, Any]] = []
    volumes: list[dict[str, Any]] = []
    equity: list[dict[str, Any]] = []
    for index in range(length):
        bar = data.bar(index - (length - 1))
        unix = _unix(bar.timestamp)
        candles.append(
            {"time": unix, "open": bar.open, "high": bar.high, "low": bar.low, "close": bar.close}
        )
        volumes.append(
            {
                "time": unix,
                "value": bar.volume,
                "color": UP_VOLUME_COLOR if bar.close >= bar.open else DOWN_VOLUME_COLOR,
            }
        )
        if index < len(result.equity_curve):
            equity.append({"time": unix, "value": result.equity_curve[index]})

    markers = [marker for trade in result.trades for marker in _trade_markers(trade)]
    return {"candles": candles, "volumes": volumes, "equity": equity, "markers": markers}


def _script_json(items: list[dict[str, Any]]) -> str:
    return json.dumps(items).replace("</", "<\\/")


def render_chart(data: DataSeries, result: RunResult) -> str:
    """Return the chart page as an HTML string."""
    payload = build_chart_payload(data, result)
    return _PAGE.substitute(
        script=html.escape(CHART_SCRIPT, quote=True),
        starting_cash=f"{result.starting_cash:.2f}",
        final_value=f"{result.final_value:.2f}",
        trade_count=len(result.trades),
        up=UP_COLOR,
        down=DOWN_COLOR,
        candles=_script_json(payload["candles"]),
        markers=_script_json(payload["markers"]),
        volumes=_script_json(payload["volumes"]),
        equity=_script_json(payload["equity"]),
    )


def plot(data: DataSeries, result: RunResult, output_path: Union[str, os.PathLike]) -> None:
    """Write the chart page for ``data`` and ``result`` to ``output_path``."""
    page = render_chart(data, result)
    with open(output_path, "w", encoding="utf-8") as handle:
        handle.write(page)