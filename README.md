# tradebench

Building blocks for working with OHLCV price bars:

- `tradebench.series`: `Bar`, `Line` and `DataSeries`, the containers that hold
  bars. Values are read relative to the newest bar. `line.get(0)` (or
  `line[0]`) is the newest value and `line.get(-1)` the one before it.
  Positions outside the line read as NaN. `line_from_values` builds a line from
  a list of values, oldest first.
- `tradebench.csvfeed`: `CSVFeed` loads OHLCV rows from a CSV file.
  `default_yahoo_config(path)` returns a `CSVFeedConfig` for the Yahoo Finance
  export layout (`Date,Open,High,Low,Close,Adj Close,Volume`). It reads Close,
  not Adj Close.
- `tradebench.averages`: the moving averages `SMA`, `EMA`, `WMA`, `DEMA` and
  `TEMA`. It also provides `sma_on_line`, `ema_on_line` and `ema_line`, which
  work on any `Line`.
- `tradebench.oscillators`: `RSI`, `MACD`, `Stochastic`, `ATR` and
  `BollingerBands`.
- `tradebench.livefeed`: `LiveFeed`, a feed that a producer thread fills. It
  also has `parse_bar`, which reads the default JSON bar format.
- `tradebench.restfeed`, `tradebench.wsfeed` and `tradebench.redisfeed`: live
  feeds that take bars from three sources:
  - `RESTFeed` polls an HTTP endpoint.
  - `WebSocketFeed` reads from a WebSocket server.
  - `RedisFeed` reads from a Redis stream.
- `tradebench.plot`: writes an interactive HTML candlestick chart. The chart
  shows volume, an equity curve and trade markers.

## Installing

```
pip install .
```

## Loading a CSV file

```python
from tradebench.csvfeed import CSVFeed, default_yahoo_config

feed = CSVFeed(default_yahoo_config("prices.csv"))
feed.load()
print(feed.total_bars())

while feed.next():
    bar = feed.data.bar(0)
    print(bar.timestamp, bar.close)
```

`load()` reads every row into memory.

- `feed.preloaded_data` then holds all of the bars.
- `feed.data` grows by one bar on each call to `next()`.
- `next()` returns `False` once every bar has been used.

When parsing rows:

- Blank cells and the values `null` and `N/A` read as zero.
- Dates are parsed with `date_time_format`, a `strptime` format whose default
  is `%Y-%m-%d`. Timestamps without a zone are taken as UTC.

Other `CSVFeedConfig` settings:

- `separator` sets the field separator.
- Column indices choose the columns; a negative index means the column is
  absent.
- `has_header` skips a header row.
- `reverse_order` reverses newest-first files.

`CSVFeedError` is raised in these cases, with the row named where there is one:

- the file cannot be opened;
- a row has a different number of fields;
- a date or number cannot be parsed.

## Indicators

Each indicator computes its whole output when it is built. It does so over the
close of a `DataSeries`; the moving averages also accept a `Line`. Each one has:

- `line`, its main output;
- `period`;
- `name`, such as `SMA(5)`, `MACD(12,26,9)` or `BB(20,2.0)`.

Values before the look-back period is filled are NaN, so positions stay
aligned with the bars. A period below 1 raises `ValueError`.

```python
from tradebench.averages import SMA, EMA
from tradebench.oscillators import RSI, MACD, BollingerBands

data = feed.preloaded_data
fast = SMA(data, 5)
slow = SMA(data, 20)
rsi = RSI(data, 14)
macd = MACD(data, 12, 26, 9)
bands = BollingerBands(data, 20, 2.0)

print(fast.name, fast.line.get(0), slow.line.get(-1))
print(rsi.line.get(0), macd.signal.get(0), macd.histogram.get(0))
print(bands.upper.get(0), bands.band_width(0), bands.percent_b(data.close.get(0), 0))
```

Other outputs:

| Indicator | Outputs |
| --- | --- |
| `Stochastic` | `k` (%K, clamped to 0–100) and `d` (%D) |
| `ATR` | `true_range` as well as the Wilder-smoothed `line` |
| `BollingerBands` | `mid`, `upper` and `lower` |

## Live data

A live feed's `next()` waits until a bar arrives, then appends it to
`feed.data`. It returns `False` in two cases:

- the feed has been stopped or cancelled;
- the source has ended and the buffered bars have all been used.

```python
from tradebench.wsfeed import WebSocketConfig, WebSocketFeed

feed = WebSocketFeed(WebSocketConfig(url="ws://localhost:9876/bars", symbol="DEMO"))
feed.start()
while feed.next():
    print(feed.data.close.get(0))
feed.stop()
```

### The default message format

Messages are JSON objects such as:

```json
{"t": "2024-01-02T15:04:05Z", "o": 150.0, "h": 155.0, "l": 149.0, "c": 153.0, "v": 100000}
```

The time `t` may be any of:

- an RFC 3339 time;
- a `YYYY-MM-DD` date;
- a number of Unix seconds.

`parse_bar` decodes this format and raises `BarParseError` on bad input.

### Feed options

- **`WebSocketFeed`** skips messages it cannot parse. If `reconnect_delay` is
  set, it redials after a disconnect.
- **`RESTFeed`** needs a `parse_func` that turns a response body into the new
  bars it carries. It polls once at start and then every `poll_interval`
  seconds. Failed requests are skipped.
- **`RedisFeed`** reads with XREAD by default, so it sees only entries added
  after it starts. If `group` is set, it reads with XREADGROUP instead.
  Entries are decoded with `parse_redis_fields`, which reads the fields `t`,
  `o`, `h`, `l`, `c` and `v`. A ready client can be passed to the constructor.

### Filling a feed yourself

A plain `LiveFeed` can be filled by your own code:

- `push(bar)` queues a bar;
- `close()` ends the stream.

## Charts

```python
from tradebench.plot import RunResult, TradeRecord, plot

result = RunResult(starting_cash=10_000, final_value=10_450, equity_curve=[...], trades=[...])
plot(feed.data, result, "chart.html")
```

- `render_chart` returns the page as a string.
- `build_chart_payload` returns the candle, volume, equity and marker data.
- An empty series raises `PlotError`.

The page loads the charting script `lightweight-charts.standalone.production.js`
from the directory it sits in. That file must be placed next to the chart.

## What it does not do

The package has no backtesting engine. It does not include:

- a broker or order simulation;
- a strategy runner;
- performance analyzers;
- a command-line program.

You supply a `RunResult` (cash, final value, trades and equity curve) from your
own code. The live feeds only deliver bars; they do not place orders.

## Running the tests

```
pip install .[test]
pytest
```