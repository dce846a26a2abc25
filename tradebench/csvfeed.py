"""Load OHLCV bars from a CSV file and replay them bar by bar."""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from tradebench.series import Bar, DataSeries

DEFAULT_DATE_FORMAT = "%Y-%m-%d"
_EMPTY_VALUES = {"", "null", "N/A"}


class CSVFeedError(Exception):
    """Raised when a CSV feed cannot be opened or parsed."""


@dataclass
class CSVFeedConfig:
    """How a CSV file maps onto bars.

    Column indices are 0-based; a negative index means the column is absent.
    The defaults match Yahoo Finance exports:
    ``Date,Open,High,Low,Close,Adj Close,Volume``.
    """

    file_path: Union[str, os.PathLike]
    date_time_format: str = DEFAULT_DATE_FORMAT
    separator: str = ","
    date_time_col: int = 0
    open_col: int = 1
    high_col: int = 2
    low_col: int = 3
    close_col: int = 4
    volume_col: int = 6
    open_interest_col: int = -1
    has_header: bool = True
    reverse_order: bool = False


def default_yahoo_config(file_path: Union[str, os.PathLike]) -> CSVFeedConfig:
    """Return a config for Yahoo Finance CSVs (uses Close, not Adj Close)."""
    return CSVFeedConfig(file_path=file_path)


class CSVFeed:
    """A feed that pre-loads all bars from a CSV file.

    ``data`` grows one bar per :meth:`next`; ``preloaded_data`` holds every
    bar once :meth:`load` has run and is meant for building indicators.
    """

    def __init__(self, config: CSVFeedConfig) -> None:
        self.config = config
        name = os.fspath(config.file_path).rpartition("/")[2]
        self.data = DataSeries(name)
        self.preloaded_data: Optional[DataSeries] = None
        self._bars: list[Bar] = []
        self._cursor = 0

    def load(self) -> None:
        """Read the whole CSV file into memory."""
        cfg = self.config
        separator = cfg.separator or ","
        date_format = cfg.date_time_format or DEFAULT_DATE_FORMAT
        try:
            handle = open(cfg.file_path, newline="", encoding="utf-8")
        except OSError as exc:
            raise CSVFeedError(f"csvfeed: open {os.fspath(cfg.file_path)!r}: {exc}") from exc

        bars: list[Bar] = []
        with handle:
            reader = csv.reader(handle, delimiter=separator)
            expected_fields: Optional[int] = None
            row_idx = 0
            try:
                for record in reader:
                    if not record:
                        continue
                    if expected_fields is None:
                        expected_fields = len(record)
                    elif len(record) != expected_fields:
                        raise CSVFeedError(
                            f"csvfeed: read row {row_idx}: wrong number of fields "
                            f"({len(record)}, expected {expected_fields})"
                        )
                    if row_idx == 0 and cfg.has_header:
                        row_idx += 1
                        continue
                    row_idx += 1
                    try:
                        bars.append(self._parse_record(record, date_format))
                    except ValueError as exc:
                        raise CSVFeedError(f"csvfeed: parse row {row_idx}: {exc}") from exc
            except csv.Error as exc:
                raise CSVFeedError(f"csvfeed: read row {row_idx}: {exc}") from exc

        if cfg.reverse_order:
            bars.reverse()

        self._bars = bars
        self._cursor = 0
        preloaded = DataSeries(self.data.name)
        for bar in bars:
            preloaded.forward()
            preloaded.append_bar(bar)
        self.preloaded_data = preloaded

    def _parse_record(self, record: list[str], date_format: str) -> Bar:
        cfg = self.config

        def column(index: int, label: str) -> float:
            if index < 0 or index >= len(record):
                return 0.0
            text = record[index].strip()
            if text in _EMPTY_VALUES:
                return 0.0
            try:
                return float(text)
            except ValueError:
                raise ValueError(f"parse {label}: invalid number {text!r}") from None

        if not 0 <= cfg.date_time_col < len(record):
            raise ValueError(f"datetime column {cfg.date_time_col} missing")
        dt_text = record[cfg.date_time_col].strip()
        try:
            timestamp = datetime.strptime(dt_text, date_format)
        except ValueError:
            raise ValueError(
                f"parse datetime {dt_text!r} with format {date_format!r}"
            ) from None
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return Bar(
            timestamp=timestamp,
            open=column(cfg.open_col, "Open"),
            high=column(cfg.high_col, "High"),
            low=column(cfg.low_col, "Low"),
            close=column(cfg.close_col, "Close"),
            volume=column(cfg.volume_col, "Volume"),
            open_interest=column(cfg.open_interest_col, "OpenInterest"),
        )

    def next(self) -> bool:
        """Advance ``data`` by one bar; return False once all bars are used."""
        if self._cursor >= len(self._bars):
            return False
        bar = self._bars[self._cursor]
        self._cursor += 1
        self.data.forward()
        self.data.append_bar(bar)
        return True

    def total_bars(self) -> int:
        """Number of bars loaded from the file."""
        return len(self._bars)