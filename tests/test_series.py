import math
from datetime import datetime, timedelta, timezone

import pytest

from tradebench.series import Bar, DataSeries, Line, line_from_values

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_bars(count):
    return [
        Bar(START + timedelta(days=i), 100.0 + i, 105.0 + i, 99.0 + i, 103.0 + i, 1000.0 + i)
        for i in range(count)
    ]


def test_line_get_reads_relative_to_newest():
    values = [1.5, 2.5, 3.5]
    line = line_from_values(values)
    assert line.get(0) == values[-1]
    assert line.get(-1) == values[-2]
    assert line[-2] == values[0]


def test_line_out_of_range_is_nan():
    line = line_from_values([4.0, 5.0])
    assert line.get(0) == 5.0
    assert line.get(-1) == 4.0
    outside = [line.get(-2), line.get(1), Line().get(0)]
    assert [math.isnan(v) for v in outside] == [True, True, True]


def test_line_forward_starts_with_nan_then_set():
    line = Line()
    line.forward()
    assert math.isnan(line.get(0))
    line.set(7.25)
    assert line.get(0) == 7.25
    assert len(line) == 1
    assert line.cursor == 0


def test_line_set_without_slot_raises():
    with pytest.raises(IndexError):
        Line().set(1.0)


def test_line_values_round_trip_and_copy():
    values = [3.0, 1.0, 2.0]
    line = line_from_values(values)
    out = line.values()
    assert out == values
    out.append(99.0)
    assert len(line) == len(values)
    assert list(line) == values


def test_series_append_and_read_back():
    bars = make_bars(4)
    series = DataSeries("SYM")
    for bar in bars:
        series.forward()
        series.append_bar(bar)
    assert len(series) == len(bars)
    assert series.bar() == bars[-1]
    assert series.bar(-3) == bars[0]
    assert series.close.values() == [b.close for b in bars]
    assert series.name == "SYM"


def test_series_bar_out_of_range_raises():
    series = DataSeries("X")
    series.forward()
    series.append_bar(make_bars(1)[0])
    with pytest.raises(IndexError):
        series.bar(-1)
    with pytest.raises(IndexError):
        series.bar(1)


def test_series_append_without_forward_raises():
    with pytest.raises(IndexError):
        DataSeries("X").append_bar(make_bars(1)[0])


def test_series_lines_stay_aligned():
    series = DataSeries("A")
    for bar in make_bars(6):
        series.forward()
        series.append_bar(bar)
    lengths = {len(series.open), len(series.high), len(series.low),
               len(series.close), len(series.volume), len(series.open_interest)}
    assert lengths == {len(series)}