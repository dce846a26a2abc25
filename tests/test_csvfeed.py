from datetime import date, datetime, timedelta, timezone

import pytest

from tradebench.csvfeed import CSVFeed, CSVFeedConfig, CSVFeedError, default_yahoo_config

HEADER = "Date,Open,High,Low,Close,Adj Close,Volume"


def sample_rows(count=50):
    start = date(2023, 1, 2)
    rows = []
    for i in range(count):
        if i == 0:
            o, c = 125.07, 130.73
        else:
            o, c = 125.0 + i, 126.0 + i
        day = start + timedelta(days=i)
        rows.append(f"{day:%Y-%m-%d},{o},{max(o, c) + 1},{min(o, c) - 1},{c},{c},{1000 + i}")
    return rows


@pytest.fixture
def sample_csv(tmp_path):
    path = tmp_path / "sample.csv"
    path.write_text("\n".join([HEADER, *sample_rows()]) + "\n", encoding="utf-8")
    return path


def test_csv_feed_load(sample_csv):
    feed = CSVFeed(default_yahoo_config(str(sample_csv)))
    feed.load()
    assert feed.total_bars() == 50

    assert feed.next() is True
    bar = feed.data.bar()
    assert bar.open == 125.07
    assert bar.close == 130.73

    count = 1
    while feed.next():
        count += 1
    assert count == 50
    assert feed.next() is False


def test_series_name_is_base_filename(sample_csv):
    feed = CSVFeed(default_yahoo_config(str(sample_csv)))
    assert feed.data.name == "sample.csv"


def test_preloaded_holds_all_bars(sample_csv):
    feed = CSVFeed(default_yahoo_config(str(sample_csv)))
    feed.load()
    assert len(feed.preloaded_data) == 50
    assert len(feed.data) == 0
    assert feed.preloaded_data.bar(-49).open == 125.07
    first = feed.preloaded_data.bar(-49)
    assert first.timestamp == datetime(2023, 1, 2, tzinfo=timezone.utc)
    assert first.volume == 1000.0


def test_reverse_order(sample_csv):
    cfg = default_yahoo_config(str(sample_csv))
    cfg.reverse_order = True
    feed = CSVFeed(cfg)
    feed.load()
    assert feed.preloaded_data.bar(0).close == 130.73
    feed.next()
    assert feed.data.bar().close == 175.0


def test_no_header(tmp_path):
    path = tmp_path / "nohead.csv"
    path.write_text("\n".join(sample_rows(3)) + "\n", encoding="utf-8")
    cfg = default_yahoo_config(str(path))
    cfg.has_header = False
    feed = CSVFeed(cfg)
    feed.load()
    assert feed.total_bars() == 3


def test_missing_values_become_zero(tmp_path):
    path = tmp_path / "gaps.csv"
    path.write_text(HEADER + "\n2024-01-02,null,N/A,,10.5,10.5, \n", encoding="utf-8")
    feed = CSVFeed(default_yahoo_config(str(path)))
    feed.load()
    feed.next()
    bar = feed.data.bar()
    assert (bar.open, bar.high, bar.low, bar.close, bar.volume) == (0.0, 0.0, 0.0, 10.5, 0.0)


def test_custom_separator_and_format(tmp_path):
    path = tmp_path / "semi.csv"
    path.write_text("when;px\n02/01/2024;42.5\n", encoding="utf-8")
    cfg = CSVFeedConfig(
        file_path=str(path), date_time_format="%d/%m/%Y", separator=";",
        open_col=1, high_col=1, low_col=1, close_col=1, volume_col=-1,
    )
    feed = CSVFeed(cfg)
    feed.load()
    feed.next()
    bar = feed.data.bar()
    assert bar.close == 42.5
    assert bar.volume == 0.0
    assert bar.timestamp == datetime(2024, 1, 2, tzinfo=timezone.utc)


def test_missing_file_raises(tmp_path):
    feed = CSVFeed(default_yahoo_config(str(tmp_path / "absent.csv")))
    with pytest.raises(CSVFeedError, match="open"):
        feed.load()


def test_bad_number_raises(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text(HEADER + "\n2024-01-02,abc,1,1,1,1,1\n", encoding="utf-8")
    with pytest.raises(CSVFeedError, match="Open"):
        CSVFeed(default_yahoo_config(str(path))).load()


def test_bad_date_raises(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text(HEADER + "\n01-02-2024,1,1,1,1,1,1\n", encoding="utf-8")
    with pytest.raises(CSVFeedError, match="datetime"):
        CSVFeed(default_yahoo_config(str(path))).load()


def test_wrong_field_count_raises(tmp_path):
    path = tmp_path / "ragged.csv"
    path.write_text(HEADER + "\n2024-01-02,1,1,1,1\n", encoding="utf-8")
    with pytest.raises(CSVFeedError, match="fields"):
        CSVFeed(default_yahoo_config(str(path))).load()