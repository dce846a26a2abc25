import threading
import time
from datetime import datetime, timezone

import pytest
import redis

from tradebench.livefeed import BarParseError
from tradebench.redisfeed import RedisConfig, RedisFeed, parse_redis_fields


class FakeRedis:
    """Stands in for a Redis client: hands out prepared stream entries once."""

    def __init__(self, entries, fail_ping=False):
        self.entries = list(entries)
        self.fail_ping = fail_ping
        self.calls = []
        self.groups = []
        self.closed = threading.Event()

    def ping(self):
        if self.fail_ping:
            raise redis.ConnectionError("refused")
        return True

    def xgroup_create(self, name, groupname, id="$", mkstream=False):
        self.groups.append((name, groupname, id, mkstream))

    def _serve(self, stream):
        if self.entries:
            entries, self.entries = self.entries, []
            return [[stream, entries]]
        time.sleep(0.01)
        return []

    def xread(self, streams, count=None, block=None):
        self.calls.append(("xread", dict(streams), count, block))
        return self._serve(next(iter(streams)))

    def xreadgroup(self, groupname, consumername, streams, count=None, block=None):
        self.calls.append(("xreadgroup", groupname, consumername, dict(streams)))
        return self._serve(next(iter(streams)))

    def close(self):
        self.closed.set()


ENTRIES = [
    ("1-0", {"t": "2024-01-15", "o": "1.5", "h": "2", "l": "1", "c": "1.75", "v": "100"}),
    ("2-0", {"t": "not a date", "c": "9"}),
    ("3-0", {"t": "2024-01-16T10:30:00Z", "c": "2.5"}),
]


def test_parse_fields_reads_prices_and_date():
    bar = parse_redis_fields({"t": "2024-01-15", "o": "1.5", "h": "2", "l": "1", "c": "1.75", "v": "100"})
    assert bar.timestamp == datetime(2024, 1, 15, tzinfo=timezone.utc)
    assert (bar.open, bar.high, bar.low, bar.close, bar.volume) == (1.5, 2.0, 1.0, 1.75, 100.0)


def test_parse_fields_accepts_bytes_and_rfc3339():
    bar = parse_redis_fields({b"t": b"2024-01-15T10:30:00Z", b"c": b"153.5"})
    assert bar.timestamp == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert bar.close == 153.5


def test_parse_fields_missing_time_uses_now():
    before = datetime.now(timezone.utc)
    bar = parse_redis_fields({"c": "3"})
    after = datetime.now(timezone.utc)
    assert before <= bar.timestamp <= after


def test_parse_fields_bad_numbers_read_as_zero():
    bar = parse_redis_fields({"t": "2024-01-15", "o": "abc", "h": 4.5})
    assert bar.open == 0.0
    assert bar.high == 4.5
    assert bar.low == 0.0


def test_parse_fields_bad_time_raises():
    with pytest.raises(BarParseError):
        parse_redis_fields({"t": "yesterday"})


def test_parse_fields_non_string_time_has_no_timestamp():
    bar = parse_redis_fields({"t": 12, "c": "1"})
    assert bar.timestamp is None
    assert bar.close == 1.0


def test_name_defaults_to_stream():
    assert RedisFeed(RedisConfig(stream="bars:AAPL")).name == "bars:AAPL"
    assert RedisFeed(RedisConfig(stream="bars:AAPL", symbol="AAPL")).name == "AAPL"


def test_xread_feed_delivers_parsed_bars_and_skips_bad_ones():
    client = FakeRedis(ENTRIES)
    feed = RedisFeed(RedisConfig(stream="bars:TEST"), client=client)
    feed.start()
    try:
        assert feed.next()
        assert feed.next()
        assert feed.data.close.values() == [1.75, 2.5]
        deadline = time.time() + 2
        while len(client.calls) < 2 and time.time() < deadline:
            time.sleep(0.01)
        assert client.calls[0][1] == {"bars:TEST": "$"}
        assert client.calls[1][1] == {"bars:TEST": "3-0"}
        assert client.calls[0][2:] == (10, 1000)
    finally:
        feed.stop()
    assert feed.next() is False
    assert client.closed.wait(2)


def test_group_feed_creates_group_and_reads_new_entries():
    client = FakeRedis(ENTRIES[:1])
    config = RedisConfig(stream="bars:TEST", group="g", consumer="c1")
    feed = RedisFeed(config, client=client)
    feed.start()
    try:
        assert feed.next()
        assert feed.data.bar().close == 1.75
        assert client.groups == [("bars:TEST", "g", "0", True)]
        assert client.calls[0] == ("xreadgroup", "g", "c1", {"bars:TEST": ">"})
    finally:
        feed.stop()


def test_start_fails_when_ping_fails():
    feed = RedisFeed(RedisConfig(stream="s"), client=FakeRedis([], fail_ping=True))
    with pytest.raises(ConnectionError):
        feed.start()