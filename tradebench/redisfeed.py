"""A live feed that reads bars from a Redis stream."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

import redis

from tradebench.livefeed import LiveFeed, _parse_time_text
from tradebench.series import Bar

DEFAULT_ADDR = "localhost:6379"
DEFAULT_PORT = 6379
READ_COUNT = 10
BLOCK_MS = 1000
RETRY_DELAY = 0.1


@dataclass
class RedisConfig:
    """Settings for a Redis stream feed.

    Without a ``group`` the feed uses XREAD and only sees entries added after
    it starts; with one it reads through XREADGROUP as ``consumer``.
    ``parse_func`` turns an entry's field mapping into a bar
    (default: :func:`parse_redis_fields`).
    """

    addr: str = DEFAULT_ADDR
    password: Optional[str] = None
    db: int = 0
    stream: str = ""
    group: str = ""
    consumer: str = ""
    symbol: str = ""
    parse_func: Optional[Callable[[Mapping[Any, Any]], Bar]] = None
    connect_timeout: float = 5.0


def _text(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = (addr or DEFAULT_ADDR).rpartition(":")
    if not sep:
        return addr or "localhost", DEFAULT_PORT
    try:
        return host or "localhost", int(port)
    except ValueError:
        raise ValueError(f"redis: invalid address {addr!r}") from None


def _field_float(fields: Mapping[str, Any], key: str) -> float:
    value = _text(fields.get(key))
    if value is None:
        return 0.0
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def parse_redis_fields(values: Mapping[Any, Any]) -> Bar:
    """Build a bar from stream fields ``t``, ``o``, ``h``, ``l``, ``c``, ``v``.

    ``t`` is an RFC 3339 time or a ``YYYY-MM-DD`` date; when it is absent the
    current UTC time is used. Missing or unreadable prices read as 0.
    """
    fields = {_text(key): value for key, value in values.items()}
    timestamp: Optional[datetime]
    if "t" in fields:
        raw = _text(fields["t"])
        timestamp = _parse_time_text(raw) if isinstance(raw, str) else None
    else:
        timestamp = datetime.now(timezone.utc)
    return Bar(
        timestamp=timestamp,
        open=_field_float(fields, "o"),
        high=_field_float(fields, "h"),
        low=_field_float(fields, "l"),
        close=_field_float(fields, "c"),
        volume=_field_float(fields, "v"),
    )


class RedisFeed(LiveFeed):
    """Streams bars from ``config.stream``; unparseable entries are skipped.

    A ready client may be given; otherwise one is created on :meth:`start`.
    """

    def __init__(self, config: RedisConfig, client: Optional[Any] = None) -> None:
        super().__init__(config.symbol or config.stream)
        self.config = config
        self._client = client
        self._thread: Optional[threading.Thread] = None

    def _connect(self) -> Any:
        host, port = _split_addr(self.config.addr)
        return redis.Redis(
            host=host,
            port=port,
            db=self.config.db,
            password=self.config.password,
            decode_responses=True,
            socket_connect_timeout=self.config.connect_timeout,
        )

    def start(self) -> None:
        """Connect, check the server answers and start reading in a thread."""
        if self._client is None:
            self._client = self._connect()
        client = self._client
        try:
            client.ping()
        except redis.RedisError as exc:
            raise ConnectionError(f"redis: ping: {exc}") from exc

        if self.config.group:
            try:
                client.xgroup_create(
                    self.config.stream, self.config.group, id="0", mkstream=True
                )
            except redis.RedisError:
                pass  # the group usually exists already

        parse = self.config.parse_func or parse_redis_fields
        self._thread = threading.Thread(
            target=self._read_loop, args=(parse,), name=f"redisfeed-{self.name}", daemon=True
        )
        self._thread.start()

    def _read(self, last_id: str) -> Any:
        cfg = self.config
        if cfg.group:
            return self._client.xreadgroup(
                groupname=cfg.group,
                consumername=cfg.consumer,
                streams={cfg.stream: last_id},
                count=READ_COUNT,
                block=BLOCK_MS,
            )
        return self._client.xread(
            streams={cfg.stream: last_id}, count=READ_COUNT, block=BLOCK_MS
        )

    def _read_loop(self, parse: Callable[[Mapping[Any, Any]], Bar]) -> None:
        grouped = bool(self.config.group)
        last_id = ">" if grouped else "$"
        try:
            while not self.cancelled:
                try:
                    response = self._read(last_id)
                except redis.RedisError:
                    if self.cancelled:
                        return
                    self._wait_cancelled(RETRY_DELAY)
                    continue
                if not response:
                    continue
                streams = response.items() if isinstance(response, dict) else response
                for _stream, messages in streams:
                    for message_id, fields in messages:
                        try:
                            bar = parse(fields)
                        except Exception:  # skip entries the parser cannot handle
                            continue
                        if not grouped:
                            last_id = _text(message_id)
                        if not self.push(bar):
                            return
        finally:
            try:
                self._client.close()
            except redis.RedisError:
                pass
            self.close()

    def stop(self) -> None:
        """Stop reading; the connection is closed by the reader thread."""
        self.cancel()