"""A live feed that reads bars from a WebSocket server."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

import websocket
from websocket import ABNF

from tradebench.livefeed import LiveFeed, parse_bar
from tradebench.series import Bar

_RECV_TIMEOUT = 0.2


@dataclass
class WebSocketConfig:
    """Settings for a WebSocket feed.

    ``reconnect_delay`` is the wait in seconds before redialling after a
    disconnect; 0 means the feed ends when the connection does.
    ``parse_func`` turns a message payload into a bar (default: :func:`parse_bar`).
    """

    url: str
    symbol: str = ""
    reconnect_delay: float = 0.0
    parse_func: Optional[Callable[[bytes], Bar]] = None
    connect_timeout: float = 10.0


class WebSocketFeed(LiveFeed):
    """Streams one bar per WebSocket message; unparseable messages are skipped."""

    def __init__(self, config: WebSocketConfig) -> None:
        super().__init__(config.symbol or "ws")
        self.config = config
        self._conn: Optional[websocket.WebSocket] = None
        self._thread: Optional[threading.Thread] = None

    def _dial(self) -> websocket.WebSocket:
        conn = websocket.create_connection(self.config.url, timeout=self.config.connect_timeout)
        conn.settimeout(_RECV_TIMEOUT)
        return conn

    def start(self) -> None:
        """Connect and start reading messages in a background thread."""
        try:
            self._conn = self._dial()
        except (websocket.WebSocketException, OSError, ValueError) as exc:
            raise ConnectionError(f"websocket: dial {self.config.url!r}: {exc}") from exc
        parse = self.config.parse_func or parse_bar
        self._thread = threading.Thread(
            target=self._read_loop, args=(parse,), name=f"wsfeed-{self.name}", daemon=True
        )
        self._thread.start()

    def _close_connection(self) -> None:
        conn = self._conn
        if conn is None:
            return
        try:
            conn.close(timeout=_RECV_TIMEOUT)
        except (websocket.WebSocketException, OSError):
            pass

    def _read_loop(self, parse: Callable[[bytes], Bar]) -> None:
        try:
            while not self.cancelled:
                conn = self._conn
                try:
                    opcode, payload = conn.recv_data()
                except (websocket.WebSocketTimeoutException, TimeoutError):
                    continue
                except (websocket.WebSocketException, OSError):
                    opcode, payload = ABNF.OPCODE_CLOSE, b""

                if opcode == ABNF.OPCODE_CLOSE:
                    delay = self.config.reconnect_delay
                    if self.cancelled or delay <= 0:
                        return
                    if self._wait_cancelled(delay):
                        return
                    try:
                        fresh = self._dial()
                    except (websocket.WebSocketException, OSError, ValueError):
                        continue
                    self._close_connection()
                    self._conn = fresh
                    continue

                try:
                    bar = parse(payload)
                except Exception:  # skip messages the parser cannot handle
                    continue
                if not self.push(bar):
                    return
        finally:
            self._close_connection()
            self.close()

    def stop(self) -> None:
        """Cancel the feed and send a normal close frame to the server."""
        self.cancel()
        conn = self._conn
        if conn is not None and conn.connected:
            try:
                conn.send_close()
            except (websocket.WebSocketException, OSError):
                pass