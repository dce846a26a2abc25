"""A live feed that polls an HTTP endpoint for new bars."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from tradebench.livefeed import LiveFeed
from tradebench.series import Bar

DEFAULT_POLL_INTERVAL = 60.0
HTTP_TIMEOUT = 30.0


@dataclass
class RESTConfig:
    """Settings for a polling feed.

    ``parse_func`` turns a response body into the new bars it carries; the
    feed does not de-duplicate. ``poll_interval`` is in seconds.
    """

    url: str
    symbol: str = ""
    poll_interval: float = DEFAULT_POLL_INTERVAL
    headers: dict[str, str] = field(default_factory=dict)
    parse_func: Optional[Callable[[bytes], list[Bar]]] = None


class RESTFeed(LiveFeed):
    """Polls ``config.url`` once at start and then every ``poll_interval`` seconds."""

    def __init__(self, config: RESTConfig) -> None:
        super().__init__(config.symbol or "rest")
        self.config = config
        self._session = requests.Session()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.config.parse_func is None:
            raise ValueError("restfeed: parse_func is required")
        interval = self.config.poll_interval
        if interval <= 0:
            interval = DEFAULT_POLL_INTERVAL
        self._thread = threading.Thread(
            target=self._poll_loop, args=(interval,), name=f"restfeed-{self.name}", daemon=True
        )
        self._thread.start()

    def _poll_loop(self, interval: float) -> None:
        try:
            self.poll()
            while not self._wait_cancelled(interval):
                self.poll()
        finally:
            self.close()

    def poll(self) -> int:
        """Fetch the endpoint once and queue the bars it returns.

        Failed requests and unparseable bodies are skipped. Returns the number
        of bars queued.
        """
        parse = self.config.parse_func
        if parse is None or self.cancelled:
            return 0
        try:
            response = self._session.get(
                self.config.url, headers=dict(self.config.headers), timeout=HTTP_TIMEOUT
            )
            body = response.content
        except requests.RequestException:
            return 0
        try:
            bars = list(parse(body))
        except Exception:  # a user-supplied parser may fail in any way
            return 0

        queued = 0
        for bar in bars:
            if not self.push(bar):
                break
            queued += 1
        return queued

    def stop(self) -> None:
        """Stop polling."""
        self.cancel()