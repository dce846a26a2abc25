"""Bar series, CSV and live data feeds, technical indicators and HTML charts for trading."""

__version__ = "0.1.0"

__all__ = [
    "series",
    "csvfeed",
    "averages",
    "oscillators",
    "livefeed",
    "restfeed",
    "wsfeed",
    "redisfeed",
    "plot",
]