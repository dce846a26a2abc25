[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tradebench"
version = "0.1.0"
description = "Bar series, CSV and live data feeds, technical indicators and HTML charts for trading strategies"
requires-python = ">=3.10"
keywords = ["backtesting", "trading", "indicators", "ohlcv", "finance", "live-feed"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "requests",
    "websocket-client",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tradebench"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
