"""
Exceptions raised by candle-keeper.
"""


class CandleKeeperError(Exception):
    """Base class for all candle-keeper errors."""


class ConfigError(CandleKeeperError, ValueError):
    """Invalid aggregator configuration (period, shift, settings)."""
