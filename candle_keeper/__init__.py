"""
Candle Keeper
=============

Single-symbol OHLC candle aggregation for trade streams:
- Bucket snapping with an optional boundary shift
- Incremental candle building with gap backfill
- Optional buy/sell volume tracking
- Structured logging, settings and Prometheus metrics
"""

from candle_keeper.config import Settings, get_settings
from candle_keeper.exceptions import CandleKeeperError, ConfigError
from candle_keeper.models import Candle, Side, Trade
from candle_keeper.aggregator import CandleAggregator, CandleBuilder, snap_timestamp
from candle_keeper.metrics import setup_metrics, get_metrics
from candle_keeper.logging import setup_logging, get_logger

__version__ = "0.1.0"
__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "CandleKeeperError",
    "ConfigError",
    # Models
    "Candle",
    "Side",
    "Trade",
    # Aggregation
    "CandleAggregator",
    "CandleBuilder",
    "snap_timestamp",
    # Observability
    "setup_metrics",
    "get_metrics",
    "setup_logging",
    "get_logger",
]
