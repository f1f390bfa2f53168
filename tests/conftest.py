"""
Shared fixtures for candle-keeper tests.
"""

import pytest
from prometheus_client import CollectorRegistry

from candle_keeper.aggregator import CandleAggregator
from candle_keeper.metrics import CandleKeeperMetrics
from candle_keeper.models import Candle


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> CandleKeeperMetrics:
    return CandleKeeperMetrics(registry=registry)


@pytest.fixture
def emitted() -> list[Candle]:
    return []


@pytest.fixture
def make_aggregator(emitted: list[Candle], metrics: CandleKeeperMetrics):
    """Factory for aggregators that collect candles into ``emitted``."""

    def factory(period_seconds: int = 300, **kwargs) -> CandleAggregator:
        kwargs.setdefault("on_new_candle", emitted.append)
        kwargs.setdefault("metrics", metrics)
        return CandleAggregator(period_seconds, **kwargs)

    return factory
