"""
Prometheus metrics for candle aggregation.
"""

from contextlib import contextmanager
from time import perf_counter
from typing import Iterator

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    REGISTRY,
)

# Aggregation is pure CPU work, so the buckets start well below a millisecond
LATENCY_BUCKETS = (
    0.00001,  # 10us
    0.00005,  # 50us
    0.0001,   # 100us
    0.0005,   # 500us
    0.001,    # 1ms
    0.005,    # 5ms
    0.01,     # 10ms
    0.05,     # 50ms
    0.1,      # 100ms
)


class CandleKeeperMetrics:
    """
    Metrics for trade ingestion and candle emission.

    Labels are the opaque exchange/symbol tags of the aggregator; missing
    tags are reported as an empty string.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or REGISTRY

        self.trades_aggregated = Counter(
            "candle_keeper_trades_aggregated_total",
            "Total number of trades folded into candles",
            ["exchange", "symbol"],
            registry=self.registry,
        )

        self.candles_emitted = Counter(
            "candle_keeper_candles_emitted_total",
            "Total candles delivered to the candle callback",
            ["exchange", "symbol", "kind"],
            registry=self.registry,
        )

        self.last_candle_timestamp = Gauge(
            "candle_keeper_last_candle_timestamp_ms",
            "Bucket start of the last emitted candle (epoch ms)",
            ["exchange", "symbol"],
            registry=self.registry,
        )

        self.processing_latency = Histogram(
            "candle_keeper_processing_latency_seconds",
            "Processing latency in seconds, callback delivery included",
            ["operation", "status"],
            buckets=LATENCY_BUCKETS,
            registry=self.registry,
        )

    @contextmanager
    def timed(
        self,
        operation: str,
        success_status: str = "success",
        error_status: str = "error",
    ) -> Iterator[None]:
        """
        Time a block and record it to the processing_latency histogram.

        Usage:
            with metrics.timed("add"):
                ...
        """
        start = perf_counter()
        try:
            yield
        except Exception:
            self.processing_latency.labels(
                operation=operation,
                status=error_status,
            ).observe(perf_counter() - start)
            raise
        self.processing_latency.labels(
            operation=operation,
            status=success_status,
        ).observe(perf_counter() - start)


# Global metrics instance
_metrics: CandleKeeperMetrics | None = None


def setup_metrics(registry: CollectorRegistry | None = None) -> CandleKeeperMetrics:
    """
    Initialize the process-wide metrics collection.

    Args:
        registry: Registry to register into, the default one if omitted

    Returns:
        CandleKeeperMetrics instance
    """
    global _metrics

    if _metrics is None:
        _metrics = CandleKeeperMetrics(registry)

    return _metrics


def get_metrics() -> CandleKeeperMetrics:
    """Get the global metrics instance."""
    if _metrics is None:
        return setup_metrics()
    return _metrics
