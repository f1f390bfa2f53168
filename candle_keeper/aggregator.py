"""
OHLC Candle Aggregator

Folds a single symbol's trade stream into fixed-width candles, backfilling
flat candles for buckets in which nothing traded.
"""

from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from candle_keeper.config import Settings, get_settings
from candle_keeper.exceptions import ConfigError
from candle_keeper.logging import get_logger
from candle_keeper.metrics import CandleKeeperMetrics, get_metrics
from candle_keeper.models import Candle, Side, Trade

logger = get_logger(__name__)

CandleCallback = Callable[[Candle], Any]


def snap_timestamp(ts: int, period_seconds: int, shift_ms: int = 0) -> int:
    """
    Snap a timestamp to the start of its bucket.

    Buckets are ``period_seconds`` wide and their boundaries are moved back by
    ``|shift_ms|``. The result is always the start of the half-open bucket
    ``[start, start + period)`` that contains ``ts``, so snapping an already
    snapped value returns it unchanged. A timestamp exactly on a shifted
    boundary starts that bucket rather than closing the previous one.

    Args:
        ts: Timestamp in epoch milliseconds
        period_seconds: Bucket width in seconds
        shift_ms: Boundary offset in milliseconds, <= 0

    Returns:
        Bucket start in epoch milliseconds
    """
    if not period_seconds:
        raise ConfigError(f"invalid period_seconds for snapping: {period_seconds!r}")

    period_ms = period_seconds * 1000
    bucket_start = ts - (ts % period_ms) + shift_ms
    if shift_ms and ts - bucket_start >= period_ms:
        bucket_start += period_ms
    return bucket_start


@dataclass
class CandleBuilder:
    """
    Running state of one bucket.

    ``open`` stays None until the first trade lands, which keeps a genuine
    price of zero distinct from an uninitialized bucket.
    """

    bucket_start: int
    includes_volume: bool = False

    open: float | None = None
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0

    buy_volume: float = 0.0
    sell_volume: float = 0.0
    buy_cost: float = 0.0
    sell_cost: float = 0.0
    buy_count: int = 0
    sell_count: int = 0

    @classmethod
    def flat(cls, bucket_start: int, price: float, includes_volume: bool) -> "CandleBuilder":
        """Builder for a bucket without trades, pinned to ``price``."""
        return cls(
            bucket_start=bucket_start,
            includes_volume=includes_volume,
            open=price,
            high=price,
            low=price,
            close=price,
        )

    @property
    def is_empty(self) -> bool:
        return self.open is None

    @property
    def trade_count(self) -> int:
        return self.buy_count + self.sell_count

    def reset_volume(self) -> None:
        self.buy_volume = 0.0
        self.sell_volume = 0.0
        self.buy_cost = 0.0
        self.sell_cost = 0.0
        self.buy_count = 0
        self.sell_count = 0

    def add_trade(self, price: float, side: Side, amount: float) -> None:
        """Add a trade to this bucket."""
        if self.open is None:
            self.open = price
            self.high = price
            self.low = price
            self.reset_volume()

        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price

        if not self.includes_volume:
            return

        if side == Side.BUY:
            self.buy_volume += amount
            self.buy_cost += amount * price
            self.buy_count += 1
        else:
            self.sell_volume += amount
            self.sell_cost += amount * price
            self.sell_count += 1

    def to_candle(
        self,
        bucket_start: int | None = None,
        exchange: str | None = None,
        symbol: str | None = None,
    ) -> Candle:
        """
        Build an immutable Candle from the running state.

        Args:
            bucket_start: Stamp the candle with this start instead of our own
            exchange: Exchange tag to copy onto the candle
            symbol: Symbol tag to copy onto the candle
        """
        if self.open is None:
            raise ValueError("Cannot build empty candle")

        fields: dict[str, Any] = {
            "bucket_start": self.bucket_start if bucket_start is None else bucket_start,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "exchange": exchange,
            "symbol": symbol,
        }

        if self.includes_volume:
            fields.update(
                buy_volume=self.buy_volume,
                sell_volume=self.sell_volume,
                buy_cost=self.buy_cost,
                sell_cost=self.sell_cost,
                buy_count=self.buy_count,
                sell_count=self.sell_count,
            )
            trade_count = self.trade_count
            if trade_count:
                fields["trade_count"] = trade_count
                total_volume = self.buy_volume + self.sell_volume
                if total_volume:
                    fields["avg_price"] = (self.buy_cost + self.sell_cost) / total_volume

        return Candle(**fields)


class CandleAggregator:
    """
    Aggregates one symbol's trades into candles of a single resolution.

    Features:
    - Time-bucketed aggregation with an optional backward boundary shift
    - Flat filler candles for buckets without trades
    - Optional buy/sell volume, cost and count tracking
    - Pull access to the in-progress candle

    Completed candles are pushed to ``on_new_candle`` synchronously from
    ``add``. Not thread-safe: one aggregator belongs to one ordered driver.
    """

    def __init__(
        self,
        period_seconds: int,
        shift_ms: int = 0,
        includes_volume: bool = False,
        on_new_candle: CandleCallback | None = None,
        exchange: str | None = None,
        symbol: str | None = None,
        metrics: CandleKeeperMetrics | None = None,
    ) -> None:
        """
        Initialize aggregator.

        Args:
            period_seconds: Bucket width in seconds, > 0
            shift_ms: Bucket boundary offset in milliseconds, <= 0
            includes_volume: Track buy/sell volume, cost and counts
            on_new_candle: Called with every completed or filler candle
            exchange: Opaque tag copied onto every candle
            symbol: Opaque tag copied onto every candle
            metrics: Metrics sink, defaults to the global one when enabled
        """
        if not period_seconds or period_seconds <= 0:
            raise ConfigError(f"period_seconds must be > 0, got {period_seconds!r}")
        if shift_ms and shift_ms > 0:
            raise ConfigError(f"shift_ms must be <= 0, got {shift_ms!r}")

        self._period_seconds = period_seconds
        self._shift_ms = shift_ms or 0
        self._includes_volume = bool(includes_volume)
        self.on_new_candle = on_new_candle
        self.exchange = exchange
        self.symbol = symbol

        if metrics is None and get_settings().metrics_enabled:
            metrics = get_metrics()
        self._metrics = metrics

        # Bucket currently being built; None until the first trade
        self._builder: CandleBuilder | None = None

        self._log = logger.bind(exchange=exchange, symbol=symbol)
        self._log.debug(
            "aggregator_created",
            period_seconds=period_seconds,
            shift_ms=self._shift_ms,
            includes_volume=self._includes_volume,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> "CandleAggregator":
        """
        Build an aggregator from application settings.

        Keyword overrides win over settings, e.g. ``on_new_candle=publish``.
        """
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "period_seconds": settings.candle_period_seconds,
            "shift_ms": settings.candle_shift_ms,
            "includes_volume": settings.candle_includes_volume,
            "exchange": settings.candle_exchange,
            "symbol": settings.candle_symbol,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def period_seconds(self) -> int:
        return self._period_seconds

    @property
    def period_ms(self) -> int:
        return self._period_seconds * 1000

    @property
    def shift_ms(self) -> int:
        return self._shift_ms

    @property
    def includes_volume(self) -> bool:
        return self._includes_volume

    def get_period(self) -> int:
        """Bucket width in seconds."""
        return self._period_seconds

    def set_on_new_candle(self, on_new_candle: CandleCallback | None) -> None:
        self.on_new_candle = on_new_candle

    def snap(self, ts: int) -> int:
        """Snap ``ts`` with this aggregator's period and shift."""
        return snap_timestamp(ts, self._period_seconds, self._shift_ms)

    def add_trade(self, trade: Trade | Sequence[Any]) -> None:
        """
        Add a trade given as a Trade model or a ``[ts, side, price, amount]`` row.
        """
        if not isinstance(trade, Trade):
            trade = Trade.from_array(trade)
        self.add(trade.ts, trade.price, trade.side, trade.amount)

    def add(
        self,
        ts: int,
        price: float,
        side: Side | int = Side.BUY,
        amount: float = 0.0,
    ) -> None:
        """
        Fold a trade into the open bucket.

        A trade at least one period past the open bucket's start closes that
        bucket, backfills flat candles for any skipped buckets and opens the
        bucket containing ``ts``. Anything earlier, including trades that
        belong to an already closed bucket, is merged into the open bucket.

        Args:
            ts: Trade time in epoch milliseconds
            price: Trade price
            side: 0 for buy, any other value for sell
            amount: Traded quantity, only used when tracking volume
        """
        timer = self._metrics.timed("add") if self._metrics is not None else nullcontext()
        with timer:
            self._add(ts, price, Side.from_value(side), amount)

    def _add(self, ts: int, price: float, side: Side, amount: float) -> None:
        completed: list[tuple[Candle, str]] = []

        if self._builder is None:
            self._builder = CandleBuilder(
                bucket_start=self.snap(ts),
                includes_volume=self._includes_volume,
            )
        elif ts - self._builder.bucket_start >= self.period_ms:
            closed = self._builder
            completed.append((self._build(closed), "closed"))

            bucket_start = self.snap(ts)
            filler_start = closed.bucket_start + self.period_ms
            while filler_start < bucket_start:
                filler = CandleBuilder.flat(filler_start, closed.close, self._includes_volume)
                completed.append((self._build(filler), "filler"))
                filler_start += self.period_ms

            if len(completed) > 1:
                self._log.info(
                    "candle_gap_backfilled",
                    fillers=len(completed) - 1,
                    from_bucket=closed.bucket_start,
                    to_bucket=bucket_start,
                )

            self._builder = CandleBuilder(
                bucket_start=bucket_start,
                includes_volume=self._includes_volume,
            )

        self._builder.add_trade(price, side, amount)

        if self._metrics is not None:
            self._metrics.trades_aggregated.labels(**self._labels()).inc()

        for candle, kind in completed:
            self._emit(candle, kind)

    def get(self) -> Candle:
        """
        Snapshot of the bucket currently being built.

        Before the first trade this logs an error and returns an all-zero
        placeholder with the full candle shape.
        """
        if self._builder is None:
            return self._no_data(0)
        return self._build(self._builder)

    def get_temp_candle(self, ts: int) -> Candle:
        """
        Snapshot of the running state stamped with the bucket of ``ts``.

        Useful to preview the candle a live chart should draw at ``ts``; ``ts``
        may lie before, inside or after the open bucket.
        """
        bucket_start = self.snap(ts)
        if self._builder is None:
            return self._no_data(bucket_start)
        return self._build(self._builder, bucket_start=bucket_start)

    def _build(self, builder: CandleBuilder, bucket_start: int | None = None) -> Candle:
        return builder.to_candle(
            bucket_start=bucket_start,
            exchange=self.exchange,
            symbol=self.symbol,
        )

    def _no_data(self, bucket_start: int) -> Candle:
        self._log.error("candle_keeper_no_data", bucket_start=bucket_start)
        return Candle.placeholder(
            bucket_start=bucket_start,
            exchange=self.exchange,
            symbol=self.symbol,
        )

    def _labels(self) -> dict[str, str]:
        return {"exchange": self.exchange or "", "symbol": self.symbol or ""}

    def _emit(self, candle: Candle, kind: str) -> None:
        if self._metrics is not None:
            labels = self._labels()
            self._metrics.candles_emitted.labels(kind=kind, **labels).inc()
            self._metrics.last_candle_timestamp.labels(**labels).set(candle.bucket_start)

        self._log.debug(
            "candle_emitted",
            bucket_start=candle.bucket_start,
            kind=kind,
            open=candle.open,
            close=candle.close,
        )

        if self.on_new_candle is not None:
            self.on_new_candle(candle)
