"""
Pydantic models for trades and candles.
"""

from enum import IntEnum
from typing import Any, Sequence

import orjson
from pydantic import BaseModel, ConfigDict, field_validator


class BaseEvent(BaseModel):
    """Base class for all events with common fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Dump to a plain dict, leaving out fields that do not apply."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> bytes:
        """Serialize to JSON bytes."""
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_json(cls, data: bytes | str) -> "BaseEvent":
        """Deserialize from JSON bytes."""
        return cls.model_validate(orjson.loads(data))


# =============================================================================
# ENUMS
# =============================================================================


class Side(IntEnum):
    """
    Trade side.

    Feeds encode the side as a number: zero is a buy, anything else is a sell.
    """

    BUY = 0
    SELL = 1

    @classmethod
    def from_value(cls, value: Any) -> "Side":
        """Map a raw feed value onto a side."""
        if isinstance(value, str):
            value = value.strip().lower()
            if value in ("", "0", "b", "buy"):
                return cls.BUY
            return cls.SELL
        return cls.BUY if not value else cls.SELL


# =============================================================================
# EVENTS
# =============================================================================


class Trade(BaseEvent):
    """
    A single executed trade.

    Attributes:
        ts: Execution time, epoch milliseconds
        price: Execution price
        side: Buy or sell
        amount: Traded quantity
    """

    ts: int
    price: float
    side: Side = Side.BUY
    amount: float = 0.0

    @field_validator("side", mode="before")
    @classmethod
    def coerce_side(cls, v: Any) -> Side:
        return Side.from_value(v)

    @classmethod
    def from_array(cls, row: Sequence[Any]) -> "Trade":
        """
        Build a trade from a compact feed row ``[ts, side, price, amount]``.

        ``amount`` may be missing, in which case it is zero.
        """
        if len(row) < 3:
            raise ValueError(f"trade row needs at least [ts, side, price], got {row!r}")
        ts, side, price = row[0], row[1], row[2]
        amount = row[3] if len(row) > 3 else 0.0
        return cls(ts=ts, price=price, side=side, amount=amount)


class Candle(BaseEvent):
    """
    OHLC candlestick for one time bucket.

    Volume fields are only populated when the aggregator tracks volume;
    otherwise they are None and ``to_dict`` leaves them out. ``trade_count``
    and ``avg_price`` are derived when the candle is built, and only when at
    least one trade went into it.

    Attributes:
        bucket_start: Snapped bucket start, epoch milliseconds
        open: First traded price
        high: Highest traded price
        low: Lowest traded price
        close: Last traded price
        exchange: Opaque exchange tag
        symbol: Opaque symbol tag
    """

    bucket_start: int
    open: float
    high: float
    low: float
    close: float

    exchange: str | None = None
    symbol: str | None = None

    buy_volume: float | None = None
    sell_volume: float | None = None
    buy_cost: float | None = None
    sell_cost: float | None = None
    buy_count: int | None = None
    sell_count: int | None = None

    trade_count: int | None = None
    avg_price: float | None = None

    @classmethod
    def placeholder(
        cls,
        bucket_start: int = 0,
        exchange: str | None = None,
        symbol: str | None = None,
    ) -> "Candle":
        """All-zero candle with the full shape, returned when no trade exists yet."""
        return cls(
            bucket_start=bucket_start,
            open=0.0,
            high=0.0,
            low=0.0,
            close=0.0,
            exchange=exchange,
            symbol=symbol,
            buy_volume=0.0,
            sell_volume=0.0,
            buy_cost=0.0,
            sell_cost=0.0,
            buy_count=0,
            sell_count=0,
            trade_count=0,
            avg_price=0.0,
        )

    @property
    def has_volume(self) -> bool:
        """Check if volume fields are populated."""
        return self.buy_volume is not None

    @property
    def volume(self) -> float | None:
        """Total traded amount, or None when volume is not tracked."""
        if not self.has_volume:
            return None
        return (self.buy_volume or 0.0) + (self.sell_volume or 0.0)

    @property
    def range(self) -> float:
        """Calculate high-low range."""
        return self.high - self.low

    @property
    def body(self) -> float:
        """Calculate candle body (close - open)."""
        return self.close - self.open

    @property
    def is_bullish(self) -> bool:
        """Check if candle is bullish (close > open)."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if candle is bearish (close < open)."""
        return self.close < self.open

    @property
    def is_flat(self) -> bool:
        """Check if the candle has no price range, as filler candles do."""
        return self.high == self.low
