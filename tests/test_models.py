"""
Tests for trade and candle models.
"""

import pytest
from pydantic import ValidationError

from candle_keeper.models import Candle, Side, Trade


class TestSide:
    """Tests for Side."""

    @pytest.mark.parametrize("value", [0, 0.0, None, False, Side.BUY, "buy", "BUY", "0", ""])
    def test_buy_values(self, value):
        assert Side.from_value(value) is Side.BUY

    @pytest.mark.parametrize("value", [1, 2, -1, True, Side.SELL, "sell", "S", "1"])
    def test_sell_values(self, value):
        assert Side.from_value(value) is Side.SELL


class TestTrade:
    """Tests for Trade."""

    def test_defaults(self):
        trade = Trade(ts=1000, price=1250)
        assert trade.side is Side.BUY
        assert trade.amount == 0.0

    def test_side_coercion(self):
        assert Trade(ts=1, price=1, side=3).side is Side.SELL
        assert Trade(ts=1, price=1, side="buy").side is Side.BUY

    def test_from_array(self):
        trade = Trade.from_array([1000, 1, 1250, 2.5])
        assert trade.ts == 1000
        assert trade.side is Side.SELL
        assert trade.price == 1250
        assert trade.amount == 2.5

    def test_from_array_without_amount(self):
        trade = Trade.from_array([1000, 0, 1250])
        assert trade.amount == 0.0

    def test_from_array_too_short(self):
        with pytest.raises(ValueError):
            Trade.from_array([1000, 0])

    def test_invalid_price(self):
        with pytest.raises(ValidationError):
            Trade(ts=1000, price="not-a-price")


class TestCandle:
    """Tests for Candle."""

    def make_candle(self, **kwargs) -> Candle:
        fields = {"bucket_start": 300000, "open": 10.0, "high": 12.0, "low": 9.0, "close": 11.0}
        fields.update(kwargs)
        return Candle(**fields)

    def test_to_dict_leaves_out_unset_fields(self):
        assert self.make_candle().to_dict() == {
            "bucket_start": 300000,
            "open": 10.0,
            "high": 12.0,
            "low": 9.0,
            "close": 11.0,
        }

    def test_json_round_trip(self):
        candle = self.make_candle(symbol="BTC-USDT", buy_volume=1.5, sell_volume=0.5)
        restored = Candle.from_json(candle.to_json())
        assert restored == candle
        assert b"buy_cost" not in candle.to_json()

    def test_shape_helpers(self):
        candle = self.make_candle()
        assert candle.range == 3.0
        assert candle.body == 1.0
        assert candle.is_bullish
        assert not candle.is_bearish
        assert not candle.is_flat
        assert not candle.has_volume
        assert candle.volume is None

    def test_volume(self):
        candle = self.make_candle(buy_volume=1.5, sell_volume=0.5)
        assert candle.has_volume
        assert candle.volume == 2.0

    def test_placeholder(self):
        candle = Candle.placeholder(exchange="binance")
        assert candle.bucket_start == 0
        assert candle.exchange == "binance"
        assert candle.volume == 0.0
        assert candle.trade_count == 0
        assert candle.avg_price == 0.0

    def test_frozen(self):
        candle = self.make_candle()
        with pytest.raises(ValidationError):
            candle.close = 1.0
