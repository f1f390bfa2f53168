"""
Tests for settings.
"""

import pytest
from pydantic import ValidationError

from candle_keeper.config import Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        for name in ("CANDLE_PERIOD_SECONDS", "CANDLE_SHIFT_MS", "CANDLE_INCLUDES_VOLUME", "ENVIRONMENT"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.candle_period_seconds == 60
        assert settings.candle_shift_ms == 0
        assert settings.candle_includes_volume is False
        assert settings.is_development
        assert not settings.is_production

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("CANDLE_PERIOD_SECONDS", "300")
        monkeypatch.setenv("CANDLE_SHIFT_MS", "-5000")
        monkeypatch.setenv("CANDLE_INCLUDES_VOLUME", "true")
        monkeypatch.setenv("CANDLE_SYMBOL", "BTC-USDT")
        monkeypatch.setenv("CANDLE_EXCHANGE", "  ")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)
        assert settings.candle_period_seconds == 300
        assert settings.candle_shift_ms == -5000
        assert settings.candle_includes_volume is True
        assert settings.candle_symbol == "BTC-USDT"
        assert settings.candle_exchange is None
        assert settings.is_production

    def test_positive_shift_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, candle_shift_ms=1000)

    def test_non_positive_period_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, candle_period_seconds=0)
