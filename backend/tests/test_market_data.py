"""yfinance FX adapter and daily snapshots."""

import math

import pandas as pd
import pytest

from tradejournal.services.data import market
from tradejournal.services.data.market import MarketDataError, MarketDataService, YFinanceFXAdapter


def daily_frame(closes, volumes=None):
    index = pd.date_range("2025-03-05", periods=len(closes), freq="D", tz="UTC")
    return pd.DataFrame(
        {
            "Open": closes,
            "High": [c + 0.001 for c in closes],
            "Low": [c - 0.001 for c in closes],
            "Close": closes,
            "Volume": volumes if volumes is not None else [0.0] * len(closes),
        },
        index=index,
    )


class FakeTicker:
    def __init__(self, frame):
        self.frame = frame
        self.symbols = []

    def __call__(self, symbol):
        self.symbols.append(symbol)
        return self

    def history(self, period, interval):
        return self.frame


@pytest.fixture
def ticker(monkeypatch):
    fake = FakeTicker(daily_frame([1.0800, 1.0810, 1.0830]))
    monkeypatch.setattr(market.yf, "Ticker", fake)
    return fake


class TestYFinanceFXAdapter:
    def test_symbol_normalized(self, ticker):
        YFinanceFXAdapter().fetch_daily("eur/usd")
        assert ticker.symbols == ["EURUSD=X"]

    def test_candles_oldest_first(self, ticker):
        data = YFinanceFXAdapter().fetch_daily("EURUSD")
        assert [c.close for c in data.candles] == [1.0800, 1.0810, 1.0830]
        assert data.timeframe == "D1"

    def test_incomplete_bar_is_dropped(self, ticker):
        ticker.frame = daily_frame([1.0800, 1.0810, float("nan")], volumes=[0.0, float("nan"), float("nan")])

        data = YFinanceFXAdapter().fetch_daily("EURUSD")
        assert [c.close for c in data.candles] == [1.0800, 1.0810]
        assert data.candles[-1].volume == 0.0

        snapshot = market.build_snapshot(data)
        assert snapshot.current_price == 1.0810
        assert all(
            not math.isnan(value)
            for value in snapshot.model_dump().values()
            if isinstance(value, float)
        )

    def test_all_bars_empty(self, ticker):
        ticker.frame = daily_frame([float("nan"), float("nan")])
        with pytest.raises(MarketDataError, match="No data available"):
            YFinanceFXAdapter().fetch_daily("EURUSD")

    def test_download_failure(self, monkeypatch):
        def broken(symbol):
            raise ConnectionError("timed out")

        monkeypatch.setattr(market.yf, "Ticker", broken)
        with pytest.raises(MarketDataError, match="timed out"):
            YFinanceFXAdapter().fetch_daily("EURUSD")


class TestMarketDataService:
    def test_snapshot(self, ticker):
        snapshot = MarketDataService().get_fx_snapshot("EURUSD")
        assert snapshot.market_trend == "BULLISH"
        assert snapshot.previous_price == 1.0810

    def test_disabled(self, ticker):
        with pytest.raises(MarketDataError):
            MarketDataService(enabled=False).get_fx_snapshot("EURUSD")
        assert ticker.symbols == []
