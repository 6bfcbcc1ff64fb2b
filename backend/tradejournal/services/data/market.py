"""
Daily FX market data used to refine top-down analyses.
"""
from datetime import datetime, timezone
import yfinance as yf
import pandas as pd
from tradejournal.services.data.normalized import MarketData, MarketSnapshot, OHLCVCandle
import logging

logger = logging.getLogger(__name__)


class MarketDataError(ValueError):
    """Market data could not be fetched or was unusable."""


class YFinanceFXAdapter:
    """yfinance adapter for spot FX pairs."""

    def _normalize_symbol(self, currency_pair: str) -> str:
        """EURUSD, EUR/USD or eurusd -> EURUSD=X."""
        symbol = currency_pair.replace("/", "").replace(" ", "").upper()
        if not symbol.endswith("=X"):
            symbol = f"{symbol}=X"
        return symbol

    def fetch_daily(self, currency_pair: str, limit: int = 5) -> MarketData:
        """Fetch the most recent daily candles, oldest first."""
        symbol = self._normalize_symbol(currency_pair)
        try:
            df = yf.Ticker(symbol).history(period="5d", interval="1d")
        except Exception as e:
            raise MarketDataError(f"Failed to fetch data from yfinance for {currency_pair} (tried {symbol}): {str(e)}") from e

        if df is not None:
            # The current day's bar can arrive with empty prices
            df = df.dropna(subset=['Open', 'High', 'Low', 'Close'])
        if df is None or df.empty:
            raise MarketDataError(f"No data available for {currency_pair} (tried {symbol})")
        df = df.fillna({'Volume': 0})

        candles = []
        for idx, row in df.tail(limit).iterrows():
            candles.append(OHLCVCandle(
                timestamp=idx.to_pydatetime() if isinstance(idx, pd.Timestamp) else idx,
                open=float(row['Open']),
                high=float(row['High']),
                low=float(row['Low']),
                close=float(row['Close']),
                volume=float(row['Volume']),
            ))
        candles.sort(key=lambda c: c.timestamp)

        return MarketData(
            instrument=currency_pair,
            timeframe="D1",
            exchange="yfinance",
            candles=candles,
            fetched_at=datetime.now(timezone.utc),
        )


def build_snapshot(market_data: MarketData) -> MarketSnapshot:
    """Compare the latest daily candle with the previous close."""
    if len(market_data.candles) < 2:
        raise MarketDataError(f"Not enough daily candles for {market_data.instrument}")

    latest = market_data.candles[-1]
    previous = market_data.candles[-2]
    current_price = latest.close
    previous_price = previous.close
    if previous_price == 0:
        raise MarketDataError(f"Previous close is zero for {market_data.instrument}")

    daily_change = current_price - previous_price
    daily_change_percent = daily_change / previous_price * 100
    market_trend = "BULLISH" if current_price > previous_price else "BEARISH"
    volatility = abs(daily_change_percent)
    momentum = "positive" if daily_change_percent > 0 else "negative"
    if volatility > 1:
        strength = "strong"
    elif volatility > 0.5:
        strength = "moderate"
    else:
        strength = "weak"

    if volatility > 2:
        market_sentiment = f"The market is experiencing high volatility with a {strength} {momentum} momentum."
    elif volatility > 1:
        market_sentiment = f"Moderate volatility observed with {momentum} price movement."
    else:
        market_sentiment = "Low volatility environment with minimal price movement."

    return MarketSnapshot(
        symbol=market_data.instrument,
        current_price=current_price,
        previous_price=previous_price,
        daily_change=daily_change,
        daily_change_percent=daily_change_percent,
        high=latest.high,
        low=latest.low,
        volume=latest.volume,
        market_trend=market_trend,
        volatility=volatility,
        momentum=momentum,
        strength=strength,
        market_sentiment=market_sentiment,
        price_context=(
            f"Current price at {current_price:.5f} with {'gain' if daily_change > 0 else 'loss'} "
            f"of {abs(daily_change):.5f} ({volatility:.2f}%)"
        ),
        range_context=f"Trading range: {latest.low:.5f} - {latest.high:.5f}",
        trend_context=f"{market_trend.lower()} trend with {strength} momentum",
    )


class MarketDataService:
    """Process-wide market data entry point."""

    def __init__(self, adapter: YFinanceFXAdapter | None = None, enabled: bool = True):
        self.adapter = adapter or YFinanceFXAdapter()
        self.enabled = enabled

    def get_fx_snapshot(self, currency_pair: str) -> MarketSnapshot:
        """Raises MarketDataError when disabled, unreachable or the data is unusable."""
        if not self.enabled:
            raise MarketDataError("Market data is disabled")
        market_data = self.adapter.fetch_daily(currency_pair)
        snapshot = build_snapshot(market_data)
        logger.info(
            f"market_snapshot: pair={currency_pair}, price={snapshot.current_price:.5f}, "
            f"change_pct={snapshot.daily_change_percent:.2f}, trend={snapshot.market_trend}"
        )
        return snapshot
