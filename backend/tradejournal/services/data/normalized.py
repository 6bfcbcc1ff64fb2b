"""
Normalized data structures for market data.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class OHLCVCandle(BaseModel):
    """Normalized OHLCV candle."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


class MarketData(BaseModel):
    """Normalized market data response."""
    instrument: str
    timeframe: str
    exchange: Optional[str] = None
    candles: List[OHLCVCandle]
    fetched_at: datetime


class MarketSnapshot(BaseModel):
    """Latest daily bar of an FX pair compared with the previous one."""
    symbol: str
    current_price: float
    previous_price: float
    daily_change: float
    daily_change_percent: float
    high: float
    low: float
    volume: float
    market_trend: str  # BULLISH | BEARISH
    volatility: float  # |daily_change_percent|
    momentum: str  # positive | negative
    strength: str  # strong | moderate | weak
    market_sentiment: str
    price_context: str
    range_context: str
    trend_context: str
