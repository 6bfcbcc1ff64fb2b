"""
Trade journal entry model.
"""
from sqlalchemy import Column, Integer, String, Float, Date, Time, DateTime, Text, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from tradejournal.core.database import Base


class TradeType(str, enum.Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TradeStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Trade(Base):
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    currency_pair = Column(String(10), nullable=False, index=True)  # e.g. "EURUSD"
    trade_type = Column(SQLEnum(TradeType, values_callable=lambda x: [e.value for e in x]), nullable=False)
    status = Column(SQLEnum(TradeStatus, values_callable=lambda x: [e.value for e in x]), default=TradeStatus.CLOSED, nullable=False)
    entry_price = Column(Float, nullable=False)
    exit_price = Column(Float, nullable=True)
    stop_loss = Column(Float, nullable=True)
    take_profit = Column(Float, nullable=True)
    lot_size = Column(Float, nullable=False)
    pips = Column(Float, nullable=True)
    profit_loss = Column(Float, nullable=True)
    currency = Column(String(4), nullable=False, default="AUD")
    date = Column(Date, nullable=False, index=True)
    entry_time = Column(Time, nullable=True)
    exit_time = Column(Time, nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)  # list of strings
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
