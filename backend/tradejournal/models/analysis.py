"""
Top-down analysis model and its audit trail.
"""
from sqlalchemy import Column, Integer, String, Float, Date, Time, DateTime, Text, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from tradejournal.core.database import Base


class Timeframe(str, enum.Enum):
    M10 = "M10"
    M15 = "M15"
    M30 = "M30"
    H1 = "H1"
    H2 = "H2"
    H4 = "H4"
    H8 = "H8"
    W1 = "W1"
    MN1 = "MN1"
    DAILY = "DAILY"


class AnalysisStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class TradeRecommendation(str, enum.Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"
    AVOID = "AVOID"


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class HistoryAction(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


def _enum(enum_cls):
    return SQLEnum(enum_cls, values_callable=lambda x: [e.value for e in x])


class TopDownAnalysis(Base):
    __tablename__ = "top_down_analyses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    currency_pair = Column(String(10), nullable=False, index=True)
    analysis_date = Column(Date, nullable=False)
    analysis_time = Column(Time, nullable=True)
    status = Column(_enum(AnalysisStatus), default=AnalysisStatus.DRAFT, nullable=False, index=True)
    overall_probability = Column(Float, nullable=True)  # 0-100
    trade_recommendation = Column(_enum(TradeRecommendation), nullable=True)
    confidence_level = Column(Float, nullable=True)  # 0-100
    risk_level = Column(_enum(RiskLevel), nullable=True)
    ai_summary = Column(Text, nullable=True)
    ai_reasoning = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    # No ORM cascades: children are removed explicitly, see services.tda.deletion
    timeframe_analyses = relationship("TimeframeAnalysis", back_populates="analysis", passive_deletes=True)
    answers = relationship("Answer", back_populates="analysis", passive_deletes=True)


class AnalysisHistory(Base):
    __tablename__ = "tda_analysis_history"

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("top_down_analyses.id"), nullable=False, index=True)
    action = Column(_enum(HistoryAction), nullable=False)
    changes = Column(JSON, nullable=True)
    performed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
