"""
Per-timeframe result of a top-down analysis.
"""
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, JSON, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from tradejournal.core.database import Base
from tradejournal.models.analysis import Timeframe


class Sentiment(str, enum.Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class TimeframeAnalysis(Base):
    __tablename__ = "tda_timeframe_analyses"
    __table_args__ = (
        UniqueConstraint("analysis_id", "timeframe", name="uq_tda_timeframe_analyses_analysis_timeframe"),
    )

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("top_down_analyses.id"), nullable=False, index=True)
    timeframe = Column(SQLEnum(Timeframe, values_callable=lambda x: [e.value for e in x]), nullable=False)
    timeframe_sentiment = Column(SQLEnum(Sentiment, values_callable=lambda x: [e.value for e in x]), default=Sentiment.NEUTRAL, nullable=False)
    timeframe_probability = Column(Float, nullable=False, default=50.0)
    timeframe_strength = Column(Float, nullable=False, default=0.0)
    analysis_data = Column(JSON, nullable=True)  # free-form: reasoning, key levels, ...
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    analysis = relationship("TopDownAnalysis", back_populates="timeframe_analyses")
