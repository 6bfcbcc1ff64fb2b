"""
Question catalog for the top-down analysis questionnaire.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from tradejournal.core.database import Base
from tradejournal.models.analysis import Timeframe


class QuestionType(str, enum.Enum):
    TEXT = "TEXT"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    RATING = "RATING"
    BOOLEAN = "BOOLEAN"
    ANNOUNCEMENTS = "ANNOUNCEMENTS"


class Question(Base):
    """Questions are versioned and deactivated, never deleted, so old answers keep their meaning."""
    __tablename__ = "tda_questions"
    __table_args__ = (
        UniqueConstraint("timeframe", "order_index", "version", name="uq_tda_questions_timeframe_order_version"),
    )

    id = Column(Integer, primary_key=True, index=True)
    timeframe = Column(SQLEnum(Timeframe, values_callable=lambda x: [e.value for e in x]), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(SQLEnum(QuestionType, values_callable=lambda x: [e.value for e in x]), nullable=False)
    options = Column(JSON, nullable=True)  # choices for MULTIPLE_CHOICE
    required = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
