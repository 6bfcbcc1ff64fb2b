"""
Answer to a questionnaire question within one analysis.
"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tradejournal.core.database import Base


class Answer(Base):
    __tablename__ = "tda_answers"
    __table_args__ = (
        UniqueConstraint("analysis_id", "question_id", name="uq_tda_answers_analysis_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("top_down_analyses.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("tda_questions.id"), nullable=False, index=True)
    answer_text = Column(Text, nullable=True)
    answer_value = Column(JSON, nullable=True)  # tagged payload, see services.tda.payloads
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    analysis = relationship("TopDownAnalysis", back_populates="answers")
    question = relationship("Question")
