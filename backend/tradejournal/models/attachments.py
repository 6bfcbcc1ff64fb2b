"""
Screenshot metadata and economic announcements attached to an analysis.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from tradejournal.core.database import Base
from tradejournal.models.analysis import Timeframe


class AnnouncementImpact(str, enum.Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Screenshot(Base):
    """Only metadata lives here; the file itself sits in external storage."""
    __tablename__ = "tda_screenshots"

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("top_down_analyses.id"), nullable=False, index=True)
    timeframe = Column(SQLEnum(Timeframe, values_callable=lambda x: [e.value for e in x]), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=True)  # bytes
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Announcement(Base):
    __tablename__ = "tda_announcements"

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("top_down_analyses.id"), nullable=False, index=True)
    timeframe = Column(SQLEnum(Timeframe, values_callable=lambda x: [e.value for e in x]), nullable=False)
    time = Column(String(20), nullable=False)  # "HH:MM" as entered
    announcement_type = Column(String(255), nullable=False)  # e.g. "CPI", "NFP"
    impact = Column(SQLEnum(AnnouncementImpact, values_callable=lambda x: [e.value for e in x]), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
