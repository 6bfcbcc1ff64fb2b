"""
Per-user notification preferences.
"""
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tradejournal.core.database import Base


# Report period -> column holding the opt-in flag
REPORT_FLAG_COLUMNS = {
    "weekly": "weekly_reports",
    "monthly": "monthly_reports",
    "quarterly": "quarterly_reports",
    "yearly": "yearly_reports",
}


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    weekly_reports = Column(Boolean, nullable=False, default=False)
    monthly_reports = Column(Boolean, nullable=False, default=False)
    quarterly_reports = Column(Boolean, nullable=False, default=False)
    yearly_reports = Column(Boolean, nullable=False, default=False)
    email_project_updates = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="settings")
