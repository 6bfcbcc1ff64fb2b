"""
Database models.
"""
from tradejournal.models.user import User
from tradejournal.models.user_settings import UserSettings
from tradejournal.models.audit_log import AuditLog
from tradejournal.models.trade import Trade, TradeType, TradeStatus
from tradejournal.models.analysis import (
    TopDownAnalysis,
    AnalysisHistory,
    Timeframe,
    AnalysisStatus,
    TradeRecommendation,
    RiskLevel,
    HistoryAction,
)
from tradejournal.models.timeframe_analysis import TimeframeAnalysis, Sentiment
from tradejournal.models.question import Question, QuestionType
from tradejournal.models.answer import Answer
from tradejournal.models.attachments import Screenshot, Announcement, AnnouncementImpact
from tradejournal.models.message import Message

__all__ = [
    "User",
    "UserSettings",
    "AuditLog",
    "Trade",
    "TradeType",
    "TradeStatus",
    "TopDownAnalysis",
    "AnalysisHistory",
    "Timeframe",
    "AnalysisStatus",
    "TradeRecommendation",
    "RiskLevel",
    "HistoryAction",
    "TimeframeAnalysis",
    "Sentiment",
    "Question",
    "QuestionType",
    "Answer",
    "Screenshot",
    "Announcement",
    "AnnouncementImpact",
    "Message",
]
