"""
Status lifecycle of a top-down analysis: DRAFT -> COMPLETED -> ARCHIVED.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session
from tradejournal.models.analysis import (
    TopDownAnalysis,
    AnalysisHistory,
    AnalysisStatus,
    HistoryAction,
)
from tradejournal.models.timeframe_analysis import TimeframeAnalysis
import logging

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AnalysisStatus.DRAFT: {AnalysisStatus.COMPLETED},
    AnalysisStatus.COMPLETED: {AnalysisStatus.ARCHIVED},
    AnalysisStatus.ARCHIVED: set(),
}


class InvalidStatusTransition(ValueError):
    """Requested status change is not a forward step of the lifecycle."""


class CompletionNotAllowed(ValueError):
    """Analysis lacks what completion requires."""


def ensure_transition(current: AnalysisStatus, target: AnalysisStatus) -> None:
    current = AnalysisStatus(current)
    target = AnalysisStatus(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(f"Cannot change analysis status from {current.value} to {target.value}")


def ensure_editable(analysis: TopDownAnalysis) -> None:
    """Archived analyses are read-only."""
    if AnalysisStatus(analysis.status) == AnalysisStatus.ARCHIVED:
        raise InvalidStatusTransition("Archived analyses cannot be modified")


def record_history(
    db: Session,
    analysis: TopDownAnalysis,
    action: HistoryAction,
    performed_by: Optional[int],
    changes: Optional[dict] = None,
) -> AnalysisHistory:
    """Stage a history row; the caller commits."""
    entry = AnalysisHistory(
        analysis_id=analysis.id,
        action=action,
        changes=changes,
        performed_by=performed_by,
    )
    db.add(entry)
    return entry


def complete_analysis(db: Session, analysis: TopDownAnalysis, performed_by: int, values: dict) -> TopDownAnalysis:
    """
    Move a DRAFT to COMPLETED with its final values.

    Requires at least one timeframe analysis. `values` holds the final
    overall_probability, trade_recommendation, confidence_level, risk_level and
    optional ai_summary/ai_reasoning.
    """
    ensure_transition(analysis.status, AnalysisStatus.COMPLETED)

    timeframe_count = db.query(TimeframeAnalysis).filter(
        TimeframeAnalysis.analysis_id == analysis.id
    ).count()
    if timeframe_count == 0:
        raise CompletionNotAllowed("At least one timeframe analysis is required before completing")

    for field, value in values.items():
        setattr(analysis, field, value)
    analysis.status = AnalysisStatus.COMPLETED
    analysis.completed_at = datetime.now(timezone.utc)

    record_history(db, analysis, HistoryAction.COMPLETED, performed_by, changes=_jsonable(values))
    db.commit()
    db.refresh(analysis)

    logger.info(f"tda_completed: analysis_id={analysis.id}, timeframes={timeframe_count}")
    return analysis


def archive_analysis(db: Session, analysis: TopDownAnalysis, performed_by: int) -> TopDownAnalysis:
    ensure_transition(analysis.status, AnalysisStatus.ARCHIVED)

    analysis.status = AnalysisStatus.ARCHIVED
    analysis.archived_at = datetime.now(timezone.utc)
    record_history(db, analysis, HistoryAction.ARCHIVED, performed_by)
    db.commit()
    db.refresh(analysis)

    logger.info(f"tda_archived: analysis_id={analysis.id}")
    return analysis


def _jsonable(values: dict) -> dict:
    result = {}
    for key, value in values.items():
        if hasattr(value, "value"):
            value = value.value
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        result[key] = value
    return result
