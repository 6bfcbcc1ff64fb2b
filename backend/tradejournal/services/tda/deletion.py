"""
Cascading delete of an analysis and its child rows.

Children are removed table by table, each step committed and logged, so a
failure part-way leaves a record of exactly what was already gone.
"""
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from tradejournal.models.analysis import TopDownAnalysis, AnalysisHistory
from tradejournal.models.attachments import Screenshot, Announcement
from tradejournal.models.answer import Answer
from tradejournal.models.timeframe_analysis import TimeframeAnalysis
import logging

logger = logging.getLogger(__name__)

DELETE_STEPS = (
    ("screenshots", Screenshot),
    ("announcements", Announcement),
    ("answers", Answer),
    ("timeframe_analyses", TimeframeAnalysis),
    ("history", AnalysisHistory),
    ("analysis", TopDownAnalysis),
)


class DeletionIncomplete(ValueError):
    """A delete step failed after earlier steps were committed."""

    def __init__(self, analysis_id: int, completed_steps: List[str], failed_step: str, reason: str):
        self.analysis_id = analysis_id
        self.completed_steps = completed_steps
        self.failed_step = failed_step
        self.reason = reason
        super().__init__(
            f"Deletion of analysis {analysis_id} incomplete: step '{failed_step}' failed "
            f"after [{', '.join(completed_steps) or 'none'}]"
        )


def delete_analysis_cascade(db: Session, analysis_id: int) -> List[str]:
    """
    Delete children then the analysis row. Returns the completed steps.

    Raises DeletionIncomplete naming the completed and failed steps.
    """
    completed: List[str] = []
    for step, model in DELETE_STEPS:
        column = model.id if model is TopDownAnalysis else model.analysis_id
        try:
            rows = db.query(model).filter(column == analysis_id).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"tda_delete_step_failed: analysis_id={analysis_id}, step={step}, completed={completed}, error={str(e)}",
                exc_info=True,
            )
            raise DeletionIncomplete(analysis_id, completed, step, str(e)) from e

        completed.append(step)
        logger.info(f"tda_delete_step: analysis_id={analysis_id}, step={step}, rows={rows}")

    return completed
