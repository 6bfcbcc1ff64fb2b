"""
Top-down analysis endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Optional, List
import datetime as dt
from tradejournal.core.database import get_db
from tradejournal.core.auth import get_current_user_dependency, get_current_admin_user_dependency
from tradejournal.core.clients import get_llm_client, get_market_data_service
from tradejournal.models.analysis import (
    TopDownAnalysis,
    AnalysisStatus,
    HistoryAction,
    RiskLevel,
    Timeframe,
    TradeRecommendation,
)
from tradejournal.models.answer import Answer
from tradejournal.models.attachments import Announcement, AnnouncementImpact, Screenshot
from tradejournal.models.question import Question, QuestionType
from tradejournal.models.timeframe_analysis import TimeframeAnalysis, Sentiment
from tradejournal.models.user import User
from tradejournal.services.data.market import MarketDataError, MarketDataService
from tradejournal.services.llm.client import LLMClient
from tradejournal.services.tda.aggregator import (
    baseline_probability,
    calculate_updated_metrics,
    classify_timeframe_sentiment,
    recommend_trade,
)
from tradejournal.services.tda.deletion import DeletionIncomplete, delete_analysis_cascade
from tradejournal.services.tda.lifecycle import (
    CompletionNotAllowed,
    InvalidStatusTransition,
    archive_analysis,
    complete_analysis,
    ensure_editable,
    ensure_transition,
    record_history,
)
from tradejournal.services.tda.payloads import AnswerValidationError, load_answer_value, parse_answer_value
from tradejournal.services.tda.reasoning import build_analysis_summary, build_enhanced_reasoning

logger = logging.getLogger(__name__)

router = APIRouter()

TIMEFRAME_ORDER = {tf.value: index for index, tf in enumerate(Timeframe)}
PAIR_PATTERN = r"^[A-Za-z/]{1,7}$"


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class CreateAnalysisRequest(BaseModel):
    currency_pair: str = Field(pattern=PAIR_PATTERN)
    analysis_date: Optional[dt.date] = None
    analysis_time: Optional[dt.time] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("currency_pair")
    @classmethod
    def normalize_pair(cls, value: str) -> str:
        return value.replace("/", "").upper()


class UpdateAnalysisRequest(BaseModel):
    currency_pair: Optional[str] = Field(default=None, pattern=PAIR_PATTERN)
    analysis_date: Optional[dt.date] = None
    analysis_time: Optional[dt.time] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    overall_probability: Optional[float] = Field(default=None, ge=0, le=100)
    confidence_level: Optional[float] = Field(default=None, ge=0, le=100)
    risk_level: Optional[RiskLevel] = None
    trade_recommendation: Optional[TradeRecommendation] = None

    @field_validator("currency_pair")
    @classmethod
    def normalize_pair(cls, value: Optional[str]) -> Optional[str]:
        return value.replace("/", "").upper() if value else value

    @model_validator(mode="after")
    def reject_null_required(self):
        for field in ("currency_pair", "analysis_date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class CompleteAnalysisRequest(BaseModel):
    overall_probability: float = Field(ge=0, le=100)
    trade_recommendation: TradeRecommendation
    confidence_level: float = Field(ge=0, le=100)
    risk_level: RiskLevel
    ai_summary: Optional[str] = None
    ai_reasoning: Optional[str] = None


class AnswerUpsert(BaseModel):
    question_id: int
    answer_value: Any = None
    answer_text: Optional[str] = None


class UpsertAnswersRequest(BaseModel):
    answers: List[AnswerUpsert] = Field(min_length=1)


class TimeframeAnalysisUpsert(BaseModel):
    timeframe: Timeframe
    timeframe_sentiment: Optional[Sentiment] = None
    timeframe_probability: Optional[float] = Field(default=None, ge=0, le=100)
    timeframe_strength: Optional[float] = Field(default=None, ge=0, le=100)
    analysis_data: Optional[dict] = None


class UpsertTimeframeAnalysesRequest(BaseModel):
    timeframe_analyses: List[TimeframeAnalysisUpsert] = Field(min_length=1)


class CreateScreenshotRequest(BaseModel):
    timeframe: Timeframe
    file_url: str = Field(min_length=1, max_length=1000)
    file_name: str = Field(min_length=1, max_length=255)
    file_size: Optional[int] = Field(default=None, ge=0)


class CreateAnnouncementRequest(BaseModel):
    timeframe: Timeframe
    time: str = Field(pattern=r"^\d{1,2}:\d{2}$")
    announcement_type: str = Field(min_length=1, max_length=255)
    impact: AnnouncementImpact


class QuestionUpsertRequest(BaseModel):
    timeframe: Timeframe
    question_text: str = Field(min_length=1)
    question_type: QuestionType
    options: Optional[List[str]] = None
    required: bool = False
    order_index: int = Field(ge=0)


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    currency_pair: str
    analysis_date: dt.date
    analysis_time: Optional[dt.time] = None
    status: AnalysisStatus
    overall_probability: Optional[float] = None
    trade_recommendation: Optional[TradeRecommendation] = None
    confidence_level: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    ai_summary: Optional[str] = None
    ai_reasoning: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    completed_at: Optional[dt.datetime] = None
    archived_at: Optional[dt.datetime] = None


class TimeframeAnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    analysis_id: int
    timeframe: Timeframe
    timeframe_sentiment: Sentiment
    timeframe_probability: float
    timeframe_strength: float
    analysis_data: Optional[dict] = None
    updated_at: Optional[dt.datetime] = None


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    analysis_id: int
    question_id: int
    answer_text: Optional[str] = None
    answer_value: Optional[dict] = None


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timeframe: Timeframe
    question_text: str
    question_type: QuestionType
    options: Optional[List[str]] = None
    required: bool
    order_index: int
    version: int
    is_active: bool


class ScreenshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    analysis_id: int
    timeframe: Timeframe
    file_url: str
    file_name: str
    file_size: Optional[int] = None
    created_at: Optional[dt.datetime] = None


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    analysis_id: int
    timeframe: Timeframe
    time: str
    announcement_type: str
    impact: AnnouncementImpact


class AnalysisDetailResponse(BaseModel):
    analysis: AnalysisResponse
    timeframe_analyses: List[TimeframeAnalysisResponse]
    answers: List[AnswerResponse]
    questions: List[QuestionResponse]
    screenshots: List[ScreenshotResponse]
    announcements: List[AnnouncementResponse]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_owned_analysis(db: Session, analysis_id: int, user: User) -> TopDownAnalysis:
    """Missing and foreign analyses are indistinguishable to the caller."""
    analysis = db.query(TopDownAnalysis).filter(
        TopDownAnalysis.id == analysis_id,
        TopDownAnalysis.user_id == user.id
    ).first()
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return analysis


def _require_draft(analysis: TopDownAnalysis) -> None:
    if AnalysisStatus(analysis.status) != AnalysisStatus.DRAFT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Analysis is {AnalysisStatus(analysis.status).value}; only drafts can be changed"
        )


def _require_editable(analysis: TopDownAnalysis) -> None:
    try:
        ensure_editable(analysis)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _lifecycle_http_error(e: ValueError) -> HTTPException:
    if isinstance(e, CompletionNotAllowed):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _timeframe_sort_key(row) -> tuple:
    timeframe = row.timeframe.value if hasattr(row.timeframe, "value") else row.timeframe
    return TIMEFRAME_ORDER.get(timeframe, len(TIMEFRAME_ORDER)), getattr(row, "order_index", 0)


def _active_questions(db: Session, timeframe: Optional[Timeframe] = None) -> List[Question]:
    query = db.query(Question).filter(Question.is_active.is_(True))
    if timeframe:
        query = query.filter(Question.timeframe == timeframe)
    return sorted(query.all(), key=_timeframe_sort_key)


def _timeframe_analyses(db: Session, analysis_id: int) -> List[TimeframeAnalysis]:
    rows = db.query(TimeframeAnalysis).filter(TimeframeAnalysis.analysis_id == analysis_id).all()
    return sorted(rows, key=_timeframe_sort_key)


def _answers_for_timeframe(db: Session, analysis_id: int, timeframe: Timeframe) -> List[Answer]:
    return (
        db.query(Answer)
        .join(Question, Question.id == Answer.question_id)
        .filter(Answer.analysis_id == analysis_id, Question.timeframe == timeframe)
        .all()
    )


def _fetch_snapshot(market_data: MarketDataService, currency_pair: str) -> tuple:
    """(snapshot, error). Market data problems never fail the request."""
    try:
        return market_data.get_fx_snapshot(currency_pair), None
    except MarketDataError as e:
        logger.warning(f"Market data unavailable for {currency_pair}, using stored metrics: {e}")
        return None, str(e)


# ---------------------------------------------------------------------------
# Collection routes
# ---------------------------------------------------------------------------

@router.get("", response_model=List[AnalysisResponse])
async def list_analyses(
    status_filter: Optional[AnalysisStatus] = Query(None, alias="status"),
    currency_pair: Optional[str] = None,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """List the caller's analyses, newest first."""
    query = db.query(TopDownAnalysis).filter(TopDownAnalysis.user_id == current_user.id)
    if status_filter:
        query = query.filter(TopDownAnalysis.status == status_filter)
    if currency_pair:
        query = query.filter(TopDownAnalysis.currency_pair == currency_pair.replace("/", "").upper())
    return query.order_by(TopDownAnalysis.created_at.desc(), TopDownAnalysis.id.desc()).all()


@router.post("", response_model=AnalysisResponse, status_code=status.HTTP_201_CREATED)
async def create_analysis(
    request: CreateAnalysisRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Start a new analysis as a DRAFT."""
    now = dt.datetime.now(dt.timezone.utc)
    analysis = TopDownAnalysis(
        user_id=current_user.id,
        currency_pair=request.currency_pair,
        analysis_date=request.analysis_date or now.date(),
        analysis_time=request.analysis_time or now.time().replace(microsecond=0),
        status=AnalysisStatus.DRAFT,
        notes=request.notes,
        tags=request.tags,
    )
    db.add(analysis)
    db.flush()
    record_history(db, analysis, HistoryAction.CREATED, current_user.id, changes={"currency_pair": analysis.currency_pair})
    db.commit()
    db.refresh(analysis)

    logger.info(f"tda_created: analysis_id={analysis.id}, user_id={current_user.id}, pair={analysis.currency_pair}")
    return analysis


@router.delete("/drafts", response_model=dict)
async def cleanup_drafts(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Delete all of the caller's drafts."""
    draft_ids = [
        row.id for row in db.query(TopDownAnalysis.id).filter(
            TopDownAnalysis.user_id == current_user.id,
            TopDownAnalysis.status == AnalysisStatus.DRAFT,
        ).all()
    ]

    deleted = 0
    errors = []
    for analysis_id in draft_ids:
        try:
            delete_analysis_cascade(db, analysis_id)
            deleted += 1
        except DeletionIncomplete as e:
            errors.append(str(e))

    body = {"success": not errors, "deleted": deleted, "errors": errors}
    if errors:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
    return body


@router.get("/audit", response_model=dict)
async def audit_analyses(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Consistency report over the caller's analyses."""
    analyses = db.query(TopDownAnalysis).filter(TopDownAnalysis.user_id == current_user.id).all()
    ids = [a.id for a in analyses]

    with_timeframes = set()
    with_answers = set()
    if ids:
        with_timeframes = {
            row.analysis_id for row in
            db.query(TimeframeAnalysis.analysis_id).filter(TimeframeAnalysis.analysis_id.in_(ids)).distinct()
        }
        with_answers = {
            row.analysis_id for row in
            db.query(Answer.analysis_id).filter(Answer.analysis_id.in_(ids)).distinct()
        }

    by_status = {s.value: 0 for s in AnalysisStatus}
    for analysis in analyses:
        by_status[AnalysisStatus(analysis.status).value] += 1

    return {
        "total": len(analyses),
        "by_status": by_status,
        "completed_without_timeframe_analyses": sorted(
            a.id for a in analyses
            if AnalysisStatus(a.status) == AnalysisStatus.COMPLETED and a.id not in with_timeframes
        ),
        "analyses_without_answers": sorted(a.id for a in analyses if a.id not in with_answers),
    }


# ---------------------------------------------------------------------------
# Question catalog
# ---------------------------------------------------------------------------

@router.get("/questions", response_model=List[QuestionResponse])
async def list_questions(
    timeframe: Optional[Timeframe] = None,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Active questions ordered by timeframe, then position."""
    return _active_questions(db, timeframe)


@router.post("/questions", response_model=QuestionResponse)
async def upsert_question(
    request: QuestionUpsertRequest,
    current_user: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db)
):
    """
    Create or update the question at (timeframe, order_index).

    Changing the wording, type or options retires the old row and creates a new
    version so existing answers keep pointing at the text they answered.
    """
    if request.question_type == QuestionType.MULTIPLE_CHOICE and not request.options:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Multiple choice questions need options")

    same_slot = db.query(Question).filter(
        Question.timeframe == request.timeframe,
        Question.order_index == request.order_index,
    ).all()
    current = next((q for q in same_slot if q.is_active), None)

    if current is not None:
        unchanged = (
            current.question_text == request.question_text
            and QuestionType(current.question_type) == request.question_type
            and (current.options or None) == (request.options or None)
        )
        if unchanged:
            current.required = request.required
            db.commit()
            db.refresh(current)
            return current
        current.is_active = False

    question = Question(
        timeframe=request.timeframe,
        question_text=request.question_text,
        question_type=request.question_type,
        options=request.options,
        required=request.required,
        order_index=request.order_index,
        version=max((q.version for q in same_slot), default=0) + 1,
        is_active=True,
    )
    db.add(question)
    db.commit()
    db.refresh(question)

    logger.info(f"tda_question_saved: id={question.id}, timeframe={request.timeframe.value}, version={question.version}")
    return question


@router.delete("/questions/{question_id}", response_model=dict)
async def deactivate_question(
    question_id: int,
    current_user: User = Depends(get_current_admin_user_dependency),
    db: Session = Depends(get_db)
):
    """Questions are deactivated, never deleted."""
    question = db.query(Question).filter(Question.id == question_id).first()
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")
    question.is_active = False
    db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Single analysis
# ---------------------------------------------------------------------------

@router.get("/{analysis_id}", response_model=AnalysisDetailResponse)
async def get_analysis(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Analysis with its timeframe analyses, answers, questions, screenshots and announcements."""
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    return AnalysisDetailResponse(
        analysis=AnalysisResponse.model_validate(analysis),
        timeframe_analyses=_timeframe_analyses(db, analysis.id),
        answers=db.query(Answer).filter(Answer.analysis_id == analysis.id).order_by(Answer.id).all(),
        questions=_active_questions(db),
        screenshots=db.query(Screenshot).filter(Screenshot.analysis_id == analysis.id).order_by(Screenshot.created_at, Screenshot.id).all(),
        announcements=db.query(Announcement).filter(Announcement.analysis_id == analysis.id).order_by(Announcement.id).all(),
    )


@router.put("/{analysis_id}", response_model=AnalysisResponse)
async def update_analysis(
    analysis_id: int,
    request: UpdateAnalysisRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Edit descriptive fields. Status changes go through /complete and /archive."""
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_editable(analysis)

    changes = request.model_dump(exclude_unset=True, mode="json")
    for field, value in request.model_dump(exclude_unset=True).items():
        setattr(analysis, field, value)

    if changes:
        record_history(db, analysis, HistoryAction.UPDATED, current_user.id, changes=changes)
    db.commit()
    db.refresh(analysis)
    return analysis


@router.delete("/{analysis_id}", response_model=dict)
async def delete_analysis(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Delete an analysis and every child row."""
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    try:
        steps = delete_analysis_cascade(db, analysis.id)
    except DeletionIncomplete as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return {"success": True, "deleted_steps": steps}


@router.post("/{analysis_id}/complete", response_model=AnalysisResponse)
async def complete(
    analysis_id: int,
    request: CompleteAnalysisRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Finalize a draft with caller-supplied values."""
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    try:
        return complete_analysis(db, analysis, current_user.id, request.model_dump(exclude_none=True))
    except (InvalidStatusTransition, CompletionNotAllowed) as e:
        raise _lifecycle_http_error(e)


@router.post("/{analysis_id}/archive", response_model=AnalysisResponse)
async def archive(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    try:
        return archive_analysis(db, analysis, current_user.id)
    except InvalidStatusTransition as e:
        raise _lifecycle_http_error(e)


# ---------------------------------------------------------------------------
# Answers and timeframe analyses (upserts)
# ---------------------------------------------------------------------------

@router.get("/{analysis_id}/answers", response_model=List[AnswerResponse])
async def list_answers(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    return db.query(Answer).filter(Answer.analysis_id == analysis.id).order_by(Answer.id).all()


@router.post("/{analysis_id}/answers", response_model=List[AnswerResponse])
async def upsert_answers(
    analysis_id: int,
    request: UpsertAnswersRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Insert or update answers keyed by question. The last entry per question wins."""
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_draft(analysis)

    latest = {item.question_id: item for item in request.answers}
    questions = {
        q.id: q for q in db.query(Question).filter(Question.id.in_(list(latest))).all()
    }

    validated = {}
    for question_id, item in latest.items():
        question = questions.get(question_id)
        if question is None or not question.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Question {question_id} not found or inactive"
            )
        try:
            payload = parse_answer_value(question, item.answer_value, item.answer_text)
        except AnswerValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Question {question_id}: {e}"
            )
        validated[question_id] = (payload.model_dump(mode="json"), item.answer_text)

    saved = [_upsert_answer(db, analysis.id, qid, value, text) for qid, (value, text) in validated.items()]
    return saved


def _upsert_answer(db: Session, analysis_id: int, question_id: int, value: dict, text: Optional[str]) -> Answer:
    """Keyed on (analysis_id, question_id); a concurrent insert turns into an update."""
    for attempt in range(2):
        answer = db.query(Answer).filter(
            Answer.analysis_id == analysis_id,
            Answer.question_id == question_id
        ).first()
        if answer is None:
            answer = Answer(analysis_id=analysis_id, question_id=question_id)
            db.add(answer)
        answer.answer_value = value
        answer.answer_text = text
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt:
                raise
            logger.info(f"Answer for analysis {analysis_id} question {question_id} inserted concurrently, updating")
            continue
        db.refresh(answer)
        return answer


@router.get("/{analysis_id}/timeframe-analyses", response_model=List[TimeframeAnalysisResponse])
async def list_timeframe_analyses(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    return _timeframe_analyses(db, analysis.id)


@router.post("/{analysis_id}/timeframe-analyses", response_model=List[TimeframeAnalysisResponse])
async def upsert_timeframe_analyses(
    analysis_id: int,
    request: UpsertTimeframeAnalysesRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """
    Insert or update one row per timeframe.

    Probability and strength come from the caller. A missing sentiment is
    derived from the directional answers of that timeframe.
    """
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_draft(analysis)

    latest = {item.timeframe: item for item in request.timeframe_analyses}
    saved = []
    for timeframe, item in latest.items():
        sentiment = item.timeframe_sentiment
        if sentiment is None:
            answers = _answers_for_timeframe(db, analysis.id, timeframe)
            sentiment = classify_timeframe_sentiment(load_answer_value(a.answer_value) for a in answers)
        saved.append(_upsert_timeframe_analysis(db, analysis.id, item, sentiment))
    return saved


def _upsert_timeframe_analysis(
    db: Session,
    analysis_id: int,
    item: TimeframeAnalysisUpsert,
    sentiment: Sentiment,
) -> TimeframeAnalysis:
    """Keyed on (analysis_id, timeframe); a concurrent insert turns into an update."""
    for attempt in range(2):
        row = db.query(TimeframeAnalysis).filter(
            TimeframeAnalysis.analysis_id == analysis_id,
            TimeframeAnalysis.timeframe == item.timeframe
        ).first()
        if row is None:
            row = TimeframeAnalysis(
                analysis_id=analysis_id,
                timeframe=item.timeframe,
                timeframe_probability=50.0,
                timeframe_strength=0.0,
            )
            db.add(row)
        row.timeframe_sentiment = sentiment
        if item.timeframe_probability is not None:
            row.timeframe_probability = item.timeframe_probability
        if item.timeframe_strength is not None:
            row.timeframe_strength = item.timeframe_strength
        if item.analysis_data is not None:
            row.analysis_data = item.analysis_data
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt:
                raise
            logger.info(f"Timeframe {item.timeframe.value} for analysis {analysis_id} inserted concurrently, updating")
            continue
        db.refresh(row)
        return row


# ---------------------------------------------------------------------------
# Screenshots and announcements
# ---------------------------------------------------------------------------

@router.get("/{analysis_id}/screenshots", response_model=List[ScreenshotResponse])
async def list_screenshots(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    return db.query(Screenshot).filter(Screenshot.analysis_id == analysis.id).order_by(Screenshot.created_at, Screenshot.id).all()


@router.post("/{analysis_id}/screenshots", response_model=ScreenshotResponse, status_code=status.HTTP_201_CREATED)
async def add_screenshot(
    analysis_id: int,
    request: CreateScreenshotRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Register an uploaded screenshot. The file itself lives in external storage."""
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_editable(analysis)
    screenshot = Screenshot(analysis_id=analysis.id, **request.model_dump())
    db.add(screenshot)
    db.commit()
    db.refresh(screenshot)
    return screenshot


@router.delete("/{analysis_id}/screenshots/{screenshot_id}", response_model=dict)
async def delete_screenshot(
    analysis_id: int,
    screenshot_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_editable(analysis)
    screenshot = db.query(Screenshot).filter(
        Screenshot.id == screenshot_id,
        Screenshot.analysis_id == analysis.id
    ).first()
    if not screenshot:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Screenshot not found")
    db.delete(screenshot)
    db.commit()
    return {"success": True}


@router.get("/{analysis_id}/announcements", response_model=List[AnnouncementResponse])
async def list_announcements(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    return db.query(Announcement).filter(Announcement.analysis_id == analysis.id).order_by(Announcement.id).all()


@router.post("/{analysis_id}/announcements", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def add_announcement(
    analysis_id: int,
    request: CreateAnnouncementRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_editable(analysis)
    announcement = Announcement(analysis_id=analysis.id, **request.model_dump())
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return announcement


@router.delete("/{analysis_id}/announcements/{announcement_id}", response_model=dict)
async def delete_announcement(
    analysis_id: int,
    announcement_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    _require_editable(analysis)
    announcement = db.query(Announcement).filter(
        Announcement.id == announcement_id,
        Announcement.analysis_id == analysis.id
    ).first()
    if not announcement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    db.delete(announcement)
    db.commit()
    return {"success": True}


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

@router.post("/{analysis_id}/enhanced-analysis", response_model=dict)
def enhanced_analysis(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    llm_client: Optional[LLMClient] = Depends(get_llm_client),
    market_data: MarketDataService = Depends(get_market_data_service),
    db: Session = Depends(get_db)
):
    """
    Refine the stored metrics with today's market data and write per-timeframe reasoning.

    Read-only. When market data is unavailable the stored metrics come back
    unchanged.
    """
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    timeframe_analyses = _timeframe_analyses(db, analysis.id)

    snapshot, market_error = _fetch_snapshot(market_data, analysis.currency_pair)
    metrics = calculate_updated_metrics(
        analysis.overall_probability,
        analysis.confidence_level,
        analysis.risk_level,
        [tf.timeframe_sentiment for tf in timeframe_analyses],
        snapshot,
    )
    reasoning = build_enhanced_reasoning(llm_client, analysis.currency_pair, timeframe_analyses, snapshot)

    return {
        "success": True,
        "enhancedReasoning": reasoning,
        "updatedMetrics": metrics.to_dict(),
        "marketData": snapshot.model_dump() if snapshot else None,
        "marketDataError": market_error,
    }


@router.post("/{analysis_id}/ai-analysis", response_model=dict)
def ai_analysis(
    analysis_id: int,
    current_user: User = Depends(get_current_user_dependency),
    llm_client: Optional[LLMClient] = Depends(get_llm_client),
    market_data: MarketDataService = Depends(get_market_data_service),
    db: Session = Depends(get_db)
):
    """
    Aggregate a draft's timeframe analyses into final metrics and complete it.

    Numbers come from the aggregator; the LLM (when configured) only writes the
    summary and reasoning text.
    """
    analysis = _get_owned_analysis(db, analysis_id, current_user)
    try:
        ensure_transition(analysis.status, AnalysisStatus.COMPLETED)
    except InvalidStatusTransition as e:
        raise _lifecycle_http_error(e)

    timeframe_analyses = _timeframe_analyses(db, analysis.id)
    if not timeframe_analyses:
        raise _lifecycle_http_error(CompletionNotAllowed("At least one timeframe analysis is required before completing"))

    answers = (
        db.query(Answer, Question)
        .join(Question, Question.id == Answer.question_id)
        .filter(Answer.analysis_id == analysis.id)
        .all()
    )
    answers_digest = [
        {
            "timeframe": Timeframe(question.timeframe).value,
            "question": question.question_text,
            "answer": answer.answer_value,
        }
        for answer, question in answers
    ]

    snapshot, market_error = _fetch_snapshot(market_data, analysis.currency_pair)
    sentiments = [tf.timeframe_sentiment for tf in timeframe_analyses]
    metrics = calculate_updated_metrics(
        baseline_probability(analysis.overall_probability, [tf.timeframe_probability for tf in timeframe_analyses]),
        analysis.confidence_level,
        analysis.risk_level,
        sentiments,
        snapshot,
    )
    recommendation = recommend_trade(metrics.overall_probability, sentiments)
    prose = build_analysis_summary(
        llm_client,
        analysis.currency_pair,
        metrics,
        recommendation.value,
        timeframe_analyses,
        answers_digest,
        snapshot,
    )

    for tf in timeframe_analyses:
        text = prose["timeframe_reasoning"].get(Timeframe(tf.timeframe).value)
        if text:
            tf.analysis_data = {**(tf.analysis_data or {}), "ai_reasoning": text}

    try:
        analysis = complete_analysis(db, analysis, current_user.id, {
            "overall_probability": metrics.overall_probability,
            "trade_recommendation": recommendation,
            "confidence_level": metrics.confidence_level,
            "risk_level": RiskLevel(metrics.risk_level),
            "ai_summary": prose["ai_summary"],
            "ai_reasoning": prose["ai_reasoning"],
        })
    except (InvalidStatusTransition, CompletionNotAllowed) as e:
        db.rollback()
        raise _lifecycle_http_error(e)

    return {
        "success": True,
        "analysis": AnalysisResponse.model_validate(analysis).model_dump(mode="json"),
        "metrics": metrics.to_dict(),
        "summarySource": prose["source"],
        "marketData": snapshot.model_dump() if snapshot else None,
        "marketDataError": market_error,
    }
