"""
Trade journal endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
import logging
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Literal
import datetime as dt
from tradejournal.core.database import get_db
from tradejournal.core.auth import get_current_user_dependency
from tradejournal.core.clients import get_llm_client
from tradejournal.models.trade import Trade, TradeType, TradeStatus
from tradejournal.models.user import User
from tradejournal.services.email import XLSX_MIME_TYPE
from tradejournal.services.llm.client import LLMClient
from tradejournal.services.reports.spreadsheet import build_trade_workbook
from tradejournal.services import trades as trade_service

logger = logging.getLogger(__name__)

router = APIRouter()

TAG_PATTERN = r"^[A-Za-z0-9 ]{1,20}$"


def _validate_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > 20 or not all(ch.isalnum() or ch == " " for ch in tag):
            raise ValueError("Tags must be at most 20 letters, digits or spaces")
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned


REQUIRED_TRADE_FIELDS = (
    "currency_pair", "trade_type", "status", "entry_price", "lot_size", "currency", "date",
)


def _reject_nulls(request: BaseModel, fields) -> None:
    """Explicit nulls are only allowed for columns the store can leave empty."""
    for field in fields:
        if field in request.model_fields_set and getattr(request, field) is None:
            raise ValueError(f"{field} cannot be null")


class TradeBase(BaseModel):
    currency_pair: str = Field(min_length=1, max_length=7, pattern=r"^[A-Za-z/]+$")
    trade_type: TradeType
    status: TradeStatus = TradeStatus.CLOSED
    entry_price: float = Field(gt=0)
    exit_price: Optional[float] = Field(default=None, gt=0)
    stop_loss: Optional[float] = Field(default=None, gt=0)
    take_profit: Optional[float] = Field(default=None, gt=0)
    lot_size: float = Field(gt=0)
    pips: Optional[float] = None
    profit_loss: Optional[float] = None
    currency: str = Field(default="AUD", pattern=r"^[A-Z]{3,4}$")
    date: dt.date
    entry_time: Optional[dt.time] = None
    exit_time: Optional[dt.time] = None
    duration: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("currency_pair")
    @classmethod
    def normalize_pair(cls, value: str) -> str:
        return value.replace("/", "").upper()

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _validate_tags(value)


class CreateTradeRequest(TradeBase):
    pass


class UpdateTradeRequest(BaseModel):
    currency_pair: Optional[str] = Field(default=None, min_length=1, max_length=7, pattern=r"^[A-Za-z/]+$")
    trade_type: Optional[TradeType] = None
    status: Optional[TradeStatus] = None
    entry_price: Optional[float] = Field(default=None, gt=0)
    exit_price: Optional[float] = Field(default=None, gt=0)
    stop_loss: Optional[float] = Field(default=None, gt=0)
    take_profit: Optional[float] = Field(default=None, gt=0)
    lot_size: Optional[float] = Field(default=None, gt=0)
    pips: Optional[float] = None
    profit_loss: Optional[float] = None
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3,4}$")
    date: Optional[dt.date] = None
    entry_time: Optional[dt.time] = None
    exit_time: Optional[dt.time] = None
    duration: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @model_validator(mode="after")
    def reject_null_required(self):
        _reject_nulls(self, REQUIRED_TRADE_FIELDS)
        return self

    @field_validator("currency_pair")
    @classmethod
    def normalize_pair(cls, value: Optional[str]) -> Optional[str]:
        return value.replace("/", "").upper() if value else value

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _validate_tags(value)


class TradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    currency_pair: str
    trade_type: TradeType
    status: TradeStatus
    entry_price: float
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    lot_size: float
    pips: Optional[float] = None
    profit_loss: Optional[float] = None
    currency: str
    date: dt.date
    entry_time: Optional[dt.time] = None
    exit_time: Optional[dt.time] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class RenameTagRequest(BaseModel):
    old_tag: str = Field(min_length=1)
    new_tag: str = Field(pattern=TAG_PATTERN)


class TradeSummaryRequest(BaseModel):
    mode: Literal["tags", "strategy"] = "tags"


def _fill_derived(trade: Trade, explicit: set) -> None:
    """Derive pips and duration unless the client supplied them."""
    if "pips" not in explicit or trade.pips is None:
        trade.pips = trade_service.calculate_pips(
            trade.currency_pair, trade.trade_type, trade.entry_price, trade.exit_price
        )
    if "duration" not in explicit or trade.duration is None:
        trade.duration = trade_service.calculate_duration(trade.entry_time, trade.exit_time)


def _get_owned_trade(db: Session, trade_id: int, user: User) -> Trade:
    trade = db.query(Trade).filter(Trade.id == trade_id, Trade.user_id == user.id).first()
    if not trade:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    return trade


@router.get("", response_model=List[TradeResponse])
async def list_trades(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    status_filter: Optional[TradeStatus] = Query(None, alias="status"),
    currency_pair: Optional[str] = None,
    order: Literal["asc", "desc"] = "desc",
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """List the caller's trades."""
    return trade_service.filter_trades(
        db,
        current_user.id,
        start_date=start_date,
        end_date=end_date,
        status=status_filter.value if status_filter else None,
        currency_pair=currency_pair,
        descending=order == "desc",
    )


@router.post("", response_model=TradeResponse, status_code=status.HTTP_201_CREATED)
async def create_trade(
    request: CreateTradeRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Record a trade."""
    trade = Trade(user_id=current_user.id, **request.model_dump())
    _fill_derived(trade, request.model_fields_set)
    db.add(trade)
    db.commit()
    db.refresh(trade)
    logger.info(f"trade_created: id={trade.id}, user_id={current_user.id}, pair={trade.currency_pair}")
    return trade


@router.get("/stats", response_model=dict)
async def get_trade_stats(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    currency_pair: Optional[str] = None,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Performance statistics over the caller's trades."""
    trades = trade_service.filter_trades(
        db, current_user.id, start_date=start_date, end_date=end_date, currency_pair=currency_pair
    )
    return trade_service.trade_statistics(trades)


@router.get("/export")
async def export_trades(
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    currency_pair: Optional[str] = None,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Download the caller's trades as an Excel workbook."""
    trades = trade_service.filter_trades(
        db, current_user.id, start_date=start_date, end_date=end_date, currency_pair=currency_pair
    )
    label = f"{start_date or 'start'} to {end_date or 'today'}"
    content = build_trade_workbook(trades, "Export", label)
    filename = f"trades_{current_user.username}_{dt.date.today().isoformat()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/tags", response_model=dict)
async def rename_tag(
    request: RenameTagRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Rename a tag across all of the caller's trades."""
    updated = trade_service.rename_tag(db, current_user.id, request.old_tag, request.new_tag.strip())
    return {"success": True, "updated": updated}


@router.delete("/tags", response_model=dict)
async def remove_tag(
    tag: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Remove a tag from all of the caller's trades."""
    updated = trade_service.remove_tag(db, current_user.id, tag)
    return {"success": True, "updated": updated}


@router.post("/ai-summary", response_model=dict)
def ai_trade_summary(
    request: TradeSummaryRequest,
    current_user: User = Depends(get_current_user_dependency),
    llm_client: Optional[LLMClient] = Depends(get_llm_client),
    db: Session = Depends(get_db)
):
    """AI commentary on tag performance or strategy."""
    trades = trade_service.filter_trades(db, current_user.id)
    if not trades:
        return {"summary": trade_service.NO_TRADES_SUMMARY}
    if llm_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI summaries are not configured"
        )
    try:
        summary = trade_service.summarize_trades(llm_client, trades, mode=request.mode)
    except ValueError as e:
        logger.error(f"Trade summary failed for user {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI provider request failed"
        )
    return {"summary": summary, "mode": request.mode}


@router.get("/{trade_id}", response_model=TradeResponse)
async def get_trade(
    trade_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    return _get_owned_trade(db, trade_id, current_user)


@router.put("/{trade_id}", response_model=TradeResponse)
async def update_trade(
    trade_id: int,
    request: UpdateTradeRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Update a trade; pips and duration are re-derived when prices or times change."""
    trade = _get_owned_trade(db, trade_id, current_user)
    changes = request.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(trade, field, value)

    price_fields = {"currency_pair", "trade_type", "entry_price", "exit_price"}
    if price_fields & changes.keys() and "pips" not in changes:
        trade.pips = trade_service.calculate_pips(
            trade.currency_pair, trade.trade_type, trade.entry_price, trade.exit_price
        )
    if {"entry_time", "exit_time"} & changes.keys() and "duration" not in changes:
        trade.duration = trade_service.calculate_duration(trade.entry_time, trade.exit_time)

    db.commit()
    db.refresh(trade)
    return trade


@router.delete("/{trade_id}", response_model=dict)
async def delete_trade(
    trade_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    trade = _get_owned_trade(db, trade_id, current_user)
    db.delete(trade)
    db.commit()
    logger.info(f"trade_deleted: id={trade_id}, user_id={current_user.id}")
    return {"success": True}
