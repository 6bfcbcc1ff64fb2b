"""
Trade journal helpers: derived fields, statistics, tag management and AI summaries.
"""
from datetime import date, time
from typing import Iterable, List, Optional, Sequence
from sqlalchemy.orm import Session
from tradejournal.models.trade import Trade, TradeType
from tradejournal.services.llm.client import LLMClient
import logging

logger = logging.getLogger(__name__)

NO_TRADES_SUMMARY = "No trades found to analyze."


def pip_multiplier(currency_pair: str) -> int:
    """JPY-quoted pairs move in 0.01 pips, everything else in 0.0001."""
    return 100 if "JPY" in currency_pair.upper() else 10000


def calculate_pips(currency_pair: str, trade_type: str, entry_price: float, exit_price: Optional[float]) -> Optional[float]:
    """Signed pips for the trade direction, one decimal. None for open trades."""
    if exit_price is None:
        return None
    if TradeType(trade_type) == TradeType.LONG:
        difference = exit_price - entry_price
    else:
        difference = entry_price - exit_price
    return round(difference * pip_multiplier(currency_pair), 1)


def calculate_duration(entry_time: Optional[time], exit_time: Optional[time]) -> Optional[int]:
    """Minutes between entry and exit; an exit earlier than entry means it crossed midnight."""
    if entry_time is None or exit_time is None:
        return None
    entry_minutes = entry_time.hour * 60 + entry_time.minute
    exit_minutes = exit_time.hour * 60 + exit_time.minute
    minutes = exit_minutes - entry_minutes
    if minutes < 0:
        minutes += 24 * 60
    return minutes


def filter_trades(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    currency_pair: Optional[str] = None,
    descending: bool = True,
) -> List[Trade]:
    query = db.query(Trade).filter(Trade.user_id == user_id)
    if start_date:
        query = query.filter(Trade.date >= start_date)
    if end_date:
        query = query.filter(Trade.date <= end_date)
    if status:
        query = query.filter(Trade.status == status)
    if currency_pair:
        query = query.filter(Trade.currency_pair == currency_pair.upper())
    order = Trade.date.desc() if descending else Trade.date.asc()
    return query.order_by(order, Trade.id.desc() if descending else Trade.id.asc()).all()


def trade_statistics(trades: Sequence[Trade]) -> dict:
    """Performance summary computed ad hoc from the given trades."""
    total = len(trades)
    profits = [t.profit_loss or 0.0 for t in trades]
    winning = sum(1 for p in profits if p > 0)
    losing = sum(1 for p in profits if p < 0)
    total_pl = round(sum(profits), 2)

    by_pair: dict[str, float] = {}
    for trade in trades:
        by_pair[trade.currency_pair] = by_pair.get(trade.currency_pair, 0.0) + (trade.profit_loss or 0.0)

    return {
        "total_trades": total,
        "winning_trades": winning,
        "losing_trades": losing,
        "win_rate": round(winning / total * 100, 1) if total else 0.0,
        "net_pips": round(sum(t.pips or 0.0 for t in trades), 1),
        "total_profit_loss": total_pl,
        "average_profit_loss": round(total_pl / total, 2) if total else 0.0,
        "best_pair": max(by_pair, key=by_pair.get) if by_pair else None,
        "worst_pair": min(by_pair, key=by_pair.get) if by_pair else None,
    }


def rename_tag(db: Session, user_id: int, old_tag: str, new_tag: str) -> int:
    """Rename a tag on every trade of the user. Returns the number of trades changed."""
    updated = 0
    for trade in db.query(Trade).filter(Trade.user_id == user_id).all():
        tags = list(trade.tags or [])
        if old_tag not in tags:
            continue
        renamed = []
        for tag in tags:
            value = new_tag if tag == old_tag else tag
            if value not in renamed:
                renamed.append(value)
        trade.tags = renamed
        updated += 1
    db.commit()
    logger.info(f"trade_tag_renamed: user_id={user_id}, old={old_tag!r}, new={new_tag!r}, trades={updated}")
    return updated


def remove_tag(db: Session, user_id: int, tag: str) -> int:
    """Remove a tag from every trade of the user. Returns the number of trades changed."""
    updated = 0
    for trade in db.query(Trade).filter(Trade.user_id == user_id).all():
        tags = list(trade.tags or [])
        if tag not in tags:
            continue
        trade.tags = [t for t in tags if t != tag]
        updated += 1
    db.commit()
    logger.info(f"trade_tag_removed: user_id={user_id}, tag={tag!r}, trades={updated}")
    return updated


def _trade_lines(trades: Iterable[Trade]) -> str:
    return "\n".join(
        f"Date: {t.date}, Pair: {t.currency_pair}, Type: {TradeType(t.trade_type).value}, "
        f"P/L: {t.profit_loss}, Tags: {', '.join(t.tags or []) or '-'}"
        for t in trades
    )


def summarize_trades(llm_client: LLMClient, trades: Sequence[Trade], mode: str = "tags") -> str:
    """
    LLM commentary over a user's trades.

    mode="tags" analyses tag performance, mode="strategy" gives coaching tips.
    Raises ValueError from the LLM client on failure.
    """
    if not trades:
        return NO_TRADES_SUMMARY

    if mode == "strategy":
        system_prompt = "You are a helpful trading performance coach."
        user_prompt = (
            "Given the following trade records, analyze the user's trading strengths and weaknesses, "
            "and provide actionable, specific strategy improvement tips.\n\n"
            f"Trades:\n{_trade_lines(trades)}\n\nActionable Insights:"
        )
    else:
        system_prompt = "You are a helpful trading performance analyst."
        user_prompt = (
            "Given the following trade records with tags, analyze the tag-trade relations and tag "
            "performance, and provide actionable insights.\n\n"
            f"Trades:\n{_trade_lines(trades)}\n\nSummary:"
        )

    result = llm_client.call(system_prompt, user_prompt, temperature=0.7, max_tokens=400)
    return result["content"].strip()
