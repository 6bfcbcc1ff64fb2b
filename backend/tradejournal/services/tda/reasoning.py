"""
Prose for top-down analyses: per-timeframe reasoning and the AI summary.

The LLM only writes text. Whenever it is unavailable, fails, or answers in a
shape we cannot read, templated text built from stored data is used instead.
"""
import json
import re
from typing import Dict, List, Optional, Sequence
from tradejournal.models.analysis import Timeframe
from tradejournal.services.data.normalized import MarketSnapshot
from tradejournal.services.llm.client import LLMClient
from tradejournal.services.tda.aggregator import UpdatedMetrics
import logging

logger = logging.getLogger(__name__)

DEFAULT_REASONING = "Analysis completed based on user input and market conditions."

ANALYST_SYSTEM_PROMPT = "You are a professional forex analyst. Be concise and actionable."

_TIMEFRAME_NAMES = "|".join(sorted((t.value for t in Timeframe), key=len, reverse=True))
_TIMEFRAME_LINE = re.compile(rf"^[\s\-\*#>•]*\**\s*({_TIMEFRAME_NAMES})\b\**\s*[:\-–]\s*(.*)$", re.IGNORECASE)


def _value(enum_or_str) -> str:
    return enum_or_str.value if hasattr(enum_or_str, "value") else str(enum_or_str)


def _stored_reasoning(timeframe_analysis) -> Optional[str]:
    data = timeframe_analysis.analysis_data or {}
    return data.get("ai_reasoning") or data.get("reasoning")


def fallback_reasoning(timeframe_analyses: Sequence) -> List[dict]:
    return [
        {
            "timeframe": _value(tf.timeframe),
            "reasoning": _stored_reasoning(tf) or DEFAULT_REASONING,
        }
        for tf in timeframe_analyses
    ]


def parse_timeframe_reasoning(content: str) -> Dict[str, str]:
    """Read `TIMEFRAME: text` blocks; continuation lines join the current block."""
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for line in content.splitlines():
        match = _TIMEFRAME_LINE.match(line)
        if match:
            current = match.group(1).upper()
            sections[current] = [match.group(2).strip()]
        elif current and line.strip():
            sections[current].append(line.strip())
        elif not line.strip():
            current = None
    return {tf: " ".join(part for part in parts if part).strip() for tf, parts in sections.items() if any(parts)}


def _market_block(snapshot: Optional[MarketSnapshot]) -> str:
    if snapshot is None:
        return "Market data unavailable"
    sign = "+" if snapshot.daily_change > 0 else ""
    return (
        f"- Current Price: {snapshot.current_price:.5f}\n"
        f"- Daily Change: {sign}{snapshot.daily_change:.5f} ({sign}{snapshot.daily_change_percent:.2f}%)\n"
        f"- Market Trend: {snapshot.market_trend}\n"
        f"- Volatility: {snapshot.volatility:.2f}%\n"
        f"- Momentum: {snapshot.momentum} ({snapshot.strength})\n"
        f"- Trading Range: {snapshot.low:.5f} - {snapshot.high:.5f}\n"
        f"- Market Sentiment: {snapshot.market_sentiment}"
    )


def build_enhanced_reasoning(
    llm_client: Optional[LLMClient],
    currency_pair: str,
    timeframe_analyses: Sequence,
    snapshot: Optional[MarketSnapshot],
) -> List[dict]:
    """One reasoning entry per timeframe analysis, in input order."""
    fallback = fallback_reasoning(timeframe_analyses)
    if llm_client is None or not timeframe_analyses:
        return fallback

    timeframe_lines = "\n".join(
        f"- {_value(tf.timeframe)}: {_value(tf.timeframe_sentiment)} ({tf.timeframe_probability}% probability)"
        for tf in timeframe_analyses
    )
    prompt = (
        f"Currency Pair: {currency_pair}\n\n"
        f"MARKET DATA:\n{_market_block(snapshot)}\n\n"
        f"Timeframe Analysis Data:\n{timeframe_lines}\n\n"
        "For each timeframe give 2-3 sentences combining the trader's analysis with current market "
        "conditions: alignment with price and trend, momentum, risk from volatility, and an actionable insight.\n"
        'Format each timeframe response as: "TIMEFRAME: reasoning"'
    )

    try:
        result = llm_client.call(ANALYST_SYSTEM_PROMPT, prompt, temperature=0.7, max_tokens=500)
    except ValueError as e:
        logger.warning(f"Enhanced reasoning fell back to stored text for {currency_pair}: {e}")
        return fallback

    parsed = parse_timeframe_reasoning(result["content"])
    if not parsed:
        logger.warning(f"Enhanced reasoning response for {currency_pair} had no TIMEFRAME: lines, using stored text")
        return fallback

    return [
        {"timeframe": entry["timeframe"], "reasoning": parsed.get(entry["timeframe"], entry["reasoning"])}
        for entry in fallback
    ]


def template_summary(
    currency_pair: str,
    metrics: UpdatedMetrics,
    recommendation: str,
    timeframe_analyses: Sequence,
    snapshot: Optional[MarketSnapshot],
) -> tuple[str, str]:
    """Deterministic summary and reasoning built from the computed metrics."""
    summary = (
        f"{currency_pair}: {recommendation} with {metrics.overall_probability:.1f}% probability, "
        f"{metrics.confidence_level:.1f}% confidence and {metrics.risk_level} risk."
    )
    lines = [
        f"{_value(tf.timeframe)}: {_value(tf.timeframe_sentiment)} "
        f"({tf.timeframe_probability:.1f}% probability, strength {tf.timeframe_strength:.1f})"
        for tf in timeframe_analyses
    ]
    if snapshot is not None:
        lines.append(f"Market: {snapshot.trend_context}. {snapshot.price_context}. {snapshot.range_context}.")
        lines.append(f"Market alignment: {metrics.market_alignment:.2f}")
    return summary, "\n".join(lines)


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = re.sub(r"^```(?:json)?\s*", "", content)
        content = re.sub(r"\s*```$", "", content)
    return content


def build_analysis_summary(
    llm_client: Optional[LLMClient],
    currency_pair: str,
    metrics: UpdatedMetrics,
    recommendation: str,
    timeframe_analyses: Sequence,
    answers_digest: List[dict],
    snapshot: Optional[MarketSnapshot],
) -> dict:
    """
    Summary prose for a completed analysis.

    Returns `ai_summary`, `ai_reasoning` and `timeframe_reasoning`
    (timeframe -> text) plus `source` ("llm" or "template").
    """
    summary, reasoning = template_summary(currency_pair, metrics, recommendation, timeframe_analyses, snapshot)
    result = {
        "ai_summary": summary,
        "ai_reasoning": reasoning,
        "timeframe_reasoning": {e["timeframe"]: e["reasoning"] for e in fallback_reasoning(timeframe_analyses)},
        "source": "template",
    }
    if llm_client is None:
        return result

    payload = {
        "currency_pair": currency_pair,
        "overall_probability": metrics.overall_probability,
        "confidence_level": metrics.confidence_level,
        "risk_level": metrics.risk_level,
        "trade_recommendation": recommendation,
        "timeframes": [
            {
                "timeframe": _value(tf.timeframe),
                "sentiment": _value(tf.timeframe_sentiment),
                "probability": tf.timeframe_probability,
                "strength": tf.timeframe_strength,
            }
            for tf in timeframe_analyses
        ],
        "answers": answers_digest,
    }
    prompt = (
        f"You are performing a top-down analysis for {currency_pair}. The numbers below are final; "
        "explain them, do not change them.\n\n"
        f"Analysis Data:\n{json.dumps(payload, indent=2)}\n\n"
        f"Market Data:\n{_market_block(snapshot)}\n\n"
        'Respond only with valid JSON: {"ai_summary": "concise summary", '
        '"ai_reasoning": "detailed reasoning for the recommendation", '
        '"timeframe_reasoning": {"TIMEFRAME": "reasoning"}}'
    )

    try:
        response = llm_client.call(
            "You are a helpful forex trading analyst. Respond only with valid JSON.",
            prompt,
            temperature=0.3,
            max_tokens=1200,
        )
        parsed = json.loads(_strip_code_fence(response["content"]))
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too
        logger.warning(f"AI summary for {currency_pair} fell back to template: {e}")
        return result

    if not isinstance(parsed, dict) or not isinstance(parsed.get("ai_summary"), str):
        logger.warning(f"AI summary for {currency_pair} had unexpected shape, using template")
        return result

    result["ai_summary"] = parsed["ai_summary"].strip() or summary
    if isinstance(parsed.get("ai_reasoning"), str) and parsed["ai_reasoning"].strip():
        result["ai_reasoning"] = parsed["ai_reasoning"].strip()
    timeframe_reasoning = parsed.get("timeframe_reasoning")
    if isinstance(timeframe_reasoning, dict):
        for timeframe, text in timeframe_reasoning.items():
            key = str(timeframe).upper()
            if key in result["timeframe_reasoning"] and isinstance(text, str) and text.strip():
                result["timeframe_reasoning"][key] = text.strip()
    result["source"] = "llm"
    return result
