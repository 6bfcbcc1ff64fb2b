"""
Top-down analysis aggregation.

Turns per-timeframe readings plus an optional daily market snapshot into the
overall probability, confidence, risk level and trade recommendation. Every
number here is deterministic; LLM output never feeds back into it.
"""
from dataclasses import dataclass, asdict
from typing import Iterable, Optional, Sequence, Union
from tradejournal.models.analysis import RiskLevel, TradeRecommendation
from tradejournal.models.timeframe_analysis import Sentiment
from tradejournal.services.data.normalized import MarketSnapshot
from tradejournal.services.tda.payloads import AnswerPayload, answer_direction

BASELINE_SCORE = 50.0
NEUTRAL_ALIGNMENT = 0.5

ALIGNMENT_STRONG = 0.7
ALIGNMENT_WEAK = 0.3
PROBABILITY_STEP = 10.0

HIGH_VOLATILITY = 2.0
LOW_VOLATILITY = 0.5
HIGH_VOLATILITY_CONFIDENCE_PENALTY = 15.0
LOW_VOLATILITY_CONFIDENCE_BONUS = 10.0

AVOID_BELOW = 45.0
DIRECTIONAL_FROM = 60.0

SentimentLike = Union[Sentiment, str]


@dataclass
class UpdatedMetrics:
    overall_probability: float
    confidence_level: float
    risk_level: str
    market_alignment: float

    def to_dict(self) -> dict:
        return asdict(self)


def clamp_score(value: float) -> float:
    """Clamp to [0, 100] and round to one decimal."""
    return round(min(100.0, max(0.0, float(value))), 1)


def _sentiment_value(sentiment: SentimentLike) -> str:
    return sentiment.value if isinstance(sentiment, Sentiment) else str(sentiment).upper()


def classify_timeframe_sentiment(payloads: Iterable[Optional[AnswerPayload]]) -> Sentiment:
    """Majority vote over directional answers. Ties and no votes are NEUTRAL."""
    bullish = 0
    bearish = 0
    for payload in payloads:
        direction = answer_direction(payload)
        if direction == Sentiment.BULLISH:
            bullish += 1
        elif direction == Sentiment.BEARISH:
            bearish += 1

    if bullish > bearish:
        return Sentiment.BULLISH
    if bearish > bullish:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


def calculate_market_alignment(
    sentiments: Sequence[SentimentLike],
    snapshot: Optional[MarketSnapshot],
) -> float:
    """
    How well the timeframe sentiments agree with the market's daily direction.

    0.5 without market data or timeframes. The analysis trend is BULLISH only
    when bullish timeframes outnumber bearish ones, so a tie reads as BEARISH.
    Agreement scores at least 0.7, disagreement at most 0.3.
    """
    total = len(sentiments)
    if snapshot is None or total == 0:
        return NEUTRAL_ALIGNMENT

    values = [_sentiment_value(s) for s in sentiments]
    bullish = values.count(Sentiment.BULLISH.value)
    bearish = values.count(Sentiment.BEARISH.value)
    analysis_trend = Sentiment.BULLISH.value if bullish > bearish else Sentiment.BEARISH.value

    if analysis_trend == snapshot.market_trend:
        return max(ALIGNMENT_STRONG, max(bullish, bearish) / total)
    return min(ALIGNMENT_WEAK, min(bullish, bearish) / total)


def calculate_updated_metrics(
    overall_probability: Optional[float],
    confidence_level: Optional[float],
    risk_level: Optional[str],
    sentiments: Sequence[SentimentLike],
    snapshot: Optional[MarketSnapshot],
) -> UpdatedMetrics:
    """
    Refine stored metrics with market alignment and volatility.

    Missing baselines start at 50 and MEDIUM risk. Without a snapshot the
    baseline comes back unchanged (clamped and rounded).
    """
    probability = BASELINE_SCORE if overall_probability is None else float(overall_probability)
    confidence = BASELINE_SCORE if confidence_level is None else float(confidence_level)
    risk = risk_level.value if isinstance(risk_level, RiskLevel) else (risk_level or RiskLevel.MEDIUM.value)

    alignment = calculate_market_alignment(sentiments, snapshot)

    if snapshot is not None:
        if alignment > ALIGNMENT_STRONG:
            probability = min(100.0, probability + PROBABILITY_STEP)
        elif alignment < ALIGNMENT_WEAK:
            probability = max(0.0, probability - PROBABILITY_STEP)

        volatility = abs(snapshot.daily_change_percent)
        if volatility > HIGH_VOLATILITY:
            confidence = max(0.0, confidence - HIGH_VOLATILITY_CONFIDENCE_PENALTY)
            risk = RiskLevel.HIGH.value
        elif volatility < LOW_VOLATILITY:
            confidence = min(100.0, confidence + LOW_VOLATILITY_CONFIDENCE_BONUS)
            risk = RiskLevel.LOW.value

    return UpdatedMetrics(
        overall_probability=clamp_score(probability),
        confidence_level=clamp_score(confidence),
        risk_level=risk,
        market_alignment=round(alignment, 3),
    )


def dominant_direction(sentiments: Sequence[SentimentLike]) -> Sentiment:
    values = [_sentiment_value(s) for s in sentiments]
    bullish = values.count(Sentiment.BULLISH.value)
    bearish = values.count(Sentiment.BEARISH.value)
    if bullish > bearish:
        return Sentiment.BULLISH
    if bearish > bullish:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


def recommend_trade(probability: float, sentiments: Sequence[SentimentLike]) -> TradeRecommendation:
    """AVOID below 45, NEUTRAL below 60, otherwise follow the dominant timeframe direction."""
    if probability < AVOID_BELOW:
        return TradeRecommendation.AVOID
    if probability < DIRECTIONAL_FROM:
        return TradeRecommendation.NEUTRAL

    direction = dominant_direction(sentiments)
    if direction == Sentiment.BULLISH:
        return TradeRecommendation.LONG
    if direction == Sentiment.BEARISH:
        return TradeRecommendation.SHORT
    return TradeRecommendation.NEUTRAL


def baseline_probability(stored: Optional[float], timeframe_probabilities: Sequence[float]) -> float:
    """Stored overall probability, else the mean of timeframe probabilities, else 50."""
    if stored is not None:
        return float(stored)
    if timeframe_probabilities:
        return sum(timeframe_probabilities) / len(timeframe_probabilities)
    return BASELINE_SCORE
