"""Top-down aggregation: alignment, metric refinement, recommendation."""

import pytest

from tradejournal.models.analysis import TradeRecommendation
from tradejournal.models.timeframe_analysis import Sentiment
from tradejournal.services.data.normalized import MarketSnapshot
from tradejournal.services.tda.aggregator import (
    baseline_probability,
    calculate_market_alignment,
    calculate_updated_metrics,
    clamp_score,
    classify_timeframe_sentiment,
    recommend_trade,
)
from tradejournal.services.tda.payloads import MultipleChoiceAnswer, RatingAnswer, TextAnswer


def snapshot(trend="BULLISH", change_percent=0.1):
    return MarketSnapshot(
        symbol="EURUSD",
        current_price=1.08,
        previous_price=1.07,
        daily_change=0.001 if trend == "BULLISH" else -0.001,
        daily_change_percent=change_percent if trend == "BULLISH" else -change_percent,
        high=1.09,
        low=1.06,
        volume=0,
        market_trend=trend,
        volatility=change_percent,
        momentum="positive" if trend == "BULLISH" else "negative",
        strength="weak",
        market_sentiment="",
        price_context="",
        range_context="",
        trend_context="",
    )


BULL = Sentiment.BULLISH
BEAR = Sentiment.BEARISH
FLAT = Sentiment.NEUTRAL


class TestClampScore:
    def test_within_range_rounds_to_one_decimal(self):
        assert clamp_score(78.46) == 78.5

    def test_clamps_both_ends(self):
        assert clamp_score(130) == 100.0
        assert clamp_score(-4) == 0.0


class TestMarketAlignment:
    def test_no_market_data_is_neutral(self):
        assert calculate_market_alignment([BULL, BULL], None) == 0.5

    def test_zero_timeframes_is_neutral(self):
        assert calculate_market_alignment([], snapshot()) == 0.5

    def test_unanimous_agreement(self):
        assert calculate_market_alignment([BULL, BULL, BULL], snapshot("BULLISH")) == 1.0

    def test_agreement_floor_is_point_seven(self):
        assert calculate_market_alignment([BULL, BULL, BEAR], snapshot("BULLISH")) == 0.7

    def test_disagreement_ceiling_is_point_three(self):
        assert calculate_market_alignment([BULL, BULL, BEAR], snapshot("BEARISH")) == 0.3

    def test_disagreement_uses_minority_share(self):
        result = calculate_market_alignment([BULL, BULL, BULL, BEAR, FLAT], snapshot("BEARISH"))
        assert result == pytest.approx(0.2)

    def test_tie_reads_as_bearish(self):
        assert calculate_market_alignment([BULL, BEAR], snapshot("BEARISH")) == 0.7
        assert calculate_market_alignment([BULL, BEAR], snapshot("BULLISH")) == 0.3

    def test_accepts_plain_strings(self):
        assert calculate_market_alignment(["BULLISH", "bullish"], snapshot("BULLISH")) == 1.0

    @pytest.mark.parametrize("sentiments", [[BULL], [BEAR, FLAT], [FLAT, FLAT, FLAT], [BULL, BEAR, BEAR, FLAT]])
    @pytest.mark.parametrize("trend", ["BULLISH", "BEARISH"])
    def test_always_within_unit_interval(self, sentiments, trend):
        assert 0.0 <= calculate_market_alignment(sentiments, snapshot(trend)) <= 1.0


class TestUpdatedMetrics:
    def test_defaults_without_market_data(self):
        metrics = calculate_updated_metrics(None, None, None, [BULL], None)
        assert metrics.to_dict() == {
            "overall_probability": 50.0,
            "confidence_level": 50.0,
            "risk_level": "MEDIUM",
            "market_alignment": 0.5,
        }

    def test_without_market_data_keeps_stored_values(self):
        metrics = calculate_updated_metrics(78.5, 64.0, "HIGH", [BULL, BULL], None)
        assert metrics.overall_probability == 78.5
        assert metrics.confidence_level == 64.0
        assert metrics.risk_level == "HIGH"

    def test_zero_probability_is_a_real_value(self):
        metrics = calculate_updated_metrics(0.0, 0.0, None, [], None)
        assert metrics.overall_probability == 0.0
        assert metrics.confidence_level == 0.0

    def test_strong_alignment_and_calm_market(self):
        metrics = calculate_updated_metrics(78.5, 60.0, "MEDIUM", [BULL, BULL, BULL], snapshot("BULLISH", 0.1))
        assert metrics.overall_probability == 88.5
        assert metrics.confidence_level == 70.0
        assert metrics.risk_level == "LOW"
        assert metrics.market_alignment == 1.0

    def test_alignment_of_exactly_point_seven_does_not_adjust(self):
        metrics = calculate_updated_metrics(60.0, 50.0, None, [BULL, BULL, BEAR], snapshot("BULLISH", 1.0))
        assert metrics.overall_probability == 60.0
        assert metrics.confidence_level == 50.0
        assert metrics.risk_level == "MEDIUM"

    def test_weak_alignment_and_volatile_market(self):
        metrics = calculate_updated_metrics(55.0, 40.0, "LOW", [BULL, BULL, BULL, BULL, BEAR], snapshot("BEARISH", 2.5))
        assert metrics.overall_probability == 45.0
        assert metrics.confidence_level == 25.0
        assert metrics.risk_level == "HIGH"
        assert metrics.market_alignment == 0.2

    def test_results_are_clamped(self):
        high = calculate_updated_metrics(95.0, 98.0, None, [BULL], snapshot("BULLISH", 0.1))
        assert high.overall_probability == 100.0
        assert high.confidence_level == 100.0

        low = calculate_updated_metrics(5.0, 10.0, None, [BULL], snapshot("BEARISH", 3.0))
        assert low.overall_probability == 0.0
        assert low.confidence_level == 0.0


class TestRecommendation:
    @pytest.mark.parametrize("probability, expected", [
        (0.0, TradeRecommendation.AVOID),
        (44.9, TradeRecommendation.AVOID),
        (45.0, TradeRecommendation.NEUTRAL),
        (59.9, TradeRecommendation.NEUTRAL),
    ])
    def test_low_probability_bands(self, probability, expected):
        assert recommend_trade(probability, [BULL, BULL]) == expected

    def test_follows_majority_direction(self):
        assert recommend_trade(60.0, [BULL, BULL, BEAR]) == TradeRecommendation.LONG
        assert recommend_trade(80.0, [BEAR, FLAT]) == TradeRecommendation.SHORT

    def test_no_majority_is_neutral(self):
        assert recommend_trade(90.0, [BULL, BEAR]) == TradeRecommendation.NEUTRAL
        assert recommend_trade(90.0, []) == TradeRecommendation.NEUTRAL


class TestTimeframeSentiment:
    def test_majority_of_directional_answers(self):
        payloads = [
            MultipleChoiceAnswer(choice="Bullish"),
            TextAnswer(text="Price bounced off support"),
            MultipleChoiceAnswer(choice="Bearish"),
        ]
        assert classify_timeframe_sentiment(payloads) == Sentiment.BULLISH

    def test_non_directional_answers_do_not_vote(self):
        payloads = [RatingAnswer(rating=5), MultipleChoiceAnswer(choice="Ranging"), None]
        assert classify_timeframe_sentiment(payloads) == Sentiment.NEUTRAL

    def test_tie_is_neutral(self):
        payloads = [MultipleChoiceAnswer(choice="Bullish"), MultipleChoiceAnswer(choice="Bearish")]
        assert classify_timeframe_sentiment(payloads) == Sentiment.NEUTRAL


class TestBaselineProbability:
    def test_prefers_stored_value(self):
        assert baseline_probability(70.0, [40.0, 50.0]) == 70.0

    def test_falls_back_to_timeframe_mean(self):
        assert baseline_probability(None, [60.0, 80.0]) == 70.0

    def test_defaults_to_fifty(self):
        assert baseline_probability(None, []) == 50.0
