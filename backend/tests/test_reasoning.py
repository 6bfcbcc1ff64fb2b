"""LLM prose with templated fallbacks."""

import json
from types import SimpleNamespace

from tradejournal.models.analysis import Timeframe
from tradejournal.models.timeframe_analysis import Sentiment
from tradejournal.services.tda.aggregator import UpdatedMetrics
from tradejournal.services.tda.reasoning import (
    DEFAULT_REASONING,
    build_analysis_summary,
    build_enhanced_reasoning,
    parse_timeframe_reasoning,
)

from conftest import FakeLLMClient


def timeframe(tf, sentiment=Sentiment.BULLISH, probability=70.0, data=None):
    return SimpleNamespace(
        timeframe=tf,
        timeframe_sentiment=sentiment,
        timeframe_probability=probability,
        timeframe_strength=60.0,
        analysis_data=data,
    )


METRICS = UpdatedMetrics(overall_probability=72.0, confidence_level=65.0, risk_level="LOW", market_alignment=0.8)


class TestParseTimeframeReasoning:
    def test_reads_labelled_lines_and_continuations(self):
        content = (
            "DAILY: Trend intact above the 50 EMA.\n"
            "Watch the 1.0850 level.\n"
            "\n"
            "**H4**: Pullback into demand.\n"
            "- M15 - Momentum fading."
        )
        assert parse_timeframe_reasoning(content) == {
            "DAILY": "Trend intact above the 50 EMA. Watch the 1.0850 level.",
            "H4": "Pullback into demand.",
            "M15": "Momentum fading.",
        }

    def test_unlabelled_text(self):
        assert parse_timeframe_reasoning("The market looks fine overall.") == {}


class TestEnhancedReasoning:
    def test_without_llm_uses_stored_reasoning(self):
        tfs = [timeframe(Timeframe.DAILY, data={"reasoning": "Clean uptrend"}), timeframe(Timeframe.H4)]
        assert build_enhanced_reasoning(None, "EURUSD", tfs, None) == [
            {"timeframe": "DAILY", "reasoning": "Clean uptrend"},
            {"timeframe": "H4", "reasoning": DEFAULT_REASONING},
        ]

    def test_llm_text_replaces_matching_timeframes(self):
        llm = FakeLLMClient(content="DAILY: Buyers in control.\nH1: Noise.")
        tfs = [timeframe(Timeframe.DAILY), timeframe(Timeframe.H4)]
        result = build_enhanced_reasoning(llm, "EURUSD", tfs, None)
        assert result == [
            {"timeframe": "DAILY", "reasoning": "Buyers in control."},
            {"timeframe": "H4", "reasoning": DEFAULT_REASONING},
        ]
        assert "Market data unavailable" in llm.calls[0]["user"]

    def test_llm_failure_falls_back(self):
        llm = FakeLLMClient(error="provider down")
        result = build_enhanced_reasoning(llm, "EURUSD", [timeframe(Timeframe.DAILY)], None)
        assert result == [{"timeframe": "DAILY", "reasoning": DEFAULT_REASONING}]

    def test_unparseable_llm_output_falls_back(self):
        llm = FakeLLMClient(content="I cannot help with that.")
        result = build_enhanced_reasoning(llm, "EURUSD", [timeframe(Timeframe.DAILY)], None)
        assert result == [{"timeframe": "DAILY", "reasoning": DEFAULT_REASONING}]


class TestAnalysisSummary:
    def test_template_without_llm(self):
        result = build_analysis_summary(None, "EURUSD", METRICS, "LONG", [timeframe(Timeframe.DAILY)], [], None)
        assert result["source"] == "template"
        assert result["ai_summary"] == "EURUSD: LONG with 72.0% probability, 65.0% confidence and LOW risk."
        assert "DAILY: BULLISH" in result["ai_reasoning"]

    def test_llm_json_in_code_fence(self):
        body = {
            "ai_summary": "Long bias confirmed.",
            "ai_reasoning": "Daily and H4 agree.",
            "timeframe_reasoning": {"daily": "Higher lows.", "W1": "not requested"},
        }
        llm = FakeLLMClient(content=f"```json\n{json.dumps(body)}\n```")
        result = build_analysis_summary(llm, "EURUSD", METRICS, "LONG", [timeframe(Timeframe.DAILY)], [], None)
        assert result["source"] == "llm"
        assert result["ai_summary"] == "Long bias confirmed."
        assert result["ai_reasoning"] == "Daily and H4 agree."
        assert result["timeframe_reasoning"] == {"DAILY": "Higher lows."}

    def test_llm_numbers_are_not_used(self):
        llm = FakeLLMClient(content=json.dumps({"ai_summary": "Go", "overall_probability": 99}))
        result = build_analysis_summary(llm, "EURUSD", METRICS, "LONG", [timeframe(Timeframe.DAILY)], [], None)
        assert "overall_probability" not in result

    def test_invalid_json_falls_back_to_template(self):
        llm = FakeLLMClient(content="{not json")
        result = build_analysis_summary(llm, "EURUSD", METRICS, "LONG", [timeframe(Timeframe.DAILY)], [], None)
        assert result["source"] == "template"
