"""Composite market score, bias and sentiment classifiers."""

from datetime import datetime, timezone

import pytest

from tradejournal.market import sentiment
from tradejournal.market.market_scoring import (
    EventContext, EventRiskLevel, MarketContextInput, PositionSizeAdjustment,
    TradingBias, VolatilityLevel, build_market_context, calculate_composite_score,
    calculate_data_quality, calculate_stop_multiplier, calculate_trading_bias,
    determine_event_risk_level, determine_position_adjustment,
    determine_volatility_level, fear_greed_component, get_fear_greed_label,
    normalize_momentum,
)


def ctx(**parts) -> MarketContextInput:
    return MarketContextInput.model_validate(parts)


class TestCompositeScore:

    def test_empty_context_is_neutral(self):
        assert calculate_composite_score(MarketContextInput()) == 50

    def test_single_component_rescaled_to_full_weight(self):
        assert calculate_composite_score(ctx(sentiment={"technical_score": 80})) == 80

    def test_balanced_fear_greed_scores_above_neutral(self):
        assert fear_greed_component(50) == 80
        assert fear_greed_component(10) == 38
        assert calculate_composite_score(ctx(fear_greed={"value": 50})) == 80

    def test_event_risk_pulls_down(self):
        assert calculate_composite_score(ctx(events={"risk_level": "VERY_HIGH"})) == 0

    def test_momentum(self):
        assert normalize_momentum(10) == 75
        assert normalize_momentum(-50) == 0
        assert calculate_composite_score(ctx(momentum={"price_change_24h": 10})) == 75

    def test_score_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            ctx(sentiment={"technical_score": 150})


class TestBias:

    def test_avoid_on_very_high_event_day(self):
        c = ctx(events={"has_high_impact_today": True, "risk_level": "VERY_HIGH"})
        assert calculate_trading_bias(90, c) == TradingBias.AVOID

    def test_avoid_on_high_volatility_and_high_event_risk(self):
        c = ctx(volatility={"level": "high"}, events={"risk_level": "HIGH"})
        assert calculate_trading_bias(90, c) == TradingBias.AVOID

    @pytest.mark.parametrize("score,bias", [
        (65, TradingBias.LONG_FAVORABLE),
        (50, TradingBias.NEUTRAL),
        (35, TradingBias.SHORT_FAVORABLE),
    ])
    def test_score_thresholds(self, score, bias):
        assert calculate_trading_bias(score, MarketContextInput()) == bias


class TestClassifiers:

    def test_data_quality(self):
        assert calculate_data_quality(MarketContextInput()) == 0
        assert calculate_data_quality(ctx(sentiment={"technical_score": 60})) == 14

    def test_volatility_and_stops(self):
        assert determine_volatility_level(1.5) == VolatilityLevel.LOW
        assert determine_volatility_level(3) == VolatilityLevel.MEDIUM
        assert determine_volatility_level(5) == VolatilityLevel.HIGH
        assert calculate_stop_multiplier(VolatilityLevel.HIGH) == 2.0
        assert calculate_stop_multiplier(None) == 1.5

    def test_event_levels(self):
        assert determine_event_risk_level(0) == EventRiskLevel.LOW
        assert determine_event_risk_level(3) == EventRiskLevel.VERY_HIGH
        assert determine_position_adjustment(1) == PositionSizeAdjustment.REDUCE_30
        assert determine_position_adjustment(2) == PositionSizeAdjustment.REDUCE_50

    def test_fear_greed_labels(self):
        assert get_fear_greed_label(20) == "Extreme Fear"
        assert get_fear_greed_label(55) == "Neutral"
        assert get_fear_greed_label(81) == "Extreme Greed"


class TestBuildMarketContext:

    def test_derived_fields_and_session(self):
        now = datetime(2024, 1, 1, 13, tzinfo=timezone.utc)
        c = ctx(volatility={"value": 3.0}, fear_greed={"value": 72},
                events={"high_impact_count": 2})
        out = build_market_context(c, symbol="BTCUSDT", now=now)

        assert out["volatility"]["level"] == "medium"
        assert out["volatility"]["suggested_stop_multiplier"] == 1.5
        assert out["fear_greed"]["label"] == "Greed"
        assert out["events"]["position_size_adjustment"] == "reduce_50%"
        assert out["session"] == {"current": "london", "overlap": "London + NY"}
        assert out["symbol"] == "BTCUSDT"
        assert out["trading_bias"] in {b.value for b in TradingBias}

    def test_input_not_mutated(self):
        c = ctx(volatility={"value": 6.0})
        build_market_context(c)
        assert c.volatility.level is None
        assert isinstance(c.events, EventContext)


class TestSentiment:

    def test_score_and_classification(self):
        score = sentiment.calculate_sentiment_score(70, 60, 50, 80)
        assert score == pytest.approx(21 + 15 + 12.5 + 16)
        assert sentiment.classify_sentiment(score) == "bullish"
        assert sentiment.classify_sentiment(40) == "bearish"

    def test_positioning_ratios(self):
        assert sentiment.analyze_top_trader_ratio(1.3) == "bullish"
        assert sentiment.analyze_retail_ratio(1.6) == "bearish"
        assert sentiment.analyze_retail_ratio(0.6) == "bullish"
        assert sentiment.analyze_taker_volume(0.85) == "bearish"
        assert sentiment.analyze_funding_rate(0.002) == "positive"
        assert sentiment.classify_momentum(-6) == "bearish"
