"""Market regime classification."""

from datetime import datetime, timezone

import pytest

from tradejournal.market.regime_engine import (
    Alignment, MarketRegime, RegimeEngine, RegimeInput, RiskMode, classify_market_regime,
)
from tradejournal.utils.exceptions import InvalidInputError

TS = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)


def neutral(**overrides) -> RegimeInput:
    fields = dict(technical_score=50, on_chain_score=50, macro_score=50, fear_greed_value=50)
    fields.update(overrides)
    return RegimeInput(**fields)


def bullish(**overrides) -> RegimeInput:
    fields = dict(technical_score=80, on_chain_score=80, macro_score=80, fear_greed_value=70,
                  overall_sentiment="bullish", macro_sentiment="bullish", momentum_24h=3.0)
    fields.update(overrides)
    return neutral(**fields)


class TestRegimeEngine:

    @pytest.fixture
    def engine(self):
        return RegimeEngine()

    def test_neutral_market_is_ranging(self, engine):
        r = engine.classify(neutral(), TS)
        assert r.regime == MarketRegime.RANGING
        assert r.regime_score == 50
        assert r.direction_probability == 50
        assert r.risk_mode == RiskMode.NEUTRAL
        assert (r.size_percent, r.size_label) == (70, "Reduce 30%")
        assert (r.expected_range_low, r.expected_range_high) == (-2.0, 2.0)

    def test_aligned_bull_trend_is_aggressive(self, engine):
        r = engine.classify(bullish(), TS)
        assert r.regime_score == 78
        assert r.regime == MarketRegime.TRENDING_BULL
        assert r.alignment == Alignment.ALIGNED
        assert r.risk_mode == RiskMode.AGGRESSIVE
        assert r.size_percent == 100
        assert r.direction_probability == 61
        assert r.expected_range_low == pytest.approx(-2.6)
        assert r.expected_range_high == pytest.approx(2.9)

    def test_bear_trend_needs_negative_momentum(self, engine):
        low = dict(technical_score=20, on_chain_score=20, macro_score=20, fear_greed_value=30)
        assert engine.classify(neutral(**low, momentum_24h=-2), TS).regime == MarketRegime.TRENDING_BEAR
        assert engine.classify(neutral(**low, momentum_24h=1), TS).regime == MarketRegime.RANGING

    def test_macro_conflict_blocks_trend(self, engine):
        r = engine.classify(bullish(macro_sentiment="bearish"), TS)
        assert r.alignment == Alignment.CONFLICT
        assert r.regime == MarketRegime.RANGING
        assert r.risk_mode == RiskMode.DEFENSIVE
        assert r.size_percent == 50

    def test_event_risk_overrides(self, engine):
        assert engine.classify(bullish(event_risk_level="HIGH"), TS).regime == MarketRegime.RISK_OFF
        extreme = engine.classify(bullish(event_risk_level="VERY_HIGH"), TS)
        assert extreme.risk_mode == RiskMode.DEFENSIVE
        assert extreme.size_percent == 25

    def test_high_volatility(self, engine):
        r = engine.classify(neutral(volatility_level="high"), TS)
        assert r.regime == MarketRegime.HIGH_VOL
        assert r.expected_range_high == pytest.approx(5.2)

    def test_fear_greed_extremes_compressed(self):
        assert RegimeEngine.transform_fear_greed(10) == 42.5
        assert RegimeEngine.transform_fear_greed(90) == 57.5
        assert RegimeEngine.transform_fear_greed(50) == 50

    def test_rejects_out_of_range_scores(self, engine):
        with pytest.raises(InvalidInputError):
            engine.classify(neutral(macro_score=101))

    def test_history(self, engine):
        engine.classify(neutral(), TS)
        latest = engine.classify(bullish(), TS)
        history = engine.get_regime_history()
        assert len(history) == 2
        assert history[-1]["regime_label"] == "Trending Bullish"
        assert history[-1]["timestamp"] == TS.isoformat()
        assert engine.get_current_regime() is latest

    def test_stateless_helper(self):
        r = classify_market_regime(neutral(), TS)
        assert r.to_dict()["expected_range"] == {"low": -2.0, "high": 2.0}


class TestDivergencePenalty:

    def test_disagreement_pulls_bullish_score_down(self):
        # linear blend 70, variance 1718.75 -> penalty 3.4375
        inp = neutral(technical_score=100, on_chain_score=0, macro_score=100, fear_greed_value=50)
        assert RegimeEngine().composite_score(inp) == 67

    def test_disagreement_pulls_bearish_score_up(self):
        # linear blend 30, same variance
        inp = neutral(technical_score=0, on_chain_score=100, macro_score=0, fear_greed_value=50)
        assert RegimeEngine().composite_score(inp) == 33

    def test_penalty_capped(self):
        class SensitiveEngine(RegimeEngine):
            DIVERGENCE_VARIANCE_SCALE = 100.0

        engine = SensitiveEngine()
        high = neutral(technical_score=100, on_chain_score=0, macro_score=100, fear_greed_value=50)
        low = neutral(technical_score=0, on_chain_score=100, macro_score=0, fear_greed_value=50)
        assert engine.composite_score(high) == 65
        assert engine.composite_score(low) == 35

    def test_history_bounded(self):
        engine = RegimeEngine()
        engine.MAX_HISTORY = 3
        stamps = [datetime(2024, 1, d, tzinfo=timezone.utc) for d in range(1, 6)]
        for ts in stamps:
            engine.classify(neutral(), ts)

        history = engine.get_regime_history()
        assert len(history) == 3
        assert [h["timestamp"] for h in history] == [ts.isoformat() for ts in stamps[2:]]
