"""
Context-aware position sizing.

Base risk per trade is scaled by a product of independent factors:

    volatility   extreme 0.5 | high 0.75 | medium 1.0 | low 1.1
    event        high-impact release today 0.5
    sentiment    AVOID bias 0.5 | extreme fear 0.8 | extreme greed 0.9
    momentum     market score ≥70 1.1 | ≤30 0.8
    performance  pair win rate ≥60% 1.15 | ≥50% 1.0 | ≥40% 0.85 | else 0.7
                 (needs 3+ closed trades on the pair)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from tradejournal.journal.journal_models import TradeEntry, TradeResult
from tradejournal.utils.exceptions import InvalidInputError
from tradejournal.utils.logger import get_logger
from tradejournal.utils.numeric import round_half_up

logger = get_logger(__name__)

MIN_PAIR_TRADES = 3

VOLATILITY_FACTORS = {
    "extreme": (0.5, "danger", "Extreme volatility detected - halve position size"),
    "high": (0.75, "warning", "High volatility - reduce position by 25%"),
    "medium": (1.0, "neutral", "Normal volatility conditions"),
    "low": (1.1, "positive", "Low volatility - can increase slightly"),
}

RECOMMENDATION_LABELS = {
    "significantly_reduce": "Significantly Reduce",
    "reduce": "Reduce Size",
    "slightly_reduce": "Slightly Reduce",
    "normal": "Normal Size",
    "increase": "Can Increase",
}


@dataclass
class AdjustmentFactor:
    id: str
    name: str
    multiplier: float
    reason: str
    level: str = "neutral"           # positive / neutral / warning / danger
    value: Optional[str] = None


@dataclass
class ContextAwareRiskResult:
    base_risk: float
    adjusted_risk: float
    total_multiplier: float
    recommendation: str
    recommendation_label: str
    adjustment_factors: List[AdjustmentFactor] = field(default_factory=list)
    pair_win_rate: Optional[float] = None
    pair_trade_count: int = 0

    def multiplier_for(self, factor_id: str) -> float:
        for f in self.adjustment_factors:
            if f.id == factor_id:
                return f.multiplier
        return 1.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_symbol(symbol: str) -> str:
    """BTCUSDT, BTC/USDT and BTCBUSD all map to BTC."""
    return symbol.upper().replace("/", "").replace("USDT", "").replace("BUSD", "")


def pair_performance(trades: Sequence[TradeEntry], symbol: str) -> tuple[Optional[float], int]:
    """(win rate %, closed trade count) on `symbol`; win rate is None under 3 trades."""
    target = normalize_symbol(symbol)
    pair_trades = [t for t in trades if t.is_closed and normalize_symbol(t.pair) == target]
    if len(pair_trades) < MIN_PAIR_TRADES:
        return None, len(pair_trades)
    wins = sum(1 for t in pair_trades if t.result == TradeResult.WIN.value)
    return wins / len(pair_trades) * 100, len(pair_trades)


def _volatility_factor(level: Optional[str], atr_percent: Optional[float]) -> AdjustmentFactor:
    if level in VOLATILITY_FACTORS:
        mult, lvl, reason = VOLATILITY_FACTORS[level]
        value = f"ATR {atr_percent:.2f}%" if atr_percent is not None else level
        return AdjustmentFactor("volatility", "Volatility", mult, reason, lvl, value)
    return AdjustmentFactor("volatility", "Volatility", 1.0, "Volatility data unavailable", "neutral", "N/A")


def _event_factor(has_high_impact_event: bool) -> AdjustmentFactor:
    if has_high_impact_event:
        return AdjustmentFactor("event", "Economic Event", 0.5,
                                "High-impact event today - reduce exposure significantly",
                                "danger", "High Impact")
    return AdjustmentFactor("event", "Economic Event", 1.0,
                            "No major events affecting this trade", "positive", "Clear")


def _sentiment_factor(market_bias: Optional[str], fear_greed: float) -> AdjustmentFactor:
    if market_bias == "AVOID":
        mult, lvl, reason = 0.5, "danger", "Market conditions unfavorable - reduce size"
    elif fear_greed < 25:
        mult, lvl, reason = 0.8, "warning", "Extreme fear - proceed with caution"
    elif fear_greed > 75:
        mult, lvl, reason = 0.9, "warning", "Extreme greed - watch for reversals"
    else:
        mult, lvl, reason = 1.0, "neutral", "Neutral sentiment conditions"
    return AdjustmentFactor("sentiment", "Market Sentiment", mult, reason, lvl, f"F&G: {fear_greed:g}")


def _momentum_factor(market_score: float) -> AdjustmentFactor:
    if market_score >= 70:
        mult, lvl, reason = 1.1, "positive", "Strong bullish momentum - favorable conditions"
    elif market_score <= 30:
        mult, lvl, reason = 0.8, "warning", "Weak momentum - reduce exposure"
    else:
        mult, lvl, reason = 1.0, "neutral", "Neutral momentum"
    return AdjustmentFactor("momentum", "Momentum", mult, reason, lvl, f"Score: {market_score:g}")


def _performance_factor(win_rate: Optional[float], count: int) -> Optional[AdjustmentFactor]:
    if win_rate is None:
        if count == 0:
            return None
        return AdjustmentFactor("performance", "Historical Performance", 1.0,
                                f"Insufficient data ({count} trades, need 3+)",
                                "neutral", "Limited data")
    if win_rate >= 60:
        mult, lvl, reason = 1.15, "positive", "Strong performance on this pair"
    elif win_rate >= 50:
        mult, lvl, reason = 1.0, "neutral", "Average performance on this pair"
    elif win_rate >= 40:
        mult, lvl, reason = 0.85, "warning", "Below average performance - reduce size"
    else:
        mult, lvl, reason = 0.7, "danger", "Poor performance history - significantly reduce"
    return AdjustmentFactor("performance", "Historical Performance", mult,
                            f"{reason} ({win_rate:.0f}% win rate)", lvl, f"{count} trades")


def get_recommendation(total_multiplier: float) -> str:
    if total_multiplier < 0.5:
        return "significantly_reduce"
    if total_multiplier < 0.8:
        return "reduce"
    if total_multiplier < 1:
        return "slightly_reduce"
    if total_multiplier > 1.05:
        return "increase"
    return "normal"


def calculate_context_aware_risk(
    base_risk: float,
    volatility_level: Optional[str] = None,
    atr_percent: Optional[float] = None,
    has_high_impact_event: bool = False,
    market_bias: Optional[str] = None,
    fear_greed: float = 50,
    market_score: float = 50,
    trades: Sequence[TradeEntry] = (),
    symbol: str = "BTCUSDT",
) -> ContextAwareRiskResult:
    if base_risk < 0 or not math.isfinite(base_risk):
        raise InvalidInputError(f"base_risk must be a non-negative number, got {base_risk}")

    win_rate, count = pair_performance(trades, symbol)
    factors = [
        _volatility_factor(volatility_level, atr_percent),
        _event_factor(has_high_impact_event),
        _sentiment_factor(market_bias, fear_greed),
        _momentum_factor(market_score),
    ]
    perf = _performance_factor(win_rate, count)
    if perf is not None:
        factors.append(perf)

    total = math.prod(f.multiplier for f in factors)
    recommendation = get_recommendation(total)
    result = ContextAwareRiskResult(
        base_risk=base_risk,
        adjusted_risk=round_half_up(base_risk * total, 2),
        total_multiplier=total,
        recommendation=recommendation,
        recommendation_label=RECOMMENDATION_LABELS[recommendation],
        adjustment_factors=factors,
        pair_win_rate=win_rate,
        pair_trade_count=count,
    )
    logger.debug("context_risk_calculated", symbol=symbol, base=base_risk,
                 adjusted=result.adjusted_risk, multiplier=round(total, 4))
    return result
