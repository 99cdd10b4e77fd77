"""
Market Scoring — unified market context, composite score and trading bias.

The composite score starts from a neutral 50 and each available component
pulls it up or down by its weight; the sum is then rescaled by the weight
actually present so a partial context is not dragged toward neutral.

    technical .25 | on-chain .15 | fear&greed .15 | macro .15
    event risk .15 | momentum .15
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from tradejournal.analytics.sessions import get_active_overlaps, get_session_for_time
from tradejournal.utils.logger import get_logger
from tradejournal.utils.numeric import clamp, round_int

logger = get_logger(__name__)


class TradingBias(str, Enum):
    LONG_FAVORABLE = "LONG_FAVORABLE"
    SHORT_FAVORABLE = "SHORT_FAVORABLE"
    NEUTRAL = "NEUTRAL"
    AVOID = "AVOID"


class VolatilityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventRiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


class PositionSizeAdjustment(str, Enum):
    NORMAL = "normal"
    REDUCE_30 = "reduce_30%"
    REDUCE_50 = "reduce_50%"


class SentimentContext(BaseModel):
    overall: Optional[str] = None            # bullish / bearish / neutral / cautious
    technical_score: Optional[float] = Field(default=None, ge=0, le=100)
    on_chain_score: Optional[float] = Field(default=None, ge=0, le=100)
    macro_score: Optional[float] = Field(default=None, ge=0, le=100)
    confidence: Optional[float] = None


class FearGreedContext(BaseModel):
    value: Optional[float] = Field(default=None, ge=0, le=100)
    label: Optional[str] = None


class VolatilityContext(BaseModel):
    level: Optional[VolatilityLevel] = None
    value: Optional[float] = None            # daily ATR, percent
    suggested_stop_multiplier: Optional[float] = None


class EventContext(BaseModel):
    has_high_impact_today: bool = False
    risk_level: Optional[EventRiskLevel] = None
    position_size_adjustment: Optional[PositionSizeAdjustment] = None
    high_impact_count: int = 0


class MomentumContext(BaseModel):
    price_change_24h: Optional[float] = None
    is_top_gainer: bool = False
    is_top_loser: bool = False


class MarketContextInput(BaseModel):
    sentiment: SentimentContext = Field(default_factory=SentimentContext)
    fear_greed: FearGreedContext = Field(default_factory=FearGreedContext)
    volatility: VolatilityContext = Field(default_factory=VolatilityContext)
    events: EventContext = Field(default_factory=EventContext)
    momentum: MomentumContext = Field(default_factory=MomentumContext)


WEIGHTS = {
    "technical": 0.25,
    "on_chain": 0.15,
    "fear_greed": 0.15,
    "macro": 0.15,
    "event_risk": 0.15,
    "momentum": 0.15,
}

EVENT_RISK_PENALTY = {
    EventRiskLevel.VERY_HIGH: 0.5,
    EventRiskLevel.HIGH: 0.3,
    EventRiskLevel.MODERATE: 0.1,
    EventRiskLevel.LOW: 0.0,
}

STOP_MULTIPLIER = {
    VolatilityLevel.LOW: 1.0,
    VolatilityLevel.MEDIUM: 1.5,
    VolatilityLevel.HIGH: 2.0,
}


def fear_greed_component(value: float) -> float:
    """Balanced sentiment (30-70) scores above neutral; extremes below it."""
    distance = abs(50 - value)
    if 30 <= value <= 70:
        return 60 + (50 - distance) * 0.4
    return 50 - distance * 0.3


def normalize_momentum(price_change_24h: float) -> float:
    """Map a -20%..+20% daily move onto 0..100."""
    return clamp(50 + (price_change_24h / 20) * 50, 0, 100)


def calculate_composite_score(ctx: MarketContextInput) -> int:
    score = 50.0
    total_weight = 0.0
    s = ctx.sentiment

    if s.technical_score is not None:
        score += (s.technical_score - 50) * WEIGHTS["technical"]
        total_weight += WEIGHTS["technical"]
    if s.on_chain_score is not None:
        score += (s.on_chain_score - 50) * WEIGHTS["on_chain"]
        total_weight += WEIGHTS["on_chain"]
    if ctx.fear_greed.value is not None:
        score += (fear_greed_component(ctx.fear_greed.value) - 50) * WEIGHTS["fear_greed"]
        total_weight += WEIGHTS["fear_greed"]
    if s.macro_score is not None:
        score += (s.macro_score - 50) * WEIGHTS["macro"]
        total_weight += WEIGHTS["macro"]
    if ctx.events.risk_level is not None:
        score -= EVENT_RISK_PENALTY[ctx.events.risk_level] * WEIGHTS["event_risk"] * 100
        total_weight += WEIGHTS["event_risk"]
    if ctx.momentum.price_change_24h is not None:
        score += (normalize_momentum(ctx.momentum.price_change_24h) - 50) * WEIGHTS["momentum"]
        total_weight += WEIGHTS["momentum"]

    if total_weight > 0:
        score = 50 + (score - 50) / total_weight

    return int(clamp(round_int(score), 0, 100))


def calculate_trading_bias(score: float, ctx: MarketContextInput) -> TradingBias:
    risk = ctx.events.risk_level
    if ctx.events.has_high_impact_today and risk == EventRiskLevel.VERY_HIGH:
        return TradingBias.AVOID
    if ctx.volatility.level == VolatilityLevel.HIGH and risk == EventRiskLevel.HIGH:
        return TradingBias.AVOID
    if score >= 65:
        return TradingBias.LONG_FAVORABLE
    if score <= 35:
        return TradingBias.SHORT_FAVORABLE
    return TradingBias.NEUTRAL


def calculate_data_quality(ctx: MarketContextInput) -> int:
    """Share of the seven scoring inputs that are present, 0-100."""
    present = [
        ctx.sentiment.technical_score is not None,
        ctx.sentiment.on_chain_score is not None,
        ctx.sentiment.macro_score is not None,
        ctx.fear_greed.value is not None,
        ctx.volatility.level is not None,
        ctx.events.risk_level is not None,
        ctx.momentum.price_change_24h is not None,
    ]
    return round_int(sum(present) / len(present) * 100)


def determine_volatility_level(atr_percent: float) -> VolatilityLevel:
    if atr_percent < 2:
        return VolatilityLevel.LOW
    if atr_percent < 5:
        return VolatilityLevel.MEDIUM
    return VolatilityLevel.HIGH


def calculate_stop_multiplier(level: Optional[VolatilityLevel]) -> float:
    return STOP_MULTIPLIER.get(level, 1.5)


def determine_position_adjustment(high_impact_count: int) -> PositionSizeAdjustment:
    if high_impact_count >= 2:
        return PositionSizeAdjustment.REDUCE_50
    if high_impact_count >= 1:
        return PositionSizeAdjustment.REDUCE_30
    return PositionSizeAdjustment.NORMAL


def determine_event_risk_level(high_impact_count: int) -> EventRiskLevel:
    if high_impact_count >= 3:
        return EventRiskLevel.VERY_HIGH
    if high_impact_count >= 2:
        return EventRiskLevel.HIGH
    if high_impact_count >= 1:
        return EventRiskLevel.MODERATE
    return EventRiskLevel.LOW


def get_fear_greed_label(value: float) -> str:
    if value <= 20:
        return "Extreme Fear"
    if value <= 40:
        return "Fear"
    if value <= 60:
        return "Neutral"
    if value <= 80:
        return "Greed"
    return "Extreme Greed"


def build_market_context(ctx: MarketContextInput, symbol: str = "",
                         now: Optional[datetime] = None) -> dict[str, Any]:
    """Snapshot of the market at trade time, stored on the trade as `market_context`.

    Fills derived fields (volatility level from ATR, stop multiplier,
    fear & greed label) and attaches the composite score, bias, data
    quality and the active session.
    """
    now = now or datetime.now(timezone.utc)
    ctx = ctx.model_copy(deep=True)
    if ctx.volatility.level is None and ctx.volatility.value is not None:
        ctx.volatility.level = determine_volatility_level(ctx.volatility.value)
    if ctx.volatility.level is not None:
        ctx.volatility.suggested_stop_multiplier = calculate_stop_multiplier(ctx.volatility.level)
    if ctx.fear_greed.value is not None and not ctx.fear_greed.label:
        ctx.fear_greed.label = get_fear_greed_label(ctx.fear_greed.value)
    if ctx.events.position_size_adjustment is None:
        ctx.events.position_size_adjustment = determine_position_adjustment(ctx.events.high_impact_count)

    score = calculate_composite_score(ctx)
    bias = calculate_trading_bias(score, ctx)
    quality = calculate_data_quality(ctx)
    logger.debug("market_context_built", symbol=symbol, score=score, bias=bias.value, quality=quality)

    result = ctx.model_dump(mode="json")
    result.update({
        "session": {
            "current": get_session_for_time(now),
            "overlap": get_active_overlaps(now),
        },
        "composite_score": score,
        "trading_bias": bias.value,
        "data_quality": quality,
        "captured_at": now.isoformat(),
        "symbol": symbol,
    })
    return result
