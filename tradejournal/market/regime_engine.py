"""
Market Regime Engine — classify market conditions for position sizing.

Regimes set how hard to press:
  TRENDING_BULL / TRENDING_BEAR → directional, full size when aligned
  RANGING                       → mean-reversion, reduced size
  HIGH_VOL                      → wider stops, half size
  RISK_OFF                      → scheduled event risk, minimal size

The composite score is a pure signal blend (technical, on-chain, macro,
fear & greed). Volatility and event risk never enter the score; they only
act as regime overrides, so they are not counted twice.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import numpy as np

from tradejournal.utils.exceptions import InvalidInputError
from tradejournal.utils.logger import get_logger
from tradejournal.utils.numeric import clamp, round_half_up, round_int

logger = get_logger(__name__)


class MarketRegime(str, Enum):
    TRENDING_BULL = "TRENDING_BULL"
    TRENDING_BEAR = "TRENDING_BEAR"
    RANGING = "RANGING"
    HIGH_VOL = "HIGH_VOL"
    RISK_OFF = "RISK_OFF"


class RiskMode(str, Enum):
    AGGRESSIVE = "AGGRESSIVE"
    NEUTRAL = "NEUTRAL"
    DEFENSIVE = "DEFENSIVE"


class Alignment(str, Enum):
    ALIGNED = "ALIGNED"
    CONFLICT = "CONFLICT"
    NEUTRAL = "NEUTRAL"


REGIME_LABELS: dict[MarketRegime, str] = {
    MarketRegime.TRENDING_BULL: "Trending Bullish",
    MarketRegime.TRENDING_BEAR: "Trending Bearish",
    MarketRegime.RANGING: "Ranging",
    MarketRegime.HIGH_VOL: "High Volatility",
    MarketRegime.RISK_OFF: "Risk Off",
}

RISK_MODE_LABELS: dict[RiskMode, str] = {
    RiskMode.AGGRESSIVE: "Aggressive",
    RiskMode.NEUTRAL: "Neutral",
    RiskMode.DEFENSIVE: "Defensive",
}


@dataclass
class RegimeInput:
    technical_score: float        # 0-100
    on_chain_score: float         # 0-100
    macro_score: float            # 0-100
    fear_greed_value: float       # 0-100
    overall_sentiment: str = "neutral"   # bullish / bearish / neutral / cautious
    macro_sentiment: str = "cautious"    # bullish / bearish / cautious
    volatility_level: Optional[str] = None   # low / medium / high
    momentum_24h: Optional[float] = None     # price change, percent
    event_risk_level: Optional[str] = None   # LOW / MODERATE / HIGH / VERY_HIGH
    position_size_adjustment: Optional[float] = None


@dataclass
class RegimeClassification:
    """Result of regime classification."""
    regime: MarketRegime
    regime_score: int = 50
    direction_probability: int = 50      # % upside, 30-70
    expected_range_low: float = 0.0      # % move
    expected_range_high: float = 0.0
    risk_mode: RiskMode = RiskMode.NEUTRAL
    size_percent: int = 70               # 25-100
    size_label: str = "Reduce 30%"
    alignment: Alignment = Alignment.NEUTRAL
    breakdown: dict[str, float] = field(default_factory=dict)
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "regime": self.regime.value,
            "regime_label": REGIME_LABELS[self.regime],
            "regime_score": self.regime_score,
            "direction_probability": self.direction_probability,
            "expected_range": {"low": self.expected_range_low, "high": self.expected_range_high},
            "risk_mode": self.risk_mode.value,
            "risk_mode_label": RISK_MODE_LABELS[self.risk_mode],
            "size_percent": self.size_percent,
            "size_label": self.size_label,
            "alignment": self.alignment.value,
            "breakdown": self.breakdown,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


class RegimeEngine:
    """Classify market regime from sentiment / technical scores.

    Composite weights:
    1. Technical 35%
    2. On-chain 20%
    3. Macro 25%
    4. Fear & Greed 20% (contrarian-compressed at the extremes)
    """

    # Composite weights
    W_TECHNICAL = 0.35
    W_ON_CHAIN = 0.20
    W_MACRO = 0.25
    W_FEAR_GREED = 0.20

    # Regime thresholds
    TREND_BULL_SCORE = 65
    TREND_BEAR_SCORE = 35
    MAX_DIVERGENCE_PENALTY = 5.0
    DIVERGENCE_VARIANCE_SCALE = 500.0
    MAX_SKEW = 0.5

    # Expected daily range (%)
    BASE_RANGE: dict[str, float] = {"low": 1.5, "medium": 2.5, "high": 4.0}
    REGIME_RANGE_MULTIPLIER: dict[MarketRegime, float] = {
        MarketRegime.HIGH_VOL: 1.3,
        MarketRegime.RISK_OFF: 1.2,
        MarketRegime.TRENDING_BULL: 1.1,
        MarketRegime.TRENDING_BEAR: 1.1,
        MarketRegime.RANGING: 0.8,
    }

    HIGH_EVENT_RISK = ("HIGH", "VERY_HIGH")
    MAX_HISTORY = 1000

    def __init__(self) -> None:
        self._history: list[RegimeClassification] = []

    def classify(self, inp: RegimeInput, timestamp: datetime | None = None) -> RegimeClassification:
        self._validate(inp)

        score = self.composite_score(inp)
        alignment = self.determine_alignment(inp)
        regime = self.determine_regime(score, inp, alignment)
        risk_mode = self.determine_risk_mode(regime, alignment, inp)
        low, high = self.expected_range(inp, regime)
        size_percent, size_label = self.size_adjustment(risk_mode, inp)

        result = RegimeClassification(
            regime=regime,
            regime_score=score,
            direction_probability=round_int(30 + (score / 100) * 40),
            expected_range_low=low,
            expected_range_high=high,
            risk_mode=risk_mode,
            size_percent=size_percent,
            size_label=size_label,
            alignment=alignment,
            breakdown={
                "technical": inp.technical_score,
                "macro": inp.macro_score,
                "fear_greed": inp.fear_greed_value,
            },
            timestamp=timestamp or datetime.now(timezone.utc),
        )

        self._history.append(result)
        if len(self._history) > self.MAX_HISTORY:
            self._history = self._history[-self.MAX_HISTORY:]

        logger.info("regime_classified", regime=regime.value, score=score,
                    risk_mode=risk_mode.value, alignment=alignment.value)
        return result

    @staticmethod
    def _validate(inp: RegimeInput) -> None:
        for name in ("technical_score", "on_chain_score", "macro_score", "fear_greed_value"):
            value = getattr(inp, name)
            if value is None or not 0 <= value <= 100:
                raise InvalidInputError(f"{name} must be within 0-100, got {value}")

    # ── Composite ───

    @staticmethod
    def transform_fear_greed(fg: float) -> float:
        """Compress the extremes toward neutral: 0-20 → 35-50, 80-100 → 50-65."""
        if fg <= 20:
            return 35 + (fg / 20) * 15
        if fg >= 80:
            return 50 + ((fg - 80) / 20) * 15
        return fg

    def composite_score(self, inp: RegimeInput) -> int:
        fg = self.transform_fear_greed(inp.fear_greed_value)
        linear = (
            inp.technical_score * self.W_TECHNICAL
            + inp.on_chain_score * self.W_ON_CHAIN
            + inp.macro_score * self.W_MACRO
            + fg * self.W_FEAR_GREED
        )
        # Component disagreement pulls the score back toward 50
        components = np.array([inp.technical_score, inp.on_chain_score, inp.macro_score, fg])
        penalty = min(self.MAX_DIVERGENCE_PENALTY, float(np.var(components)) / self.DIVERGENCE_VARIANCE_SCALE)
        adjusted = linear - penalty if linear > 50 else linear + penalty
        return round_int(clamp(adjusted, 0, 100))

    # ── Classification ───

    @staticmethod
    def determine_alignment(inp: RegimeInput) -> Alignment:
        crypto, macro = inp.overall_sentiment, inp.macro_sentiment
        if (crypto, macro) in (("bullish", "bullish"), ("bearish", "bearish")):
            return Alignment.ALIGNED
        if (crypto, macro) in (("bullish", "bearish"), ("bearish", "bullish")):
            return Alignment.CONFLICT
        return Alignment.NEUTRAL

    def determine_regime(self, score: int, inp: RegimeInput, alignment: Alignment) -> MarketRegime:
        # 1. Event risk overrides everything
        if inp.event_risk_level in self.HIGH_EVENT_RISK:
            return MarketRegime.RISK_OFF
        # 2. High volatility, no alignment exception
        if inp.volatility_level == "high":
            return MarketRegime.HIGH_VOL
        # 3. Trending needs conviction, momentum and no macro conflict
        momentum = inp.momentum_24h or 0.0
        if score >= self.TREND_BULL_SCORE and momentum > 0 and alignment != Alignment.CONFLICT:
            return MarketRegime.TRENDING_BULL
        if score <= self.TREND_BEAR_SCORE and momentum < 0 and alignment != Alignment.CONFLICT:
            return MarketRegime.TRENDING_BEAR
        return MarketRegime.RANGING

    def determine_risk_mode(self, regime: MarketRegime, alignment: Alignment, inp: RegimeInput) -> RiskMode:
        if regime in (MarketRegime.RISK_OFF, MarketRegime.HIGH_VOL):
            return RiskMode.DEFENSIVE
        if alignment == Alignment.CONFLICT:
            return RiskMode.DEFENSIVE
        if inp.volatility_level == "high" or inp.event_risk_level in self.HIGH_EVENT_RISK:
            return RiskMode.DEFENSIVE
        if regime in (MarketRegime.TRENDING_BULL, MarketRegime.TRENDING_BEAR) and alignment == Alignment.ALIGNED:
            return RiskMode.AGGRESSIVE
        return RiskMode.NEUTRAL

    def expected_range(self, inp: RegimeInput, regime: MarketRegime) -> tuple[float, float]:
        """Expected 24h move in percent; momentum skews the centre, not the width."""
        base = self.BASE_RANGE.get(inp.volatility_level or "medium", self.BASE_RANGE["medium"])
        width = base * self.REGIME_RANGE_MULTIPLIER.get(regime, 1.0)
        skew = clamp((inp.momentum_24h or 0.0) * 0.05, -self.MAX_SKEW, self.MAX_SKEW)
        return round_half_up(-width + skew, 1), round_half_up(width + skew, 1)

    @staticmethod
    def size_adjustment(risk_mode: RiskMode, inp: RegimeInput) -> tuple[int, str]:
        if risk_mode == RiskMode.AGGRESSIVE:
            return 100, "Normal (100%)"
        if risk_mode == RiskMode.DEFENSIVE:
            if inp.event_risk_level == "VERY_HIGH":
                return 25, "Reduce 75% (extreme event risk)"
            return 50, "Reduce 50%"
        return 70, "Reduce 30%"

    # ── History ───

    def get_regime_history(self) -> list[dict[str, Any]]:
        """Get regime classification history."""
        return [r.to_dict() for r in self._history]

    def get_current_regime(self) -> RegimeClassification | None:
        """Get most recent regime classification."""
        return self._history[-1] if self._history else None


def classify_market_regime(inp: RegimeInput, timestamp: datetime | None = None) -> RegimeClassification:
    """Stateless classification; nothing is recorded in any history."""
    return RegimeEngine().classify(inp, timestamp)
