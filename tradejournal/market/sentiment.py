"""Sentiment thresholds and classifiers for derivatives-market positioning data."""
from __future__ import annotations

# Bullish score (0-100)
SENTIMENT_BULLISH = 60
SENTIMENT_BEARISH = 40

# Top-trader long/short account ratio
TOP_TRADER_BULLISH = 1.2
TOP_TRADER_BEARISH = 0.8

# Global (retail) long/short ratio, read contrarian
RETAIL_CROWDED_LONG = 1.5
RETAIL_CROWDED_SHORT = 0.7

# Taker buy/sell volume ratio
TAKER_BULLISH = 1.1
TAKER_BEARISH = 0.9

# Perpetual funding rate per interval
FUNDING_POSITIVE_EXTREME = 0.001
FUNDING_NEGATIVE_EXTREME = -0.001

# 24h price change, percent
MOMENTUM_BULLISH = 5
MOMENTUM_BEARISH = -5

SCORE_WEIGHTS = {
    "technical": 0.30,
    "on_chain": 0.25,
    "sentiment": 0.25,
    "momentum": 0.20,
}


def classify_sentiment(bullish_score: float) -> str:
    if bullish_score >= SENTIMENT_BULLISH:
        return "bullish"
    if bullish_score <= SENTIMENT_BEARISH:
        return "bearish"
    return "neutral"


def analyze_top_trader_ratio(ratio: float) -> str:
    if ratio > TOP_TRADER_BULLISH:
        return "bullish"
    if ratio < TOP_TRADER_BEARISH:
        return "bearish"
    return "neutral"


def analyze_retail_ratio(ratio: float) -> str:
    # crowded longs are a bearish tell and vice versa
    if ratio > RETAIL_CROWDED_LONG:
        return "bearish"
    if ratio < RETAIL_CROWDED_SHORT:
        return "bullish"
    return "neutral"


def analyze_taker_volume(ratio: float) -> str:
    if ratio > TAKER_BULLISH:
        return "bullish"
    if ratio < TAKER_BEARISH:
        return "bearish"
    return "neutral"


def analyze_funding_rate(rate: float) -> str:
    if rate > FUNDING_POSITIVE_EXTREME:
        return "positive"
    if rate < FUNDING_NEGATIVE_EXTREME:
        return "negative"
    return "neutral"


def classify_momentum(price_change_24h: float) -> str:
    if price_change_24h >= MOMENTUM_BULLISH:
        return "bullish"
    if price_change_24h <= MOMENTUM_BEARISH:
        return "bearish"
    return "neutral"


def calculate_sentiment_score(technical: float, on_chain: float,
                              sentiment: float, momentum: float) -> float:
    """Weighted bullish score from four 0-100 component scores."""
    return (
        technical * SCORE_WEIGHTS["technical"]
        + on_chain * SCORE_WEIGHTS["on_chain"]
        + sentiment * SCORE_WEIGHTS["sentiment"]
        + momentum * SCORE_WEIGHTS["momentum"]
    )
