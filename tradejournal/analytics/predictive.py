"""
Predictive insights from journal history.

Everything here is descriptive statistics over closed trades: how often a
streak continued, how today's weekday or the current session compares
with the overall win rate, and which pairs are running hot or cold.
Each result carries its sample size and a coarse confidence label.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from tradejournal.journal.journal_models import TradeEntry, parse_timestamp

CONFIDENCE_MEDIUM = 15
CONFIDENCE_HIGH = 30

DAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass
class PredictionResult:
    value: float
    description: str
    confidence: str      # low / medium / high
    sample_size: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_confidence(n: int) -> str:
    if n >= CONFIDENCE_HIGH:
        return "high"
    if n >= CONFIDENCE_MEDIUM:
        return "medium"
    return "low"


def _closed(trades: Sequence[TradeEntry]) -> list[TradeEntry]:
    return [t for t in trades if t.is_closed]


def _day_label(dt: datetime) -> str:
    # Python weekday(): Mon=0 .. Sun=6
    return DAY_LABELS[(dt.weekday() + 1) % 7]


def _signed(diff: float) -> str:
    return f"{'+' if diff > 0 else ''}{diff:.0f}"


def calculate_streak_probability(trades: Sequence[TradeEntry]) -> Optional[PredictionResult]:
    """How often the current win/loss streak has historically continued."""
    ordered = sorted(_closed(trades), key=lambda t: t.trade_datetime)
    if len(ordered) < 5:
        return None

    outcomes = [t.net_pnl > 0 for t in ordered]
    streak_is_win = outcomes[-1]
    streak = 0
    for is_win in reversed(outcomes):
        if is_win != streak_is_win:
            break
        streak += 1

    window = min(streak, 5)
    occurrences = continuations = 0
    for i in range(window, len(outcomes)):
        if all(o == streak_is_win for o in outcomes[i - window:i]):
            occurrences += 1
            if outcomes[i] == streak_is_win:
                continuations += 1

    if occurrences < 3:
        return None

    kind = "win" if streak_is_win else "loss"
    prob = continuations / occurrences * 100
    return PredictionResult(
        value=prob,
        description=(f"After {streak} consecutive {kind}s, historically {prob:.0f}% "
                     f"chance the next trade is also a {kind}."),
        confidence=get_confidence(occurrences),
        sample_size=occurrences,
    )


def get_day_of_week_edge(trades: Sequence[TradeEntry],
                         now: Optional[datetime] = None) -> Optional[PredictionResult]:
    closed = _closed(trades)
    if len(closed) < 10:
        return None

    today = _day_label(parse_timestamp(now or datetime.now(timezone.utc)))
    today_trades = [t for t in closed if _day_label(t.trade_datetime) == today]
    if len(today_trades) < 3:
        return None

    win_rate = sum(1 for t in today_trades if t.net_pnl > 0) / len(today_trades) * 100
    overall = sum(1 for t in closed if t.net_pnl > 0) / len(closed) * 100
    diff = win_rate - overall
    verdict = "Favorable" if diff > 5 else "Unfavorable" if diff < -5 else "Neutral"

    return PredictionResult(
        value=win_rate,
        description=(f"Today ({today}) has a historical win rate of {win_rate:.0f}% "
                     f"({_signed(diff)}% vs average). {verdict} conditions."),
        confidence=get_confidence(len(today_trades)),
        sample_size=len(today_trades),
    )


def get_pair_momentum(trades: Sequence[TradeEntry], lookback: int = 5) -> list[dict[str, Any]]:
    """Recent win ratio per pair (pairs with at least 3 closed trades)."""
    by_pair: dict[str, list[TradeEntry]] = defaultdict(list)
    for t in _closed(trades):
        by_pair[t.pair].append(t)

    out = []
    for pair, pair_trades in by_pair.items():
        if len(pair_trades) < 3:
            continue
        recent = sorted(pair_trades, key=lambda t: t.trade_datetime, reverse=True)[:lookback]
        wins = sum(1 for t in recent if t.net_pnl > 0)
        total = len(recent)
        ratio = wins / total
        if ratio >= 0.6:
            momentum, text = "bullish", f"{pair} improving edge"
        elif ratio <= 0.4:
            momentum, text = "bearish", f"{pair} declining edge"
        else:
            momentum, text = "neutral", f"{pair} mixed signals"
        out.append({
            "pair": pair,
            "wins": wins,
            "total": total,
            "momentum": momentum,
            "description": f"{text} ({wins}/{total} wins)",
        })
    out.sort(key=lambda p: p["wins"] / p["total"], reverse=True)
    return out


def _session_bucket(hour: int) -> tuple[tuple[str, ...], str]:
    if hour >= 20 or hour < 5:
        return ("sydney", "tokyo"), "Asia"
    if 7 <= hour < 16:
        return ("london",), "London"
    if 13 <= hour < 22:
        return ("new_york",), "New York"
    return ("other",), "Off-hours"


def get_session_outlook(trades: Sequence[TradeEntry],
                        now: Optional[datetime] = None) -> Optional[PredictionResult]:
    """Win rate of the session active at `now` against the overall win rate."""
    closed = [t for t in _closed(trades) if t.session]
    if len(closed) < 10:
        return None

    hour = parse_timestamp(now or datetime.now(timezone.utc)).hour
    keys, label = _session_bucket(hour)
    session_trades = [t for t in closed if t.session.lower() in keys]
    if len(session_trades) < 3:
        return None

    session_wr = sum(1 for t in session_trades if t.net_pnl > 0) / len(session_trades) * 100
    overall = sum(1 for t in closed if t.net_pnl > 0) / len(closed) * 100
    diff = session_wr - overall

    return PredictionResult(
        value=session_wr,
        description=f"{label} Session: {session_wr:.0f}% win rate ({_signed(diff)}% vs average).",
        confidence=get_confidence(len(session_trades)),
        sample_size=len(session_trades),
    )
