"""
Market session helpers.

Session windows are fixed UTC hours, half-open [start, end). Sydney wraps
midnight. Windows overlap, so lookups resolve in the order
sydney -> tokyo -> london -> new_york and the first match wins.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Union

from tradejournal.journal.journal_models import TradeEntry, parse_timestamp

SESSION_UTC: dict[str, tuple[int, int]] = {
    "sydney": (21, 6),
    "tokyo": (0, 9),
    "london": (7, 16),
    "new_york": (12, 21),
}

SESSION_LABELS: dict[str, str] = {
    "sydney": "Sydney",
    "tokyo": "Tokyo",
    "london": "London",
    "new_york": "New York",
    "other": "Other",
}

VALID_SESSIONS = ("sydney", "tokyo", "london", "new_york", "other")


def _in_window(hour: int, start: int, end: int) -> bool:
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


def get_session_for_time(value: Union[str, datetime]) -> str:
    hour = parse_timestamp(value).hour
    for session, (start, end) in SESSION_UTC.items():
        if _in_window(hour, start, end):
            return session
    return "other"


def get_current_session(now: Optional[datetime] = None) -> str:
    return get_session_for_time(now or datetime.now(timezone.utc))


def get_active_overlaps(now: Optional[datetime] = None) -> Optional[str]:
    hour = parse_timestamp(now or datetime.now(timezone.utc)).hour
    if 12 <= hour < 16:
        return "London + NY"
    if 7 <= hour < 9:
        return "Tokyo + London"
    if 0 <= hour < 6:
        return "Sydney + Tokyo"
    return None


def format_session_time_local(session: str, utc_offset_hours: int = 0) -> str:
    """Session window shifted to a local UTC offset, e.g. '04:00-13:00'."""
    if session not in SESSION_UTC:
        return "Variable"
    start, end = SESSION_UTC[session]
    local_start = (start + utc_offset_hours + 24) % 24
    local_end = (end + utc_offset_hours + 24) % 24
    return f"{local_start:02d}:00-{local_end:02d}:00"


def is_valid_session(value: Optional[str]) -> bool:
    return value in VALID_SESSIONS


def get_trade_session(trade: TradeEntry) -> str:
    """Stored session first, then the captured market context, then the clock."""
    if trade.session and is_valid_session(trade.session):
        return trade.session
    ctx_session = (trade.market_context or {}).get("session") or {}
    current = ctx_session.get("current") if isinstance(ctx_session, dict) else None
    if current:
        return current
    return get_session_for_time(trade.entry_datetime or trade.trade_date)


def get_all_sessions_with_local_times(now: Optional[datetime] = None,
                                      utc_offset_hours: int = 0) -> list[dict[str, Any]]:
    current = get_current_session(now)
    return [
        {
            "session": session,
            "label": SESSION_LABELS[session],
            "local_time_range": format_session_time_local(session, utc_offset_hours),
            "is_active": session == current,
        }
        for session in SESSION_UTC
    ]


def calculate_session_breakdown(trades: Sequence[TradeEntry]) -> list[dict[str, Any]]:
    """Closed-trade performance per session, in session order."""
    buckets: dict[str, list[TradeEntry]] = {s: [] for s in VALID_SESSIONS}
    for t in trades:
        if not t.is_closed:
            continue
        buckets.setdefault(get_trade_session(t), []).append(t)

    out = []
    for session, bucket in buckets.items():
        if not bucket:
            continue
        wins = sum(1 for t in bucket if t.net_pnl > 0)
        pnl = sum(t.net_pnl for t in bucket)
        out.append({
            "session": session,
            "label": SESSION_LABELS.get(session, session),
            "trades": len(bucket),
            "wins": wins,
            "pnl": round(pnl, 2),
            "avg_pnl": round(pnl / len(bucket), 2),
            "win_rate": round(wins / len(bucket) * 100, 2),
        })
    return out
