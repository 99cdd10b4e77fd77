"""Per-trade display and classification helpers used by the journal views."""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from tradejournal.journal.journal_models import (
    TradeEntry, TradeDirection, TradeResult, TradeSource,
)

_TIME_STAMP_RE = re.compile(r"\[(\d{1,2}:\d{2}:\d{2}\s*[AP]?M?)\]")


# ── Enrichment ──

def trade_needs_enrichment(trade: TradeEntry) -> bool:
    """Exchange-synced trades arrive without an entry price until enriched."""
    return trade.source == TradeSource.BINANCE.value and not trade.entry_price


def trade_has_unknown_direction(trade: TradeEntry) -> bool:
    return trade.direction == TradeDirection.UNKNOWN.value


def get_direction_display(direction: str) -> str:
    if direction == TradeDirection.UNKNOWN.value:
        return "?"
    return direction


# ── Result ──

def get_trade_result(pnl: Optional[float]) -> str:
    if pnl is None:
        return TradeResult.BREAKEVEN.value
    if pnl > 0:
        return TradeResult.WIN.value
    if pnl < 0:
        return TradeResult.LOSS.value
    return TradeResult.BREAKEVEN.value


def is_trade_profit(pnl: Optional[float]) -> bool:
    return (pnl or 0) > 0


def is_trade_loss(pnl: Optional[float]) -> bool:
    return (pnl or 0) < 0


# ── Risk:Reward ──

def calculate_risk_reward(trade: TradeEntry) -> float:
    """Planned-vs-realised reward ratio, unsigned. 0 when any price is missing."""
    if not trade.stop_loss or not trade.entry_price or not trade.exit_price:
        return 0.0
    risk = abs(trade.entry_price - trade.stop_loss)
    if risk == 0:
        return 0.0
    return abs(trade.exit_price - trade.entry_price) / risk


def format_risk_reward(rr: float) -> str:
    if rr <= 0:
        return "-"
    return f"{rr:.2f}:1"


# ── Screenshots ──

def trade_has_screenshots(trade: TradeEntry) -> bool:
    return bool(trade.screenshots)


def get_screenshot_count(trade: TradeEntry) -> int:
    return len(trade.screenshots or [])


def get_thumbnail_url(trade: TradeEntry) -> Optional[str]:
    if not trade_has_screenshots(trade):
        return None
    return trade.screenshots[0].get("url")


# ── Notes ──

def trade_has_notes(trade: TradeEntry) -> bool:
    return bool(trade.notes)


def get_notes_line_count(trade: TradeEntry) -> int:
    if not trade.notes:
        return 0
    return len([line for line in trade.notes.split("\n") if line.strip()])


def has_multiple_notes(trade: TradeEntry) -> bool:
    return get_notes_line_count(trade) > 2


def has_recent_note_timestamp(trade: TradeEntry, today: Optional[date] = None) -> bool:
    """True when the notes carry a `[M/D/YYYY` stamp for today or any `[hh:mm:ss]` stamp."""
    if not trade.notes:
        return False
    today = today or date.today()
    stamp = f"[{today.month}/{today.day}/{today.year}"
    return stamp in trade.notes or bool(_TIME_STAMP_RE.search(trade.notes))
