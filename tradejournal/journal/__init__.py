"""
Trade Journal
=============

Architecture:
  journal_models.py    — Trade, strategy and risk-state dataclasses
  journal_store.py     — SQLite-backed storage engine
  journal_analytics.py — Full analytics report over stored trades
                         (import directly; it depends on tradejournal.analytics)
  trade_utils.py       — Display and enrichment helpers for single trades
"""

from tradejournal.journal.journal_models import (
    TradeDirection,
    TradeResult,
    TradeStatus,
    TradeSource,
    TradingStrategy,
    TradeEntry,
    RiskProfile,
    DailyRiskSnapshot,
)

from tradejournal.journal.journal_store import JournalStore

__all__ = [
    # Models
    "TradeDirection", "TradeResult", "TradeStatus", "TradeSource",
    "TradingStrategy", "TradeEntry", "RiskProfile", "DailyRiskSnapshot",
    # Storage
    "JournalStore",
]
