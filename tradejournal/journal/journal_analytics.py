"""
Journal Analytics Engine — one report over the journal store
============================================================

Pulls closed trades from the store and assembles:
  - Core trading stats (win rate, profit factor, expectancy, drawdown)
  - Advanced risk metrics (Sharpe / Sortino / Calmar, VaR, Kelly)
  - Equity curve and monthly P&L
  - Strategy, session and symbol breakdowns
  - Daily P&L
  - Predictive signals (streaks, day-of-week edge, session outlook, pair momentum)
"""

from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from tradejournal.analytics.predictive import (
    calculate_streak_probability, get_day_of_week_edge,
    get_pair_momentum, get_session_outlook,
)
from tradejournal.analytics.risk_metrics import calculate_advanced_risk_metrics
from tradejournal.analytics.sessions import calculate_session_breakdown
from tradejournal.analytics.trading_calculations import (
    calculate_monthly_pnl, calculate_strategy_performance,
    calculate_trading_stats, generate_equity_curve,
)
from tradejournal.journal.journal_models import TradeEntry, TradeStatus, parse_timestamp
from tradejournal.journal.journal_store import JournalStore
from tradejournal.utils.config import Settings, get_settings
from tradejournal.utils.numeric import json_safe

logger = logging.getLogger("journal_analytics")

MAX_TRADES = 10000


class JournalAnalytics:
    """
    Computes the analytics report from the journal store.
    Used by the API and directly from scripts.
    """

    def __init__(self, store: JournalStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or get_settings()

    def closed_trades(self, pair: str = "", source: str = "", strategy_id: str = "",
                      days: int = 0, now: Optional[datetime] = None) -> List[TradeEntry]:
        """Most recent MAX_TRADES closed trades, oldest first."""
        now = parse_timestamp(now) if now else datetime.now(timezone.utc)
        newest_first = self._store.query_trades(
            pair=pair, source=source, strategy_id=strategy_id,
            status=TradeStatus.CLOSED.value,
            from_date=(now - timedelta(days=days)) if days else None,
            limit=MAX_TRADES, order_by="trade_date DESC",
        )
        return newest_first[::-1]

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # FULL REPORT
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def compute_full_analytics(self, pair: str = "", source: str = "", strategy_id: str = "",
                               days: int = 0, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Comprehensive analytics report — the main endpoint.
        Non-finite values (profit factor with no losses) come back as None.
        """
        now = parse_timestamp(now) if now else datetime.now(timezone.utc)
        entries = self.closed_trades(pair, source, strategy_id, days, now)
        if not entries:
            return {"error": "No closed trades found", "total_trades": 0}

        s = self._settings
        result: Dict[str, Any] = {}
        result["total_trades"] = len(entries)
        result["stats"] = calculate_trading_stats(entries, s.initial_capital).to_dict()
        result["risk_metrics"] = calculate_advanced_risk_metrics(
            entries, s.initial_capital, s.risk_free_rate, s.trading_days_per_year,
        ).to_dict()
        result["equity_curve"] = generate_equity_curve(entries)
        result["monthly_pnl"] = calculate_monthly_pnl(entries)
        result["strategy_performance"] = [
            p.to_dict() for p in calculate_strategy_performance(entries, self._store.get_strategies())
        ]
        result["session_breakdown"] = calculate_session_breakdown(entries)
        window = dict(days=days or 365, now=now, pair=pair, source=source, strategy_id=strategy_id)
        result["symbol_breakdown"] = self._store.get_symbol_breakdown(**window)
        result["daily_pnl"] = self._store.get_pnl_by_date(**window)
        result["predictions"] = self.predictions(entries, now)

        logger.info("Analytics computed: %d trades (pair=%s, source=%s, days=%d)",
                    len(entries), pair or "*", source or "*", days)
        return json_safe(result)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # PREDICTIONS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    @staticmethod
    def predictions(entries: List[TradeEntry], now: datetime) -> Dict[str, Any]:
        streak = calculate_streak_probability(entries)
        day_edge = get_day_of_week_edge(entries, now)
        session = get_session_outlook(entries, now)
        return {
            "streak": streak.to_dict() if streak else None,
            "day_of_week": day_edge.to_dict() if day_edge else None,
            "session_outlook": session.to_dict() if session else None,
            "pair_momentum": get_pair_momentum(entries),
        }
