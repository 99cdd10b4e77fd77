"""
Trading Calculations — core performance metrics over journaled trades
=====================================================================

All P&L figures use the journal-wide fallback chain
`realized_pnl -> pnl -> 0` (TradeEntry.net_pnl).

Drawdown % is measured against the equity at the peak:
    (peak_cum_pnl - cum_pnl) / (initial_balance + peak_cum_pnl) * 100
capped at 100.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from tradejournal.journal.journal_models import (
    TradeEntry, TradingStrategy, TradeResult, parse_timestamp,
)
from tradejournal.utils.numeric import finite_or_none

DateLike = Union[str, date, datetime, None]


@dataclass
class TradingStats:
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    breakeven: int = 0
    win_rate: float = 0.0             # 0-100
    total_pnl: float = 0.0
    avg_pnl: float = 0.0
    avg_rr: Optional[float] = None    # None when no trade has a usable stop
    profit_factor: float = 0.0        # inf when there are no losses
    expectancy: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    sharpe_ratio: Optional[float] = None
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    consecutive_wins: int = 0
    consecutive_losses: int = 0

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["profit_factor"] = finite_or_none(self.profit_factor)
        return d


@dataclass
class StrategyPerformance:
    strategy: TradingStrategy
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    avg_pnl: float = 0.0
    avg_rr: Optional[float] = None
    contribution: float = 0.0         # % of |total portfolio pnl|

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _sorted_by_date(trades: Iterable[TradeEntry]) -> List[TradeEntry]:
    return sorted(trades, key=lambda t: t.trade_datetime)


def calculate_rr(trade: TradeEntry) -> float:
    """
    R-multiple achieved: |exit - entry| / |entry - stop|.

    Positive only for winning trades. 0 without a stop loss, entry
    price, or when entry equals stop.
    """
    if not trade.stop_loss or not trade.entry_price:
        return 0.0
    risk = abs(trade.entry_price - trade.stop_loss)
    if risk == 0:
        return 0.0
    reward = abs(trade.exit_price - trade.entry_price) if trade.exit_price else 0.0
    rr = reward / risk
    if trade.result != TradeResult.WIN.value:
        rr = -rr
    return rr


def _avg_abs_rr(trades: Sequence[TradeEntry]) -> Optional[float]:
    rr_values = [rr for rr in (calculate_rr(t) for t in trades) if rr != 0]
    if not rr_values:
        return None
    return sum(abs(rr) for rr in rr_values) / len(rr_values)


def filter_trades_by_date_range(trades: Sequence[TradeEntry],
                                start: DateLike = None,
                                end: DateLike = None) -> List[TradeEntry]:
    """Inclusive on both ends; a None bound is open."""
    start_ts = parse_timestamp(start)
    end_ts = parse_timestamp(end)
    out = []
    for t in trades:
        ts = t.trade_datetime
        if start_ts and ts < start_ts:
            continue
        if end_ts and ts > end_ts:
            continue
        out.append(t)
    return out


def filter_trades_by_strategies(trades: Sequence[TradeEntry],
                                strategy_ids: Sequence[str]) -> List[TradeEntry]:
    """Trades linked to any of the given strategies; all trades when no ids."""
    if not strategy_ids:
        return list(trades)
    wanted = set(strategy_ids)
    return [t for t in trades if any(s.id in wanted for s in t.strategies)]


def calculate_trading_stats(trades: Sequence[TradeEntry],
                            initial_balance: float = 0.0) -> TradingStats:
    if not trades:
        return TradingStats()

    winning = [t for t in trades if t.result == TradeResult.WIN.value]
    losing = [t for t in trades if t.result == TradeResult.LOSS.value]
    breakeven = sum(1 for t in trades if t.result == TradeResult.BREAKEVEN.value)

    total = len(trades)
    wins, losses = len(winning), len(losing)
    win_rate = wins / total * 100

    pnls = [t.net_pnl for t in trades]
    total_pnl = sum(pnls)
    avg_pnl = total_pnl / total

    gross_profit = sum(t.net_pnl for t in winning)
    gross_loss = abs(sum(t.net_pnl for t in losing))

    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    else:
        profit_factor = math.inf if gross_profit > 0 else 0.0

    avg_win = gross_profit / wins if wins else 0.0
    avg_loss = gross_loss / losses if losses else 0.0
    expectancy = (win_rate / 100 * avg_win) - ((100 - win_rate) / 100 * avg_loss)

    largest_win = max(t.net_pnl for t in winning) if winning else 0.0
    largest_loss = abs(min(t.net_pnl for t in losing)) if losing else 0.0

    # ── Drawdown on the chronological equity curve ──
    ordered = _sorted_by_date(trades)
    peak = cumulative = max_dd = 0.0
    for t in ordered:
        cumulative += t.net_pnl
        if cumulative > peak:
            peak = cumulative
        max_dd = max(max_dd, peak - cumulative)
    dd_base = initial_balance + peak
    max_dd_pct = min(max_dd / dd_base * 100, 100.0) if dd_base > 0 else 0.0

    # ── Sharpe (per-trade, annualised by sqrt(252), 0% risk-free) ──
    variance = sum((p - avg_pnl) ** 2 for p in pnls) / total
    std = math.sqrt(variance)
    sharpe = avg_pnl / std * math.sqrt(252) if std > 0 else None

    # ── Streaks; breakeven trades neither extend nor break a streak ──
    cur_w = cur_l = max_w = max_l = 0
    for t in ordered:
        if t.result == TradeResult.WIN.value:
            cur_w += 1
            cur_l = 0
            max_w = max(max_w, cur_w)
        elif t.result == TradeResult.LOSS.value:
            cur_l += 1
            cur_w = 0
            max_l = max(max_l, cur_l)

    return TradingStats(
        total_trades=total,
        wins=wins,
        losses=losses,
        breakeven=breakeven,
        win_rate=win_rate,
        total_pnl=total_pnl,
        avg_pnl=avg_pnl,
        avg_rr=_avg_abs_rr(trades),
        profit_factor=profit_factor,
        expectancy=expectancy,
        max_drawdown=max_dd,
        max_drawdown_percent=max_dd_pct,
        sharpe_ratio=sharpe,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        largest_win=largest_win,
        largest_loss=largest_loss,
        avg_win=avg_win,
        avg_loss=avg_loss,
        consecutive_wins=max_w,
        consecutive_losses=max_l,
    )


def calculate_strategy_performance(trades: Sequence[TradeEntry],
                                   strategies: Sequence[TradingStrategy]) -> List[StrategyPerformance]:
    """Per-strategy breakdown, best total P&L first."""
    total_pnl = sum(t.net_pnl for t in trades)
    results = []
    for strategy in strategies:
        linked = [t for t in trades if any(s.id == strategy.id for s in t.strategies)]
        if not linked:
            results.append(StrategyPerformance(strategy=strategy))
            continue
        wins = sum(1 for t in linked if t.result == TradeResult.WIN.value)
        losses = sum(1 for t in linked if t.result == TradeResult.LOSS.value)
        pnl = sum(t.net_pnl for t in linked)
        results.append(StrategyPerformance(
            strategy=strategy,
            total_trades=len(linked),
            wins=wins,
            losses=losses,
            win_rate=wins / len(linked) * 100,
            total_pnl=pnl,
            avg_pnl=pnl / len(linked),
            avg_rr=_avg_abs_rr(linked),
            contribution=pnl / abs(total_pnl) * 100 if total_pnl != 0 else 0.0,
        ))
    results.sort(key=lambda p: p.total_pnl, reverse=True)
    return results


def generate_equity_curve(trades: Sequence[TradeEntry]) -> List[Dict[str, Any]]:
    cumulative = 0.0
    points = []
    for t in _sorted_by_date(trades):
        ts = t.trade_datetime
        cumulative += t.net_pnl
        points.append({
            "date": f"{ts.strftime('%b')} {ts.day}",
            "full_date": t.trade_date,
            "pnl": t.net_pnl,
            "cumulative": cumulative,
            "pair": t.pair,
            "direction": t.direction,
        })
    return points


def calculate_monthly_pnl(trades: Sequence[TradeEntry]) -> List[Dict[str, Any]]:
    """Closed-trade P&L grouped by calendar month (UTC), oldest first."""
    closed = [t for t in trades if t.is_closed]
    if not closed:
        return []
    df = pd.DataFrame({
        "month": [t.trade_datetime.strftime("%Y-%m") for t in closed],
        "pnl": [t.net_pnl for t in closed],
        "win": [1 if t.net_pnl > 0 else 0 for t in closed],
    })
    grouped = df.groupby("month").agg(pnl=("pnl", "sum"), trades=("pnl", "size"), wins=("win", "sum"))
    out = []
    for month, row in grouped.sort_index().iterrows():
        trades_n = int(row["trades"])
        wins = int(row["wins"])
        out.append({
            "month": month,
            "pnl": round(float(row["pnl"]), 2),
            "trades": trades_n,
            "wins": wins,
            "win_rate": round(wins / trades_n * 100, 2) if trades_n else 0.0,
        })
    return out
