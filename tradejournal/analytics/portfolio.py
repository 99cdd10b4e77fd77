"""
Portfolio Analytics — long-horizon holdings performance
=======================================================

Works on three inputs:
  holdings      — current positions with cost basis
  transactions  — BUY / SELL ledger (realized P&L, holding period)
  history       — periodic total portfolio value snapshots

Outputs total value / cost / P&L, CAGR, monthly returns, annualised
volatility, drawdown, Sharpe / Sortino / Calmar (5% risk-free), an
approximate beta / alpha against a 10% market return, 0-100 radar
scores, and per-asset return attribution.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from tradejournal.journal.journal_models import parse_timestamp
from tradejournal.utils.numeric import clamp

RISK_FREE_RATE_PCT = 5.0
MARKET_RETURN_PCT = 10.0


@dataclass
class Holding:
    symbol: str = "Unknown"
    name: str = "Unknown"
    quantity: float = 0.0
    average_cost: float = 0.0
    total_cost: float = 0.0
    current_price: Optional[float] = None   # asset reference price
    cached_price: Optional[float] = None    # latest quote, preferred

    @property
    def price(self) -> float:
        return self.cached_price or self.current_price or self.average_cost

    @property
    def value(self) -> float:
        return self.quantity * self.price

    @classmethod
    def from_dict(cls, d: dict) -> "Holding":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class Transaction:
    symbol: str = ""
    transaction_type: str = "BUY"     # BUY / SELL
    quantity: float = 0.0
    price_per_unit: float = 0.0
    total_amount: float = 0.0
    fee: float = 0.0
    transaction_date: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> "Transaction":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class HistoryPoint:
    recorded_at: str = ""
    total_value: float = 0.0

    @classmethod
    def from_dict(cls, d: dict) -> "HistoryPoint":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class PortfolioAnalytics:
    total_value: float = 0.0
    total_cost_basis: float = 0.0
    total_profit_loss: float = 0.0
    total_profit_loss_percent: float = 0.0
    cagr: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    max_drawdown: float = 0.0          # negative percent, e.g. -12.5
    volatility: float = 0.0            # annualised, percent
    beta: float = 1.0
    alpha: float = 0.0
    win_rate: float = 50.0
    profit_factor: float = 1.0
    avg_win: float = 0.0               # currency
    avg_loss: float = 0.0              # currency, negative
    calmar_ratio: float = 0.0
    realized_pnl: float = 0.0
    monthly_returns: List[Dict[str, Any]] = field(default_factory=list)
    risk_metrics: List[Dict[str, Any]] = field(default_factory=list)
    asset_performance: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _monthly_returns(history: Sequence[HistoryPoint]) -> pd.DataFrame:
    """First/last value per calendar month and the month's return in percent.

    The first month is measured against its own opening snapshot; every
    later month against the previous month's closing value.
    """
    if not history:
        return pd.DataFrame(columns=["month", "start", "end", "return"])
    df = pd.DataFrame({
        "ts": [parse_timestamp(h.recorded_at) for h in history],
        "value": [float(h.total_value) for h in history],
    }).sort_values("ts", kind="stable")
    df["month"] = df["ts"].map(lambda ts: ts.strftime("%Y-%m"))
    months = df.groupby("month", sort=True)["value"].agg(start="first", end="last").reset_index()

    prev_end = months["end"].shift(1)
    base = prev_end.fillna(months["start"])
    months["return"] = [
        (end - b) / b * 100 if b > 0 else 0.0
        for end, b in zip(months["end"], base)
    ]
    return months


def _realized_pnl(transactions: Sequence[Transaction]) -> List[float]:
    """Realized P&L of each SELL against the running average cost of the symbol."""
    ordered = sorted(transactions, key=lambda t: parse_timestamp(t.transaction_date)
                     or datetime.min.replace(tzinfo=timezone.utc))
    qty: Dict[str, float] = defaultdict(float)
    cost: Dict[str, float] = defaultdict(float)
    realized: List[float] = []
    for t in ordered:
        side = t.transaction_type.upper()
        if side == "BUY":
            qty[t.symbol] += t.quantity
            cost[t.symbol] += t.quantity * t.price_per_unit + (t.fee or 0.0)
        elif side == "SELL":
            held = qty[t.symbol]
            if held <= 0:
                continue
            sold = min(t.quantity, held)
            avg_cost = cost[t.symbol] / held
            proceeds = t.total_amount or t.quantity * t.price_per_unit
            proceeds *= sold / t.quantity if t.quantity else 0.0
            realized.append(proceeds - sold * avg_cost - (t.fee or 0.0))
            qty[t.symbol] = held - sold
            cost[t.symbol] -= sold * avg_cost
    return realized


def calculate_portfolio_analytics(
    holdings: Sequence[Holding],
    transactions: Sequence[Transaction] = (),
    history: Sequence[HistoryPoint] = (),
    now: Optional[datetime] = None,
) -> PortfolioAnalytics:
    now = parse_timestamp(now) if now else datetime.now(timezone.utc)
    history = sorted(history, key=lambda h: parse_timestamp(h.recorded_at)
                     or datetime.min.replace(tzinfo=timezone.utc))

    total_value = sum(h.value for h in holdings)
    total_cost = sum(h.total_cost for h in holdings)
    total_pl = total_value - total_cost
    total_pl_pct = total_pl / total_cost * 100 if total_cost > 0 else 0.0

    # ── CAGR since the oldest transaction (at least 0.1 years) ──
    dates = [parse_timestamp(t.transaction_date) for t in transactions if t.transaction_date]
    oldest = min(dates) if dates else now
    years_held = max(0.1, (now - oldest).total_seconds() / (365 * 24 * 3600))
    cagr = (math.pow(total_value / total_cost, 1 / years_held) - 1) * 100 if total_cost > 0 else 0.0

    # ── Monthly returns & volatility ──
    months = _monthly_returns(history)
    returns = [float(r) for r in months["return"]]
    monthly = [
        {
            "month": m,
            "label": datetime.strptime(m, "%Y-%m").strftime("%b"),
            "return": round(r, 1),
        }
        for m, r in zip(months["month"], returns)
    ]
    if not monthly:
        monthly.append({"month": now.strftime("%Y-%m"), "label": now.strftime("%b"),
                        "return": round(total_pl_pct, 1)})

    volatility = float(pd.Series(returns).std(ddof=0)) * math.sqrt(12) if returns else 0.0

    # ── Realized trades ──
    realized = _realized_pnl(transactions)
    wins = [p for p in realized if p > 0]
    losses = [p for p in realized if p < 0]
    win_rate = len(wins) / len(realized) * 100 if realized else 50.0
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(losses) / len(losses) if losses else 0.0
    profit_factor = avg_win / abs(avg_loss) if avg_loss else 1.0

    # ── Drawdown over the value history ──
    peak = max_dd = 0.0
    for h in history:
        value = float(h.total_value)
        peak = max(peak, value)
        dd = (value - peak) / peak * 100 if peak > 0 else 0.0
        max_dd = min(max_dd, dd)

    excess = cagr - RISK_FREE_RATE_PCT
    sharpe = excess / volatility if volatility > 0 else 0.0

    negative = [r for r in returns if r < 0]
    downside_var = sum(r * r for r in negative) / len(negative) if negative else 1.0
    downside_dev = math.sqrt(downside_var) * math.sqrt(12)
    sortino = excess / downside_dev if downside_dev > 0 else 0.0

    calmar = cagr / abs(max_dd) if max_dd else 0.0

    beta = clamp(volatility / 20, 0.5, 2.0) if volatility > 0 else 1.0
    alpha = cagr - (RISK_FREE_RATE_PCT + beta * (MARKET_RETURN_PCT - RISK_FREE_RATE_PCT))

    radar = [
        {"metric": "Volatility", "value": clamp(100 - volatility * 2, 0, 100)},
        {"metric": "Sharpe", "value": clamp(sharpe * 30 + 50, 0, 100)},
        {"metric": "Sortino", "value": clamp(sortino * 25 + 50, 0, 100)},
        {"metric": "Beta", "value": clamp((2 - beta) * 50, 0, 100)},
        {"metric": "Alpha", "value": clamp(alpha * 5 + 50, 0, 100)},
        {"metric": "Diversification", "value": min(100, len(holdings) * 15)},
    ]

    assets = []
    for h in holdings:
        value = h.value
        pl_pct = (value - h.total_cost) / h.total_cost * 100 if h.total_cost > 0 else 0.0
        weight = value / total_value * 100 if total_value > 0 else 0.0
        assets.append({
            "symbol": h.symbol,
            "name": h.name,
            "return": pl_pct,
            "value": value,
            "weight": weight,
            "contribution": pl_pct * weight / 100,
        })
    assets.sort(key=lambda a: a["contribution"], reverse=True)

    return PortfolioAnalytics(
        total_value=total_value,
        total_cost_basis=total_cost,
        total_profit_loss=total_pl,
        total_profit_loss_percent=total_pl_pct,
        cagr=cagr,
        sharpe_ratio=round(sharpe, 2),
        sortino_ratio=round(sortino, 2),
        max_drawdown=round(max_dd, 1),
        volatility=round(volatility, 1),
        beta=round(beta, 2),
        alpha=round(alpha, 1),
        win_rate=round(win_rate, 1),
        profit_factor=round(profit_factor, 2),
        avg_win=round(avg_win, 2),
        avg_loss=round(avg_loss, 2),
        calmar_ratio=round(calmar, 2),
        realized_pnl=round(sum(realized), 2),
        monthly_returns=monthly,
        risk_metrics=radar,
        asset_performance=assets,
    )
