"""
Advanced risk metrics over a sequence of trades.

Each trade's P&L is turned into a return on a fixed capital base, so the
ratios below are per-trade figures annualised with a trading-day factor.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Sequence

import numpy as np

from tradejournal.journal.journal_models import TradeEntry
from tradejournal.utils.exceptions import InvalidInputError
from tradejournal.utils.numeric import round_half_up


@dataclass
class AdvancedRiskMetrics:
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0
    value_at_risk_95: float = 0.0     # currency, historical simulation
    value_at_risk_99: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    current_drawdown: float = 0.0
    current_drawdown_percent: float = 0.0
    avg_drawdown_duration: float = 0.0  # in trades
    max_drawdown_duration: int = 0
    recovery_factor: float = 0.0
    win_streak_max: int = 0
    loss_streak_max: int = 0
    expectancy: float = 0.0
    kelly_percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def calculate_advanced_risk_metrics(
    trades: Sequence[TradeEntry],
    initial_capital: float = 10000.0,
    risk_free_rate: float = 0.0,
    trading_days: int = 252,
) -> AdvancedRiskMetrics:
    """Compute Sharpe, Sortino, Calmar, VaR, drawdown, streak and Kelly figures.

    Args:
        trades: journaled trades, any order
        initial_capital: capital base for returns and the equity curve
        risk_free_rate: annual risk-free rate as a decimal
        trading_days: annualisation factor
    """
    if initial_capital <= 0:
        raise InvalidInputError("initial_capital must be positive")
    if not trades:
        return AdvancedRiskMetrics()

    ordered = sorted(trades, key=lambda t: t.trade_datetime)
    pnls = np.array([t.net_pnl for t in ordered], dtype=float)
    returns = pnls / initial_capital
    equity = np.concatenate(([initial_capital], initial_capital + np.cumsum(pnls)))
    n = len(returns)

    # ── Return distribution ───
    mean_ret = float(np.mean(returns))
    std = float(np.std(returns))
    sharpe = (mean_ret - risk_free_rate / trading_days) / std * np.sqrt(trading_days) if std > 0 else 0.0

    downside = returns[returns < 0]
    downside_dev = float(np.sqrt(np.sum(downside ** 2) / n)) if len(downside) else 0.0
    sortino = mean_ret / downside_dev * np.sqrt(trading_days) if downside_dev > 0 else 0.0

    # ── Drawdown (durations counted in trades) ───
    peak = float(equity[0])
    max_dd = max_dd_pct = 0.0
    dd_start = 0
    in_dd = False
    durations: list[int] = []
    for i in range(1, len(equity)):
        value = float(equity[i])
        if value > peak:
            peak = value
            if in_dd:
                durations.append(i - dd_start)
                in_dd = False
        else:
            if not in_dd:
                dd_start = i
                in_dd = True
            dd = peak - value
            if dd > max_dd:
                max_dd = dd
                max_dd_pct = dd / peak * 100
    if in_dd:
        durations.append(len(equity) - 1 - dd_start)

    current_equity = float(equity[-1])
    current_dd = max(0.0, peak - current_equity)
    current_dd_pct = current_dd / peak * 100 if peak > 0 else 0.0

    total_return = (current_equity - initial_capital) / initial_capital
    annualized = total_return * (trading_days / n)
    calmar = annualized * 100 / max_dd_pct if max_dd_pct > 0 else 0.0

    # ── Historical VaR ───
    sorted_returns = np.sort(returns)
    var95 = abs(float(sorted_returns[int(np.floor(n * 0.05))])) * initial_capital
    var99 = abs(float(sorted_returns[int(np.floor(n * 0.01))])) * initial_capital

    net_profit = current_equity - initial_capital
    recovery = net_profit / max_dd if max_dd > 0 else 0.0

    # ── Streaks by P&L sign; flat trades are skipped ───
    cur_w = cur_l = max_w = max_l = 0
    for p in pnls:
        if p > 0:
            cur_w += 1
            cur_l = 0
            max_w = max(max_w, cur_w)
        elif p < 0:
            cur_l += 1
            cur_w = 0
            max_l = max(max_l, cur_l)

    # ── Expectancy & Kelly ───
    wins = pnls[pnls > 0]
    losses = pnls[pnls < 0]
    win_rate = len(wins) / n
    avg_win = float(np.mean(wins)) if len(wins) else 0.0
    avg_loss = abs(float(np.mean(losses))) if len(losses) else 0.0
    expectancy = win_rate * avg_win - (1 - win_rate) * avg_loss
    if avg_loss > 0 and avg_win > 0:
        kelly = max(0.0, (win_rate - (1 - win_rate) / (avg_win / avg_loss)) * 100)
    else:
        kelly = 0.0

    return AdvancedRiskMetrics(
        sharpe_ratio=round_half_up(float(sharpe), 2),
        sortino_ratio=round_half_up(float(sortino), 2),
        calmar_ratio=round_half_up(calmar, 2),
        value_at_risk_95=round_half_up(var95, 2),
        value_at_risk_99=round_half_up(var99, 2),
        max_drawdown=round_half_up(max_dd, 2),
        max_drawdown_percent=round_half_up(min(max_dd_pct, 100.0), 2),
        current_drawdown=round_half_up(current_dd, 2),
        current_drawdown_percent=round_half_up(current_dd_pct, 2),
        avg_drawdown_duration=round_half_up(sum(durations) / len(durations), 1) if durations else 0.0,
        max_drawdown_duration=max(durations) if durations else 0,
        recovery_factor=round_half_up(recovery, 2),
        win_streak_max=max_w,
        loss_streak_max=max_l,
        expectancy=round_half_up(expectancy, 2),
        kelly_percent=round_half_up(kelly, 1),
    )
