"""
Trading Gate — daily loss limit enforcement.

    loss limit     = starting balance × max daily loss %
    loss used %    = |P&L| / loss limit (losing days only, capped at 100)
    status         = ok  <70%  ≤ warning <100% ≤ disabled

A day's snapshot may also switch trading off explicitly; that always
wins over the computed status.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from tradejournal.journal.journal_models import DailyRiskSnapshot
from tradejournal.journal.journal_store import JournalStore
from tradejournal.utils.config import Settings, get_settings
from tradejournal.utils.exceptions import InvalidInputError, NotFoundError, TradingDisabledError
from tradejournal.utils.logger import get_logger

logger = get_logger(__name__)

WARNING_PERCENT = 70.0
DISABLED_PERCENT = 100.0


@dataclass
class TradingGateState:
    can_trade: bool
    reason: Optional[str]
    status: str                      # ok / warning / disabled
    loss_used_percent: float
    remaining_budget: float
    daily_loss_limit: float
    current_pnl: float
    starting_balance: float
    source: str = "local"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def loss_used_percent(current_pnl: float, daily_loss_limit: float) -> float:
    if current_pnl >= 0 or daily_loss_limit <= 0:
        return 0.0
    return min(abs(current_pnl) / daily_loss_limit * 100, 100.0)


def evaluate_trading_gate(
    starting_balance: float,
    current_pnl: float,
    max_daily_loss_percent: float,
    trading_allowed: bool = True,
    source: str = "local",
    warning_percent: float = WARNING_PERCENT,
    disabled_percent: float = DISABLED_PERCENT,
) -> TradingGateState:
    if starting_balance <= 0:
        raise InvalidInputError(f"starting_balance must be positive, got {starting_balance}")

    limit = starting_balance * max_daily_loss_percent / 100
    used = loss_used_percent(current_pnl, limit)
    remaining = max(0.0, limit - abs(min(current_pnl, 0.0)))

    status, can_trade, reason = "ok", True, None
    if used >= disabled_percent:
        status, can_trade = "disabled", False
        reason = "Daily loss limit reached. Trading disabled for today."
    elif used >= warning_percent:
        status = "warning"
        reason = f"Warning: {used:.0f}% of daily loss limit used."

    if not trading_allowed:
        status, can_trade = "disabled", False
        reason = "Trading has been disabled for today."

    return TradingGateState(
        can_trade=can_trade,
        reason=reason,
        status=status,
        loss_used_percent=used,
        remaining_budget=remaining,
        daily_loss_limit=limit,
        current_pnl=current_pnl,
        starting_balance=starting_balance,
        source=source,
    )


def _today() -> date:
    return datetime.now(timezone.utc).date()


class TradingGate:
    """Daily snapshot lifecycle on top of the journal store.

    Usage:
        gate = TradingGate(store)
        gate.initialize_snapshot(25_000)
        gate.update_pnl(-300)
        gate.assert_can_trade()
    """

    def __init__(self, store: JournalStore, settings: Optional[Settings] = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    def _max_daily_loss(self) -> float:
        # an unset (zero) profile limit means the configured default
        percent = self._store.get_risk_profile().max_daily_loss_percent
        return percent or self._settings.max_daily_loss_percent

    def initialize_snapshot(self, starting_balance: float, today: Optional[date] = None) -> DailyRiskSnapshot:
        if starting_balance <= 0:
            raise InvalidInputError(f"starting_balance must be positive, got {starting_balance}")
        snapshot = DailyRiskSnapshot(
            snapshot_date=(today or _today()).isoformat(),
            starting_balance=starting_balance,
        )
        self._store.save_daily_snapshot(snapshot)
        logger.info("gate_snapshot_initialized", date=snapshot.snapshot_date,
                    starting_balance=starting_balance)
        return snapshot

    def update_pnl(self, pnl_change: float, today: Optional[date] = None) -> DailyRiskSnapshot:
        day = today or _today()
        snapshot = self._store.get_daily_snapshot(day)
        if snapshot is None:
            raise NotFoundError(f"No risk snapshot for {day.isoformat()}")

        snapshot.current_pnl = (snapshot.current_pnl or 0.0) + pnl_change
        limit = snapshot.starting_balance * self._max_daily_loss() / 100
        snapshot.loss_limit_used_percent = loss_used_percent(snapshot.current_pnl, limit)
        snapshot.trading_allowed = snapshot.loss_limit_used_percent < self._settings.gate_disabled_percent
        self._store.save_daily_snapshot(snapshot)

        if not snapshot.trading_allowed:
            logger.warning("gate_trading_disabled", date=snapshot.snapshot_date,
                           pnl=snapshot.current_pnl, loss_used=snapshot.loss_limit_used_percent)
        else:
            logger.info("gate_pnl_updated", date=snapshot.snapshot_date,
                        pnl=snapshot.current_pnl, loss_used=snapshot.loss_limit_used_percent)
        return snapshot

    def get_state(self, today: Optional[date] = None) -> TradingGateState:
        snapshot = self._store.get_daily_snapshot(today or _today())
        starting = (snapshot.starting_balance if snapshot else 0) or self._settings.default_starting_balance
        pnl = (snapshot.current_pnl if snapshot else 0) or 0.0
        return evaluate_trading_gate(
            starting_balance=starting,
            current_pnl=pnl,
            max_daily_loss_percent=self._max_daily_loss(),
            trading_allowed=snapshot.trading_allowed if snapshot else True,
            warning_percent=self._settings.gate_warning_percent,
            disabled_percent=self._settings.gate_disabled_percent,
        )

    def assert_can_trade(self, today: Optional[date] = None) -> TradingGateState:
        state = self.get_state(today)
        if not state.can_trade:
            raise TradingDisabledError(state.reason or "Trading disabled")
        return state
