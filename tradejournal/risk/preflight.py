"""
Pre-Trade Validation — checklist shown before a new trade is journaled.

Checklist:
  1. Daily loss limit    loss as % of starting balance; fail at ≥ max,
                         warn at ≥ 70% of max
  2. Position limit      fail at ≥ max open, warn one below
  3. Correlation         fail on an existing position in the same pair,
                         warn at ≥ 2 open positions in the BTC / ETH group

Only checks 1 and 2 gate `can_proceed`; correlation is advisory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Sequence

from tradejournal.journal.journal_models import RiskProfile, TradeEntry, TradeStatus
from tradejournal.utils.logger import get_logger

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# Enums & Data Classes
# ─────────────────────────────────────────────────────────────

class CheckStatus(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


@dataclass
class CheckResult:
    """Result of a single pre-trade check."""
    name: str
    passed: bool
    status: CheckStatus
    current_value: float = 0.0
    max_value: float = 0.0
    message: str = ""

    @property
    def blocks_execution(self) -> bool:
        return self.status == CheckStatus.FAIL

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "status": self.status.value,
            "current_value": self.current_value,
            "max_value": self.max_value,
            "message": self.message,
        }


@dataclass
class PreTradeReport:
    """Aggregate report from all pre-trade checks."""
    daily_loss_check: CheckResult
    position_limit_check: CheckResult
    correlation_check: CheckResult
    can_proceed: bool
    overall_status: CheckStatus
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def checks(self) -> list[CheckResult]:
        return [self.daily_loss_check, self.position_limit_check, self.correlation_check]

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_proceed": self.can_proceed,
            "overall_status": self.overall_status.value,
            "timestamp": self.timestamp.isoformat(),
            "daily_loss_check": self.daily_loss_check.to_dict(),
            "position_limit_check": self.position_limit_check.to_dict(),
            "correlation_check": self.correlation_check.to_dict(),
        }


# ─────────────────────────────────────────────────────────────
# Correlation groups
# ─────────────────────────────────────────────────────────────

CORRELATION_GROUPS: dict[str, tuple[str, ...]] = {
    "BTC": ("BTC", "BTCUSDT", "BTCPERP"),
    "ETH": ("ETH", "ETHUSDT", "ETHPERP"),
}
MAX_CORRELATED = 2
DAILY_LOSS_WARNING_RATIO = 0.7


def _normalize_pair(pair: str) -> str:
    return pair.upper().replace("/", "")


def _groups_for(pair: str) -> list[str]:
    p = _normalize_pair(pair)
    return [g for g, members in CORRELATION_GROUPS.items() if any(m in p for m in members)]


# ─────────────────────────────────────────────────────────────
# PreTradeValidator
# ─────────────────────────────────────────────────────────────

class PreTradeValidator:
    """Risk-profile checks ahead of a new trade.

    Usage:
        validator = PreTradeValidator(store.get_risk_profile())
        report = validator.run_all_checks(daily_loss_pct, trades, "BTC/USDT")
        if not report.can_proceed:
            ...
    """

    def __init__(self, profile: Optional[RiskProfile] = None) -> None:
        self.profile = profile or RiskProfile()

    @staticmethod
    def open_positions(trades: Sequence[TradeEntry]) -> list[TradeEntry]:
        return [t for t in trades if t.status == TradeStatus.OPEN.value]

    def check_daily_loss_limit(self, daily_loss_percent: float) -> CheckResult:
        max_loss = self.profile.max_daily_loss_percent
        passed = daily_loss_percent < max_loss
        if not passed:
            status = CheckStatus.FAIL
        elif daily_loss_percent >= max_loss * DAILY_LOSS_WARNING_RATIO:
            status = CheckStatus.WARNING
        else:
            status = CheckStatus.PASS

        message = (
            f"Daily loss at {daily_loss_percent:.1f}% (limit: {max_loss:g}%)" if passed
            else f"Daily loss limit reached: {daily_loss_percent:.1f}% >= {max_loss:g}%"
        )
        return CheckResult("daily_loss_limit", passed, status, daily_loss_percent, max_loss, message)

    def check_position_limit(self, open_trades: Sequence[TradeEntry]) -> CheckResult:
        current = len(open_trades)
        max_positions = self.profile.max_concurrent_positions
        passed = current < max_positions
        if not passed:
            status = CheckStatus.FAIL
        elif current >= max_positions - 1:
            status = CheckStatus.WARNING
        else:
            status = CheckStatus.PASS

        message = (
            f"{current}/{max_positions} positions open" if passed
            else f"Max positions reached: {current}/{max_positions}"
        )
        return CheckResult("position_limit", passed, status, current, max_positions, message)

    def check_correlation(self, open_trades: Sequence[TradeEntry], new_pair: Optional[str]) -> CheckResult:
        if not new_pair:
            return CheckResult("correlation", True, CheckStatus.PASS, 0, 1,
                               "Select a pair to check correlation")

        existing = [_normalize_pair(t.pair) for t in open_trades]
        same_pair = _normalize_pair(new_pair) in existing

        groups = _groups_for(new_pair)
        correlated = sum(
            1 for pair in existing for g in groups
            if any(m in pair for m in CORRELATION_GROUPS[g])
        )

        passed = not same_pair and correlated < MAX_CORRELATED
        if same_pair:
            status, message = CheckStatus.FAIL, f"Already have position in {new_pair}"
        else:
            status = CheckStatus.WARNING if correlated >= MAX_CORRELATED else CheckStatus.PASS
            message = (f"{correlated} correlated positions detected" if correlated
                       else "No correlation issues")
        return CheckResult("correlation", passed, status, correlated, MAX_CORRELATED, message)

    def run_all_checks(
        self,
        daily_loss_percent: float,
        trades: Sequence[TradeEntry],
        new_pair: Optional[str] = None,
    ) -> PreTradeReport:
        """`trades` may hold any trades; only open ones count."""
        open_trades = self.open_positions(trades)
        daily = self.check_daily_loss_limit(daily_loss_percent)
        positions = self.check_position_limit(open_trades)
        correlation = self.check_correlation(open_trades, new_pair)

        can_proceed = daily.passed and positions.passed
        checks = (daily, positions, correlation)
        if not can_proceed or any(c.status == CheckStatus.FAIL for c in checks):
            overall = CheckStatus.FAIL
        elif any(c.status == CheckStatus.WARNING for c in checks):
            overall = CheckStatus.WARNING
        else:
            overall = CheckStatus.PASS

        report = PreTradeReport(daily, positions, correlation, can_proceed, overall)
        logger.info("pretrade_checks_complete", pair=new_pair, can_proceed=can_proceed,
                    overall=overall.value, open_positions=len(open_trades))
        return report
