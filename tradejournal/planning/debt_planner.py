"""
Debt payoff planning and emergency fund tracking.

Avalanche pays the highest interest rate first (least total interest);
snowball pays the smallest balance first (fastest closed accounts).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence

from tradejournal.utils.exceptions import InvalidInputError
from tradejournal.utils.logger import get_logger

logger = get_logger(__name__)

STRATEGIES = ("avalanche", "snowball")
EMERGENCY_MILESTONES = (1, 3, 6, 12)


@dataclass
class Debt:
    name: str
    debt_type: str = "other"
    original_balance: float = 0.0
    current_balance: float = 0.0
    interest_rate: float = 0.0       # annual %
    minimum_payment: float = 0.0
    monthly_payment: float = 0.0
    due_date: Optional[int] = None   # day of month
    is_active: bool = True

    @property
    def paid(self) -> float:
        return self.original_balance - self.current_balance

    @property
    def progress(self) -> float:
        if self.original_balance <= 0:
            return 0.0
        return self.paid / self.original_balance * 100

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["paid"] = self.paid
        d["progress"] = self.progress
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Debt":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


def order_debts(debts: Sequence[Debt], strategy: str = "avalanche") -> List[Debt]:
    if strategy == "avalanche":
        return sorted(debts, key=lambda d: d.interest_rate, reverse=True)
    if strategy == "snowball":
        return sorted(debts, key=lambda d: d.current_balance)
    raise InvalidInputError(f"Unknown payoff strategy: {strategy}")


def plan_debt_payoff(debts: Sequence[Debt], strategy: str = "avalanche") -> Dict[str, Any]:
    active = [d for d in debts if d.is_active]
    ordered = order_debts(active, strategy)

    total_original = sum(d.original_balance for d in active)
    total_debt = sum(d.current_balance for d in active)
    total_paid = total_original - total_debt
    total_monthly = sum(d.monthly_payment for d in active)
    avg_rate = sum(d.interest_rate for d in active) / len(active) if active else 0.0

    projected_months = math.ceil(total_debt / total_monthly) if total_monthly > 0 else None

    logger.info("debt_plan_built", strategy=strategy, debts=len(active),
                total_debt=total_debt, projected_months=projected_months)
    return {
        "strategy": strategy,
        "total_original": total_original,
        "total_debt": total_debt,
        "total_paid": total_paid,
        "overall_progress": total_paid / total_original * 100 if total_original > 0 else 0.0,
        "total_monthly_payment": total_monthly,
        "average_interest_rate": avg_rate,
        "projected_payoff_months": projected_months,
        "debts": [d.to_dict() for d in ordered],
    }


def calculate_emergency_fund_progress(current_balance: float, monthly_expenses: float,
                                      target_months: int = 6,
                                      monthly_contribution: float = 0.0) -> Dict[str, Any]:
    """Progress toward `target_months` of expenses held in cash."""
    if monthly_expenses < 0 or target_months <= 0:
        raise InvalidInputError("monthly_expenses must be >= 0 and target_months > 0")

    target = monthly_expenses * target_months
    remaining = max(0.0, target - current_balance)
    progress = min(100.0, current_balance / target * 100) if target > 0 else 0.0
    months_covered = current_balance / monthly_expenses if monthly_expenses > 0 else 0.0

    if remaining <= 0:
        months_to_goal: Optional[int] = 0
    elif monthly_contribution > 0:
        months_to_goal = math.ceil(remaining / monthly_contribution)
    else:
        months_to_goal = None

    milestones = [
        {
            "months": m,
            "amount": monthly_expenses * m,
            "reached": current_balance >= monthly_expenses * m if monthly_expenses > 0 else False,
        }
        for m in EMERGENCY_MILESTONES
    ]

    return {
        "target_amount": target,
        "current_balance": current_balance,
        "remaining": remaining,
        "progress": progress,
        "months_covered": months_covered,
        "months_to_goal": months_to_goal,
        "goal_reached": remaining <= 0 and target > 0,
        "milestones": milestones,
    }
