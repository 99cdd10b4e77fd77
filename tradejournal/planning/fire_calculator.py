"""
FIRE Calculator — financial independence / early retirement projections
========================================================================

  FIRE number      = annual expenses / safe withdrawal rate
  real return      = (1 + nominal) / (1 + inflation) - 1
  years to FIRE    = yearly compounding of savings + contributions
  required saving  = annuity payment that closes the gap by the target age

All rates on FireInputs are percentages (7 means 7%). Internally the
real return is a decimal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from tradejournal.utils.exceptions import InvalidInputError
from tradejournal.utils.logger import get_logger
from tradejournal.utils.numeric import finite_or_none, round_half_up

logger = get_logger(__name__)

MAX_YEARS = 100


@dataclass
class FireInputs:
    current_age: int
    target_retirement_age: int
    current_savings: float
    monthly_expenses: float
    monthly_income: float
    expected_annual_return: float = 7.0   # %
    inflation_rate: float = 3.0           # %
    safe_withdrawal_rate: float = 4.0     # %
    custom_fire_number: Optional[float] = None

    @property
    def annual_expenses(self) -> float:
        return self.monthly_expenses * 12

    @property
    def annual_contribution(self) -> float:
        return (self.monthly_income - self.monthly_expenses) * 12

    def fire_number(self) -> float:
        if self.custom_fire_number and self.custom_fire_number > 0:
            return self.custom_fire_number
        return calculate_fire_number(self.annual_expenses, self.safe_withdrawal_rate / 100)


@dataclass
class ProjectionPoint:
    age: int
    year: int
    savings: float
    fire_target: float
    is_fire_reached: bool


@dataclass
class FireScenario:
    years_to_fire: float          # inf when unreachable
    fire_age: float
    fire_number: float
    required_monthly_saving: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["years_to_fire"] = finite_or_none(self.years_to_fire)
        d["fire_age"] = finite_or_none(self.fire_age)
        return d


@dataclass
class FireOutputs:
    fire_number: float
    years_to_fire: float
    fire_age: float
    required_monthly_saving: float
    current_progress: float       # %, capped at 100
    monthly_passive_income: float
    savings_rate: float           # % of income
    projection: List[ProjectionPoint] = field(default_factory=list)
    scenarios: Dict[str, FireScenario] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fire_number": self.fire_number,
            "years_to_fire": finite_or_none(self.years_to_fire),
            "fire_age": finite_or_none(self.fire_age),
            "required_monthly_saving": self.required_monthly_saving,
            "current_progress": self.current_progress,
            "monthly_passive_income": self.monthly_passive_income,
            "savings_rate": self.savings_rate,
            "projection": [asdict(p) for p in self.projection],
            "scenarios": {k: s.to_dict() for k, s in self.scenarios.items()},
        }


def _round_years(years: float) -> float:
    return years if math.isinf(years) else round_half_up(years)


def calculate_fire_number(annual_expenses: float, swr: float) -> float:
    """`swr` is a decimal (0.04)."""
    if swr <= 0:
        return 0.0
    return annual_expenses / swr


def calculate_real_return(nominal_pct: float, inflation_pct: float) -> float:
    if inflation_pct <= -100:
        raise InvalidInputError(f"inflation_rate must be above -100%, got {inflation_pct}")
    return (1 + nominal_pct / 100) / (1 + inflation_pct / 100) - 1


def calculate_years_to_fire(current_savings: float, annual_contribution: float,
                            fire_number: float, real_return: float) -> float:
    if current_savings >= fire_number:
        return 0.0
    if real_return <= 0:
        if annual_contribution <= 0:
            return math.inf
        return (fire_number - current_savings) / annual_contribution

    years = 0
    portfolio = current_savings
    while portfolio < fire_number and years < MAX_YEARS:
        portfolio = portfolio * (1 + real_return) + annual_contribution
        years += 1
    return float(years)


def calculate_required_monthly_saving(current_savings: float, fire_number: float,
                                      years: float, real_return: float) -> float:
    if years <= 0 or current_savings >= fire_number:
        return 0.0
    remaining = fire_number - current_savings * math.pow(1 + real_return, years)
    if remaining <= 0:
        return 0.0
    if real_return == 0:
        return remaining / (years * 12)
    annual = remaining * real_return / (math.pow(1 + real_return, years) - 1)
    return max(0.0, annual / 12)


def generate_projection(inputs: FireInputs, years: int = 50,
                        current_year: Optional[int] = None) -> List[ProjectionPoint]:
    """Year-by-year portfolio path; stops once the portfolio passes 3x the target."""
    fire_number = inputs.fire_number()
    real_return = calculate_real_return(inputs.expected_annual_return, inputs.inflation_rate)
    contribution = inputs.annual_contribution
    current_year = current_year or datetime.now().year

    points = []
    portfolio = inputs.current_savings
    for i in range(years + 1):
        points.append(ProjectionPoint(
            age=inputs.current_age + i,
            year=current_year + i,
            savings=round_half_up(portfolio),
            fire_target=round_half_up(fire_number),
            is_fire_reached=portfolio >= fire_number,
        ))
        portfolio = portfolio * (1 + real_return) + contribution
        if portfolio > fire_number * 3:
            break
    return points


def _scenario(inputs: FireInputs, return_adj: float, inflation_adj: float) -> FireScenario:
    fire_number = inputs.fire_number()
    real_return = calculate_real_return(inputs.expected_annual_return + return_adj,
                                        inputs.inflation_rate + inflation_adj)
    years = _round_years(calculate_years_to_fire(
        inputs.current_savings, inputs.annual_contribution, fire_number, real_return))
    horizon = max(0, inputs.target_retirement_age - inputs.current_age)
    required = calculate_required_monthly_saving(inputs.current_savings, fire_number, horizon, real_return)
    return FireScenario(
        years_to_fire=years,
        fire_age=inputs.current_age + years,
        fire_number=fire_number,
        required_monthly_saving=round_half_up(required),
    )


def calculate_fire(inputs: FireInputs, current_year: Optional[int] = None) -> FireOutputs:
    if inputs.monthly_income <= 0 or inputs.monthly_expenses <= 0 or inputs.safe_withdrawal_rate <= 0:
        raise InvalidInputError("income, expenses, and safe withdrawal rate must be positive")

    fire_number = inputs.fire_number()
    real_return = calculate_real_return(inputs.expected_annual_return, inputs.inflation_rate)
    years = _round_years(calculate_years_to_fire(
        inputs.current_savings, inputs.annual_contribution, fire_number, real_return))
    horizon = max(0, inputs.target_retirement_age - inputs.current_age)
    required = calculate_required_monthly_saving(inputs.current_savings, fire_number, horizon, real_return)

    monthly_savings = inputs.monthly_income - inputs.monthly_expenses

    outputs = FireOutputs(
        fire_number=round_half_up(fire_number),
        years_to_fire=years,
        fire_age=inputs.current_age + years,
        required_monthly_saving=round_half_up(required),
        current_progress=min(100.0, inputs.current_savings / fire_number * 100),
        monthly_passive_income=round_half_up(inputs.current_savings * inputs.safe_withdrawal_rate / 100 / 12),
        savings_rate=monthly_savings / inputs.monthly_income * 100,
        projection=generate_projection(inputs, current_year=current_year),
        scenarios={
            "pessimistic": _scenario(inputs, -2, 1),
            "realistic": _scenario(inputs, 0, 0),
            "optimistic": _scenario(inputs, 2, -0.5),
        },
    )
    logger.info("fire_calculated", fire_number=outputs.fire_number,
                years_to_fire=finite_or_none(years), progress=round(outputs.current_progress, 1))
    return outputs


def format_fire_currency(value: float, currency: str = "USD") -> str:
    """Compact display: $1.50M / $250K, Rp1.2T / Rp1.5M (billions) / Rp500jt."""
    if currency == "IDR":
        if value >= 1_000_000_000_000:
            return f"Rp{value / 1_000_000_000_000:.1f}T"
        if value >= 1_000_000_000:
            return f"Rp{value / 1_000_000_000:.1f}M"
        if value >= 1_000_000:
            return f"Rp{value / 1_000_000:.0f}jt"
        return f"Rp{value:,.0f}"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.0f}K"
    return f"${value:,.0f}"
