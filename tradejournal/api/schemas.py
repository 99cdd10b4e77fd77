"""Request bodies for the HTTP API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tradejournal.journal.journal_models import TradeDirection, TradeSource, TradeStatus


class TradeCreate(BaseModel):
    id: Optional[str] = None
    pair: str = Field(min_length=1)
    direction: TradeDirection = TradeDirection.LONG
    source: TradeSource = TradeSource.MANUAL
    status: TradeStatus = TradeStatus.CLOSED
    entry_price: float = Field(default=0.0, ge=0)
    exit_price: Optional[float] = Field(default=None, ge=0)
    stop_loss: Optional[float] = Field(default=None, ge=0)
    take_profit: Optional[float] = Field(default=None, ge=0)
    quantity: float = Field(default=0.0, ge=0)
    pnl: Optional[float] = None
    realized_pnl: Optional[float] = None
    fees: Optional[float] = None
    result: Optional[str] = Field(default=None, pattern="^(win|loss|breakeven)$")
    trade_date: Optional[str] = None
    entry_datetime: Optional[str] = None
    session: Optional[str] = None
    confluence_score: Optional[float] = None
    market_condition: Optional[str] = None
    entry_signal: Optional[str] = None
    market_context: Dict[str, Any] = Field(default_factory=dict)
    strategy_ids: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    screenshots: List[Dict[str, Any]] = Field(default_factory=list)


class StrategyCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    color: str = ""
    is_active: bool = True


class RegimeRequest(BaseModel):
    technical_score: float = Field(ge=0, le=100)
    on_chain_score: float = Field(ge=0, le=100)
    macro_score: float = Field(ge=0, le=100)
    fear_greed_value: float = Field(ge=0, le=100)
    overall_sentiment: str = "neutral"
    macro_sentiment: str = "cautious"
    volatility_level: Optional[str] = None
    momentum_24h: Optional[float] = None
    event_risk_level: Optional[str] = None
    position_size_adjustment: Optional[float] = None


class FireRequest(BaseModel):
    current_age: int = Field(ge=0, le=120)
    target_retirement_age: int = Field(ge=0, le=120)
    current_savings: float = Field(default=0.0, ge=0)
    monthly_expenses: float
    monthly_income: float
    expected_annual_return: float = Field(default=7.0, gt=-100)
    inflation_rate: float = Field(default=3.0, gt=-100)
    safe_withdrawal_rate: float = 4.0
    custom_fire_number: Optional[float] = None
    currency: str = "USD"


class DebtItem(BaseModel):
    name: str
    debt_type: str = "other"
    original_balance: float = Field(default=0.0, ge=0)
    current_balance: float = Field(default=0.0, ge=0)
    interest_rate: float = Field(default=0.0, ge=0)
    minimum_payment: float = Field(default=0.0, ge=0)
    monthly_payment: float = Field(default=0.0, ge=0)
    due_date: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: bool = True


class DebtPlanRequest(BaseModel):
    debts: List[DebtItem] = Field(default_factory=list)
    strategy: str = "avalanche"


class EmergencyFundRequest(BaseModel):
    current_balance: float = Field(default=0.0, ge=0)
    monthly_expenses: float = Field(ge=0)
    target_months: int = Field(default=6, gt=0)
    monthly_contribution: float = Field(default=0.0, ge=0)


class ContextRiskRequest(BaseModel):
    symbol: str = "BTCUSDT"
    base_risk: Optional[float] = Field(default=None, ge=0)
    volatility_level: Optional[str] = Field(default=None, pattern="^(low|medium|high|extreme)$")
    atr_percent: Optional[float] = None
    has_high_impact_event: bool = False
    market_bias: Optional[str] = None
    fear_greed: float = Field(default=50, ge=0, le=100)
    market_score: float = Field(default=50, ge=0, le=100)


class PreflightRequest(BaseModel):
    new_pair: Optional[str] = None
    daily_loss_percent: Optional[float] = Field(default=None, ge=0)


class GateSnapshotRequest(BaseModel):
    starting_balance: float = Field(gt=0)


class GatePnlRequest(BaseModel):
    pnl_change: float
