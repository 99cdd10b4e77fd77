"""
Journal Data Models
===================

TradeEntry        — one journaled trade (manual, paper or exchange-synced)
TradingStrategy   — user-defined playbook, many-to-many with trades
RiskProfile       — per-account risk limits
DailyRiskSnapshot — the day's balance / loss-limit state

All models are dataclasses with to_dict()/from_dict() for SQLite JSON storage.
Timestamps are ISO-8601 strings; naive timestamps are read as UTC.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Union


# ── Enums ────────────────────────────────────────────────────

class TradeDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    UNKNOWN = "UNKNOWN"       # exchange-synced fills not yet enriched


class TradeResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TradeSource(str, Enum):
    MANUAL = "manual"
    BINANCE = "binance"
    PAPER = "paper"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """Parse an ISO string / date / datetime into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# STRATEGIES & TRADES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class TradingStrategy:
    """A named playbook a trade can be tagged with."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)
    color: str = ""
    is_active: bool = True
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "TradingStrategy":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class TradeEntry:
    """
    One journaled trade.

    `pnl` is the locally estimated P&L (price difference × size) while
    `realized_pnl` comes from the exchange; `net_pnl` resolves the two.
    """
    # ── Identity ──
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    pair: str = ""
    direction: str = TradeDirection.LONG.value
    source: str = TradeSource.MANUAL.value
    status: str = TradeStatus.CLOSED.value

    # ── Prices ──
    entry_price: float = 0.0
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    quantity: float = 0.0

    # ── Outcome ──
    pnl: Optional[float] = None
    realized_pnl: Optional[float] = None
    fees: Optional[float] = None
    result: Optional[str] = None      # TradeResult value

    # ── Timing ──
    trade_date: str = field(default_factory=_now_iso)
    entry_datetime: Optional[str] = None
    session: Optional[str] = None     # sydney / tokyo / london / new_york

    # ── Context ──
    confluence_score: Optional[float] = None
    market_condition: Optional[str] = None
    entry_signal: Optional[str] = None
    market_context: Dict[str, Any] = field(default_factory=dict)
    strategies: List[TradingStrategy] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    screenshots: List[Dict[str, Any]] = field(default_factory=list)

    created_at: str = field(default_factory=_now_iso)
    updated_at: str = ""

    @property
    def net_pnl(self) -> float:
        if self.realized_pnl is not None:
            return self.realized_pnl
        if self.pnl is not None:
            return self.pnl
        return 0.0

    @property
    def trade_datetime(self) -> datetime:
        return parse_timestamp(self.trade_date)

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED.value

    @property
    def strategy_ids(self) -> List[str]:
        return [s.id for s in self.strategies]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "TradeEntry":
        valid = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        strategies = valid.get("strategies") or []
        valid["strategies"] = [
            s if isinstance(s, TradingStrategy) else TradingStrategy.from_dict(s)
            for s in strategies
        ]
        for key in ("tags", "screenshots"):
            if valid.get(key) is None:
                valid[key] = []
        if valid.get("market_context") is None:
            valid["market_context"] = {}
        return cls(**valid)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RISK STATE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass
class RiskProfile:
    """Account-level risk limits, all percentages of balance."""
    risk_per_trade_percent: float = 2.0
    max_daily_loss_percent: float = 5.0
    max_position_size_percent: float = 40.0
    max_concurrent_positions: int = 3

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "RiskProfile":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})


@dataclass
class DailyRiskSnapshot:
    """Balance and loss-limit state for one trading day."""
    snapshot_date: str = ""           # YYYY-MM-DD
    starting_balance: float = 0.0
    current_pnl: float = 0.0
    loss_limit_used_percent: float = 0.0
    positions_open: int = 0
    capital_deployed_percent: float = 0.0
    trading_allowed: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "DailyRiskSnapshot":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})
