"""
Shared fixtures and synthetic trade generators.

`make_trade` builds a closed TradeEntry with sensible defaults; every
field can be overridden. `generate_trade_history` produces a seeded,
reproducible journal of mixed wins and losses across pairs and sessions.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import numpy as np
import pytest

from tradejournal.journal.journal_models import TradeEntry, TradingStrategy
from tradejournal.journal.journal_store import JournalStore


# ─────────────────────────────────────────────────────────
# Trade factories
# ─────────────────────────────────────────────────────────

def make_trade(pnl: float = 100.0, **overrides: Any) -> TradeEntry:
    """Closed trade whose result follows the sign of `pnl`."""
    result = "win" if pnl > 0 else "loss" if pnl < 0 else "breakeven"
    fields: dict[str, Any] = dict(
        pair="BTC/USDT",
        direction="LONG",
        status="closed",
        entry_price=100.0,
        exit_price=110.0,
        stop_loss=95.0,
        quantity=1.0,
        pnl=pnl,
        result=result,
        trade_date="2024-01-15T10:00:00+00:00",
    )
    fields.update(overrides)
    return TradeEntry(**fields)


def generate_trade_history(
    n: int = 40,
    win_prob: float = 0.55,
    seed: int = 7,
    start: datetime | None = None,
    pairs: tuple[str, ...] = ("BTC/USDT", "ETH/USDT", "SOL/USDT"),
) -> list[TradeEntry]:
    """Seeded journal: one trade every ~9 hours, wins 50-300, losses 40-200."""
    rng = np.random.default_rng(seed)
    start = start or datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
    sessions = ("sydney", "tokyo", "london", "new_york")

    trades = []
    for i in range(n):
        win = rng.random() < win_prob
        pnl = float(rng.uniform(50, 300)) if win else -float(rng.uniform(40, 200))
        trades.append(make_trade(
            pnl=round(pnl, 2),
            pair=pairs[i % len(pairs)],
            session=sessions[i % len(sessions)],
            trade_date=(start + timedelta(hours=9 * i)).isoformat(),
            fees=1.5,
        ))
    return trades


# ─────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────

@pytest.fixture
def store(tmp_path):
    s = JournalStore(str(tmp_path / "journal.db"))
    yield s
    s.close()


@pytest.fixture
def strategy():
    return TradingStrategy(name="Breakout", description="Range breakout", tags=["momentum"])


@pytest.fixture
def trade_history():
    return generate_trade_history()


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient
    from tradejournal.api import webapp

    webapp.set_journal_store(store)
    with TestClient(webapp.app) as c:
        yield c
    webapp.set_journal_store(None)
