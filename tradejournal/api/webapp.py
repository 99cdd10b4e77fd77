from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from tradejournal import __version__
from tradejournal.analytics.risk_metrics import calculate_advanced_risk_metrics
from tradejournal.analytics.sessions import (
    get_active_overlaps, get_all_sessions_with_local_times,
    get_current_session, get_session_for_time,
)
from tradejournal.analytics.trading_calculations import (
    calculate_strategy_performance, calculate_trading_stats, generate_equity_curve,
)
from tradejournal.api.schemas import (
    ContextRiskRequest, DebtPlanRequest, EmergencyFundRequest, FireRequest,
    GatePnlRequest, GateSnapshotRequest, PreflightRequest, RegimeRequest,
    StrategyCreate, TradeCreate,
)
from tradejournal.journal.journal_analytics import MAX_TRADES, JournalAnalytics
from tradejournal.journal.journal_models import TradeEntry, TradeStatus, TradingStrategy
from tradejournal.journal.journal_store import JournalStore
from tradejournal.journal.trade_utils import get_trade_result
from tradejournal.market.market_scoring import (
    MarketContextInput, build_market_context, determine_volatility_level,
)
from tradejournal.market.regime_engine import RegimeEngine, RegimeInput
from tradejournal.planning.debt_planner import (
    Debt, calculate_emergency_fund_progress, plan_debt_payoff,
)
from tradejournal.planning.fire_calculator import FireInputs, calculate_fire, format_fire_currency
from tradejournal.risk.context_risk import calculate_context_aware_risk
from tradejournal.risk.preflight import PreTradeValidator
from tradejournal.risk.trading_gate import TradingGate
from tradejournal.utils.config import get_settings
from tradejournal.utils.exceptions import InvalidInputError, NotFoundError, TradeJournalError
from tradejournal.utils.logger import get_logger
from tradejournal.utils.numeric import json_safe

logger = get_logger(__name__)

app = FastAPI(title="Trade Journal Analytics", version=__version__)

_store: Optional[JournalStore] = None
_regime_engine = RegimeEngine()


def get_store() -> JournalStore:
    global _store
    if _store is None:
        _store = JournalStore(get_settings().journal_db_path)
    return _store


def set_journal_store(store: Optional[JournalStore]) -> None:
    """Swap the backing store (tests, alternate databases)."""
    global _store
    _store = store


@app.exception_handler(TradeJournalError)
async def journal_error_handler(request: Request, exc: TradeJournalError) -> JSONResponse:
    logger.warning("request_failed", path=request.url.path,
                   category=exc.category.value, error=exc.message)
    return JSONResponse({"error": exc.message, "category": exc.category.value},
                        status_code=exc.status_code or 500)


@app.get("/api/health")
async def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "version": __version__,
        "time": datetime.now(timezone.utc).isoformat(),
        "journal": get_store().get_stats(),
    }


# ─── Trades ────────────────────────────────────────────────────

@app.post("/api/trades")
async def create_trade(body: TradeCreate) -> dict[str, Any]:
    store = get_store()
    strategies = []
    for sid in body.strategy_ids:
        strategy = store.get_strategy(sid)
        if strategy is None:
            raise NotFoundError(f"Strategy not found: {sid}")
        strategies.append(strategy)

    data = body.model_dump(mode="json", exclude={"strategy_ids"}, exclude_none=True)
    entry = TradeEntry.from_dict(data)
    entry.strategies = strategies
    try:
        entry.trade_datetime
    except ValueError:
        raise InvalidInputError(f"Unparseable trade_date: {entry.trade_date}")
    if not entry.session:
        entry.session = get_session_for_time(entry.trade_datetime)
    if entry.is_closed and not entry.result and (entry.pnl is not None or entry.realized_pnl is not None):
        entry.result = get_trade_result(entry.net_pnl)

    trade_id = store.record_trade(entry)
    logger.info("trade_recorded", trade_id=trade_id, pair=entry.pair, pnl=entry.net_pnl)
    return {"trade_id": trade_id, "status": "created", "trade": entry.to_dict()}


@app.get("/api/trades")
async def list_trades(request: Request) -> dict[str, Any]:
    p = request.query_params
    filters = dict(
        pair=p.get("pair", ""), direction=p.get("direction", ""),
        status=p.get("status", ""), result=p.get("result", ""),
        source=p.get("source", ""), session=p.get("session", ""),
        strategy_id=p.get("strategy_id", ""),
        from_date=p.get("from_date") or None, to_date=p.get("to_date") or None,
    )
    try:
        limit = int(p.get("limit", 100))
        offset = int(p.get("offset", 0))
    except ValueError:
        raise HTTPException(400, "limit and offset must be integers")

    store = get_store()
    trades = store.query_trades(**filters, limit=limit, offset=offset,
                                order_by=p.get("order_by", "trade_date DESC"))
    return json_safe({
        "trades": [t.to_dict() for t in trades],
        "total": store.count_trades(**filters),
    })


@app.get("/api/trades/{trade_id}")
async def get_trade(trade_id: str) -> dict[str, Any]:
    trade = get_store().get_trade(trade_id)
    if trade is None:
        raise NotFoundError(f"Trade not found: {trade_id}")
    return json_safe(trade.to_dict())


@app.delete("/api/trades/{trade_id}")
async def delete_trade(trade_id: str) -> dict[str, Any]:
    if not get_store().delete_trade(trade_id):
        raise NotFoundError(f"Trade not found: {trade_id}")
    logger.info("trade_deleted", trade_id=trade_id)
    return {"deleted": True, "trade_id": trade_id}


# ─── Strategies ────────────────────────────────────────────────

@app.post("/api/strategies")
async def create_strategy(body: StrategyCreate) -> dict[str, Any]:
    strategy = TradingStrategy(**body.model_dump())
    get_store().record_strategy(strategy)
    return {"strategy_id": strategy.id, "status": "created", "strategy": strategy.to_dict()}


@app.get("/api/strategies")
async def list_strategies(active_only: bool = False) -> list[dict[str, Any]]:
    return [s.to_dict() for s in get_store().get_strategies(active_only=active_only)]


# ─── Analytics ─────────────────────────────────────────────────

def _analytics_filters(request: Request) -> dict[str, Any]:
    p = request.query_params
    try:
        days = int(p.get("days", 0))
    except ValueError:
        raise HTTPException(400, "days must be an integer")
    return dict(pair=p.get("pair", ""), source=p.get("source", ""),
                strategy_id=p.get("strategy_id", ""), days=days)


@app.get("/api/analytics")
async def full_analytics(request: Request) -> dict[str, Any]:
    return JournalAnalytics(get_store()).compute_full_analytics(**_analytics_filters(request))


@app.get("/api/analytics/stats")
async def analytics_stats(request: Request) -> dict[str, Any]:
    trades = JournalAnalytics(get_store()).closed_trades(**_analytics_filters(request))
    return json_safe(calculate_trading_stats(trades, get_settings().initial_capital).to_dict())


@app.get("/api/analytics/risk")
async def analytics_risk(request: Request) -> dict[str, Any]:
    s = get_settings()
    trades = JournalAnalytics(get_store()).closed_trades(**_analytics_filters(request))
    metrics = calculate_advanced_risk_metrics(trades, s.initial_capital, s.risk_free_rate,
                                              s.trading_days_per_year)
    return json_safe(metrics.to_dict())


@app.get("/api/analytics/equity-curve")
async def analytics_equity_curve(request: Request) -> dict[str, Any]:
    trades = JournalAnalytics(get_store()).closed_trades(**_analytics_filters(request))
    return {"points": generate_equity_curve(trades)}


@app.get("/api/analytics/strategies")
async def analytics_strategies(request: Request) -> list[dict[str, Any]]:
    store = get_store()
    trades = JournalAnalytics(store).closed_trades(**_analytics_filters(request))
    return json_safe([p.to_dict() for p in calculate_strategy_performance(trades, store.get_strategies())])


@app.get("/api/sessions")
async def sessions(utc_offset_hours: int = 0) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "current": get_current_session(now),
        "overlap": get_active_overlaps(now),
        "sessions": get_all_sessions_with_local_times(now, utc_offset_hours),
    }


# ─── Market ────────────────────────────────────────────────────

@app.post("/api/regime/classify")
async def classify_regime(body: RegimeRequest) -> dict[str, Any]:
    result = _regime_engine.classify(RegimeInput(**body.model_dump()))
    return result.to_dict()


@app.get("/api/regime/history")
async def regime_history() -> list[dict[str, Any]]:
    return _regime_engine.get_regime_history()


@app.post("/api/market/score")
async def market_score(body: MarketContextInput, symbol: str = "") -> dict[str, Any]:
    return build_market_context(body, symbol=symbol)


# ─── Planning ──────────────────────────────────────────────────

@app.post("/api/fire/calculate")
async def fire_calculate(body: FireRequest) -> dict[str, Any]:
    outputs = calculate_fire(FireInputs(**body.model_dump(exclude={"currency"})))
    result = outputs.to_dict()
    result["formatted"] = {
        "fire_number": format_fire_currency(outputs.fire_number, body.currency),
        "required_monthly_saving": format_fire_currency(outputs.required_monthly_saving, body.currency),
        "monthly_passive_income": format_fire_currency(outputs.monthly_passive_income, body.currency),
    }
    return result


@app.post("/api/planning/debts")
async def debt_plan(body: DebtPlanRequest) -> dict[str, Any]:
    debts = [Debt(**d.model_dump()) for d in body.debts]
    return plan_debt_payoff(debts, body.strategy)


@app.post("/api/planning/emergency-fund")
async def emergency_fund(body: EmergencyFundRequest) -> dict[str, Any]:
    return calculate_emergency_fund_progress(**body.model_dump())


# ─── Risk ──────────────────────────────────────────────────────

@app.post("/api/risk/context")
async def context_risk(body: ContextRiskRequest) -> dict[str, Any]:
    store = get_store()
    base = body.base_risk
    if base is None:
        base = store.get_risk_profile().risk_per_trade_percent
    volatility = body.volatility_level
    if volatility is None and body.atr_percent is not None:
        volatility = determine_volatility_level(body.atr_percent).value
    trades = store.query_trades(status=TradeStatus.CLOSED.value, limit=MAX_TRADES)
    result = calculate_context_aware_risk(
        base_risk=base,
        volatility_level=volatility,
        atr_percent=body.atr_percent,
        has_high_impact_event=body.has_high_impact_event,
        market_bias=body.market_bias,
        fear_greed=body.fear_greed,
        market_score=body.market_score,
        trades=trades,
        symbol=body.symbol,
    )
    return result.to_dict()


@app.post("/api/risk/preflight")
async def preflight(body: PreflightRequest) -> dict[str, Any]:
    store = get_store()
    daily_loss = body.daily_loss_percent
    if daily_loss is None:
        state = TradingGate(store).get_state()
        daily_loss = abs(min(state.current_pnl, 0.0)) / state.starting_balance * 100
    trades = store.query_trades(status=TradeStatus.OPEN.value, limit=MAX_TRADES)
    report = PreTradeValidator(store.get_risk_profile()).run_all_checks(daily_loss, trades, body.new_pair)
    return report.to_dict()


@app.get("/api/gate")
async def gate_state() -> dict[str, Any]:
    return TradingGate(get_store()).get_state().to_dict()


@app.post("/api/gate/snapshot")
async def gate_snapshot(body: GateSnapshotRequest) -> dict[str, Any]:
    gate = TradingGate(get_store())
    snapshot = gate.initialize_snapshot(body.starting_balance)
    return {"snapshot": snapshot.to_dict(), "gate": gate.get_state().to_dict()}


@app.post("/api/gate/pnl")
async def gate_pnl(body: GatePnlRequest) -> dict[str, Any]:
    gate = TradingGate(get_store())
    snapshot = gate.update_pnl(body.pnl_change)
    return {"snapshot": snapshot.to_dict(), "gate": gate.get_state().to_dict()}
