"""HTTP API routes."""

import pytest

from conftest import make_trade

TRADE = {
    "pair": "BTC/USDT",
    "direction": "LONG",
    "status": "closed",
    "entry_price": 100,
    "exit_price": 110,
    "stop_loss": 95,
    "quantity": 1,
    "pnl": 50,
    "trade_date": "2024-01-15T10:00:00Z",
}


class TestHealth:

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["journal"]["total_trades"] == 0


class TestTradeRoutes:

    def test_create_fills_session_and_result(self, client):
        resp = client.post("/api/trades", json=TRADE)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "created"
        assert body["trade"]["session"] == "london"
        assert body["trade"]["result"] == "win"

        fetched = client.get(f"/api/trades/{body['trade_id']}").json()
        assert fetched["pair"] == "BTC/USDT"

    def test_create_validation(self, client):
        assert client.post("/api/trades", json={**TRADE, "pair": ""}).status_code == 422
        assert client.post("/api/trades", json={**TRADE, "result": "maybe"}).status_code == 422

    def test_bad_trade_date(self, client):
        resp = client.post("/api/trades", json={**TRADE, "trade_date": "yesterday"})
        assert resp.status_code == 422
        assert resp.json()["category"] == "validation"

    def test_unknown_strategy(self, client):
        resp = client.post("/api/trades", json={**TRADE, "strategy_ids": ["missing"]})
        assert resp.status_code == 404

    def test_links_strategy(self, client):
        sid = client.post("/api/strategies", json={"name": "Breakout"}).json()["strategy_id"]
        client.post("/api/trades", json={**TRADE, "strategy_ids": [sid]})
        listed = client.get("/api/trades", params={"strategy_id": sid}).json()
        assert listed["total"] == 1
        assert listed["trades"][0]["strategies"][0]["name"] == "Breakout"

    def test_list_filters_and_paging(self, client, store):
        store.record_trade(make_trade(pnl=10, pair="BTC/USDT"))
        store.record_trade(make_trade(pnl=-5, pair="ETH/USDT"))
        store.record_trade(make_trade(pnl=7, pair="ETH/USDT", status="open"))

        body = client.get("/api/trades", params={"pair": "ETH/USDT", "limit": 1}).json()
        assert body["total"] == 2
        assert len(body["trades"]) == 1
        assert client.get("/api/trades", params={"limit": "x"}).status_code == 400
        assert client.get("/api/trades", params={"from_date": "soon"}).status_code == 422

    def test_get_and_delete_missing(self, client):
        assert client.get("/api/trades/nope").status_code == 404
        assert client.delete("/api/trades/nope").status_code == 404

    def test_delete(self, client):
        trade_id = client.post("/api/trades", json=TRADE).json()["trade_id"]
        assert client.delete(f"/api/trades/{trade_id}").json() == {"deleted": True, "trade_id": trade_id}
        assert client.get(f"/api/trades/{trade_id}").status_code == 404


class TestStrategyRoutes:

    def test_active_only(self, client):
        client.post("/api/strategies", json={"name": "Live"})
        client.post("/api/strategies", json={"name": "Retired", "is_active": False})
        assert len(client.get("/api/strategies").json()) == 2
        names = [s["name"] for s in client.get("/api/strategies", params={"active_only": True}).json()]
        assert names == ["Live"]


class TestAnalyticsRoutes:

    @pytest.fixture
    def seeded(self, client, store, trade_history):
        for trade in trade_history:
            store.record_trade(trade)
        return client

    def test_full_report(self, seeded):
        body = seeded.get("/api/analytics").json()
        assert body["total_trades"] == 40
        assert "predictions" in body

    def test_empty_report(self, client):
        assert client.get("/api/analytics").json()["error"] == "No closed trades found"

    def test_sections(self, seeded):
        assert seeded.get("/api/analytics/stats").json()["total_trades"] == 40
        assert seeded.get("/api/analytics/risk").json()["max_drawdown"] >= 0
        assert len(seeded.get("/api/analytics/equity-curve").json()["points"]) == 40
        assert seeded.get("/api/analytics/strategies").json() == []

    def test_pair_filter(self, seeded):
        stats = seeded.get("/api/analytics/stats", params={"pair": "ETH/USDT"}).json()
        assert stats["total_trades"] == 13

    def test_bad_days(self, seeded):
        assert seeded.get("/api/analytics", params={"days": "week"}).status_code == 400

    def test_sessions(self, client):
        body = client.get("/api/sessions", params={"utc_offset_hours": 7}).json()
        assert body["current"] in {"sydney", "tokyo", "london", "new_york"}
        assert len(body["sessions"]) == 4


class TestMarketRoutes:

    def test_regime(self, client):
        payload = {"technical_score": 50, "on_chain_score": 50, "macro_score": 50, "fear_greed_value": 50}
        body = client.post("/api/regime/classify", json=payload).json()
        assert body["regime"] == "RANGING"
        assert body["size_label"] == "Reduce 30%"
        assert client.get("/api/regime/history").json()[-1]["regime"] == "RANGING"

    def test_regime_rejects_out_of_range(self, client):
        payload = {"technical_score": 150, "on_chain_score": 50, "macro_score": 50, "fear_greed_value": 50}
        assert client.post("/api/regime/classify", json=payload).status_code == 422

    def test_market_score(self, client):
        body = client.post("/api/market/score", params={"symbol": "ETHUSDT"},
                           json={"sentiment": {"technical_score": 80}}).json()
        assert body["composite_score"] == 80
        assert body["trading_bias"] == "LONG_FAVORABLE"
        assert body["symbol"] == "ETHUSDT"


class TestPlanningRoutes:

    def test_fire(self, client):
        body = client.post("/api/fire/calculate", json={
            "current_age": 30, "target_retirement_age": 50, "current_savings": 100000,
            "monthly_expenses": 3000, "monthly_income": 5000,
        }).json()
        assert body["fire_number"] == 900000
        assert body["formatted"]["fire_number"] == "$900K"
        assert set(body["scenarios"]) == {"pessimistic", "realistic", "optimistic"}

    def test_fire_invalid(self, client):
        resp = client.post("/api/fire/calculate", json={
            "current_age": 30, "target_retirement_age": 50,
            "monthly_expenses": 3000, "monthly_income": 0,
        })
        assert resp.status_code == 422

    @pytest.mark.parametrize("field", ["inflation_rate", "expected_annual_return"])
    def test_fire_rate_floor(self, client, field):
        resp = client.post("/api/fire/calculate", json={
            "current_age": 30, "target_retirement_age": 50,
            "monthly_expenses": 3000, "monthly_income": 5000, field: -100,
        })
        assert resp.status_code == 422

    def test_fire_scenario_rate_floor(self, client):
        resp = client.post("/api/fire/calculate", json={
            "current_age": 30, "target_retirement_age": 50,
            "monthly_expenses": 3000, "monthly_income": 5000, "inflation_rate": -99.8,
        })
        assert resp.status_code == 422
        assert resp.json()["category"] == "validation"

    def test_debts(self, client):
        body = client.post("/api/planning/debts", json={"strategy": "snowball", "debts": [
            {"name": "Card", "original_balance": 2000, "current_balance": 1000,
             "interest_rate": 20, "monthly_payment": 100},
            {"name": "Car", "original_balance": 500, "current_balance": 500,
             "interest_rate": 5, "monthly_payment": 50},
        ]}).json()
        assert [d["name"] for d in body["debts"]] == ["Car", "Card"]
        assert body["projected_payoff_months"] == 10

    def test_unknown_debt_strategy(self, client):
        resp = client.post("/api/planning/debts", json={"strategy": "lottery", "debts": []})
        assert resp.status_code == 422

    def test_emergency_fund(self, client):
        body = client.post("/api/planning/emergency-fund", json={
            "current_balance": 9000, "monthly_expenses": 3000, "monthly_contribution": 1000,
        }).json()
        assert body["progress"] == 50
        assert body["months_to_goal"] == 9


class TestRiskRoutes:

    def test_context_risk_uses_profile_default(self, client):
        body = client.post("/api/risk/context", json={"volatility_level": "high"}).json()
        assert body["base_risk"] == 2.0
        assert body["adjusted_risk"] == 1.5
        assert body["recommendation"] == "reduce"

    def test_context_risk_volatility_from_atr(self, client):
        body = client.post("/api/risk/context", json={"atr_percent": 6}).json()
        volatility = body["adjustment_factors"][0]
        assert volatility["multiplier"] == 0.75
        assert volatility["value"] == "ATR 6.00%"
        assert body["adjusted_risk"] == 1.5

        calm = client.post("/api/risk/context", json={"atr_percent": 1}).json()
        assert calm["adjusted_risk"] == 2.2

    def test_context_risk_validation(self, client):
        assert client.post("/api/risk/context", json={"volatility_level": "wild"}).status_code == 422

    def test_preflight(self, client, store):
        store.record_trade(make_trade(status="open", pair="ETH/USDT"))
        body = client.post("/api/risk/preflight", json={"new_pair": "ETH/USDT"}).json()
        assert body["daily_loss_check"]["current_value"] == 0
        assert body["position_limit_check"]["current_value"] == 1
        assert body["correlation_check"]["status"] == "fail"
        assert body["can_proceed"] is True
        assert body["overall_status"] == "fail"

    def test_preflight_explicit_loss(self, client):
        body = client.post("/api/risk/preflight", json={"daily_loss_percent": 6}).json()
        assert body["can_proceed"] is False

    def test_gate_lifecycle(self, client):
        assert client.post("/api/gate/pnl", json={"pnl_change": -10}).status_code == 404

        created = client.post("/api/gate/snapshot", json={"starting_balance": 10000}).json()
        assert created["gate"]["status"] == "ok"

        warned = client.post("/api/gate/pnl", json={"pnl_change": -400}).json()
        assert warned["gate"]["status"] == "warning"

        disabled = client.post("/api/gate/pnl", json={"pnl_change": -100}).json()
        assert disabled["snapshot"]["trading_allowed"] is False
        assert client.get("/api/gate").json()["can_trade"] is False

    def test_gate_snapshot_validation(self, client):
        assert client.post("/api/gate/snapshot", json={"starting_balance": 0}).status_code == 422
