"""Full analytics report over the journal store."""

import json
from datetime import datetime, timezone

import pytest

from tradejournal.journal.journal_analytics import JournalAnalytics
from tradejournal.utils.config import Settings

from conftest import make_trade

NOW = datetime(2024, 1, 20, 12, tzinfo=timezone.utc)


@pytest.fixture
def analytics(store, trade_history):
    for trade in trade_history:
        store.record_trade(trade)
    return JournalAnalytics(store, Settings(initial_capital=10_000))


class TestJournalAnalytics:

    def test_empty_journal(self, store):
        report = JournalAnalytics(store).compute_full_analytics(now=NOW)
        assert report == {"error": "No closed trades found", "total_trades": 0}

    def test_report_sections(self, analytics):
        report = analytics.compute_full_analytics(now=NOW)
        assert report["total_trades"] == 40
        assert set(report) == {
            "total_trades", "stats", "risk_metrics", "equity_curve", "monthly_pnl",
            "strategy_performance", "session_breakdown", "symbol_breakdown",
            "daily_pnl", "predictions",
        }
        assert report["stats"]["total_trades"] == 40
        assert len(report["equity_curve"]) == 40
        assert [m["month"] for m in report["monthly_pnl"]] == ["2024-01"]
        assert {s["session"] for s in report["session_breakdown"]} == {
            "sydney", "tokyo", "london", "new_york",
        }
        assert sum(d["trades"] for d in report["daily_pnl"]) == 40

    def test_report_is_json_serialisable(self, analytics):
        json.dumps(analytics.compute_full_analytics(now=NOW), allow_nan=False)

    def test_pair_filter(self, analytics):
        report = analytics.compute_full_analytics(pair="BTC/USDT", now=NOW)
        assert report["total_trades"] == 14

    def test_days_window(self, analytics):
        assert analytics.compute_full_analytics(days=1, now=NOW)["total_trades"] == 0
        assert analytics.compute_full_analytics(days=30, now=NOW)["total_trades"] == 40

    def test_closed_trades_oldest_first(self, analytics, store):
        store.record_trade(make_trade(status="open", trade_date="2024-01-02T00:00:00Z"))
        trades = analytics.closed_trades(now=NOW)
        assert len(trades) == 40
        assert trades[0].trade_datetime <= trades[-1].trade_datetime

    def test_strategy_filter(self, store, strategy):
        store.record_trade(make_trade(pnl=50, strategies=[strategy]))
        store.record_trade(make_trade(pnl=-20))
        report = JournalAnalytics(store).compute_full_analytics(strategy_id=strategy.id, now=NOW)
        assert report["total_trades"] == 1
        perf = report["strategy_performance"]
        assert perf[0]["strategy"]["name"] == "Breakout"

    def test_infinite_profit_factor_becomes_none(self, store):
        store.record_trade(make_trade(pnl=50))
        store.record_trade(make_trade(pnl=25))
        report = JournalAnalytics(store).compute_full_analytics(now=NOW)
        assert report["stats"]["profit_factor"] is None

    def test_predictions(self, analytics):
        predictions = analytics.compute_full_analytics(now=NOW)["predictions"]
        assert set(predictions) == {"streak", "day_of_week", "session_outlook", "pair_momentum"}
        assert predictions["session_outlook"]["description"].startswith("London Session")
        assert {p["pair"] for p in predictions["pair_momentum"]} <= {"BTC/USDT", "ETH/USDT", "SOL/USDT"}

    def test_trade_cap_keeps_newest(self, store, monkeypatch):
        from tradejournal.journal import journal_analytics

        for day in range(1, 6):
            store.record_trade(make_trade(pnl=day, trade_date=f"2024-01-0{day}T10:00:00Z"))
        monkeypatch.setattr(journal_analytics, "MAX_TRADES", 3)

        trades = JournalAnalytics(store).closed_trades(now=NOW)
        assert [t.pnl for t in trades] == [3, 4, 5]

    def test_filtered_report_is_consistent(self, store, strategy):
        store.record_trade(make_trade(pnl=40, pair="BTC/USDT", strategies=[strategy]))
        store.record_trade(make_trade(pnl=-15, pair="ETH/USDT"))
        analytics = JournalAnalytics(store)

        by_pair = analytics.compute_full_analytics(pair="BTC/USDT", now=NOW)
        assert by_pair["total_trades"] == 1
        assert [s["symbol"] for s in by_pair["symbol_breakdown"]] == ["BTC/USDT"]
        assert sum(d["trades"] for d in by_pair["daily_pnl"]) == 1

        by_strategy = analytics.compute_full_analytics(strategy_id=strategy.id, now=NOW)
        assert [s["symbol"] for s in by_strategy["symbol_breakdown"]] == ["BTC/USDT"]
        assert [d["pnl"] for d in by_strategy["daily_pnl"]] == [40]
