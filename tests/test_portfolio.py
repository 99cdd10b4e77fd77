"""Long-horizon portfolio analytics."""

from datetime import datetime, timezone

import pytest

from tradejournal.analytics.portfolio import (
    HistoryPoint, Holding, Transaction, calculate_portfolio_analytics,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def holdings():
    return [
        Holding(symbol="AAA", name="Alpha", quantity=10, average_cost=100, total_cost=1000, cached_price=120),
        Holding(symbol="BBB", name="Beta", quantity=5, average_cost=100, total_cost=500, current_price=80),
    ]


@pytest.fixture
def transactions():
    return [
        Transaction(symbol="AAA", transaction_type="BUY", quantity=10, price_per_unit=100,
                    total_amount=1000, transaction_date="2023-01-01T00:00:00Z"),
        Transaction(symbol="AAA", transaction_type="SELL", quantity=5, price_per_unit=130,
                    total_amount=650, transaction_date="2023-06-01T00:00:00Z"),
        Transaction(symbol="CCC", transaction_type="BUY", quantity=2, price_per_unit=50,
                    total_amount=100, transaction_date="2023-02-01T00:00:00Z"),
        Transaction(symbol="CCC", transaction_type="SELL", quantity=2, price_per_unit=40,
                    total_amount=80, transaction_date="2023-03-01T00:00:00Z"),
        Transaction(symbol="ZZZ", transaction_type="SELL", quantity=1, price_per_unit=10,
                    total_amount=10, transaction_date="2023-04-01T00:00:00Z"),
    ]


@pytest.fixture
def history():
    return [
        HistoryPoint(recorded_at="2023-01-01T00:00:00Z", total_value=1000),
        HistoryPoint(recorded_at="2023-01-31T00:00:00Z", total_value=1100),
        HistoryPoint(recorded_at="2023-02-15T00:00:00Z", total_value=990),
        HistoryPoint(recorded_at="2023-03-01T00:00:00Z", total_value=1089),
    ]


class TestPortfolioAnalytics:

    def test_totals_prefer_cached_price(self, holdings):
        a = calculate_portfolio_analytics(holdings, now=NOW)
        assert a.total_value == 1600
        assert a.total_cost_basis == 1500
        assert a.total_profit_loss == 100
        assert a.total_profit_loss_percent == pytest.approx(100 / 15)

    def test_cagr_over_one_year(self, holdings, transactions):
        a = calculate_portfolio_analytics(holdings, transactions, now=NOW)
        assert a.cagr == pytest.approx(100 / 15)

    def test_realized_trades_use_average_cost(self, holdings, transactions):
        a = calculate_portfolio_analytics(holdings, transactions, now=NOW)
        assert a.realized_pnl == 130
        assert a.win_rate == 50.0
        assert a.avg_win == 150
        assert a.avg_loss == -20
        assert a.profit_factor == 7.5

    def test_monthly_returns_and_drawdown(self, holdings, history):
        a = calculate_portfolio_analytics(holdings, history=history, now=NOW)
        assert [m["return"] for m in a.monthly_returns] == [10.0, -10.0, 10.0]
        assert [m["label"] for m in a.monthly_returns] == ["Jan", "Feb", "Mar"]
        assert a.max_drawdown == -10.0
        assert a.volatility > 0
        assert 0.5 <= a.beta <= 2.0

    def test_history_order_does_not_matter(self, holdings, history):
        a = calculate_portfolio_analytics(holdings, history=history[::-1], now=NOW)
        assert a.max_drawdown == -10.0
        assert [m["return"] for m in a.monthly_returns] == [10.0, -10.0, 10.0]

    def test_asset_attribution_sorted_by_contribution(self, holdings):
        assets = calculate_portfolio_analytics(holdings, now=NOW).asset_performance
        assert [x["symbol"] for x in assets] == ["AAA", "BBB"]
        assert assets[0]["contribution"] == pytest.approx(15)
        assert assets[1]["contribution"] == pytest.approx(-5)

    def test_radar_scores_bounded(self, holdings, transactions, history):
        radar = calculate_portfolio_analytics(holdings, transactions, history, now=NOW).risk_metrics
        assert len(radar) == 6
        assert all(0 <= r["value"] <= 100 for r in radar)

    def test_empty_portfolio(self):
        a = calculate_portfolio_analytics([], now=NOW)
        assert a.total_value == 0
        assert a.cagr == 0
        assert a.beta == 1.0
        assert a.win_rate == 50.0
        assert a.monthly_returns == [{"month": "2024-01", "label": "Jan", "return": 0.0}]
