"""Advanced risk metrics over the trade sequence."""

import pytest

from tradejournal.analytics.risk_metrics import AdvancedRiskMetrics, calculate_advanced_risk_metrics
from tradejournal.utils.exceptions import InvalidInputError

from conftest import make_trade


class TestAdvancedRiskMetrics:

    @pytest.fixture
    def two_trades(self):
        return [
            make_trade(pnl=-50, trade_date="2024-01-02T10:00:00Z"),
            make_trade(pnl=100, trade_date="2024-01-01T10:00:00Z"),
        ]

    def test_empty_is_all_zero(self):
        assert calculate_advanced_risk_metrics([]) == AdvancedRiskMetrics()

    def test_rejects_non_positive_capital(self, two_trades):
        with pytest.raises(InvalidInputError):
            calculate_advanced_risk_metrics(two_trades, initial_capital=0)

    def test_drawdown_and_var(self, two_trades):
        m = calculate_advanced_risk_metrics(two_trades, initial_capital=1000)
        assert m.max_drawdown == 50
        assert m.max_drawdown_percent == pytest.approx(4.55)
        assert m.current_drawdown == 50
        assert m.value_at_risk_95 == 50
        assert m.recovery_factor == 1.0

    def test_expectancy_and_kelly(self, two_trades):
        m = calculate_advanced_risk_metrics(two_trades, initial_capital=1000)
        assert m.expectancy == 25
        assert m.kelly_percent == 25.0
        assert m.win_streak_max == 1
        assert m.loss_streak_max == 1
        assert m.sharpe_ratio > 0

    def test_kelly_zero_without_losses(self):
        m = calculate_advanced_risk_metrics([make_trade(pnl=10), make_trade(pnl=20)])
        assert m.kelly_percent == 0.0
        assert m.max_drawdown == 0

    def test_generated_history_is_consistent(self, trade_history):
        m = calculate_advanced_risk_metrics(trade_history, initial_capital=10_000)
        assert m.max_drawdown >= m.current_drawdown >= 0
        assert m.value_at_risk_99 >= m.value_at_risk_95 >= 0
        assert 0 <= m.max_drawdown_percent <= 100
        assert m.win_streak_max >= 1 and m.loss_streak_max >= 1

    def test_ties_round_up(self):
        # expectancy is exactly 0.125
        m = calculate_advanced_risk_metrics([make_trade(pnl=0.25), make_trade(pnl=0)])
        assert m.expectancy == 0.13
