from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    journal_db_path: str = Field(default="data/journal.db", description="SQLite journal database path")

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/tradejournal.log", description="Log file path")

    initial_capital: float = Field(default=10000.0, description="Capital base for return-based risk metrics")
    risk_free_rate: float = Field(default=0.0, description="Annual risk-free rate (decimal) for Sharpe/Sortino")
    trading_days_per_year: int = Field(default=252, description="Annualization factor for per-trade returns")

    risk_per_trade_percent: float = Field(default=2.0, description="Default risk per trade (% of balance)")
    max_daily_loss_percent: float = Field(default=5.0, description="Default daily loss limit (% of balance)")
    max_position_size_percent: float = Field(default=40.0, description="Default max capital per position (%)")
    max_concurrent_positions: int = Field(default=3, description="Default max simultaneously open trades")

    default_starting_balance: float = Field(default=10000.0, description="Starting balance when no daily snapshot exists")
    gate_warning_percent: float = Field(default=70.0, description="Loss-limit usage that raises a warning")
    gate_disabled_percent: float = Field(default=100.0, description="Loss-limit usage that disables trading")

    api_host: str = Field(default="0.0.0.0", description="HTTP bind host")
    api_port: int = Field(default=8000, description="HTTP bind port")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    global _settings
    _settings = Settings()
    return _settings
