"""
Application settings.

Values are read from the environment (prefix ``PAPER_ARENA_``) and an optional
``.env`` file. Domain defaults live in ``paper_arena.core.constants``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from paper_arena.core import constants


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PAPER_ARENA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App settings
    app_name: str = "Paper Arena"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Storage
    storage_backend: Literal["json", "sqlite"] = "json"
    state_path: Path = Path("./data/paper_arena_state.json")
    sqlite_path: Path = Path("./data/paper_arena.db")
    storage_quota_bytes: int | None = Field(default=None, gt=0)

    # Trading settings
    initial_cash: float = Field(default=constants.DEFAULT_INITIAL_CASH, gt=0)
    enforce_market_hours: bool = False
    stale_price_seconds: int = Field(default=constants.STALE_PRICE_SECONDS, gt=0)
    risk_free_rate: float = Field(default=constants.DEFAULT_RISK_FREE_RATE, ge=0)

    # Position sizing
    max_position_percent: float = Field(default=constants.MAX_POSITION_PERCENT, gt=0, le=1)
    max_total_invested: float = Field(default=constants.MAX_TOTAL_INVESTED, gt=0, le=1)
    min_trade_value: float = Field(default=constants.MIN_TRADE_VALUE, ge=0)
    max_positions_per_agent: int = Field(default=constants.MAX_POSITIONS_PER_AGENT, gt=0)
    reserve_cash_percent: float = Field(default=constants.RESERVE_CASH_PERCENT, ge=0, lt=1)

    # Risk management
    max_drawdown_before_pause: float = Field(
        default=constants.MAX_DRAWDOWN_BEFORE_PAUSE, gt=0, le=1
    )
    max_drawdown_before_liquidate: float = Field(
        default=constants.MAX_DRAWDOWN_BEFORE_LIQUIDATE, gt=0, le=1
    )

    # Concurrency
    lock_timeout_seconds: float = Field(default=constants.DEFAULT_LOCK_TIMEOUT_SECONDS, gt=0)
    per_agent_locks: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
