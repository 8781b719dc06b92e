"""Configuration for the trade matching engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import BuyWindow, MatchingStrategy
from .stablecoins import DEFAULT_STABLECOINS


class MatcherSettings(BaseSettings):
    """Defaults applied to every matching pass unless a caller overrides them."""

    model_config = SettingsConfigDict(
        env_prefix="TRADE_MATCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    stablecoins: list[str] = Field(default_factory=lambda: sorted(DEFAULT_STABLECOINS))
    default_strategy: MatchingStrategy = Field(default=MatchingStrategy.DAILY_PROPORTIONAL)
    buy_window: BuyWindow = Field(default=BuyWindow.CUMULATIVE)
    track_skipped: bool = Field(default=False)
    track_unmatched_remainder: bool = Field(default=False)
    yield_every: int = Field(default=10, ge=1)

    inventory_backend: Literal["memory", "sql", "auto"] = Field(default="memory")
    inventory_database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for the SQL buy inventory; a temp SQLite file when unset.",
    )
    sql_inventory_threshold: int = Field(
        default=100_000,
        ge=0,
        description="Row count above which the 'auto' backend switches to SQL.",
    )

    export_precision: int = Field(default=10, ge=2, le=10)

    @field_validator("stablecoins")
    @classmethod
    def _upper_stablecoins(cls, value: list[str]) -> list[str]:
        return sorted({symbol.strip().upper() for symbol in value if symbol and symbol.strip()})


@lru_cache(maxsize=1)
def get_matcher_settings(**overrides: Any) -> MatcherSettings:
    """Return cached matcher settings with optional overrides."""

    if overrides:
        return MatcherSettings(**overrides)
    return MatcherSettings()


__all__ = ["MatcherSettings", "get_matcher_settings"]
