"""Schemas for trade matching and P&L responses."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from trade_matcher.models import MatchingStrategy


class SellMatchSchema(BaseModel):
    lot_id: int
    sell_row: int = Field(..., description="1-based row of the sell in the uploaded sheet")
    matched_quantity: Decimal
    sell_price: Decimal
    cost_basis: Decimal
    profit_loss: Decimal
    sell_timestamp: dt.datetime
    buy_timestamp: dt.datetime | None = None


class AssetSummarySchema(BaseModel):
    display_date: str
    asset: str
    inr_price: Decimal
    usdt_price: Decimal
    coin_sold_qty: Decimal
    purchase_cost_ratio: Decimal
    usdt_quantity: Decimal
    purchase_cost_inr: Decimal
    tds: Decimal
    total_relevant_inr_value: Decimal
    total_relevant_inr_quantity: Decimal
    date: dt.date | None = None
    buy_quantity: Decimal | None = None
    sell_quantity: Decimal | None = None
    profit_loss: Decimal | None = None
    note: str | None = None
    fifo_matches: list[SellMatchSchema] = Field(default_factory=list)


class DateGroupSchema(BaseModel):
    date_key: str = Field(..., examples=["15th March, 2023"])
    rows: list[AssetSummarySchema]


class MatchResponse(BaseModel):
    strategy: MatchingStrategy
    summary_count: int
    skipped_count: int
    summaries: list[DateGroupSchema]
    skipped: list[DateGroupSchema]


class PnLMatchSchema(BaseModel):
    asset: str
    date: str
    matched_quantity: Decimal
    buy_price: Decimal
    sell_price: Decimal
    profit_loss: Decimal
    profit_loss_percentage: Decimal


class AssetPnLSchema(BaseModel):
    total_pnl: Decimal
    total_investment: Decimal
    return_percentage: Decimal
    trades: int


class PnLResponse(BaseModel):
    matches: list[PnLMatchSchema]
    total_profit_loss: Decimal
    total_investment: Decimal
    overall_return: Decimal
    winning_trades: int
    losing_trades: int
    win_rate: Decimal
    asset_breakdown: dict[str, AssetPnLSchema]


__all__ = [
    "SellMatchSchema",
    "AssetSummarySchema",
    "DateGroupSchema",
    "MatchResponse",
    "PnLMatchSchema",
    "AssetPnLSchema",
    "PnLResponse",
]
