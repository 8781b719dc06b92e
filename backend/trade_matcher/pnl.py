"""Profit and loss reconciliation over two already-matched datasets.

The buy-side result becomes a FIFO inventory with one lot per summary row
(``coin_sold_qty`` read as the available quantity, ``inr_price`` as the buy
price); sell-side rows are then matched against it oldest-first.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, getcontext
from typing import Deque, Dict, Iterable, List, Mapping, Tuple, Union

from .models import ZERO, AssetSummary, MatchResult
from .matching.base import safe_divide

getcontext().prec = 28

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

SummaryMap = Mapping[str, List[AssetSummary]]


@dataclass
class _InventoryLot:
    record: AssetSummary
    remaining: Decimal


@dataclass(frozen=True)
class PnLMatch:
    asset: str
    date: str
    buy_record: AssetSummary
    sell_record: AssetSummary
    matched_quantity: Decimal
    buy_price: Decimal
    sell_price: Decimal
    profit_loss: Decimal
    profit_loss_percentage: Decimal

    @property
    def investment(self) -> Decimal:
        return self.buy_price * self.matched_quantity


@dataclass
class AssetPnL:
    total_pnl: Decimal = ZERO
    total_investment: Decimal = ZERO
    return_percentage: Decimal = ZERO
    trades: int = 0


@dataclass
class PnLSummary:
    matches: List[PnLMatch] = field(default_factory=list)
    total_profit_loss: Decimal = ZERO
    total_investment: Decimal = ZERO
    overall_return: Decimal = ZERO
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: Decimal = ZERO
    asset_breakdown: Dict[str, AssetPnL] = field(default_factory=dict)


def _rows(data: Union[MatchResult, SummaryMap]) -> List[AssetSummary]:
    summaries = data.summaries if isinstance(data, MatchResult) else data
    return [row for rows in summaries.values() for row in rows]


def _by_calendar_date(rows: Iterable[AssetSummary]) -> List[AssetSummary]:
    def key(row: AssetSummary) -> Tuple[int, date]:
        day = row.sort_date
        return (1, date.max) if day is None else (0, day)

    return sorted(rows, key=key)


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    return safe_divide(part, whole) * HUNDRED


def build_inventory(buy_data: Union[MatchResult, SummaryMap]) -> Dict[str, Deque[_InventoryLot]]:
    inventory: Dict[str, Deque[_InventoryLot]] = {}
    for row in _by_calendar_date(_rows(buy_data)):
        inventory.setdefault(row.asset, deque()).append(_InventoryLot(record=row, remaining=row.coin_sold_qty))
    for asset, lots in inventory.items():
        logger.debug("P&L inventory %s: %s buy records", asset, len(lots))
    return inventory


def analyze_pnl(
    buy_data: Union[MatchResult, SummaryMap],
    sell_data: Union[MatchResult, SummaryMap],
) -> PnLSummary:
    """Match sell-side summaries against buy-side summaries and total the P&L."""

    inventory = build_inventory(buy_data)
    matches: List[PnLMatch] = []

    for sell in _by_calendar_date(_rows(sell_data)):
        lots = inventory.get(sell.asset)
        if not lots:
            logger.warning("No buy inventory for asset %s on %s", sell.asset, sell.display_date)
            continue
        remaining = sell.coin_sold_qty
        while remaining > 0 and lots:
            lot = lots[0]
            if lot.remaining <= 0:
                lots.popleft()
                continue
            quantity = min(remaining, lot.remaining)
            buy_price = lot.record.inr_price
            matches.append(
                PnLMatch(
                    asset=sell.asset,
                    date=sell.display_date,
                    buy_record=lot.record,
                    sell_record=sell,
                    matched_quantity=quantity,
                    buy_price=buy_price,
                    sell_price=sell.inr_price,
                    profit_loss=(sell.inr_price - buy_price) * quantity,
                    profit_loss_percentage=_percentage(sell.inr_price - buy_price, buy_price),
                )
            )
            lot.remaining -= quantity
            remaining -= quantity
            if lot.remaining <= 0:
                lots.popleft()
        if remaining > 0:
            logger.warning("Unmatched sell quantity for %s on %s: %s", sell.asset, sell.display_date, remaining)

    summary = summarize_matches(matches)
    logger.info(
        "P&L analysis complete: %s matches, total P&L %s, win rate %s%%",
        len(matches),
        summary.total_profit_loss,
        summary.win_rate.quantize(Decimal("0.1")),
    )
    return summary


def summarize_matches(matches: List[PnLMatch]) -> PnLSummary:
    summary = PnLSummary(matches=list(matches))
    for match in matches:
        summary.total_profit_loss += match.profit_loss
        summary.total_investment += match.investment
        if match.profit_loss > 0:
            summary.winning_trades += 1
        elif match.profit_loss < 0:
            summary.losing_trades += 1

        breakdown = summary.asset_breakdown.setdefault(match.asset, AssetPnL())
        breakdown.total_pnl += match.profit_loss
        breakdown.total_investment += match.investment
        breakdown.trades += 1
        breakdown.return_percentage = _percentage(breakdown.total_pnl, breakdown.total_investment)

    summary.overall_return = _percentage(summary.total_profit_loss, summary.total_investment)
    if matches:
        summary.win_rate = Decimal(summary.winning_trades) / Decimal(len(matches)) * HUNDRED
    return summary


__all__ = ["PnLMatch", "AssetPnL", "PnLSummary", "build_inventory", "analyze_pnl", "summarize_matches"]
