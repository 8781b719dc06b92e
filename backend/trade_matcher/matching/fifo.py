"""FIFO lot matching of USDT sells against INR buy lots."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterator, List

from ..dates import format_display_date
from ..grouping import sort_by_timestamp
from ..inventory import BuyInventoryStore
from ..models import ZERO, AssetSummary, FifoLot, MatchingStrategy, MatchResult, SellMatch, Transaction
from ..options import MatchOptions
from .base import LegTotals, StrategyMatcher, build_skipped_item, safe_divide, split_legs

logger = logging.getLogger(__name__)


class FifoMatcher(StrategyMatcher):
    """Consume the oldest open lot first, regardless of when the sell happened.

    The whole file's buys are eligible inventory for any sell. Sells are
    processed in ascending time; an unmatched remainder is logged and dropped,
    never carried over to the next sell.
    """

    strategy = MatchingStrategy.FIFO

    def __init__(self, options: MatchOptions, store: BuyInventoryStore) -> None:
        super().__init__(options)
        self.store = store

    def begin(self) -> None:
        self.store.reset()

    def _eligible_lots(self, asset: str, sell: Transaction) -> Iterator[FifoLot]:
        while True:
            lot = self.store.next_open_lot(asset)
            if lot is None:
                return
            yield lot

    def match_asset(self, asset: str, transactions: List[Transaction], result: MatchResult) -> None:
        legs = split_legs(transactions, self.options.direction)
        if not legs.counter or not legs.anchor:
            self.skip_asset(asset, legs, result, "no buys or no sells")
            return

        buys = sort_by_timestamp(legs.counter)
        self.store.add_lots(asset, (FifoLot.from_transaction(index, tx) for index, tx in enumerate(buys, start=1)))
        logger.debug("Asset %s: %s buy lots queued", asset, len(buys))

        matches: List[SellMatch] = []
        for sell in sort_by_timestamp(legs.anchor):
            sell_matches = self._match_sell(asset, sell)
            matched = sum((m.matched_quantity for m in sell_matches), ZERO)
            remainder = sell.quantity - matched
            if remainder > 0:
                logger.warning(
                    "Asset %s: %s of %s units sold on row %s could not be matched",
                    asset,
                    remainder,
                    sell.quantity,
                    sell.row_index,
                )
                if self.options.track_unmatched_remainder:
                    result.add_skipped(
                        build_skipped_item(
                            asset=asset,
                            legs=legs,
                            anchor=LegTotals(value=sell.price * remainder, quantity=remainder, count=1),
                            counter=LegTotals(),
                            day=sell.day,
                            note=f"unmatched sell remainder (row {sell.row_index})",
                        )
                    )
            matches.extend(sell_matches)

        if not matches:
            logger.info("Asset %s: no sells could be matched against inventory", asset)
            return
        if self.options.emits_per_match(self.strategy):
            for summary in per_match_rows(asset, matches):
                result.add_summary(summary)
        else:
            for summary in daily_rows(asset, matches):
                result.add_summary(summary)

    def _match_sell(self, asset: str, sell: Transaction) -> List[SellMatch]:
        remaining = sell.quantity
        matches: List[SellMatch] = []
        for lot in self._eligible_lots(asset, sell):
            if remaining <= 0:
                break
            taken = self.store.consume(asset, lot, min(remaining, lot.remaining_quantity))
            if taken <= 0:
                continue
            remaining -= taken
            matches.append(
                SellMatch(
                    sell=sell,
                    lot_id=lot.lot_id,
                    matched_quantity=taken,
                    sell_price=sell.price,
                    cost_basis=lot.cost_price,
                    profit_loss=(sell.price - lot.cost_price) * taken,
                    sell_timestamp=sell.timestamp,  # type: ignore[arg-type]
                    buy_timestamp=lot.purchase_timestamp,
                )
            )
        return matches


def daily_rows(asset: str, matches: List[SellMatch]) -> List[AssetSummary]:
    """Collapse matches into one weighted-average row per sell day."""

    by_day: Dict[date, List[SellMatch]] = OrderedDict()
    for match in matches:
        by_day.setdefault(match.sell.day, []).append(match)  # type: ignore[arg-type]

    rows: List[AssetSummary] = []
    for day, day_matches in by_day.items():
        quantity = sum((m.matched_quantity for m in day_matches), ZERO)
        cost = sum((m.cost_basis * m.matched_quantity for m in day_matches), ZERO)
        proceeds = sum((m.sell_price * m.matched_quantity for m in day_matches), ZERO)
        tds = _tds_once_per_sell(day_matches)
        inr_price = safe_divide(cost, quantity)
        usdt_price = safe_divide(proceeds, quantity)
        rows.append(
            AssetSummary(
                display_date=format_display_date(day),
                asset=asset,
                inr_price=inr_price,
                usdt_price=usdt_price,
                coin_sold_qty=quantity,
                purchase_cost_ratio=safe_divide(inr_price, usdt_price),
                usdt_quantity=proceeds,
                purchase_cost_inr=cost,
                tds=tds,
                total_relevant_inr_value=cost,
                total_relevant_inr_quantity=quantity,
                date=day,
                fifo_matches=list(day_matches),
            )
        )
    return rows


def per_match_rows(asset: str, matches: List[SellMatch]) -> List[AssetSummary]:
    """One row per SellMatch; a sell's TDS is reported on its first match only."""

    rows: List[AssetSummary] = []
    seen_sells: set[int] = set()
    for match in matches:
        sell_key = id(match.sell)
        tds = ZERO if sell_key in seen_sells else match.sell.tds
        seen_sells.add(sell_key)
        cost = match.cost_basis * match.matched_quantity
        rows.append(
            AssetSummary(
                display_date=format_display_date(match.sell_timestamp),
                asset=asset,
                inr_price=match.cost_basis,
                usdt_price=match.sell_price,
                coin_sold_qty=match.matched_quantity,
                purchase_cost_ratio=safe_divide(match.cost_basis, match.sell_price),
                usdt_quantity=match.sell_price * match.matched_quantity,
                purchase_cost_inr=cost,
                tds=tds,
                total_relevant_inr_value=cost,
                total_relevant_inr_quantity=match.matched_quantity,
                date=match.sell.day,
                fifo_matches=[match],
            )
        )
    return rows


def _tds_once_per_sell(matches: List[SellMatch]) -> Decimal:
    seen: set[int] = set()
    total = ZERO
    for match in matches:
        if id(match.sell) in seen:
            continue
        seen.add(id(match.sell))
        total += match.sell.tds
    return total


__all__ = ["FifoMatcher", "daily_rows", "per_match_rows"]
