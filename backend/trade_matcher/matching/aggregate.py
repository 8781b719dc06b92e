"""Whole-file averaging: one row per asset, no date dimension.

This is the coarsest strategy and is meant for quick sanity totals; it
deliberately conflates every trade in the file into one number per asset.
"""

from __future__ import annotations

import logging
from typing import List

from ..models import AGGREGATE_DATE_KEY, AssetSummary, MatchDirection, MatchingStrategy, MatchResult, Transaction
from .base import StrategyMatcher, safe_divide, split_legs

logger = logging.getLogger(__name__)


class AggregateMatcher(StrategyMatcher):
    strategy = MatchingStrategy.AGGREGATE
    directions = frozenset({MatchDirection.INR_BUY_USDT_SELL, MatchDirection.STABLECOIN_BUY_INR_SELL})
    handles_stablecoins = False

    def match_asset(self, asset: str, transactions: List[Transaction], result: MatchResult) -> None:
        legs = split_legs(transactions, self.options.direction, dated_only=False)
        if not legs.counter or not legs.anchor:
            self.skip_asset(asset, legs, result, "no buys or no sells")
            return

        counter = legs.counter_totals()
        anchor = legs.anchor_totals()
        counter_avg = counter.average
        anchor_avg = anchor.average
        matched = min(counter.quantity, anchor.quantity)
        ratio = safe_divide(counter_avg, anchor_avg)
        cost_of_matched = counter_avg * matched

        if legs.direction is MatchDirection.INR_BUY_USDT_SELL:
            inr_price, usdt_price = counter_avg, anchor_avg
        else:
            inr_price, usdt_price = anchor_avg, counter_avg

        result.add_summary(
            AssetSummary(
                display_date=AGGREGATE_DATE_KEY,
                asset=asset,
                inr_price=inr_price,
                usdt_price=usdt_price,
                coin_sold_qty=matched,
                purchase_cost_ratio=ratio,
                usdt_quantity=safe_divide(cost_of_matched, ratio),
                purchase_cost_inr=cost_of_matched,
                tds=anchor.tds,
                total_relevant_inr_value=counter.value,
                total_relevant_inr_quantity=counter.quantity,
                buy_quantity=counter.quantity,
                sell_quantity=anchor.quantity,
            )
        )
        logger.debug("Asset %s: aggregate match of %s units", asset, matched)


__all__ = ["AggregateMatcher"]
