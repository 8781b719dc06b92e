"""Daily proportional allocation.

Days are defined by the anchor leg only: every UTC calendar day on which an
anchor trade (a USDT sell going forward, an INR sell in reverse) happened
gets one row. The counter leg for that day is either every counter trade up
to the end of the day (cumulative) or only that day's trades (same day).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Tuple

from ..dates import day_bounds, format_display_date
from ..models import BuyWindow, MatchDirection, MatchingStrategy, MatchResult, Transaction
from .base import AssetLegs, StrategyMatcher, build_skipped_item, build_summary, split_legs

logger = logging.getLogger(__name__)


class DailyProportionalMatcher(StrategyMatcher):
    strategy = MatchingStrategy.DAILY_PROPORTIONAL
    directions = frozenset({MatchDirection.INR_BUY_USDT_SELL, MatchDirection.STABLECOIN_BUY_INR_SELL})

    def begin(self) -> None:
        logger.info(
            "Daily proportional pass: buy window=%s direction=%s",
            self.options.buy_window.value,
            self.options.direction.value,
        )

    def match_asset(self, asset: str, transactions: List[Transaction], result: MatchResult) -> None:
        legs = split_legs(transactions, self.options.direction)
        if not legs.counter or not legs.anchor:
            self.skip_asset(asset, legs, result, "no buys or no sells")
            return

        days = sorted({tx.day for tx in legs.anchor})
        logger.debug("Asset %s: %s anchor days", asset, len(days))
        for day in days:
            self._match_day(asset, legs, day, result)  # type: ignore[arg-type]

    def _window(self, legs: AssetLegs, day: date) -> Tuple[List[Transaction], List[Transaction]]:
        start, end = day_bounds(day)
        anchors = [tx for tx in legs.anchor if start <= tx.timestamp < end]  # type: ignore[operator]
        if self.options.buy_window is BuyWindow.CUMULATIVE:
            counters = [tx for tx in legs.counter if tx.timestamp < end]  # type: ignore[operator]
        else:
            counters = [tx for tx in legs.counter if start <= tx.timestamp < end]  # type: ignore[operator]
        return anchors, counters

    def _match_day(self, asset: str, legs: AssetLegs, day: date, result: MatchResult) -> None:
        anchors, counters = self._window(legs, day)
        anchor = legs.anchor_totals(anchors)
        counter = legs.counter_totals(counters)
        if anchor.empty or counter.empty:
            logger.info("Asset %s: no qualifying buys for %s", asset, format_display_date(day))
            if self.options.track_skipped:
                result.add_skipped(
                    build_skipped_item(
                        asset=asset,
                        legs=legs,
                        anchor=anchor,
                        counter=counter,
                        day=day,
                        note=f"no qualifying buys ({self.options.buy_window.value} window)",
                    )
                )
            return

        result.add_summary(
            build_summary(
                display_date=format_display_date(day),
                asset=asset,
                legs=legs,
                anchor=anchor,
                counter=counter,
                day=day,
            )
        )


__all__ = ["DailyProportionalMatcher"]
