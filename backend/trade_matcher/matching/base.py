"""Shared building blocks for the matching strategies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import ClassVar, Iterable, List, Optional, Sequence, Tuple

from ..dates import format_display_date
from ..models import (
    NOT_APPLICABLE_DATE_KEY,
    ZERO,
    AssetSummary,
    MatchDirection,
    MatchingStrategy,
    MatchResult,
    QuoteCurrency,
    Side,
    Transaction,
)
from ..options import MatchOptions
from ..stablecoins import summarize_stablecoin_trades

logger = logging.getLogger(__name__)

STABLECOIN_QUOTES = frozenset({QuoteCurrency.USDT, QuoteCurrency.USDC, QuoteCurrency.DAI})


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Division that yields exactly zero instead of failing on a zero denominator."""

    if denominator == 0:
        return ZERO
    return numerator / denominator


@dataclass(frozen=True)
class LegTotals:
    """Volume totals for one side of a match (a set of transactions)."""

    value: Decimal = ZERO
    quantity: Decimal = ZERO
    tds: Decimal = ZERO
    count: int = 0

    @classmethod
    def of(cls, transactions: Iterable[Transaction], *, use_override: bool) -> "LegTotals":
        value = quantity = tds = ZERO
        count = 0
        for tx in transactions:
            value += tx.cost if use_override else tx.notional
            quantity += tx.quantity
            tds += tx.tds
            count += 1
        return cls(value=value, quantity=quantity, tds=tds, count=count)

    @property
    def average(self) -> Decimal:
        return safe_divide(self.value, self.quantity)

    @property
    def empty(self) -> bool:
        return self.count == 0


@dataclass(frozen=True)
class AssetLegs:
    """The two legs of an asset in a given direction.

    ``anchor`` is the leg that defines the output days (USDT sells going
    forward, INR sells in reverse); ``counter`` supplies the cost side.
    """

    direction: MatchDirection
    anchor: Tuple[Transaction, ...]
    counter: Tuple[Transaction, ...]

    @property
    def anchor_uses_override(self) -> bool:
        return self.direction is MatchDirection.STABLECOIN_BUY_INR_SELL

    @property
    def counter_uses_override(self) -> bool:
        return self.direction is MatchDirection.INR_BUY_USDT_SELL

    def anchor_totals(self, transactions: Optional[Iterable[Transaction]] = None) -> LegTotals:
        return LegTotals.of(self.anchor if transactions is None else transactions, use_override=self.anchor_uses_override)

    def counter_totals(self, transactions: Optional[Iterable[Transaction]] = None) -> LegTotals:
        return LegTotals.of(self.counter if transactions is None else transactions, use_override=self.counter_uses_override)


def split_legs(
    transactions: Sequence[Transaction],
    direction: MatchDirection = MatchDirection.INR_BUY_USDT_SELL,
    *,
    dated_only: bool = True,
) -> AssetLegs:
    """Pick out the anchor and counter legs of one asset's transactions."""

    candidates = [tx for tx in transactions if tx.timestamp is not None] if dated_only else list(transactions)
    if direction is MatchDirection.INR_BUY_USDT_SELL:
        counter = [tx for tx in candidates if tx.quote is QuoteCurrency.INR and tx.side is Side.BUY]
        anchor = [tx for tx in candidates if tx.quote is QuoteCurrency.USDT and tx.side is Side.SELL]
    else:
        counter = [tx for tx in candidates if tx.quote in STABLECOIN_QUOTES and tx.side is Side.BUY]
        anchor = [tx for tx in candidates if tx.quote is QuoteCurrency.INR and tx.side is Side.SELL]
    return AssetLegs(direction=direction, anchor=tuple(anchor), counter=tuple(counter))


def build_summary(
    *,
    display_date: str,
    asset: str,
    legs: AssetLegs,
    anchor: LegTotals,
    counter: LegTotals,
    day: Optional[date] = None,
) -> AssetSummary:
    """Proportional summary row from anchor/counter totals.

    The ratio is counter average over anchor average (zero-guarded); the INR
    cost is the counter average applied to the anchor quantity.
    """

    counter_avg = counter.average
    anchor_avg = anchor.average
    if legs.direction is MatchDirection.INR_BUY_USDT_SELL:
        inr_price, usdt_price = counter_avg, anchor_avg
    else:
        inr_price, usdt_price = anchor_avg, counter_avg
    return AssetSummary(
        display_date=display_date,
        asset=asset,
        inr_price=inr_price,
        usdt_price=usdt_price,
        coin_sold_qty=anchor.quantity,
        purchase_cost_ratio=safe_divide(counter_avg, anchor_avg),
        usdt_quantity=anchor.value,
        purchase_cost_inr=counter_avg * anchor.quantity,
        tds=anchor.tds,
        total_relevant_inr_value=counter.value,
        total_relevant_inr_quantity=counter.quantity,
        date=day,
    )


def build_skipped_item(
    *,
    asset: str,
    legs: AssetLegs,
    anchor: LegTotals,
    counter: LegTotals,
    day: Optional[date] = None,
    note: str,
) -> AssetSummary:
    """Skipped row carrying the unmatched totals; derived fields stay zero."""

    if legs.direction is MatchDirection.INR_BUY_USDT_SELL:
        inr_price, usdt_price = counter.average, anchor.average
    else:
        inr_price, usdt_price = anchor.average, counter.average
    return AssetSummary(
        display_date=format_display_date(day) if day else NOT_APPLICABLE_DATE_KEY,
        asset=asset,
        inr_price=inr_price,
        usdt_price=usdt_price,
        coin_sold_qty=anchor.quantity,
        purchase_cost_ratio=ZERO,
        usdt_quantity=anchor.value,
        purchase_cost_inr=ZERO,
        tds=anchor.tds,
        total_relevant_inr_value=counter.value,
        total_relevant_inr_quantity=counter.quantity,
        date=day,
        note=note,
    )


class StrategyMatcher(ABC):
    """One matching strategy, fed one asset at a time by the engine."""

    strategy: ClassVar[MatchingStrategy]
    directions: ClassVar[frozenset[MatchDirection]] = frozenset({MatchDirection.INR_BUY_USDT_SELL})
    handles_stablecoins: ClassVar[bool] = True

    def __init__(self, options: MatchOptions) -> None:
        self.check_direction(options)
        self.options = options

    @classmethod
    def check_direction(cls, options: MatchOptions) -> None:
        if options.direction not in cls.directions:
            raise ValueError(
                f"Direction {options.direction.value!r} is not supported by the {cls.strategy.value} strategy"
            )

    def begin(self) -> None:
        """Reset per-pass state before the first asset."""

    @abstractmethod
    def match_asset(self, asset: str, transactions: List[Transaction], result: MatchResult) -> None:
        ...

    def match_stablecoin(self, asset: str, transactions: List[Transaction], result: MatchResult) -> None:
        """Stablecoins traded directly against INR are summarised, not matched."""

        forward = self.options.direction is MatchDirection.INR_BUY_USDT_SELL
        rows = summarize_stablecoin_trades(
            asset,
            transactions,
            side=Side.BUY if forward else Side.SELL,
            per_transaction=self.options.emits_per_match(self.strategy),
        )
        if not rows:
            logger.info("Stablecoin %s: no dated %sINR trades to summarise", asset, asset)
        for row in rows:
            result.add_summary(row)

    def skip_asset(self, asset: str, legs: AssetLegs, result: MatchResult, reason: str) -> None:
        logger.info("Asset %s: skipping (%s)", asset, reason)
        if not self.options.track_skipped:
            return
        result.add_skipped(
            build_skipped_item(
                asset=asset,
                legs=legs,
                anchor=legs.anchor_totals(),
                counter=legs.counter_totals(),
                note=reason,
            )
        )


__all__ = [
    "STABLECOIN_QUOTES",
    "safe_divide",
    "LegTotals",
    "AssetLegs",
    "split_legs",
    "build_summary",
    "build_skipped_item",
    "StrategyMatcher",
]
