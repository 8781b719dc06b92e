"""Domain models used by the trade matching engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .dates import parse_display_date, utc_day

ZERO = Decimal("0")

NOT_APPLICABLE_DATE_KEY = "N/A"
AGGREGATE_DATE_KEY = "All Dates"


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class QuoteCurrency(str, Enum):
    INR = "INR"
    USDT = "USDT"
    USDC = "USDC"
    DAI = "DAI"
    UNKNOWN = "UNKNOWN"


class MatchingStrategy(str, Enum):
    AGGREGATE = "aggregate"
    DAILY_PROPORTIONAL = "daily_proportional"
    FIFO = "fifo"
    CHRONOLOGICAL_FIFO = "chronological_fifo"


class BuyWindow(str, Enum):
    """Which buys feed a sell day in the daily proportional strategy."""

    CUMULATIVE = "cumulative"
    SAME_DAY = "same_day"


class MatchDirection(str, Enum):
    """Which legs are matched: forward (buy file) or reverse (sell file)."""

    INR_BUY_USDT_SELL = "inr_buy_usdt_sell"
    STABLECOIN_BUY_INR_SELL = "stablecoin_buy_inr_sell"


@dataclass(frozen=True)
class Transaction:
    """One normalized trade row."""

    timestamp: Optional[datetime]
    raw_date: str
    symbol: str
    base_asset: str
    quote: QuoteCurrency
    side: Side
    price: Decimal
    quantity: Decimal
    total_cost: Optional[Decimal] = None
    tds: Decimal = ZERO
    row_index: int = 0

    @property
    def has_cost_override(self) -> bool:
        return self.total_cost is not None and self.total_cost > 0

    @property
    def cost(self) -> Decimal:
        """Total cost of the leg, honouring an explicit positive total column."""

        if self.has_cost_override:
            return self.total_cost  # type: ignore[return-value]
        return self.price * self.quantity

    @property
    def notional(self) -> Decimal:
        return self.price * self.quantity

    @property
    def unit_cost(self) -> Decimal:
        if self.has_cost_override and self.quantity > 0:
            return self.cost / self.quantity
        return self.price

    @property
    def day(self) -> Optional[date]:
        return utc_day(self.timestamp) if self.timestamp else None


@dataclass
class FifoLot:
    """Buy-side inventory unit consumed oldest-first."""

    lot_id: int
    asset: str
    cost_price: Decimal
    original_quantity: Decimal
    remaining_quantity: Decimal
    purchase_timestamp: datetime
    tds: Decimal = ZERO
    total_cost: Optional[Decimal] = None

    @classmethod
    def from_transaction(cls, lot_id: int, transaction: Transaction) -> "FifoLot":
        if transaction.timestamp is None:
            raise ValueError(f"Row {transaction.row_index} has no timestamp and cannot become a lot")
        return cls(
            lot_id=lot_id,
            asset=transaction.base_asset,
            cost_price=transaction.unit_cost,
            original_quantity=transaction.quantity,
            remaining_quantity=transaction.quantity,
            purchase_timestamp=transaction.timestamp,
            tds=transaction.tds,
            total_cost=transaction.total_cost,
        )

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0

    def consume(self, quantity: Decimal) -> Decimal:
        """Take up to ``quantity`` from the lot and return the amount taken."""

        taken = min(quantity, self.remaining_quantity)
        self.remaining_quantity = max(self.remaining_quantity - taken, ZERO)
        return taken


@dataclass(frozen=True)
class SellMatch:
    """One (lot, sell) pairing produced by a FIFO pass."""

    sell: Transaction
    lot_id: int
    matched_quantity: Decimal
    sell_price: Decimal
    cost_basis: Decimal
    profit_loss: Decimal
    sell_timestamp: datetime
    buy_timestamp: Optional[datetime] = None


@dataclass
class AssetSummary:
    """Per asset per day output row; skipped items use the same shape."""

    display_date: str
    asset: str
    inr_price: Decimal
    usdt_price: Decimal
    coin_sold_qty: Decimal
    purchase_cost_ratio: Decimal
    usdt_quantity: Decimal
    purchase_cost_inr: Decimal
    tds: Decimal = ZERO
    total_relevant_inr_value: Decimal = ZERO
    total_relevant_inr_quantity: Decimal = ZERO
    date: Optional[date] = None
    buy_quantity: Optional[Decimal] = None
    sell_quantity: Optional[Decimal] = None
    fifo_matches: List[SellMatch] = field(default_factory=list)
    note: Optional[str] = None

    @property
    def profit_loss(self) -> Decimal:
        return sum((match.profit_loss for match in self.fifo_matches), ZERO)

    @property
    def sort_date(self) -> Optional[date]:
        return self.date or parse_display_date(self.display_date)


def _date_sort_key(key: str) -> Tuple[int, date, str]:
    parsed = parse_display_date(key)
    if parsed is None:
        return (1, date.max, key)
    return (0, parsed, key)


def iter_by_date(groups: Mapping[str, List["AssetSummary"]]) -> Iterator[Tuple[str, List["AssetSummary"]]]:
    """Yield ``(date_key, rows)`` in calendar order; non-date keys last."""

    for key in sorted(groups, key=_date_sort_key):
        yield key, groups[key]


@dataclass
class MatchResult:
    """Summary and skipped maps keyed by display date."""

    strategy: MatchingStrategy
    summaries: Dict[str, List[AssetSummary]] = field(default_factory=dict)
    skipped: Dict[str, List[AssetSummary]] = field(default_factory=dict)

    def add_summary(self, summary: AssetSummary) -> None:
        self.summaries.setdefault(summary.display_date, []).append(summary)

    def add_skipped(self, item: AssetSummary) -> None:
        self.skipped.setdefault(item.display_date, []).append(item)

    @property
    def summary_count(self) -> int:
        return sum(len(rows) for rows in self.summaries.values())

    @property
    def skipped_count(self) -> int:
        return sum(len(rows) for rows in self.skipped.values())

    def iter_summaries(self) -> Iterator[Tuple[str, List[AssetSummary]]]:
        return iter_by_date(self.summaries)

    def iter_skipped(self) -> Iterator[Tuple[str, List[AssetSummary]]]:
        return iter_by_date(self.skipped)

    def summaries_for(self, asset: str) -> List[AssetSummary]:
        return [row for rows in self.summaries.values() for row in rows if row.asset == asset]

    def all_matches(self) -> List[SellMatch]:
        return [match for rows in self.summaries.values() for row in rows for match in row.fifo_matches]


__all__ = [
    "ZERO",
    "NOT_APPLICABLE_DATE_KEY",
    "AGGREGATE_DATE_KEY",
    "Side",
    "QuoteCurrency",
    "MatchingStrategy",
    "BuyWindow",
    "MatchDirection",
    "Transaction",
    "FifoLot",
    "SellMatch",
    "AssetSummary",
    "MatchResult",
    "iter_by_date",
]
