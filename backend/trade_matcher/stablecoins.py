"""Direct stablecoin/INR trades: no matching, the INR leg is the summary."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List

from .dates import format_display_date
from .models import ZERO, AssetSummary, Side, Transaction

logger = logging.getLogger(__name__)

MINIMAL_STABLECOINS = frozenset({"USDT", "USDC", "DAI"})
DEFAULT_STABLECOINS = frozenset(
    {
        "USDT",
        "USDC",
        "DAI",
        "FDUSD",
        "BUSD",
        "TUSD",
        "USDP",
        "GUSD",
        "FRAX",
        "LUSD",
        "SUSD",
        "MIM",
        "USDJ",
        "USDK",
    }
)


def normalize_stablecoin_set(symbols: Iterable[str]) -> frozenset[str]:
    return frozenset(symbol.strip().upper() for symbol in symbols if symbol and symbol.strip())


def is_stablecoin(asset: str, stablecoins: Iterable[str]) -> bool:
    return asset.upper() in normalize_stablecoin_set(stablecoins)


def _stablecoin_row(asset: str, day: date, trades: List[Transaction]) -> AssetSummary:
    total_value = sum((t.cost for t in trades), ZERO)
    total_quantity = sum((t.quantity for t in trades), ZERO)
    average_price = total_value / total_quantity if total_quantity > 0 else ZERO
    return AssetSummary(
        display_date=format_display_date(day),
        asset=asset,
        inr_price=average_price,
        usdt_price=ZERO,
        coin_sold_qty=total_quantity,
        purchase_cost_ratio=ZERO,
        usdt_quantity=total_quantity,
        purchase_cost_inr=total_value,
        tds=sum((t.tds for t in trades), ZERO),
        total_relevant_inr_value=total_value,
        total_relevant_inr_quantity=total_quantity,
        date=day,
    )


def summarize_stablecoin_trades(
    asset: str,
    transactions: Iterable[Transaction],
    *,
    side: Side = Side.BUY,
    per_transaction: bool = False,
) -> List[AssetSummary]:
    """Summarise ``{asset}INR`` trades of ``side`` per UTC calendar day.

    With ``per_transaction`` every trade becomes its own row (audit view).
    ``coin_sold_qty`` carries the traded quantity on both sides so the rows
    can feed the P&L inventory; ``usdt_price`` and the ratio stay zero.
    """

    pair = f"{asset}INR".upper()
    trades = [
        t
        for t in transactions
        if t.symbol.upper() == pair and t.side is side and t.timestamp is not None
    ]
    logger.debug("Stablecoin %s: %s dated %s/INR %s trades", asset, len(trades), asset, side.value)
    if per_transaction:
        ordered = sorted(trades, key=lambda t: t.timestamp)
        return [_stablecoin_row(asset, t.day, [t]) for t in ordered]  # type: ignore[arg-type]

    by_day: Dict[date, List[Transaction]] = {}
    for trade in trades:
        by_day.setdefault(trade.day, []).append(trade)  # type: ignore[arg-type]
    return [_stablecoin_row(asset, day, by_day[day]) for day in sorted(by_day)]


__all__ = [
    "MINIMAL_STABLECOINS",
    "DEFAULT_STABLECOINS",
    "normalize_stablecoin_set",
    "is_stablecoin",
    "summarize_stablecoin_trades",
]
