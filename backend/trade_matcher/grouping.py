"""Base-asset / quote-currency extraction and per-asset grouping."""
from __future__ import annotations

import re
from typing import Dict, Iterable, List

from .models import QuoteCurrency, Transaction

STABLE_INR_PAIRS = {
    "USDTINR": "USDT",
    "USDCINR": "USDC",
    "DAIINR": "DAI",
}
_QUOTE_PRIORITY = (
    QuoteCurrency.INR,
    QuoteCurrency.USDT,
    QuoteCurrency.USDC,
    QuoteCurrency.DAI,
)
_QUOTE_SUFFIX_RE = re.compile(r"(INR|USDT|USDC|DAI)$")


def extract_base_asset(symbol: str) -> str:
    """Strip the quote suffix from a pair symbol (``BTCINR`` -> ``BTC``)."""

    upper = symbol.strip().upper()
    if upper in STABLE_INR_PAIRS:
        return STABLE_INR_PAIRS[upper]
    return _QUOTE_SUFFIX_RE.sub("", upper, count=1)


def extract_quote_currency(symbol: str) -> QuoteCurrency:
    upper = symbol.strip().upper()
    for quote in _QUOTE_PRIORITY:
        if upper.endswith(quote.value):
            return quote
    return QuoteCurrency.UNKNOWN


def group_by_asset(transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    """Partition transactions by base asset, preserving insertion order."""

    grouped: Dict[str, List[Transaction]] = {}
    for tx in transactions:
        if not tx.base_asset:
            continue
        grouped.setdefault(tx.base_asset, []).append(tx)
    return grouped


def sort_by_timestamp(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Return dated transactions in ascending time (stable for ties)."""

    return sorted((tx for tx in transactions if tx.timestamp is not None), key=lambda tx: tx.timestamp)


__all__ = [
    "STABLE_INR_PAIRS",
    "extract_base_asset",
    "extract_quote_currency",
    "group_by_asset",
    "sort_by_timestamp",
]
