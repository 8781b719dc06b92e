"""Trade log matching and cost-basis engine."""

from .engine import create_inventory_store, match, match_rows, match_transactions
from .errors import (
    HeaderNotFoundError,
    MatchCancelledError,
    MatchingEngineError,
    NoMatchesFoundError,
    TradeMatcherError,
)
from .inventory import BuyInventoryStore, InMemoryBuyInventoryStore
from .inventory_sql import SqlBuyInventoryStore
from .models import (
    AssetSummary,
    BuyWindow,
    FifoLot,
    MatchDirection,
    MatchingStrategy,
    MatchResult,
    QuoteCurrency,
    SellMatch,
    Side,
    Transaction,
)
from .normalizer import normalize_row, normalize_rows
from .options import CancellationToken, MatchOptions, ProgressUpdate
from .pnl import PnLSummary, analyze_pnl
from .stablecoins import DEFAULT_STABLECOINS, MINIMAL_STABLECOINS

__all__ = [
    "AssetSummary",
    "BuyInventoryStore",
    "BuyWindow",
    "CancellationToken",
    "DEFAULT_STABLECOINS",
    "FifoLot",
    "HeaderNotFoundError",
    "InMemoryBuyInventoryStore",
    "MINIMAL_STABLECOINS",
    "MatchCancelledError",
    "MatchDirection",
    "MatchOptions",
    "MatchResult",
    "MatchingEngineError",
    "MatchingStrategy",
    "NoMatchesFoundError",
    "PnLSummary",
    "ProgressUpdate",
    "QuoteCurrency",
    "SellMatch",
    "Side",
    "SqlBuyInventoryStore",
    "TradeMatcherError",
    "Transaction",
    "analyze_pnl",
    "create_inventory_store",
    "match",
    "match_rows",
    "match_transactions",
    "normalize_row",
    "normalize_rows",
]
