"""Matching pass orchestration: grouping, dispatch, progress and failure policy."""

from __future__ import annotations

import asyncio
import logging
from decimal import getcontext
from typing import Any, Iterable, List, Optional, Sequence

from opentelemetry import trace

from .config import MatcherSettings, get_matcher_settings
from .errors import MatchingEngineError, NoMatchesFoundError, TradeMatcherError
from .grouping import group_by_asset
from .inventory import BuyInventoryStore, InMemoryBuyInventoryStore
from .inventory_sql import SqlBuyInventoryStore
from .matching import LOT_STRATEGIES, MATCHERS, build_matcher
from .models import MatchDirection, MatchingStrategy, MatchResult, Transaction
from .normalizer import normalize_rows
from .options import CancellationToken, MatchOptions, ProgressCallback, ProgressUpdate
from .stablecoins import is_stablecoin

getcontext().prec = 28

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MATCHING_PHASE = "matching"


def create_inventory_store(settings: MatcherSettings | None = None, row_count: int = 0) -> BuyInventoryStore:
    """Pick the buy inventory backend configured for an input of ``row_count`` rows."""

    settings = settings or get_matcher_settings()
    backend = settings.inventory_backend
    if backend == "auto":
        backend = "sql" if row_count > settings.sql_inventory_threshold else "memory"
    if backend == "sql":
        logger.info("Using SQL buy inventory for %s rows", row_count)
        return SqlBuyInventoryStore(settings.inventory_database_url)
    return InMemoryBuyInventoryStore()


def _no_matches_message(direction: MatchDirection) -> str:
    if direction is MatchDirection.STABLECOIN_BUY_INR_SELL:
        return "No matching stablecoin buys and INR sells found in the processed data."
    return "No matching INR buys and USDT sells found in the processed data."


async def _run_pass(
    transactions: List[Transaction],
    input_count: int,
    strategy: MatchingStrategy,
    options: MatchOptions,
    settings: MatcherSettings,
    store: BuyInventoryStore | None,
    cancel_token: CancellationToken | None,
    on_progress: ProgressCallback | None,
) -> MatchResult:
    MATCHERS[strategy].check_direction(options)
    result = MatchResult(strategy=strategy)
    grouped = group_by_asset(transactions)
    total = len(grouped)
    owns_store = False

    logger.info(
        "Matching %s transactions across %s assets (strategy=%s, direction=%s)",
        len(transactions),
        total,
        strategy.value,
        options.direction.value,
    )
    with tracer.start_as_current_span("trade_matcher.match") as span:
        span.set_attribute("trade_matcher.strategy", strategy.value)
        span.set_attribute("trade_matcher.direction", options.direction.value)
        span.set_attribute("trade_matcher.transactions", len(transactions))
        span.set_attribute("trade_matcher.assets", total)
        try:
            if strategy in LOT_STRATEGIES and store is None:
                store = create_inventory_store(settings, input_count)
                owns_store = True
            matcher = build_matcher(strategy, options, store)
            matcher.begin()
            for index, (asset, asset_transactions) in enumerate(grouped.items(), start=1):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                if matcher.handles_stablecoins and is_stablecoin(asset, options.stablecoins):
                    matcher.match_stablecoin(asset, asset_transactions, result)
                else:
                    matcher.match_asset(asset, asset_transactions, result)
                if on_progress is not None:
                    on_progress(ProgressUpdate(MATCHING_PHASE, index, total))
                if index % options.yield_every == 0:
                    await asyncio.sleep(0)
        except TradeMatcherError:
            raise
        except Exception as exc:
            logger.exception("Matching pass failed (strategy=%s)", strategy.value)
            raise MatchingEngineError(strategy.value) from exc
        finally:
            if owns_store and store is not None:
                store.close()
        span.set_attribute("trade_matcher.summaries", result.summary_count)
        span.set_attribute("trade_matcher.skipped", result.skipped_count)

    logger.info(
        "Matching finished: %s summary rows, %s skipped rows",
        result.summary_count,
        result.skipped_count,
    )
    if input_count > 0 and result.summary_count == 0:
        raise NoMatchesFoundError(_no_matches_message(options.direction), result=result)
    return result


def _resolve(
    strategy: MatchingStrategy | str | None,
    options: MatchOptions | None,
    settings: MatcherSettings | None,
) -> tuple[MatchingStrategy, MatchOptions, MatcherSettings]:
    settings = settings or get_matcher_settings()
    resolved = MatchingStrategy(strategy) if strategy is not None else settings.default_strategy
    return resolved, options or MatchOptions.from_settings(settings), settings


async def match_transactions(
    transactions: Iterable[Transaction],
    strategy: MatchingStrategy | str | None = None,
    options: MatchOptions | None = None,
    *,
    store: BuyInventoryStore | None = None,
    cancel_token: CancellationToken | None = None,
    on_progress: ProgressCallback | None = None,
    settings: MatcherSettings | None = None,
) -> MatchResult:
    """Run one matching pass over normalized transactions.

    Raises :class:`NoMatchesFoundError` (carrying the partial result) when a
    non-empty input yields no summary rows, :class:`MatchCancelledError` when
    ``cancel_token`` fires, and :class:`MatchingEngineError` for anything
    unexpected. A caller-supplied ``store`` is left open.
    """

    transactions = list(transactions)
    resolved, options, settings = _resolve(strategy, options, settings)
    return await _run_pass(
        transactions, len(transactions), resolved, options, settings, store, cancel_token, on_progress
    )


async def match_rows(
    rows: Sequence[Any],
    strategy: MatchingStrategy | str | None = None,
    options: MatchOptions | None = None,
    *,
    store: BuyInventoryStore | None = None,
    cancel_token: CancellationToken | None = None,
    on_progress: ProgressCallback | None = None,
    settings: MatcherSettings | None = None,
) -> MatchResult:
    """Normalize raw sheet rows and match them; emptiness is judged on ``rows``."""

    transactions = normalize_rows(rows)
    resolved, options, settings = _resolve(strategy, options, settings)
    return await _run_pass(transactions, len(rows), resolved, options, settings, store, cancel_token, on_progress)


def match(
    transactions: Iterable[Transaction],
    strategy: MatchingStrategy | str | None = None,
    options: Optional[MatchOptions] = None,
    **kwargs: Any,
) -> MatchResult:
    """Blocking wrapper around :func:`match_transactions` for scripts."""

    return asyncio.run(match_transactions(transactions, strategy, options, **kwargs))


__all__ = [
    "MATCHING_PHASE",
    "create_inventory_store",
    "match_transactions",
    "match_rows",
    "match",
]
