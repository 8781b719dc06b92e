"""Matching strategies and the strategy registry."""

from __future__ import annotations

from typing import Dict, Type

from ..inventory import BuyInventoryStore
from ..models import MatchingStrategy
from ..options import MatchOptions
from .aggregate import AggregateMatcher
from .base import StrategyMatcher
from .chronological import ChronologicalFifoMatcher
from .daily import DailyProportionalMatcher
from .fifo import FifoMatcher

MATCHERS: Dict[MatchingStrategy, Type[StrategyMatcher]] = {
    MatchingStrategy.AGGREGATE: AggregateMatcher,
    MatchingStrategy.DAILY_PROPORTIONAL: DailyProportionalMatcher,
    MatchingStrategy.FIFO: FifoMatcher,
    MatchingStrategy.CHRONOLOGICAL_FIFO: ChronologicalFifoMatcher,
}

LOT_STRATEGIES = frozenset({MatchingStrategy.FIFO, MatchingStrategy.CHRONOLOGICAL_FIFO})


def build_matcher(
    strategy: MatchingStrategy,
    options: MatchOptions,
    store: BuyInventoryStore | None = None,
) -> StrategyMatcher:
    """Instantiate the matcher for ``strategy``; lot strategies need a store."""

    matcher_cls = MATCHERS[MatchingStrategy(strategy)]
    if issubclass(matcher_cls, FifoMatcher):
        if store is None:
            raise ValueError(f"The {matcher_cls.strategy.value} strategy requires a buy inventory store")
        return matcher_cls(options, store)
    return matcher_cls(options)


__all__ = [
    "MATCHERS",
    "LOT_STRATEGIES",
    "StrategyMatcher",
    "AggregateMatcher",
    "DailyProportionalMatcher",
    "FifoMatcher",
    "ChronologicalFifoMatcher",
    "build_matcher",
]
