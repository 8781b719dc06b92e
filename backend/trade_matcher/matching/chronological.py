"""FIFO restricted to lots bought no later than the sell itself."""

from __future__ import annotations

import logging
from typing import Iterator

from ..models import FifoLot, MatchingStrategy, Transaction
from .fifo import FifoMatcher

logger = logging.getLogger(__name__)


class ChronologicalFifoMatcher(FifoMatcher):
    """A sell can only consume lots purchased at or before its own timestamp.

    Eligibility is sell-relative, so the open lots are re-selected and sorted
    by purchase time for every sell instead of following one queue pointer.
    Output defaults to one row per match.
    """

    strategy = MatchingStrategy.CHRONOLOGICAL_FIFO

    def _eligible_lots(self, asset: str, sell: Transaction) -> Iterator[FifoLot]:
        eligible = self.store.open_lots_until(asset, sell.timestamp)  # type: ignore[arg-type]
        if not eligible:
            logger.warning(
                "Asset %s: no lots purchased on or before the sell on row %s",
                asset,
                sell.row_index,
            )
        return iter(eligible)


__all__ = ["ChronologicalFifoMatcher"]
