"""Buy-lot inventory stores used by the FIFO strategies.

The matching code only talks to :class:`BuyInventoryStore`; whether lots live
in a Python list or in a database table must not change any result.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Protocol

from .dates import as_utc
from .models import FifoLot


class BuyInventoryStore(Protocol):
    """Pluggable storage for FIFO buy lots."""

    def reset(self) -> None:
        ...

    def add_lots(self, asset: str, lots: Iterable[FifoLot]) -> None:
        ...

    def next_open_lot(self, asset: str) -> FifoLot | None:
        """Oldest lot of ``asset`` with remaining quantity, or ``None``."""
        ...

    def open_lots_until(self, asset: str, as_of: datetime) -> List[FifoLot]:
        """Open lots purchased at or before ``as_of``, oldest first."""
        ...

    def consume(self, asset: str, lot: FifoLot, quantity: Decimal) -> Decimal:
        """Take ``quantity`` from ``lot`` and return the amount actually taken."""
        ...

    def lots(self, asset: str) -> List[FifoLot]:
        ...

    def close(self) -> None:
        ...


class InMemoryBuyInventoryStore:
    """Append-only lot lists with a per-asset head pointer.

    Exhausted lots are never removed; the head index simply moves past them.
    """

    def __init__(self) -> None:
        self._lots: Dict[str, List[FifoLot]] = {}
        self._head: Dict[str, int] = {}

    def reset(self) -> None:
        self._lots.clear()
        self._head.clear()

    def add_lots(self, asset: str, lots: Iterable[FifoLot]) -> None:
        self._lots.setdefault(asset, []).extend(lots)
        self._head.setdefault(asset, 0)

    def _advance(self, asset: str) -> int:
        lots = self._lots.get(asset, [])
        head = self._head.get(asset, 0)
        while head < len(lots) and not lots[head].is_open:
            head += 1
        self._head[asset] = head
        return head

    def next_open_lot(self, asset: str) -> FifoLot | None:
        head = self._advance(asset)
        lots = self._lots.get(asset, [])
        return lots[head] if head < len(lots) else None

    def open_lots_until(self, asset: str, as_of: datetime) -> List[FifoLot]:
        head = self._advance(asset)
        cutoff = as_utc(as_of)
        eligible = [
            lot
            for lot in self._lots.get(asset, [])[head:]
            if lot.is_open and as_utc(lot.purchase_timestamp) <= cutoff
        ]
        eligible.sort(key=lambda lot: (lot.purchase_timestamp, lot.lot_id))
        return eligible

    def consume(self, asset: str, lot: FifoLot, quantity: Decimal) -> Decimal:
        taken = lot.consume(quantity)
        self._advance(asset)
        return taken

    def lots(self, asset: str) -> List[FifoLot]:
        return list(self._lots.get(asset, []))

    def head_index(self, asset: str) -> int:
        return self._head.get(asset, 0)

    def close(self) -> None:
        self.reset()


__all__ = ["BuyInventoryStore", "InMemoryBuyInventoryStore"]
