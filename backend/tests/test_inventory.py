"""Both buy inventory stores must hand out lots identically."""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from trade_matcher import MatchOptions, match, match_transactions
from trade_matcher.config import MatcherSettings
from trade_matcher.inventory import InMemoryBuyInventoryStore
from trade_matcher.inventory_sql import SqlBuyInventoryStore
from trade_matcher.models import FifoLot, MatchingStrategy
from trade_matcher.normalizer import normalize_row


def _lot(lot_id: int, day: int, quantity: str, price: str = "100") -> FifoLot:
    return FifoLot(
        lot_id=lot_id,
        asset="BTC",
        cost_price=Decimal(price),
        original_quantity=Decimal(quantity),
        remaining_quantity=Decimal(quantity),
        purchase_timestamp=datetime(2023, 3, day, 12, tzinfo=timezone.utc),
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        instance = InMemoryBuyInventoryStore()
    else:
        instance = SqlBuyInventoryStore(f"sqlite:///{tmp_path / 'inventory.sqlite3'}")
    instance.add_lots("BTC", [_lot(1, 15, "1"), _lot(2, 16, "2", "120"), _lot(3, 18, "1", "90")])
    yield instance
    instance.close()


def test_next_open_lot_follows_purchase_order(store):
    first = store.next_open_lot("BTC")
    assert first.lot_id == 1
    assert store.consume("BTC", first, Decimal("5")) == Decimal("1")

    second = store.next_open_lot("BTC")
    assert second.lot_id == 2
    assert store.consume("BTC", second, Decimal("0.5")) == Decimal("0.5")
    assert store.next_open_lot("BTC").remaining_quantity == Decimal("1.5")
    assert store.next_open_lot("ETH") is None


def test_open_lots_until_excludes_future_and_exhausted_lots(store):
    store.consume("BTC", store.next_open_lot("BTC"), Decimal("1"))

    eligible = store.open_lots_until("BTC", datetime(2023, 3, 17, tzinfo=timezone.utc))

    assert [lot.lot_id for lot in eligible] == [2]
    assert eligible[0].cost_price == Decimal("120")
    assert store.open_lots_until("BTC", datetime(2023, 3, 1, tzinfo=timezone.utc)) == []


def test_quantities_are_conserved(store):
    total = Decimal("0")
    while (lot := store.next_open_lot("BTC")) is not None:
        total += store.consume("BTC", lot, Decimal("0.7"))

    assert total == Decimal("4")
    assert all(lot.remaining_quantity == Decimal("0") for lot in store.lots("BTC"))


def test_reset_clears_every_asset(store):
    store.reset()
    assert store.lots("BTC") == []
    assert store.next_open_lot("BTC") is None


def test_memory_store_head_skips_exhausted_lots():
    store = InMemoryBuyInventoryStore()
    store.add_lots("BTC", [_lot(1, 15, "1"), _lot(2, 16, "1")])

    store.consume("BTC", store.next_open_lot("BTC"), Decimal("1"))

    assert store.head_index("BTC") == 1


def test_sql_store_without_url_uses_a_scratch_file_removed_on_close():
    store = SqlBuyInventoryStore()
    path = Path(store.database_url.removeprefix("sqlite:///"))
    assert path.exists()
    store.add_lots("BTC", [_lot(1, 15, "1")])
    assert store.next_open_lot("BTC").purchase_timestamp == datetime(2023, 3, 15, 12, tzinfo=timezone.utc)

    store.close()

    assert not path.exists()


def test_sub_millisecond_purchase_times_are_respected(store):
    lot = _lot(4, 20, "1")
    lot.purchase_timestamp = datetime(2023, 3, 20, 12, 0, 0, 500, tzinfo=timezone.utc)
    store.add_lots("ETH", [lot])

    assert store.open_lots_until("ETH", datetime(2023, 3, 20, 12, 0, 0, 200, tzinfo=timezone.utc)) == []
    (eligible,) = store.open_lots_until("ETH", datetime(2023, 3, 20, 12, 0, 0, 500, tzinfo=timezone.utc))
    assert eligible.purchase_timestamp == lot.purchase_timestamp


def test_stores_sharing_a_table_do_not_see_each_other(tmp_path: Path):
    url = f"sqlite:///{tmp_path / 'shared.sqlite3'}"
    first = SqlBuyInventoryStore(url)
    second = SqlBuyInventoryStore(url)
    try:
        first.add_lots("BTC", [_lot(1, 16, "1", "100")])
        second.add_lots("BTC", [_lot(1, 15, "10", "999")])
        second.reset()

        assert first.next_open_lot("BTC").cost_price == Decimal("100")
        assert second.next_open_lot("BTC") is None
    finally:
        first.close()
        second.close()


def _tx(symbol, side, serial, price, quantity, row=0):
    return normalize_row([symbol, "", serial, side, price, quantity], row)


async def test_concurrent_sql_passes_keep_their_own_lots(tmp_path: Path):
    settings = MatcherSettings(
        inventory_backend="sql",
        inventory_database_url=f"sqlite:///{tmp_path / 'shared.sqlite3'}",
    )
    options = MatchOptions(yield_every=1)
    first_pass = [
        _tx("ETHINR", "BUY", "45000", "50", "1"),
        _tx("ETHUSDT", "SELL", "45001", "1", "1"),
        _tx("BTCINR", "BUY", "45001", "100", "1"),
        _tx("BTCUSDT", "SELL", "45002", "2", "1"),
    ]
    second_pass = [
        _tx("BTCINR", "BUY", "45000", "999", "10"),
        _tx("BTCUSDT", "SELL", "45000.5", "2", "1"),
        _tx("ETHINR", "BUY", "45000", "60", "1"),
        _tx("ETHUSDT", "SELL", "45001", "1", "1"),
    ]

    first, second = await asyncio.gather(
        match_transactions(first_pass, MatchingStrategy.FIFO, options, settings=settings),
        match_transactions(second_pass, MatchingStrategy.FIFO, options, settings=settings),
    )

    assert [m.cost_basis for m in first.all_matches() if m.sell.base_asset == "BTC"] == [Decimal("100")]
    assert [m.cost_basis for m in second.all_matches() if m.sell.base_asset == "BTC"] == [Decimal("999")]
    assert [m.cost_basis for m in second.all_matches() if m.sell.base_asset == "ETH"] == [Decimal("60")]


def _random_log(seed: int, size: int = 300):
    rng = random.Random(seed)
    transactions = []
    for row in range(1, size + 1):
        asset = rng.choice(["BTC", "ETH", "SOL"])
        if rng.random() < 0.5:
            symbol, side, price = f"{asset}INR", "BUY", str(rng.randint(50, 150))
        else:
            symbol, side, price = f"{asset}USDT", "SELL", f"{rng.randint(50, 200) / 100:.2f}"
        serial = f"{45000 + rng.randint(0, 10_000) / 1000:.3f}"
        transactions.append(_tx(symbol, side, serial, price, f"{rng.randint(1, 40) / 10:.1f}", row))
    for offset, asset in enumerate(["BTC", "ETH", "SOL"], start=1):
        transactions.append(_tx(f"{asset}USDT", "SELL", "45011", "1.5", "500", size + offset))
    return transactions


@pytest.mark.parametrize("strategy", [MatchingStrategy.FIFO, MatchingStrategy.CHRONOLOGICAL_FIFO])
def test_full_pass_matches_in_memory_result(strategy, tmp_path: Path):
    transactions = _random_log(seed=11)
    options = MatchOptions(track_skipped=True, track_unmatched_remainder=True)
    sql_store = SqlBuyInventoryStore(f"sqlite:///{tmp_path / 'parity.sqlite3'}")
    try:
        from_memory = match(transactions, strategy, options, store=InMemoryBuyInventoryStore())
        from_sql = match(transactions, strategy, options, store=sql_store)
    finally:
        sql_store.close()

    assert from_sql.summaries == from_memory.summaries
    assert from_sql.skipped == from_memory.skipped
    assert from_memory.skipped_count > 0
