"""Whole-file aggregate matching."""

from __future__ import annotations

from decimal import Decimal

import pytest

from trade_matcher import MatchOptions, NoMatchesFoundError, match
from trade_matcher.models import AGGREGATE_DATE_KEY, MatchDirection, MatchingStrategy
from trade_matcher.normalizer import normalize_row


def _tx(symbol, side, serial, price, quantity, total=None, tds=None, row=0):
    return normalize_row([symbol, "", serial, side, price, quantity, total, tds], row)


def test_aggregate_uses_cost_override_and_matched_quantity():
    transactions = [
        _tx("BTCINR", "BUY", "45000", "10", "10", total="105"),
        _tx("BTCUSDT", "SELL", "45001", "0.125", "4", tds="0.01"),
    ]

    result = match(transactions, MatchingStrategy.AGGREGATE)

    (row,) = result.summaries[AGGREGATE_DATE_KEY]
    assert row.asset == "BTC"
    assert row.inr_price == Decimal("10.5")
    assert row.usdt_price == Decimal("0.125")
    assert row.coin_sold_qty == Decimal("4")
    assert row.purchase_cost_ratio == Decimal("84")
    assert row.purchase_cost_inr == Decimal("42")
    assert row.usdt_quantity == Decimal("0.5")
    assert row.tds == Decimal("0.01")
    assert row.buy_quantity == Decimal("10")
    assert row.sell_quantity == Decimal("4")
    assert row.total_relevant_inr_value == Decimal("105")


def test_aggregate_includes_undated_rows():
    transactions = [
        _tx("ETHINR", "BUY", "", "100", "1"),
        _tx("ETHINR", "BUY", "45000", "300", "1"),
        _tx("ETHUSDT", "SELL", "not-a-date", "2", "2"),
    ]

    (row,) = match(transactions, "aggregate").summaries[AGGREGATE_DATE_KEY]

    assert row.inr_price == Decimal("200")
    assert row.coin_sold_qty == Decimal("2")
    assert row.purchase_cost_ratio == Decimal("100")


def test_zero_sell_price_yields_zero_ratio_instead_of_failing():
    transactions = [
        _tx("BTCINR", "BUY", "45000", "100", "1"),
        _tx("BTCUSDT", "SELL", "45000", "0", "1"),
    ]

    (row,) = match(transactions, MatchingStrategy.AGGREGATE).summaries[AGGREGATE_DATE_KEY]

    assert row.purchase_cost_ratio == Decimal("0")
    assert row.usdt_quantity == Decimal("0")
    assert row.purchase_cost_inr == Decimal("100")


def test_aggregate_matches_stablecoins_like_any_other_asset():
    transactions = [
        _tx("USDTINR", "BUY", "45000", "90", "10"),
        _tx("USDTINR", "SELL", "45000", "91", "10"),
    ]

    with pytest.raises(NoMatchesFoundError):
        match(transactions, MatchingStrategy.AGGREGATE)


def test_aggregate_reverse_direction():
    transactions = [
        _tx("SOLUSDC", "BUY", "45000", "20", "5"),
        _tx("SOLINR", "SELL", "45001", "1800", "3"),
    ]
    options = MatchOptions(direction=MatchDirection.STABLECOIN_BUY_INR_SELL)

    (row,) = match(transactions, MatchingStrategy.AGGREGATE, options).summaries[AGGREGATE_DATE_KEY]

    assert row.inr_price == Decimal("1800")
    assert row.usdt_price == Decimal("20")
    assert row.coin_sold_qty == Decimal("3")
    assert row.buy_quantity == Decimal("5")
    assert row.sell_quantity == Decimal("3")
