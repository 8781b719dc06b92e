"""Daily proportional matching in both buy windows and both directions."""

from __future__ import annotations

from decimal import Decimal

import pytest

from trade_matcher import MatchOptions, NoMatchesFoundError, match
from trade_matcher.models import NOT_APPLICABLE_DATE_KEY, BuyWindow, MatchDirection, MatchingStrategy
from trade_matcher.normalizer import normalize_row

DAY_1, DAY_2, DAY_3 = "15th March, 2023", "16th March, 2023", "17th March, 2023"


def _tx(symbol, side, serial, price, quantity, total=None, tds=None, row=0):
    return normalize_row([symbol, "", serial, side, price, quantity, total, tds], row)


def _three_days():
    return [
        _tx("BTCINR", "BUY", "45000.2", "100", "1"),
        _tx("BTCINR", "BUY", "45001.3", "200", "1"),
        _tx("BTCUSDT", "SELL", "45001.9", "2", "1", tds="0.02"),
        _tx("BTCUSDT", "SELL", "45002.1", "3", "1"),
    ]


def test_cumulative_window_uses_every_buy_up_to_the_sell_day():
    result = match(_three_days(), MatchingStrategy.DAILY_PROPORTIONAL)

    assert list(result.summaries) == [DAY_2, DAY_3]
    (day_2,) = result.summaries[DAY_2]
    assert day_2.inr_price == Decimal("150")
    assert day_2.usdt_price == Decimal("2")
    assert day_2.purchase_cost_ratio == Decimal("75")
    assert day_2.purchase_cost_inr == Decimal("150")
    assert day_2.usdt_quantity == Decimal("2")
    assert day_2.tds == Decimal("0.02")
    assert day_2.total_relevant_inr_quantity == Decimal("2")
    (day_3,) = result.summaries[DAY_3]
    assert day_3.purchase_cost_ratio == Decimal("50")
    assert result.skipped == {}


def test_same_day_window_skips_days_without_buys():
    options = MatchOptions(buy_window=BuyWindow.SAME_DAY, track_skipped=True)

    result = match(_three_days(), MatchingStrategy.DAILY_PROPORTIONAL, options)

    (day_2,) = result.summaries[DAY_2]
    assert day_2.inr_price == Decimal("200")
    assert day_2.purchase_cost_ratio == Decimal("100")
    assert DAY_3 not in result.summaries
    (skipped,) = result.skipped[DAY_3]
    assert skipped.coin_sold_qty == Decimal("1")
    assert skipped.usdt_quantity == Decimal("3")
    assert skipped.total_relevant_inr_quantity == Decimal("0")
    assert skipped.note == "no qualifying buys (same_day window)"


def test_buys_on_days_without_sells_produce_no_rows():
    result = match(_three_days(), MatchingStrategy.DAILY_PROPORTIONAL)

    assert DAY_1 not in result.summaries


def test_reverse_direction_matches_stablecoin_buys_to_inr_sells():
    transactions = [
        _tx("BTCUSDT", "BUY", "45000.1", "1.2", "1"),
        _tx("BTCINR", "SELL", "45000.6", "110", "1", tds="1.1"),
    ]
    options = MatchOptions(direction=MatchDirection.STABLECOIN_BUY_INR_SELL)

    result = match(transactions, MatchingStrategy.DAILY_PROPORTIONAL, options)

    (row,) = result.summaries[DAY_1]
    assert row.inr_price == Decimal("110")
    assert row.usdt_price == Decimal("1.2")
    assert row.usdt_quantity == Decimal("110")
    assert row.purchase_cost_inr == Decimal("1.2")
    assert row.coin_sold_qty == Decimal("1")
    assert row.tds == Decimal("1.1")


def test_reverse_direction_summarises_stablecoin_sells():
    transactions = [_tx("USDTINR", "SELL", "45000", "92", "10"), _tx("USDTINR", "BUY", "45000", "90", "10")]
    options = MatchOptions(direction=MatchDirection.STABLECOIN_BUY_INR_SELL)

    (row,) = match(transactions, MatchingStrategy.DAILY_PROPORTIONAL, options).summaries[DAY_1]

    assert row.inr_price == Decimal("92")
    assert row.coin_sold_qty == Decimal("10")


def test_only_buys_raises_with_partial_result():
    transactions = [_tx("BTCINR", "BUY", "45000", "100", "1")]

    with pytest.raises(NoMatchesFoundError) as excinfo:
        match(transactions, MatchingStrategy.DAILY_PROPORTIONAL, MatchOptions(track_skipped=True))

    assert str(excinfo.value) == "No matching INR buys and USDT sells found in the processed data."
    result = excinfo.value.result
    assert result.summary_count == 0
    (skipped,) = result.skipped[NOT_APPLICABLE_DATE_KEY]
    assert skipped.asset == "BTC"
    assert skipped.total_relevant_inr_value == Decimal("100")
    assert skipped.note == "no buys or no sells"


def test_stablecoin_buys_are_summarised_not_matched():
    transactions = [
        _tx("USDTINR", "BUY", "45000", "90", "100"),
        _tx("BTCINR", "BUY", "45000", "100", "1"),
        _tx("BTCUSDT", "SELL", "45000", "2", "1"),
    ]

    result = match(transactions, MatchingStrategy.DAILY_PROPORTIONAL)

    rows = {row.asset: row for row in result.summaries[DAY_1]}
    assert set(rows) == {"USDT", "BTC"}
    assert rows["USDT"].inr_price == Decimal("90")
    assert rows["USDT"].usdt_price == Decimal("0")
