"""Base-asset extraction and per-asset grouping."""

from __future__ import annotations

from trade_matcher.grouping import extract_base_asset, extract_quote_currency, group_by_asset, sort_by_timestamp
from trade_matcher.models import QuoteCurrency
from trade_matcher.normalizer import normalize_row


def _tx(symbol, serial="45000", side="BUY", row_index=0):
    return normalize_row([symbol, "", serial, side, "1", "1"], row_index)


def test_stable_inr_pairs_keep_the_stablecoin_as_base():
    assert extract_base_asset("USDTINR") == "USDT"
    assert extract_base_asset("usdcinr") == "USDC"
    assert extract_base_asset("DAIINR") == "DAI"


def test_quote_suffix_is_stripped_once_from_the_end():
    assert extract_base_asset("BTCINR") == "BTC"
    assert extract_base_asset("ethusdt") == "ETH"
    assert extract_base_asset("DAIUSDT") == "DAI"
    assert extract_base_asset("INRUSDT") == "INR"
    assert extract_base_asset("USDT") == ""


def test_quote_currency_priority():
    assert extract_quote_currency("BTCINR") is QuoteCurrency.INR
    assert extract_quote_currency("USDTINR") is QuoteCurrency.INR
    assert extract_quote_currency("BTCUSDT") is QuoteCurrency.USDT
    assert extract_quote_currency("BTCUSDC") is QuoteCurrency.USDC
    assert extract_quote_currency("BTCDAI") is QuoteCurrency.DAI
    assert extract_quote_currency("BTCEUR") is QuoteCurrency.UNKNOWN


def test_group_by_asset_preserves_insertion_order():
    transactions = [_tx("BTCINR", row_index=1), _tx("ETHUSDT", row_index=2), _tx("BTCUSDT", row_index=3)]

    grouped = group_by_asset(transactions)

    assert list(grouped) == ["BTC", "ETH"]
    assert [tx.row_index for tx in grouped["BTC"]] == [1, 3]


def test_sort_by_timestamp_drops_undated_and_is_stable():
    transactions = [
        _tx("BTCINR", serial="45002", row_index=1),
        _tx("BTCINR", serial="garbage", row_index=2),
        _tx("BTCINR", serial="45001", row_index=3),
        _tx("BTCINR", serial="45001", row_index=4),
    ]

    ordered = sort_by_timestamp(transactions)

    assert [tx.row_index for tx in ordered] == [3, 4, 1]
