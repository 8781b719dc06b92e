"""Tabular export of match results (pandas DataFrames and CSV text)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Union

import pandas as pd

from .dates import format_display_datetime
from .models import ZERO, AssetSummary, MatchResult, iter_by_date
from .pnl import PnLSummary

SUMMARY_COLUMNS = [
    "Date",
    "Asset",
    "Avg INR Price",
    "Avg USDT Price",
    "Matched Qty",
    "USDT Cost (Ratio)",
    "USDT Qty (Derived)",
    "USDT Cost (INR)",
    "TDS",
    "BUY IN INR",
    "QNTY",
]
MATCH_COLUMNS = ["Sell Date", "Asset", "Lot", "Buy Date", "Quantity", "Cost Basis", "Sell Price", "Profit/Loss"]
PNL_COLUMNS = ["Date", "Asset", "Quantity", "Buy Price", "Sell Price", "Profit/Loss", "Profit/Loss %"]
TOTAL_LABEL = "Total"
DEFAULT_PRECISION = 10


def _fmt(value: Decimal, precision: int) -> str:
    return f"{value:.{precision}f}"


def _positive(value: Decimal, precision: int) -> str:
    """Blank unless strictly positive."""

    return _fmt(value, precision) if value > 0 else ""


def _check_precision(precision: int) -> None:
    if not 2 <= precision <= 10:
        raise ValueError("precision must be between 2 and 10")


def _summary_record(date_key: str, row: AssetSummary, precision: int) -> Dict[str, str]:
    return {
        "Date": date_key,
        "Asset": row.asset,
        "Avg INR Price": _positive(row.inr_price, precision),
        "Avg USDT Price": _positive(row.usdt_price, precision),
        "Matched Qty": _fmt(row.coin_sold_qty, precision),
        "USDT Cost (Ratio)": _positive(row.purchase_cost_ratio, precision),
        "USDT Qty (Derived)": _positive(row.usdt_quantity, precision),
        "USDT Cost (INR)": _fmt(row.purchase_cost_inr, precision),
        "TDS": _positive(row.tds, precision),
        "BUY IN INR": _fmt(row.total_relevant_inr_value, precision),
        "QNTY": _fmt(row.total_relevant_inr_quantity, precision),
    }


def _total_record(date_key: str, rows: List[AssetSummary], precision: int) -> Dict[str, str]:
    def total(attribute: str) -> str:
        return _fmt(sum((getattr(row, attribute) for row in rows), ZERO), precision)

    return {
        "Date": date_key,
        "Asset": TOTAL_LABEL,
        "Avg INR Price": "",
        "Avg USDT Price": "",
        "Matched Qty": total("coin_sold_qty"),
        "USDT Cost (Ratio)": "",
        "USDT Qty (Derived)": total("usdt_quantity"),
        "USDT Cost (INR)": total("purchase_cost_inr"),
        "TDS": total("tds"),
        "BUY IN INR": total("total_relevant_inr_value"),
        "QNTY": total("total_relevant_inr_quantity"),
    }


def summaries_to_frame(
    data: Union[MatchResult, Mapping[str, List[AssetSummary]]],
    *,
    precision: int = DEFAULT_PRECISION,
    include_totals: bool = True,
) -> pd.DataFrame:
    """Rows grouped by calendar date, assets sorted within a date, plus a Total row per date.

    Pass ``result.skipped`` to export skipped items in the same layout.
    """

    _check_precision(precision)
    groups = data.iter_summaries() if isinstance(data, MatchResult) else iter_by_date(data)

    records: List[Dict[str, str]] = []
    for date_key, rows in groups:
        ordered = sorted(rows, key=lambda row: row.asset)
        records.extend(_summary_record(date_key, row, precision) for row in ordered)
        if include_totals and ordered:
            records.append(_total_record(date_key, ordered, precision))
    return pd.DataFrame.from_records(records, columns=SUMMARY_COLUMNS)


def summaries_to_csv(
    data: Union[MatchResult, Mapping[str, List[AssetSummary]]],
    *,
    precision: int = DEFAULT_PRECISION,
    include_totals: bool = True,
) -> str:
    frame = summaries_to_frame(data, precision=precision, include_totals=include_totals)
    return frame.to_csv(index=False)


def fifo_matches_to_frame(result: MatchResult, *, precision: int = DEFAULT_PRECISION) -> pd.DataFrame:
    """One row per SellMatch for audit drill-down."""

    _check_precision(precision)
    records: List[Dict[str, Any]] = []
    for _, rows in result.iter_summaries():
        for row in rows:
            for match in row.fifo_matches:
                records.append(
                    {
                        "Sell Date": format_display_datetime(match.sell_timestamp),
                        "Asset": row.asset,
                        "Lot": match.lot_id,
                        "Buy Date": format_display_datetime(match.buy_timestamp),
                        "Quantity": _fmt(match.matched_quantity, precision),
                        "Cost Basis": _fmt(match.cost_basis, precision),
                        "Sell Price": _fmt(match.sell_price, precision),
                        "Profit/Loss": _fmt(match.profit_loss, precision),
                    }
                )
    return pd.DataFrame.from_records(records, columns=MATCH_COLUMNS)


def pnl_to_frame(summary: PnLSummary, *, precision: int = DEFAULT_PRECISION) -> pd.DataFrame:
    _check_precision(precision)
    records = [
        {
            "Date": match.date,
            "Asset": match.asset,
            "Quantity": _fmt(match.matched_quantity, precision),
            "Buy Price": _fmt(match.buy_price, precision),
            "Sell Price": _fmt(match.sell_price, precision),
            "Profit/Loss": _fmt(match.profit_loss, precision),
            "Profit/Loss %": _fmt(match.profit_loss_percentage, 2),
        }
        for match in summary.matches
    ]
    return pd.DataFrame.from_records(records, columns=PNL_COLUMNS)


__all__ = [
    "SUMMARY_COLUMNS",
    "MATCH_COLUMNS",
    "PNL_COLUMNS",
    "summaries_to_frame",
    "summaries_to_csv",
    "fifo_matches_to_frame",
    "pnl_to_frame",
]
