"""Turn raw spreadsheet rows into typed :class:`Transaction` objects.

Row contract (0-based): 0 pair symbol, 2 date serial, 3 side, 4 price,
5 quantity, 6 optional total cost, 7 optional TDS. Anything that cannot be
parsed is skipped and logged; a bad row never aborts the batch.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Sequence

from .dates import as_utc, excel_serial_to_datetime
from .grouping import extract_base_asset, extract_quote_currency
from .models import ZERO, QuoteCurrency, Side, Transaction

logger = logging.getLogger(__name__)

MIN_COLUMNS = 6
SYMBOL_COL, DATE_COL, SIDE_COL, PRICE_COL, QUANTITY_COL, TOTAL_COL, TDS_COL = 0, 2, 3, 4, 5, 6, 7


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Parse a numeric cell, stripping thousands separators.

    Returns ``None`` for blanks, non-numeric text and non-finite values.
    """

    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    text = str(value).strip().replace(",", "")
    try:
        parsed = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    return parsed if parsed.is_finite() else None


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if len(row) > index else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept a date serial, or an already-typed datetime from a spreadsheet reader."""

    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return as_utc(datetime(value.year, value.month, value.day))
    return excel_serial_to_datetime(str(value).strip())


def normalize_row(row: Any, row_index: int = 0) -> Optional[Transaction]:
    """Return a Transaction for ``row`` or ``None`` when it should be skipped."""

    if not isinstance(row, (list, tuple)) or len(row) < MIN_COLUMNS:
        logger.debug("Row %s: skipping, insufficient columns", row_index)
        return None

    symbol = "" if _is_blank(row[SYMBOL_COL]) else str(row[SYMBOL_COL]).strip()
    side_text = "" if _is_blank(row[SIDE_COL]) else str(row[SIDE_COL]).strip().upper()
    price = parse_decimal(row[PRICE_COL])
    quantity = parse_decimal(row[QUANTITY_COL])
    if not symbol or not side_text or price is None or quantity is None or price < 0 or quantity < 0:
        logger.debug(
            "Row %s: skipping invalid/missing data (symbol=%r side=%r price=%r quantity=%r)",
            row_index,
            symbol,
            side_text,
            row[PRICE_COL],
            row[QUANTITY_COL],
        )
        return None
    try:
        side = Side(side_text)
    except ValueError:
        logger.debug("Row %s: skipping unsupported side %r", row_index, side_text)
        return None

    base_asset = extract_base_asset(symbol)
    if not base_asset:
        logger.debug("Row %s: could not determine base asset for %r", row_index, symbol)
        return None

    quote = extract_quote_currency(symbol)
    if quote is QuoteCurrency.UNKNOWN:
        logger.warning("Row %s: unrecognized quote currency for symbol %r", row_index, symbol)

    raw_date = _cell(row, DATE_COL)
    timestamp = parse_timestamp(raw_date)
    if timestamp is None:
        logger.debug("Row %s: could not parse date %r for %s", row_index, raw_date, symbol)

    tds_cell = _cell(row, TDS_COL)
    tds = parse_decimal(tds_cell)
    if tds is None:
        if not _is_blank(tds_cell):
            logger.debug("Row %s: ignoring unparseable TDS %r", row_index, tds_cell)
        tds = ZERO

    return Transaction(
        timestamp=timestamp,
        raw_date="" if _is_blank(raw_date) else str(raw_date).strip(),
        symbol=symbol,
        base_asset=base_asset,
        quote=quote,
        side=side,
        price=price,
        quantity=quantity,
        total_cost=parse_decimal(_cell(row, TOTAL_COL)),
        tds=tds,
        row_index=row_index,
    )


def normalize_rows(rows: Iterable[Any]) -> List[Transaction]:
    """Normalize a batch of rows; row indexes are 1-based."""

    transactions: List[Transaction] = []
    total = 0
    for index, row in enumerate(rows, start=1):
        total += 1
        try:
            transaction = normalize_row(row, index)
        except Exception:  # noqa: BLE001 - one bad row must not abort the batch
            logger.exception("Row %s: unexpected error while normalizing", index)
            continue
        if transaction is not None:
            transactions.append(transaction)
    skipped = total - len(transactions)
    logger.info("Normalized %s of %s rows (%s skipped)", len(transactions), total, skipped)
    return transactions


__all__ = ["parse_decimal", "parse_timestamp", "normalize_row", "normalize_rows"]
