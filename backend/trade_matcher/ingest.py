"""Read exported trade logs (CSV or Excel) into raw row arrays."""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Any, BinaryIO, List, Sequence, Union

import pandas as pd

from .errors import HeaderNotFoundError

logger = logging.getLogger(__name__)

EXPECTED_HEADER_COLUMNS = ("pair", "side", "price", "quantity")
HEADER_SEARCH_ROWS = 10
MAX_CSV_COLUMNS = 32
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

Source = Union[str, Path, bytes, BinaryIO]


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _is_excel(source: Source, filename: str | None) -> bool:
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    return Path(name).suffix.lower() in EXCEL_SUFFIXES


def _as_readable(source: Source) -> Union[str, Path, BinaryIO]:
    if isinstance(source, bytes):
        return io.BytesIO(source)
    return source


def read_frame(source: Source, *, filename: str | None = None) -> pd.DataFrame:
    """Load the first sheet (or the CSV) without interpreting any header."""

    readable = _as_readable(source)
    if _is_excel(source, filename):
        return pd.read_excel(readable, sheet_name=0, header=None, dtype=object, engine="openpyxl")
    return pd.read_csv(
        readable,
        header=None,
        names=list(range(MAX_CSV_COLUMNS)),
        dtype=object,
        skip_blank_lines=True,
        keep_default_na=True,
    )


def _frame_rows(frame: pd.DataFrame) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for values in frame.itertuples(index=False, name=None):
        row = [_clean(value) for value in values]
        while row and row[-1] is None:
            row.pop()
        rows.append(row)
    return rows


def find_header_row(
    rows: Sequence[Sequence[Any]],
    expected: Sequence[str] = EXPECTED_HEADER_COLUMNS,
    search_rows: int = HEADER_SEARCH_ROWS,
) -> int:
    """Index of the first row whose cells mention every expected column name."""

    for index, row in enumerate(rows[:search_rows]):
        cells = [str(cell).strip().lower() for cell in row if cell is not None]
        if all(any(name in cell for cell in cells) for name in expected):
            return index
    raise HeaderNotFoundError(
        f"Could not find a header row containing {', '.join(expected)} in the first {search_rows} rows"
    )


def extract_data_rows(rows: Sequence[Sequence[Any]]) -> List[List[Any]]:
    header_index = find_header_row(rows)
    data = [list(row) for row in rows[header_index + 1 :] if any(cell is not None for cell in row)]
    logger.info("Header found on row %s; %s data rows", header_index + 1, len(data))
    return data


def read_trade_rows(source: Source, *, filename: str | None = None) -> List[List[Any]]:
    """Return the data rows below the detected header of a trade log."""

    frame = read_frame(source, filename=filename)
    return extract_data_rows(_frame_rows(frame))


__all__ = [
    "EXPECTED_HEADER_COLUMNS",
    "HEADER_SEARCH_ROWS",
    "read_frame",
    "find_header_row",
    "extract_data_rows",
    "read_trade_rows",
]
