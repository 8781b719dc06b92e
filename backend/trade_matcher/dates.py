"""Spreadsheet date-serial conversion and display formatting."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

EXCEL_EPOCH_OFFSET_DAYS = 25569
MILLISECONDS_PER_DAY = 86_400_000
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
PLAUSIBLE_YEARS = (1950, 2100)

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_DISPLAY_DATE_RE = re.compile(r"^(\d{1,2})(?:st|nd|rd|th) ([A-Za-z]+), (\d{4})$")


def excel_serial_to_datetime(serial: Decimal | float | int | str) -> datetime | None:
    """Convert a spreadsheet date serial (days since 1899-12-30) to a UTC datetime.

    Returns ``None`` for non-numeric, non-positive or unrepresentable serials.
    Dates outside the plausible year range are logged but still returned.
    """

    try:
        value = Decimal(str(serial).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    milliseconds = int((value - EXCEL_EPOCH_OFFSET_DAYS) * MILLISECONDS_PER_DAY)
    try:
        converted = UNIX_EPOCH + timedelta(milliseconds=milliseconds)
    except OverflowError:
        logger.warning("Date serial %s is outside the representable range", serial)
        return None
    if not PLAUSIBLE_YEARS[0] <= converted.year <= PLAUSIBLE_YEARS[1]:
        logger.warning("Unusual date generated from serial %s: %s", serial, converted.isoformat())
    return converted


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day(value: datetime) -> date:
    return as_utc(value).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the ``[start, end)`` UTC interval covering ``day``."""

    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _day_suffix(day: int) -> str:
    if day in (1, 21, 31):
        return "st"
    if day in (2, 22):
        return "nd"
    if day in (3, 23):
        return "rd"
    return "th"


def format_display_date(value: date | datetime | None) -> str:
    """Format as ``'25th April, 2025'`` using UTC calendar fields."""

    if value is None:
        return "Invalid Date"
    if isinstance(value, datetime):
        value = utc_day(value)
    return f"{value.day}{_day_suffix(value.day)} {_MONTH_NAMES[value.month - 1]}, {value.year}"


def format_display_datetime(value: datetime | None) -> str:
    if value is None:
        return "Invalid Date"
    value = as_utc(value)
    return f"{format_display_date(value)} {value:%H:%M:%S}"


def parse_display_date(text: str) -> date | None:
    """Inverse of :func:`format_display_date`; ``None`` for anything else."""

    match = _DISPLAY_DATE_RE.match(text.strip())
    if not match:
        return None
    day, month_name, year = match.groups()
    try:
        month = _MONTH_NAMES.index(month_name.capitalize()) + 1
        return date(int(year), month, int(day))
    except ValueError:
        return None


__all__ = [
    "EXCEL_EPOCH_OFFSET_DAYS",
    "excel_serial_to_datetime",
    "as_utc",
    "utc_day",
    "day_bounds",
    "format_display_date",
    "format_display_datetime",
    "parse_display_date",
]
