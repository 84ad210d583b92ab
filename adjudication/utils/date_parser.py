"""Date parsing utilities for claim service dates."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

# Reasonable date bounds for claim service dates
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100

# Spreadsheet serial day 0 (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = datetime(1899, 12, 30)
MAX_EXCEL_SERIAL = 80000

DATE_FORMATS = (
    "%Y-%m-%d",  # ISO 8601
    "%Y-%m-%dT%H:%M:%S",  # ISO 8601 with time
    "%m/%d/%Y",  # US format
    "%m/%d/%y",  # US format, two-digit year
    "%Y%m%d",  # Compact
    "%d-%b-%Y",  # 15-Jan-2024
)


def _from_excel_serial(value: float) -> datetime | None:
    if not math.isfinite(value) or value <= 0 or value > MAX_EXCEL_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=int(value))


def parse_flexible_date(date_value: str | float | int | None) -> datetime | None:
    """Parse a service date from the formats claim spreadsheets use.

    Supports:
    - ISO 8601: YYYY-MM-DD, optionally with a time part
    - US format: MM/DD/YYYY and MM/DD/YY
    - Compact: YYYYMMDD
    - Spreadsheet serial day numbers (e.g., 45306 for 2024-01-15)

    Returns None for unparseable input, impossible calendar dates and years
    outside 1900-2100.

    Examples:
        >>> parse_flexible_date("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> parse_flexible_date("01/15/24")
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> parse_flexible_date(45306)
        datetime.datetime(2024, 1, 15, 0, 0)
        >>> parse_flexible_date("2024-02-30")
        None
    """
    if date_value is None or isinstance(date_value, bool):
        return None

    if isinstance(date_value, (int, float)):
        return _from_excel_serial(float(date_value))

    date_str = str(date_value).strip()
    if not date_str:
        return None

    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(date_str, fmt)
        except ValueError:
            # strptime raises ValueError for invalid dates like Feb 30
            continue
        if parsed.year < MIN_VALID_YEAR or parsed.year > MAX_VALID_YEAR:
            continue
        return parsed

    # Serial numbers exported as text ("45306" or "45306.0")
    if len(date_str) <= 7:
        try:
            return _from_excel_serial(float(date_str))
        except ValueError:
            return None

    return None


def normalize_service_date(date_value: str | float | int | None) -> str:
    """ISO date string for a parseable value, otherwise the trimmed original text."""
    parsed = parse_flexible_date(date_value)
    if parsed is not None:
        return parsed.date().isoformat()
    if date_value is None:
        return ""
    return str(date_value).strip()
