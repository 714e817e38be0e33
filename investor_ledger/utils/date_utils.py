"""Date parsing, formatting and quarter arithmetic"""

import calendar
import re
from datetime import date, datetime
from typing import Iterator, Tuple

from investor_ledger.config import settings
from investor_ledger.domain.exceptions import InvalidDateError

_MONTHS = {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}
_DISPLAY_PATTERN = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$")
_ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value) -> date:
    """
    Canonicalize an input date.

    Accepts a date/datetime, an ISO string (2023-01-31) or the display
    format used on statements (31-Jan-2023).

    Raises:
        InvalidDateError: On unparseable input or a year outside the supported range
    """
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        parsed = _parse_date_string(value.strip())
    else:
        raise InvalidDateError(f"Unsupported date value: {value!r}")

    if not settings.min_supported_year <= parsed.year <= settings.max_supported_year:
        raise InvalidDateError(
            f"Date {parsed.isoformat()} is outside the supported range "
            f"{settings.min_supported_year}-{settings.max_supported_year}"
        )
    return parsed


def _parse_date_string(text: str) -> date:
    try:
        if _ISO_PATTERN.match(text):
            return date.fromisoformat(text)

        match = _DISPLAY_PATTERN.match(text)
        if match:
            day, month_name, year = match.groups()
            month = _MONTHS.get(month_name.lower())
            if month is None:
                raise InvalidDateError(f"Unknown month abbreviation in {text!r}")
            return date(int(year), month, int(day))
    except ValueError as e:
        raise InvalidDateError(f"Invalid date {text!r}: {e}") from e

    raise InvalidDateError(f"Unrecognized date format: {text!r} (expected YYYY-MM-DD or DD-MMM-YYYY)")


def format_display_date(value: date) -> str:
    """Render a date for statements and descriptions (e.g. 01-Jan-2023)"""
    return value.strftime(settings.display_date_format)


def days_in_month(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]


def quarter_of(value: date) -> int:
    """Calendar quarter number 1-4"""
    return (value.month - 1) // 3 + 1


def quarter_dates(quarter, year: int) -> Tuple[date, date]:
    """
    First and last day of a calendar quarter.

    Args:
        quarter: 1-4 or "Q1".."Q4"
        year: Calendar year
    """
    if isinstance(quarter, str):
        label = quarter.strip().upper()
        if not re.fullmatch(r"Q[1-4]", label):
            raise InvalidDateError(f"Invalid quarter: {quarter!r}")
        quarter = int(label[1])
    if quarter not in (1, 2, 3, 4):
        raise InvalidDateError(f"Invalid quarter: {quarter!r}")

    start_month = (quarter - 1) * 3 + 1
    end_month = start_month + 2
    start = parse_date(date(year, start_month, 1))
    end = date(year, end_month, calendar.monthrange(year, end_month)[1])
    return start, end


def quarter_label(value: date) -> str:
    """Quarter name for a date, e.g. 'Q2 2023'"""
    return f"Q{quarter_of(value)} {value.year}"


def following_quarters(today: date, count: int = 4) -> Iterator[Tuple[date, date]]:
    """Yield (start, end) for the `count` quarters after the one containing `today`"""
    quarter = quarter_of(today)
    year = today.year
    for _ in range(count):
        quarter += 1
        if quarter > 4:
            quarter = 1
            year += 1
        yield quarter_dates(quarter, year)
