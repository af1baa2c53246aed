"""
Month key helpers.

A month key is ``YYYY-MM``. "Today" is always taken in the report timezone.
"""

import re
from datetime import date, datetime
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from app.config import settings
from app.utils.error_handling import InvalidMonthException, ValidationException

MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def report_today() -> date:
    """Current date in the report timezone."""
    return datetime.now(ZoneInfo(settings.report_timezone)).date()


def month_key_of(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def validate_month_key(
    month_key: str,
    allow_future: bool = False,
    today: Optional[date] = None,
) -> Tuple[int, int]:
    """Validate a month key and return ``(year, month)``."""
    match = MONTH_KEY_PATTERN.match(month_key or "")
    if not match:
        raise InvalidMonthException(month_key, "expected format YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))

    if not allow_future:
        today = today or report_today()
        if (year, month) > (today.year, today.month):
            raise InvalidMonthException(month_key, "month is in the future")

    return year, month


# Year bounds must stay representable after conversion to UTC
MIN_REPORT_YEAR = 1900
MAX_REPORT_YEAR = 9998


def validate_report_year(year: int) -> int:
    if year < MIN_REPORT_YEAR or year > MAX_REPORT_YEAR:
        raise ValidationException(
            f"Year must be between {MIN_REPORT_YEAR} and {MAX_REPORT_YEAR}",
            field="year",
        )
    return year
