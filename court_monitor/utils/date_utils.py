"""Date manipulation utilities for contract validity"""

import logging
import re
from datetime import date, datetime
from dateutil.relativedelta import relativedelta

from court_monitor.domain.exceptions import InvalidInput

logger = logging.getLogger(__name__)

MIN_CONTRACT_YEAR = 2000
MAX_CONTRACT_YEAR = 2099

_LEADING_DIGITS = re.compile(r"(\d+)")


def _coerce_date(value) -> date | None:
    """Return value as a date (datetimes truncated, ISO strings parsed), or None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            return None
    return None


def is_valid_contract_date(value) -> bool:
    """True when value is a real date with a year in [2000, 2099]"""
    parsed = _coerce_date(value)
    return parsed is not None and MIN_CONTRACT_YEAR <= parsed.year <= MAX_CONTRACT_YEAR


def add_months(base_date, months: int) -> date:
    """
    Add a whole number of months to a date.

    Year and month are set directly (October + 6 -> April of next year). When the
    target month is shorter, the day clamps to its last day:
    2025-01-31 + 1 month -> 2025-02-28.

    Raises:
        InvalidInput: base_date is missing/unparsable, months <= 0, or the result
            falls outside the representable date range
    """
    parsed = _coerce_date(base_date)
    if parsed is None:
        raise InvalidInput(f"Invalid base date: {base_date!r}")
    if not isinstance(months, int) or isinstance(months, bool) or months <= 0:
        raise InvalidInput(f"Months to add must be a positive integer, got {months!r}")

    try:
        return parsed + relativedelta(months=months)
    except (ValueError, OverflowError) as e:
        raise InvalidInput(f"{parsed.isoformat()} + {months} months is out of range") from e


def days_remaining(expiration_date, today: date | None = None) -> int:
    """
    Whole days from today until expiration_date (negative once expired).

    Soft-fails to 0 on missing, unparsable or out-of-range input; callers iterate
    over many records and one bad row must not abort the batch.
    """
    parsed = _coerce_date(expiration_date)
    if parsed is None:
        if expiration_date is not None:
            logger.warning("Invalid expiration date", extra={"expiration_date": str(expiration_date)})
        return 0

    if not is_valid_contract_date(parsed):
        logger.warning("Expiration date out of range", extra={"expiration_date": parsed.isoformat()})
        return 0

    # Both operands are whole dates, so the ceil of the midnight difference is the day delta
    return (parsed - (today or date.today())).days


def extract_months(duration_text: str | None) -> int:
    """Leading month count of a display duration ("6 meses" -> 6), 0 if none"""
    if not duration_text:
        return 0
    match = _LEADING_DIGITS.search(duration_text)
    return int(match.group(1)) if match else 0


def format_duration(months: int) -> str:
    """Display text stored on renewal rows"""
    return f"{months} meses"
