"""
Utilities Module

This module provides numeric, date and formatting helpers shared by the
statistics, pending-ledger and splitter modules.

Features:
    - Safe numeric coercion for dirty stored amounts
    - Half-up rounding (2-place money, whole-number percentages)
    - Currency and date formatting for reports
    - Month names and the trailing month window used by the statistics chart

Functions:
    safe_number: Coerce a value to a finite float with a default.
    safe_amount: Coerce a value to a finite non-negative float.
    round_money: Round a value to 2 decimal places (half-up).
    round_half_up: Round a value to the nearest integer (half-up).
    calculate_percentage: Whole-number percentage of a over b.
    render_safe_amount: Format an amount with thousands separators.
    format_currency: Format an amount in Thai baht.
    format_date: Format a date for display.
    get_month_name / get_month_abbr: Month labels by zero-based index.
    to_datetime: Convert stored date values to datetime.
    create_last_6_months_data: Build the zero-filled monthly buckets.
"""

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from config.settings import CURRENCY_SYMBOL, MONTH_WINDOW


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

MONTH_ABBR = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


def _round_decimal(value: Decimal) -> float:
    """
    Round a Decimal to 2 decimal places and convert to float.

    Args:
        value: Decimal value to round.

    Returns:
        float: Rounded value as float.
    """
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def safe_number(value: Any, default: float = 0.0) -> float:
    """
    Coerce a value to a finite float.

    Accepts ints, floats, Decimals and numeric strings. Anything else
    (None, "abc", NaN, inf, lists) returns the default.

    Args:
        value: Raw value from a stored record.
        default: Value returned when coercion fails.

    Returns:
        float: The coerced number or the default.
    """
    if value is None or isinstance(value, (list, dict, tuple, set)):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def safe_amount(value: Any) -> float:
    """Coerce a monetary value to a finite non-negative float (0 on failure)."""
    number = safe_number(value, 0.0)
    return number if number > 0 else 0.0


def round_money(value: float) -> float:
    """Round a float to 2 decimal places using ROUND_HALF_UP."""
    return _round_decimal(Decimal(str(value)))


def round_half_up(value: float) -> int:
    """Round a float to the nearest integer, halves away from zero."""
    try:
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def calculate_percentage(a: float, b: float) -> int:
    """
    Calculate round(a / b * 100).

    Args:
        a: Numerator.
        b: Denominator.

    Returns:
        int: The percentage, or 0 when b is zero, NaN or infinite.
    """
    a = safe_number(a)
    b = safe_number(b)
    if not b:
        return 0
    return round_half_up(a / b * 100)


def render_safe_amount(amount: Any) -> str:
    """Format an amount with thousands separators; non-finite values render as '0'."""
    number = safe_number(amount, None)
    if number is None:
        return "0"
    if number == int(number):
        return f"{int(number):,}"
    return f"{number:,.2f}".rstrip("0").rstrip(".")


def format_currency(amount: Any) -> str:
    """Format an amount in baht with no decimals, e.g. ฿1,235."""
    value = round_half_up(safe_number(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(value):,}"


def format_date(value: date) -> str:
    """Format a date as 'October 19, 2026'."""
    return f"{MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"


def get_month_name(month_index: int) -> str:
    if 0 <= month_index < len(MONTH_NAMES):
        return MONTH_NAMES[month_index]
    return "Unknown month"


def get_month_abbr(month_index: int) -> str:
    if 0 <= month_index < len(MONTH_ABBR):
        return MONTH_ABBR[month_index]
    return "Unknown"


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert a stored date value to a datetime.

    Handles datetime (including Firestore's DatetimeWithNanoseconds),
    date, ISO-8601 strings (with a trailing 'Z') and objects exposing
    ``to_datetime()``.

    Args:
        value: The stored value.

    Returns:
        datetime | None: The converted value, or None if it cannot be read.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    converter = getattr(value, "to_datetime", None)
    if callable(converter):
        converted = converter()
        return converted if isinstance(converted, datetime) else None
    return None


def month_key(value: date) -> str:
    """Return the '{year}-{month}' bucket key, month one-based and unpadded."""
    return f"{value.year}-{value.month}"


def create_last_6_months_data(now: date) -> tuple[list[dict], dict[str, int]]:
    """
    Build zero-filled monthly buckets covering [now - 5 months .. now].

    Month arithmetic is calendar based, so a window anchored on the 31st
    still yields six distinct consecutive months.

    Args:
        now: Anchor date of the window.

    Returns:
        tuple: (month_data, month_lookup)
            - month_data: list of {name, month, value, year_month}, oldest first
            - month_lookup: year_month key -> index into month_data
    """
    month_data = []
    month_lookup = {}

    anchor = now.year * 12 + (now.month - 1)
    for offset in range(MONTH_WINDOW - 1, -1, -1):
        year, month_index = divmod(anchor - offset, 12)
        year_month = f"{year}-{month_index + 1}"

        month_lookup[year_month] = len(month_data)
        month_data.append({
            "name": get_month_abbr(month_index),
            "month": get_month_name(month_index),
            "value": 0,
            "year_month": year_month,
        })

    return month_data, month_lookup
