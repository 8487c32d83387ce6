"""
Shared utility functions for the orchid-predict package.
"""

import math
import re
from datetime import date
from typing import Any

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: str) -> date | None:
    """Parse a strict YYYY-MM-DD string into a real calendar date.

    Returns None if the value is not a string, does not match the
    pattern, or names a day that does not exist (e.g. '2024-02-30').

    Args:
        value: The date string to parse.

    Returns:
        A date object, or None if parsing fails.
    """
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_number(value: Any) -> bool:
    """True for real int/float values. Booleans and NaN are not numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and empty containers.

    A dict is blank when every value in it is blank, so
    {"temperatura": {}} counts as not filled in.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, dict):
        return all(is_blank(v) for v in value.values())
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
