"""
Numeric coercion for values arriving as strings or numbers.

Foxy sends prices and quantities as strings ("10.00"), catalogs as numbers
or strings. Two coercions are used:

- parse_float: lenient, reads the leading numeric prefix ("10.0 USD" -> 10.0)
- to_number: strict, the whole string must be numeric ("" -> 0.0)

Both return None instead of raising when a value is not numeric.
"""

import math
import re
from typing import Any, Optional


_NUMERIC = r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
_NUMERIC_PREFIX = re.compile(r"\s*(" + _NUMERIC + ")")
_NUMERIC_FULL = re.compile(_NUMERIC)


def _from_number(value: Any) -> Optional[float]:
    result = float(value)
    return None if math.isnan(result) else result


def parse_float(value: Any) -> Optional[float]:
    """
    Parse the leading number of a value.

    Examples:
        parse_float("10") -> 10.0
        parse_float(" 10.0 ") -> 10.0
        parse_float("12abc") -> 12.0
        parse_float("abc") -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_number(value)
    match = _NUMERIC_PREFIX.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def to_number(value: Any) -> Optional[float]:
    """
    Convert a whole value to a number.

    Examples:
        to_number("5") -> 5.0
        to_number(" 5 ") -> 5.0
        to_number("") -> 0.0
        to_number("5 units") -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_number(value)
    text = str(value).strip()
    if not text:
        return 0.0
    if not _NUMERIC_FULL.fullmatch(text):
        return None
    return float(text)
