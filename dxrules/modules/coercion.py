"""
dxrules Value Coercion
Explicit, total conversions for loosely typed spreadsheet and form values
"""

import math
from typing import Any, List, Optional, Union

Number = Union[int, float]


def is_numeric(value: Any) -> bool:
    """True for real int/float values (bool is not a number here)"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def try_parse_number(value: Any) -> Optional[Number]:
    """
    Parse a number out of a raw value

    Args:
        value: int, float or numeric string ("45", " 3.5 ")

    Returns:
        The number, or None when the value is not numeric. Never raises.
    """
    if is_numeric(value):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def is_blank(value: Any) -> bool:
    """None or an empty/whitespace string"""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def clean_text(value: Any) -> str:
    """Trimmed string form of a cell; None becomes ''"""
    if value is None:
        return ""
    return str(value).strip()


def split_csv(value: Any) -> List[str]:
    """Split a comma-separated cell, trimming tokens and dropping empties"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [clean_text(v) for v in value if not is_blank(v)]
    return [token.strip() for token in str(value).split(",") if token.strip()]
