"""
Number Helpers

Author: Shubham Singh
Date: December 2025
"""

import math
from decimal import Decimal
from typing import Any, Optional, Union


def to_number(value: Any, default: Optional[Union[int, float]] = None):
    """
    Coerce EMR values (Decimal, numeric strings) to int/float.

    Booleans are not numbers here. Returns `default` when coercion fails.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
        if not math.isfinite(number):
            return default
        return int(number) if number.is_integer() and "." not in text else number
    return default
