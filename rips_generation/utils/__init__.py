"""
Utilities - date and number helpers shared across layers.

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.utils.dates import (
    parse_datetime,
    to_iso_date,
    to_iso_datetime,
    ceil_days_between,
    compute_age,
)
from rips_generation.utils.numbers import to_number

__all__ = [
    "parse_datetime",
    "to_iso_date",
    "to_iso_datetime",
    "ceil_days_between",
    "compute_age",
    "to_number",
]
