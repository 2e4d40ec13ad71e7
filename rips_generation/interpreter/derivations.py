"""
Derived Field Functions

Functions available to the "derived" binding. They let a preset express
the computations the direct pipeline hard-codes in its mappers:

    row_number    → 1-based index of the current array row (consecutivo)
    iso_date      → YYYY-MM-DD of the first column
    iso_datetime  → YYYY-MM-DD HH:MM of the first column
    days_between  → ceil(whole days) between the first two columns
    coalesce      → first non-empty value among the columns
    number        → first column as a number

Example binding:
    {"type": "derived", "function": "days_between",
     "columns": ["start_date", "end_date"], "default": 0}

Author: Shubham Singh
Date: December 2025
"""

from typing import Any, Callable, Dict, List

from rips_generation.interpreter.context import ExecutionContext
from rips_generation.schema.bindings import DerivedBinding
from rips_generation.utils.dates import ceil_days_between, to_iso_date, to_iso_datetime
from rips_generation.utils.numbers import to_number


Derivation = Callable[[ExecutionContext, DerivedBinding], Any]


def _column_values(context: ExecutionContext, binding: DerivedBinding) -> List[Any]:
    return [context.get(column) for column in binding.columns]


def _first(context: ExecutionContext, binding: DerivedBinding) -> Any:
    values = _column_values(context, binding)
    return values[0] if values else None


def row_number(context: ExecutionContext, binding: DerivedBinding) -> Any:
    return context.row_index if context.row_index > 0 else binding.default


def iso_date(context: ExecutionContext, binding: DerivedBinding) -> Any:
    return to_iso_date(_first(context, binding)) or binding.default


def iso_datetime(context: ExecutionContext, binding: DerivedBinding) -> Any:
    return to_iso_datetime(_first(context, binding)) or binding.default


def days_between(context: ExecutionContext, binding: DerivedBinding) -> Any:
    values = _column_values(context, binding)
    if len(values) < 2:
        raise ValueError("days_between needs two columns")
    if values[0] is None or values[1] is None:
        return binding.default if binding.default is not None else 0
    return ceil_days_between(values[0], values[1])


def coalesce(context: ExecutionContext, binding: DerivedBinding) -> Any:
    for value in _column_values(context, binding):
        if value not in (None, ""):
            return value
    return binding.default


def number(context: ExecutionContext, binding: DerivedBinding) -> Any:
    return to_number(_first(context, binding), binding.default)


DERIVATION_REGISTRY: Dict[str, Derivation] = {
    "row_number": row_number,
    "iso_date": iso_date,
    "iso_datetime": iso_datetime,
    "days_between": days_between,
    "coalesce": coalesce,
    "number": number,
}


def apply_derivation(context: ExecutionContext, binding: DerivedBinding) -> Any:
    """
    Evaluate a derived binding.

    Raises:
        ValueError: Unknown function or unusable arguments
    """
    function = DERIVATION_REGISTRY.get(binding.function)
    if function is None:
        raise ValueError(
            f"Unknown derivation '{binding.function}'. Available: {sorted(DERIVATION_REGISTRY)}"
        )
    return function(context, binding)
