"""
Execution Context

The field values visible to a node while the tree interpreter walks the
schema. Each array row produces a child context; siblings never share one.

Merge Modes:
    SHADOWING   child = {**parent, **row}; row fields overwrite ancestor
                fields with the same name.
    NAMESPACED  every row field is stored as "<table>.<column>"; the bare
                name is only added when no ancestor already set it, so an
                encounter's "date" is not hidden by a billing row's "date".

Author: Shubham Singh
Date: December 2025
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from rips_generation.core.enums import ContextMode


class ExecutionContext:
    """
    Accumulated row fields plus the 1-based index of the current array row.

    Example:
        >>> root = ExecutionContext()
        >>> user = root.child("patient_data", {"pid": 7, "ss": "123"}, row_index=1)
        >>> user.get("pid")
        7
    """

    __slots__ = ("_values", "_mode", "row_index")

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        mode: ContextMode = ContextMode.SHADOWING,
        row_index: int = 0,
    ):
        self._values: Dict[str, Any] = dict(values or {})
        self._mode = mode
        self.row_index = row_index

    @property
    def mode(self) -> ContextMode:
        return self._mode

    @property
    def values(self) -> Mapping[str, Any]:
        """Read-only view of the stored fields."""
        return MappingProxyType(self._values)

    def child(self, table: str, row: Mapping[str, Any], row_index: int) -> "ExecutionContext":
        """Context for one row of `table` under this context."""
        merged = dict(self._values)
        if self._mode == ContextMode.NAMESPACED:
            for column, value in row.items():
                merged[f"{table}.{column}"] = value
                merged.setdefault(column, value)
        else:
            merged.update(row)
        return ExecutionContext(merged, self._mode, row_index)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def field(self, table: str, column: str) -> Any:
        """
        Value of a bound column, or None.

        Namespaced contexts prefer the table-qualified entry.
        """
        if self._mode == ContextMode.NAMESPACED and table:
            qualified = f"{table}.{column}"
            if qualified in self._values:
                return self._values[qualified]
        return self._values.get(column)

    def __repr__(self) -> str:
        return f"ExecutionContext(mode={self._mode.value}, row_index={self.row_index}, keys={len(self._values)})"
