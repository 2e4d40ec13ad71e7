"""
Join Strategies - Predicate Inference for Array Nodes

When the tree interpreter reaches an array bound to a table, a join
strategy decides which rows belong under the current context.

Architecture:
    JoinStrategyBase (ABC)
    ├── HeuristicJoinStrategy → infer joins from column-name coincidence
    └── DeclaredJoinStrategy  → explicit {table: {column: context_key}} joins

Both apply the same date rule: when the call supplies a start and end date,
the first of "date" / "date_service" present on the table is range-filtered.

Pipeline Position:
    Preset → Interpreter → [Join Strategy] → SourceRepository.fetch_rows
                            ^^^^^^^^^^^^^^^
                            You are here

Author: Shubham Singh
Date: December 2025
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Sequence, Set, Type

from loguru import logger

from rips_generation.core.constants import CONTEXT_JOIN_COLUMNS, DATE_FILTER_COLUMNS
from rips_generation.core.enums import JoinMode
from rips_generation.core.models import (
    ColumnInfo,
    EqualsPredicate,
    GlobalParams,
    Predicate,
    RangePredicate,
)
from rips_generation.interpreter.context import ExecutionContext


# =============================================================================
# STAGE 1: ABSTRACT BASE STRATEGY
# =============================================================================


class JoinStrategyBase(ABC):
    """
    Abstract base class for join inference.

    Template Method Pattern:
        Subclasses implement `_join_predicates()`; `build_predicates()` adds
        the shared date-range rule and logs the result.
    """

    @property
    @abstractmethod
    def strategy_name(self) -> str:
        """Human-readable name of this strategy."""
        ...

    def build_predicates(
        self,
        table: str,
        columns: Sequence[ColumnInfo],
        context: ExecutionContext,
        global_params: GlobalParams,
    ) -> List[Predicate]:
        """
        Predicates selecting the rows of `table` that belong under `context`.

        Args:
            table: Table bound to the array node
            columns: Introspected columns of the table
            context: Fields accumulated from ancestor rows
            global_params: Call-wide date range

        Returns:
            Predicates to AND together (possibly empty: every row)
        """
        column_names = {c.name for c in columns}

        predicates: List[Predicate] = []
        date_predicate = self._date_range(column_names, global_params)
        if date_predicate is not None:
            predicates.append(date_predicate)
        predicates.extend(self._join_predicates(table, column_names, context))

        logger.debug(
            f"[{self.strategy_name}] Predicates | table={table} | "
            f"{[type(p).__name__ + ':' + p.column for p in predicates]}"
        )
        return predicates

    @staticmethod
    def _date_range(
        column_names: Set[str], global_params: GlobalParams
    ) -> Optional[RangePredicate]:
        if not global_params.has_date_range:
            return None
        for column in DATE_FILTER_COLUMNS:
            if column in column_names:
                return RangePredicate(column, global_params.date_start, global_params.date_end)
        return None

    @abstractmethod
    def _join_predicates(
        self, table: str, column_names: Set[str], context: ExecutionContext
    ) -> List[Predicate]:
        ...


# =============================================================================
# STAGE 2: HEURISTIC STRATEGY
# =============================================================================


class HeuristicJoinStrategy(JoinStrategyBase):
    """
    Join on well-known key columns by name.

    What it does:
        For each of "pid" and "encounter": when the table has the column and
        the context already holds a truthy value under that name, add an
        equality predicate. A top-level patient list therefore returns all
        patients, and a nested billing list only that encounter's lines.

    Caveat:
        Joins are inferred from names only. A table with an unrelated "pid"
        column would be joined anyway; use DeclaredJoinStrategy for such
        schemas.
    """

    def __init__(self, join_columns: Sequence[str] = CONTEXT_JOIN_COLUMNS):
        self._join_columns = tuple(join_columns)

    @property
    def strategy_name(self) -> str:
        return "heuristic"

    def _join_predicates(
        self, table: str, column_names: Set[str], context: ExecutionContext
    ) -> List[Predicate]:
        predicates: List[Predicate] = []
        for column in self._join_columns:
            value = context.get(column)
            if value and column in column_names:
                predicates.append(EqualsPredicate(column, value))
        return predicates


# =============================================================================
# STAGE 3: DECLARED STRATEGY
# =============================================================================


class DeclaredJoinStrategy(JoinStrategyBase):
    """
    Join on explicitly configured columns.

    Example:
        >>> strategy = DeclaredJoinStrategy({
        ...     "form_encounter": {"pid": "pid"},
        ...     "billing": {"encounter": "encounter"},
        ... })

    Tables without a declaration get no join predicates (date rule only).
    """

    def __init__(self, joins: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._joins: Dict[str, Dict[str, str]] = {
            table: dict(columns) for table, columns in (joins or {}).items()
        }

    @property
    def strategy_name(self) -> str:
        return "declared"

    def _join_predicates(
        self, table: str, column_names: Set[str], context: ExecutionContext
    ) -> List[Predicate]:
        predicates: List[Predicate] = []
        for column, context_key in self._joins.get(table, {}).items():
            value = context.get(context_key)
            if not value:
                continue
            if column_names and column not in column_names:
                logger.warning(f"Declared join column missing | table={table} | column={column}")
                continue
            predicates.append(EqualsPredicate(column, value))
        return predicates


# =============================================================================
# STAGE 4: STRATEGY REGISTRY
# =============================================================================

JOIN_STRATEGY_REGISTRY: Dict[JoinMode, Type[JoinStrategyBase]] = {
    JoinMode.HEURISTIC: HeuristicJoinStrategy,
    JoinMode.DECLARED: DeclaredJoinStrategy,
}


def create_join_strategy(
    mode: JoinMode, declared_joins: Optional[Mapping[str, Mapping[str, str]]] = None
) -> JoinStrategyBase:
    """
    Instantiate the strategy registered for `mode`.

    Raises:
        ValueError: If the mode is not registered
    """
    if mode not in JOIN_STRATEGY_REGISTRY:
        available = [m.value for m in JOIN_STRATEGY_REGISTRY]
        raise ValueError(f"Unknown join mode: {mode}. Available: {available}")
    if mode == JoinMode.DECLARED:
        return DeclaredJoinStrategy(declared_joins)
    return JOIN_STRATEGY_REGISTRY[mode]()
