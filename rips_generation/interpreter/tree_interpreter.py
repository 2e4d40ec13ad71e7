"""
Tree Interpreter - Preset-Driven Document Synthesis

Walks the schema AST together with a preset's MappingConfig and produces
the RIPS document. Arrays iterate source tables, leaves resolve through
their binding, and every row's fields flow down to its descendants through
the execution context.

Pipeline Position:
    Preset → MappingConfig → [Tree Interpreter] → Validation → Output
                              ^^^^^^^^^^^^^^^^
                              You are here

Failure Policy:
    Nothing below the root aborts the walk. A failed introspection or
    fetch yields [] for that array, a failed lookup or derivation yields
    null. Each failure is logged with the node path and table.

Usage:
    interpreter = TreeInterpreter(source=sql_source, references=store.references)
    document = interpreter.generate(mapping, GlobalParams("2025-01-01", "2025-01-31"))

Author: Shubham Singh
Date: December 2025
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from rips_generation.core.enums import ContextMode
from rips_generation.core.models import ColumnInfo, GlobalParams
from rips_generation.interpreter.context import ExecutionContext
from rips_generation.interpreter.derivations import apply_derivation
from rips_generation.interpreter.join_strategies import (
    HeuristicJoinStrategy,
    JoinStrategyBase,
)
from rips_generation.repository.protocols import ReferenceLookup, SourceRepository
from rips_generation.schema.bindings import (
    DerivedBinding,
    ForeignLookupBinding,
    ListSourceBinding,
    LocalFieldBinding,
    MappingConfig,
    SourceFieldBinding,
    StaticBinding,
)
from rips_generation.schema.nodes import (
    ArrayNode,
    LeafNode,
    ObjectNode,
    Path,
    RootNode,
    SchemaNode,
    format_path,
    join_path,
)
from rips_generation.schema.rips_schema import RIPS_SCHEMA


class TreeInterpreter:
    """
    Recursive schema interpreter.

    What it does:
        Produces a JSON-compatible value for any schema node: an ordered
        dict for root/object nodes, a list of dicts for arrays, a scalar or
        None for leaves.

    When to use:
        - Preset-driven generation (RipsPipeline.generate_from_preset)
        - Previewing a preset against a test database

    Example:
        >>> interpreter = TreeInterpreter(source, references)
        >>> document = interpreter.generate(mapping, GlobalParams())
        >>> document["transaccion"]["usuarios"][0]["consecutivo"]
        1
    """

    def __init__(
        self,
        source: SourceRepository,
        references: Optional[ReferenceLookup] = None,
        join_strategy: Optional[JoinStrategyBase] = None,
        context_mode: ContextMode = ContextMode.SHADOWING,
    ):
        self._source = source
        self._references = references
        self._join_strategy = join_strategy or HeuristicJoinStrategy()
        self._context_mode = context_mode

    # =========================================================================
    # STAGE 1: ENTRY POINTS
    # =========================================================================

    def generate(
        self,
        mapping: MappingConfig,
        global_params: GlobalParams,
        schema: SchemaNode = RIPS_SCHEMA,
    ) -> Dict[str, Any]:
        """Interpret the whole schema from an empty context."""
        context = ExecutionContext(mode=self._context_mode)
        return self.interpret(schema, (), mapping, context, global_params)

    def interpret(
        self,
        node: SchemaNode,
        path: Path,
        mapping: MappingConfig,
        context: ExecutionContext,
        global_params: GlobalParams,
    ) -> Any:
        """Value of `node` at `path` under `context`."""
        if isinstance(node, (RootNode, ObjectNode)):
            return self._interpret_children(node, path, mapping, context, global_params)
        if isinstance(node, ArrayNode):
            return self._interpret_array(node, path, mapping, context, global_params)
        return self._resolve_leaf(path, mapping, context)

    # =========================================================================
    # STAGE 2: CONTAINERS
    # =========================================================================

    def _interpret_children(
        self,
        node: SchemaNode,
        path: Path,
        mapping: MappingConfig,
        context: ExecutionContext,
        global_params: GlobalParams,
    ) -> Dict[str, Any]:
        return {
            key: self.interpret(child, join_path(path, key), mapping, context, global_params)
            for key, child in node.children
        }

    def _interpret_array(
        self,
        node: ArrayNode,
        path: Path,
        mapping: MappingConfig,
        context: ExecutionContext,
        global_params: GlobalParams,
    ) -> List[Dict[str, Any]]:
        key = format_path(path)
        binding = mapping.get(path)
        if not isinstance(binding, ListSourceBinding) or not binding.table:
            logger.warning(f"No list mapping found for array | path={key}")
            return []

        table = binding.table

        # STAGE 2.1: Introspect (failure → empty array)
        try:
            columns: List[ColumnInfo] = self._source.columns_of(table)
        except Exception as e:
            logger.error(f"Failed to get columns | path={key} | table={table} | {e}")
            return []

        # STAGE 2.2: Fetch (failure → empty array)
        predicates = self._join_strategy.build_predicates(table, columns, context, global_params)
        try:
            rows = self._source.fetch_rows(table, predicates)
        except Exception as e:
            logger.error(f"Query failed | path={key} | table={table} | {e}")
            return []

        # STAGE 2.3: One object per row, in fetch order
        results = []
        for index, row in enumerate(rows, start=1):
            row_context = context.child(table, row, row_index=index)
            results.append(
                self._interpret_children(node, path, mapping, row_context, global_params)
            )

        logger.debug(f"Array resolved | path={key} | table={table} | rows={len(results)}")
        return results

    # =========================================================================
    # STAGE 3: LEAVES
    # =========================================================================

    def _resolve_leaf(
        self, path: Path, mapping: MappingConfig, context: ExecutionContext
    ) -> Any:
        binding = mapping.get(path)
        if binding is None:
            return None

        if isinstance(binding, StaticBinding):
            return binding.value

        if isinstance(binding, (SourceFieldBinding, LocalFieldBinding)):
            return context.field(binding.table, binding.column)

        if isinstance(binding, ForeignLookupBinding):
            return self._resolve_lookup(path, binding, context)

        if isinstance(binding, DerivedBinding):
            try:
                return apply_derivation(context, binding)
            except Exception as e:
                logger.error(
                    f"Derivation failed | path={format_path(path)} | "
                    f"function={binding.function} | {e}"
                )
                return None

        # A list binding on a leaf has nothing to resolve
        logger.warning(f"Unusable binding on leaf | path={format_path(path)} | type={binding.type}")
        return None

    def _resolve_lookup(
        self, path: Path, binding: ForeignLookupBinding, context: ExecutionContext
    ) -> Any:
        source_value = context.get(binding.source_column)
        if source_value is None or self._references is None:
            return None
        try:
            record = self._references.find_one(
                binding.ref_table, binding.match_column, str(source_value)
            )
        except Exception as e:
            logger.error(
                f"Lookup failed | path={format_path(path)} | "
                f"table={binding.ref_table} | {e}"
            )
            return None
        if record is None:
            return None
        return record.get(binding.return_column)
