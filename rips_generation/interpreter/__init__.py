"""
Interpreter Layer - Preset-Driven Generation

Submodules:
    context.py          → ExecutionContext (shadowing / namespaced merge)
    join_strategies.py  → Heuristic and declared join inference
    derivations.py      → Functions behind the "derived" binding
    tree_interpreter.py → TreeInterpreter

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.interpreter.context import ExecutionContext
from rips_generation.interpreter.join_strategies import (
    JoinStrategyBase,
    HeuristicJoinStrategy,
    DeclaredJoinStrategy,
    JOIN_STRATEGY_REGISTRY,
    create_join_strategy,
)
from rips_generation.interpreter.derivations import DERIVATION_REGISTRY, apply_derivation
from rips_generation.interpreter.tree_interpreter import TreeInterpreter

__all__ = [
    "ExecutionContext",
    "JoinStrategyBase",
    "HeuristicJoinStrategy",
    "DeclaredJoinStrategy",
    "JOIN_STRATEGY_REGISTRY",
    "create_join_strategy",
    "DERIVATION_REGISTRY",
    "apply_derivation",
    "TreeInterpreter",
]
