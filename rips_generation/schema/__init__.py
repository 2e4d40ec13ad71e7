"""
Schema Layer - Document Shape and Binding Model

Submodules:
    nodes.py       → Schema AST (RootNode, ObjectNode, ArrayNode, LeafNode) and path helpers
    rips_schema.py → RIPS_SCHEMA, the document shape both strategies produce
    bindings.py    → BindingSpec variants and MappingConfig

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.schema.nodes import (
    RootNode,
    ObjectNode,
    ArrayNode,
    LeafNode,
    SchemaNode,
    Path,
    join_path,
    parse_path,
    format_path,
    iter_leaf_paths,
    iter_array_paths,
    find_node,
)
from rips_generation.schema.rips_schema import RIPS_SCHEMA
from rips_generation.schema.bindings import (
    BindingSpec,
    StaticBinding,
    SourceFieldBinding,
    LocalFieldBinding,
    ForeignLookupBinding,
    ListSourceBinding,
    DerivedBinding,
    MappingConfig,
    parse_binding,
)

__all__ = [
    "RootNode",
    "ObjectNode",
    "ArrayNode",
    "LeafNode",
    "SchemaNode",
    "Path",
    "join_path",
    "parse_path",
    "format_path",
    "iter_leaf_paths",
    "iter_array_paths",
    "find_node",
    "RIPS_SCHEMA",
    "BindingSpec",
    "StaticBinding",
    "SourceFieldBinding",
    "LocalFieldBinding",
    "ForeignLookupBinding",
    "ListSourceBinding",
    "DerivedBinding",
    "MappingConfig",
    "parse_binding",
]
