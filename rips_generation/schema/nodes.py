"""
Schema AST

The document shape is a small tree of four node variants. Every node is a
frozen dataclass; container children are kept as an ordered tuple of
(name, node) pairs so declaration order is the output key order.

Node Variants:
    RootNode   → Top-level container (no path of its own)
    ObjectNode → Fixed set of named children, emitted once
    ArrayNode  → Children emitted once per row of a bound table
    LeafNode   → Scalar value (string | number | date | datetime)

Paths:
    A node's path is the tuple of child names from the root, e.g.
    ("transaccion", "usuarios", "servicios", "consultas"). The external
    (preset JSON) form joins the segments with ".".

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Literal, Optional, Tuple, Union

from rips_generation.core.constants import PATH_SEPARATOR
from rips_generation.core.enums import NodeKind


Path = Tuple[str, ...]

ValueKind = Literal["string", "number", "date", "datetime"]


# =============================================================================
# STAGE 1: NODE VARIANTS
# =============================================================================


@dataclass(frozen=True)
class LeafNode:
    """A scalar field."""

    label: str
    value_kind: ValueKind = "string"

    @property
    def kind(self) -> NodeKind:
        return NodeKind.LEAF


@dataclass(frozen=True)
class _ContainerNode:
    label: str
    children: Tuple[Tuple[str, "SchemaNode"], ...] = ()

    @classmethod
    def of(cls, label: str, children: Dict[str, "SchemaNode"]):
        """Build from an insertion-ordered dict of children."""
        return cls(label=label, children=tuple(children.items()))

    def child(self, name: str) -> Optional["SchemaNode"]:
        for key, node in self.children:
            if key == name:
                return node
        return None


@dataclass(frozen=True)
class RootNode(_ContainerNode):
    """Top-level container."""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.ROOT


@dataclass(frozen=True)
class ObjectNode(_ContainerNode):
    """Named children emitted once."""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.OBJECT


@dataclass(frozen=True)
class ArrayNode(_ContainerNode):
    """Children emitted once per row of the table bound to this path."""

    @property
    def kind(self) -> NodeKind:
        return NodeKind.ARRAY


SchemaNode = Union[RootNode, ObjectNode, ArrayNode, LeafNode]


# =============================================================================
# STAGE 2: PATH HELPERS
# =============================================================================


def join_path(parent: Path, key: str) -> Path:
    """Child path of `parent`."""
    return parent + (key,)


def parse_path(path: Union[str, Path]) -> Path:
    """
    Normalize an external dot-joined path (or an existing tuple) to a Path.

    >>> parse_path("transaccion.usuarios")
    ('transaccion', 'usuarios')
    """
    if isinstance(path, tuple):
        return path
    if not path:
        return ()
    return tuple(path.split(PATH_SEPARATOR))


def format_path(path: Path) -> str:
    """External dot-joined form of a Path."""
    return PATH_SEPARATOR.join(path)


def walk(node: SchemaNode, path: Path = ()) -> Iterator[Tuple[Path, SchemaNode]]:
    """Yield (path, node) for every descendant in declaration order, depth first."""
    if isinstance(node, LeafNode):
        return
    for key, child in node.children:
        child_path = join_path(path, key)
        yield child_path, child
        yield from walk(child, child_path)


def iter_leaf_paths(node: SchemaNode) -> Iterator[Path]:
    """Paths of every leaf under `node`."""
    for path, child in walk(node):
        if isinstance(child, LeafNode):
            yield path


def iter_array_paths(node: SchemaNode) -> Iterator[Path]:
    """Paths of every array under `node`."""
    for path, child in walk(node):
        if isinstance(child, ArrayNode):
            yield path


def find_node(root: SchemaNode, path: Union[str, Path]) -> Optional[SchemaNode]:
    """Resolve a path to its node, or None when it does not exist."""
    node: Optional[SchemaNode] = root
    for segment in parse_path(path):
        if node is None or isinstance(node, LeafNode):
            return None
        node = node.child(segment)
    return node
