"""
Binding Model

A preset's mapping JSON assigns each schema path a binding that says where
its value comes from. The JSON format is the one the mapping editor saves:

    {
        "transaccion.numDocumentoIdObligado": {"type": "static", "value": "900123456"},
        "transaccion.usuarios": {"type": "list", "table": "patient_data"},
        "transaccion.usuarios.numDocumentoIdentificacion":
            {"type": "field", "table": "patient_data", "column": "ss"},
        "transaccion.usuarios.tipoUsuario":
            {"type": "lookup", "column": "user_type", "refTable": "RIPSTipoUsuarioVersion2",
             "matchColumn": "nombre", "returnColumn": "codigo"}
    }

Binding Variants (type discriminator in parentheses):
    StaticBinding        (static, static_lookup) → fixed value
    SourceFieldBinding   (field)                 → context[column]
    LocalFieldBinding    (local_field)           → context[column]
    ForeignLookupBinding (lookup)                → reference record value
    ListSourceBinding    (list)                  → table iterated by an array
    DerivedBinding       (derived)               → registered function of the context

Parsing uses a pydantic discriminated union, so an unknown "type" or a
missing required key is rejected with a MalformedMappingError naming the
offending path.

Author: Shubham Singh
Date: December 2025
"""

import json
from typing import Annotated, Any, Dict, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from rips_generation.core.exceptions import MalformedMappingError
from rips_generation.schema.nodes import (
    ArrayNode,
    LeafNode,
    Path,
    SchemaNode,
    find_node,
    format_path,
    parse_path,
)


# =============================================================================
# STAGE 1: BINDING VARIANTS
# =============================================================================


class _Binding(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def to_external(self) -> Dict[str, Any]:
        """Serialize to the preset JSON form."""
        return self.model_dump(by_alias=True, exclude_none=False)


class StaticBinding(_Binding):
    """Fixed value chosen in the mapping editor."""

    type: Literal["static", "static_lookup"] = "static"
    value: Any = None


class SourceFieldBinding(_Binding):
    """Column of the current source row (or an ancestor row)."""

    type: Literal["field"] = "field"
    table: str = ""
    column: str


class LocalFieldBinding(_Binding):
    """Column of a local-store table, read from the context like a source field."""

    type: Literal["local_field"] = "local_field"
    table: str = ""
    column: str


class ForeignLookupBinding(_Binding):
    """
    Translate a context value through a reference table.

    The context value of `source_column` is matched (as a string) against
    `match_column` of the first record of `ref_table`; the record's
    `return_column` is the result.
    """

    type: Literal["lookup"] = "lookup"
    source_column: str = Field(alias="column")
    ref_table: str = Field(alias="refTable")
    match_column: str = Field(default="nombre", alias="matchColumn")
    return_column: str = Field(default="codigo", alias="returnColumn")


class ListSourceBinding(_Binding):
    """Source table whose rows an array node iterates."""

    type: Literal["list"] = "list"
    table: str


class DerivedBinding(_Binding):
    """Value computed by a registered derivation function."""

    type: Literal["derived"] = "derived"
    function: str
    columns: List[str] = Field(default_factory=list)
    default: Any = None


BindingSpec = Annotated[
    Union[
        StaticBinding,
        SourceFieldBinding,
        LocalFieldBinding,
        ForeignLookupBinding,
        ListSourceBinding,
        DerivedBinding,
    ],
    Field(discriminator="type"),
]

_BINDING_ADAPTER = TypeAdapter(BindingSpec)


def parse_binding(data: Any, path: Optional[str] = None) -> BindingSpec:
    """
    Parse one external binding dict.

    Raises:
        MalformedMappingError: Not a dict, unknown type, or missing keys
    """
    if not isinstance(data, dict):
        raise MalformedMappingError("Binding must be an object", path=path)
    try:
        return _BINDING_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise MalformedMappingError(_summarize(e), path=path) from e


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"{first.get('msg', 'invalid binding')} ({location})" if location else first.get("msg", "")


# =============================================================================
# STAGE 2: MAPPING CONFIG
# =============================================================================


class MappingConfig:
    """
    Schema path → binding, parsed from a preset.

    What it does:
        Holds the bindings keyed by interned path tuples so the interpreter
        never re-joins strings while walking; lookups accept either form.

    Example:
        >>> mapping = MappingConfig.from_json(preset.mapping)
        >>> mapping.get("transaccion.usuarios")
        ListSourceBinding(type='list', table='patient_data')
    """

    def __init__(self, bindings: Optional[Dict[Path, BindingSpec]] = None):
        self._bindings: Dict[Path, BindingSpec] = dict(bindings or {})

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_json(cls, text: str) -> "MappingConfig":
        """
        Parse the mapping column of a preset.

        Raises:
            MalformedMappingError: Invalid JSON, non-object top level or bad binding
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedMappingError(f"Not valid JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Any) -> "MappingConfig":
        """Parse an already-decoded mapping object."""
        if not isinstance(data, dict):
            raise MalformedMappingError("Mapping must be a JSON object")
        bindings: Dict[Path, BindingSpec] = {}
        for key, value in data.items():
            bindings[parse_path(key)] = parse_binding(value, path=key)
        return cls(bindings)

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def get(self, path: Union[str, Path]) -> Optional[BindingSpec]:
        """Binding for a path, or None when unbound."""
        return self._bindings.get(parse_path(path))

    def items(self) -> Iterator[Tuple[Path, BindingSpec]]:
        return iter(self._bindings.items())

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, path: Union[str, Path]) -> bool:
        return parse_path(path) in self._bindings

    def to_dict(self) -> Dict[str, Any]:
        """External (preset JSON) form."""
        return {format_path(path): b.to_external() for path, b in self._bindings.items()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    # -------------------------------------------------------------------------
    # Structural check
    # -------------------------------------------------------------------------

    def check_against(self, schema: SchemaNode) -> List[str]:
        """
        List structural problems of this mapping against a schema.

        Reported:
            - bound paths that do not exist in the schema
            - array nodes bound to anything but a list binding
            - leaf nodes bound to a list binding
        """
        problems: List[str] = []
        for path, binding in self._bindings.items():
            key = format_path(path)
            node = find_node(schema, path)
            if node is None or not path:
                problems.append(f"{key}: path does not exist in schema")
            elif isinstance(node, ArrayNode) and not isinstance(binding, ListSourceBinding):
                problems.append(f"{key}: array must be bound to a list source")
            elif isinstance(node, LeafNode) and isinstance(binding, ListSourceBinding):
                problems.append(f"{key}: leaf cannot be bound to a list source")
        return problems
