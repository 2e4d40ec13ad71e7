"""
Enumerations for RIPS Generation

Enumeration Categories:
    NodeKind        → Schema AST variants
    BindingKind     → External binding type discriminators
    Severity        → Validation finding severity
    ServiceKind     → Service sections inside a user's "servicios"
    ContextMode     → How row fields are merged into the execution context
    JoinMode        → How array predicates are inferred

Author: Shubham Singh
Date: December 2025
"""

from enum import Enum


# =============================================================================
# STAGE 1: SCHEMA ENUMERATIONS
# =============================================================================


class NodeKind(str, Enum):
    """Variants of the schema AST."""

    ROOT = "root"
    OBJECT = "object"
    ARRAY = "array"
    LEAF = "leaf"


class BindingKind(str, Enum):
    """
    Binding type discriminators as stored in preset JSON.

    STATIC and STATIC_LOOKUP resolve identically: the mapping editor stores
    the chosen value directly in both cases.
    """

    STATIC = "static"
    STATIC_LOOKUP = "static_lookup"
    FIELD = "field"
    LOCAL_FIELD = "local_field"
    LOOKUP = "lookup"
    LIST = "list"
    DERIVED = "derived"


# =============================================================================
# STAGE 2: VALIDATION ENUMERATIONS
# =============================================================================


class Severity(str, Enum):
    """
    Severity of a validation finding.

    ERROR findings make a document invalid; WARNING findings are advisory.
    Neither blocks emission of the document.
    """

    ERROR = "error"
    WARNING = "warning"


class ServiceKind(str, Enum):
    """
    Service sections of a RIPS user, in document order.

    The value is the JSON key inside "servicios".
    """

    CONSULTATION = "consultas"
    PROCEDURE = "procedimientos"
    MEDICATION = "medicamentos"
    EMERGENCY = "urgencias"
    HOSPITALIZATION = "hospitalizacion"
    NEWBORN = "recienNacidos"
    OTHER = "otrosServicios"

    @property
    def scope_label(self) -> str:
        """Label used in validation scopes (e.g. 'Consulta')."""
        return _SCOPE_LABELS[self]


_SCOPE_LABELS = {
    ServiceKind.CONSULTATION: "Consulta",
    ServiceKind.PROCEDURE: "Procedimiento",
    ServiceKind.EMERGENCY: "Urgencia",
    ServiceKind.HOSPITALIZATION: "Hospitalizacion",
    ServiceKind.NEWBORN: "Recien Nacido",
    ServiceKind.MEDICATION: "Medicamento",
    ServiceKind.OTHER: "Otro Servicio",
}


# =============================================================================
# STAGE 3: INTERPRETER ENUMERATIONS
# =============================================================================


class ContextMode(str, Enum):
    """
    Context merge policy for the tree interpreter.

    SHADOWING:
        child = {**parent, **row}. Row fields silently overwrite ancestor
        fields with the same name (e.g. a billing row's "date" hides the
        encounter's "date"). Kept for compatibility with existing presets.
    NAMESPACED:
        Row fields are stored as "<table>.<column>"; a bare key is only added
        when no ancestor already set it.
    """

    SHADOWING = "shadowing"
    NAMESPACED = "namespaced"


class JoinMode(str, Enum):
    """Which join strategy builds array predicates."""

    HEURISTIC = "heuristic"
    DECLARED = "declared"

    @classmethod
    def from_string(cls, value: str) -> "JoinMode":
        """
        Convert string to JoinMode with case-insensitive matching.

        Raises:
            ValueError: If value doesn't match any mode
        """
        normalized = value.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ValueError(f"Unknown join mode: '{value}'. Valid: {[m.value for m in cls]}")
