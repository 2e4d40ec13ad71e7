"""
Domain Models for RIPS Generation

This module defines the core data structures shared by every layer of the
engine. Document records (users, services) live in core.document.

Model Hierarchy:
    ValidationFinding → One structured validation finding
    Selection         → One patient + encounters chosen for the direct pipeline
    GlobalParams      → Call-wide parameters (date range) for the interpreter
    ColumnInfo        → One column returned by schema introspection
    EqualsPredicate / RangePredicate → Row-fetch filter clauses
    GenerationResult  → Document + filename + consecutivo + findings

Usage:
    from rips_generation.core.models import Selection

    selection = Selection(patient_id=12, encounter_ids=[301, 302], user_type="01")

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from rips_generation.core.enums import Severity
from rips_generation.core.exceptions import GenerationError


# =============================================================================
# STAGE 1: VALIDATION FINDING
# =============================================================================


@dataclass(frozen=True)
class ValidationFinding:
    """
    One validation finding against a generated RIPS document.

    What it does:
        Describes a single rule violation: where it happened (scope), which
        field, a human-readable message, the offending value and severity.

    Attributes:
        scope: Human-readable location, e.g. "User 1 (CC 12345) > Consulta 2"
        field: JSON field name the rule checked
        message: What is wrong
        value: Offending value (may be None)
        severity: ERROR or WARNING

    Example:
        >>> finding = ValidationFinding(
        ...     scope="Transaction",
        ...     field="numDocumentoIdObligado",
        ...     message="Must be between 4 and 12 characters",
        ...     value="123",
        ... )
    """

    scope: str
    field: str
    message: str
    value: Any = None
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        """Check if this finding has error severity."""
        return self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "scope": self.scope,
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "severity": self.severity.value,
        }


# =============================================================================
# STAGE 2: CALLER INPUTS
# =============================================================================


@dataclass(frozen=True)
class Selection:
    """
    A patient and the encounters to report for it (direct pipeline input).

    Attributes:
        patient_id: Source EMR patient id (patient_data.pid)
        encounter_ids: Source EMR encounter row ids (form_encounter.id)
        user_type: RIPS user type code used when the patient has none
    """

    patient_id: int
    encounter_ids: Tuple[int, ...] = ()
    user_type: str = ""

    def __post_init__(self):
        # Accept lists from callers; store an immutable tuple
        object.__setattr__(self, "encounter_ids", tuple(self.encounter_ids))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Selection":
        """
        Create from dictionary (camelCase or snake_case keys).

        Raises:
            GenerationError: If the patient id is missing or not an integer
        """
        patient_id = data.get("patient_id", data.get("patientId"))
        if patient_id is None:
            raise GenerationError(
                "Selection requires patientId", context={"keys": sorted(str(k) for k in data)}
            )
        try:
            return cls(
                patient_id=int(patient_id),
                encounter_ids=tuple(
                    int(e) for e in data.get("encounter_ids", data.get("encounterIds", []))
                ),
                user_type=str(data.get("user_type", data.get("userType", "")) or ""),
            )
        except (TypeError, ValueError) as e:
            raise GenerationError(
                "Selection ids must be integers", context={"patientId": patient_id}
            ) from e


@dataclass(frozen=True)
class GlobalParams:
    """
    Call-wide parameters visible to every node of the tree interpreter.

    Attributes:
        date_start: Inclusive lower bound for date-filtered tables
        date_end: Inclusive upper bound for date-filtered tables
    """

    date_start: Optional[str] = None
    date_end: Optional[str] = None

    @property
    def has_date_range(self) -> bool:
        """Both bounds supplied."""
        return bool(self.date_start) and bool(self.date_end)


# =============================================================================
# STAGE 3: COLLABORATOR CONTRACT TYPES
# =============================================================================


@dataclass(frozen=True)
class ColumnInfo:
    """One column of an introspected table."""

    name: str
    type: str = ""


@dataclass(frozen=True)
class EqualsPredicate:
    """column = value"""

    column: str
    value: Any


@dataclass(frozen=True)
class RangePredicate:
    """start <= column <= end"""

    column: str
    start: Any
    end: Any


Predicate = Union[EqualsPredicate, RangePredicate]


# =============================================================================
# STAGE 4: GENERATION RESULT
# =============================================================================


@dataclass
class GenerationResult:
    """
    Output of one generation call: the document and its findings together.

    What it does:
        Bundles the JSON document, the audit consecutive id, the derived
        filename and the ordered validation findings. Validation never blocks
        emission, so a result is returned even when findings contain errors.

    Attributes:
        document: The RIPS document ({"transaccion": {...}})
        consecutivo: Unique ascending id from the audit store
        filename: "RIPS_<consecutivo>.json"
        findings: Ordered validation findings
        strategy: "preset" or "selection"

    Example:
        >>> result = pipeline.generate_from_selections([selection])
        >>> if not result.is_valid:
        ...     for f in result.errors:
        ...         print(f.scope, f.field, f.message)
    """

    document: Dict[str, Any]
    consecutivo: int
    filename: str
    findings: List[ValidationFinding] = field(default_factory=list)
    strategy: str = "preset"

    @property
    def errors(self) -> List[ValidationFinding]:
        """Findings with error severity."""
        return [f for f in self.findings if f.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationFinding]:
        """Findings with warning severity."""
        return [f for f in self.findings if f.severity == Severity.WARNING]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def is_valid(self) -> bool:
        """No error-severity findings (warnings allowed)."""
        return not self.errors

    @property
    def user_count(self) -> int:
        """Number of users in the document."""
        usuarios = (self.document.get("transaccion") or {}).get("usuarios")
        return len(usuarios) if isinstance(usuarios, list) else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "json": self.document,
            "filename": self.filename,
            "consecutivo": self.consecutivo,
            "strategy": self.strategy,
            "is_valid": self.is_valid,
            "errors": [f.to_dict() for f in self.findings],
        }
