"""
Validation Rule Tables

Every RIPS business rule is one entry in an ordered table. The validator
walks a table top to bottom for each record and reports every violated
entry, so findings keep the table order and nothing short-circuits except
inside a RuleChain.

Entry Types:
    Rule       → one field, one predicate, one message
    RuleChain  → guard rule; the follow-up rules run only when the guard passes
                 (e.g. "Required" first, then the length check)
    AgeBand    → age policy for one document type

Tables:
    TRANSACTION_RULES, USER_RULES, AGE_BANDS,
    CONSULTATION_RULES, PROCEDURE_RULES, MEDICATION_RULES

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Tuple, Union

from rips_generation.core.constants import (
    DOC_LENGTHS,
    DOMESTIC_COUNTRY_CODE,
    MAX_TREATMENT_DAYS,
    MUNICIPALITY_CODE_LENGTH,
    NO_INVOICE_NOTE_TYPE,
    NOTE_TYPE_MAX_LENGTH,
    NUMERIC_DOCUMENT_TYPES,
    OBLIGATED_ID_MAX_LENGTH,
    OBLIGATED_ID_MIN_LENGTH,
    PROVIDER_CODE_LENGTH,
    VALID_CAUSES,
    VALID_COLLECTION_CONCEPTS,
    VALID_DIAGNOSIS_TYPES,
    VALID_DOCUMENT_TYPES,
    VALID_ENTRY_ROUTES,
    VALID_INCAPACIDAD,
    VALID_MODALITIES,
    VALID_SERVICE_GROUPS,
    VALID_SEX_CODES,
    VALID_USER_TYPES,
)
from rips_generation.core.enums import ServiceKind, Severity
from rips_generation.utils.dates import parse_datetime
from rips_generation.utils.numbers import to_number


Record = Mapping[str, Any]
Predicate = Callable[[Any, Record], bool]


# =============================================================================
# STAGE 1: ENTRY TYPES
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """
    One field check.

    Attributes:
        field: JSON field the rule reads
        message: Finding message when violated
        violated: (value, record) -> True when the rule fails
        severity: ERROR or WARNING
        report_value: Put the field value on the finding (False → None)
    """

    field: str
    message: str
    violated: Predicate
    severity: Severity = Severity.ERROR
    report_value: bool = True


@dataclass(frozen=True)
class RuleChain:
    """Guard rule; `then` runs only when the guard is not violated."""

    guard: Rule
    then: Tuple["RuleEntry", ...] = ()


RuleEntry = Union[Rule, RuleChain]


@dataclass(frozen=True)
class AgeBand:
    """Age policy for a document type: violated(age) → finding."""

    document_type: str
    message: str
    violated: Callable[[int], bool]


# =============================================================================
# STAGE 2: PREDICATE HELPERS
# =============================================================================


def _missing(value: Any, record: Record = None) -> bool:
    return value is None or value == "" or value is False


def _length(value: Any) -> int:
    return len(value) if isinstance(value, str) else len(str(value))


def _not_in(allowed: Tuple[str, ...]) -> Predicate:
    return lambda value, record: value not in allowed


def _bad_date(value: Any, record: Record) -> bool:
    return parse_datetime(value) is None


def _negative(value: Any, record: Record) -> bool:
    number = to_number(value)
    return number is not None and number < 0


def _bad_treatment_days(value: Any, record: Record) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return True
    if isinstance(value, float) and not value.is_integer():
        return True
    return not 0 <= value <= MAX_TREATMENT_DAYS


def _required(field: str) -> Rule:
    return Rule(field, "Required", _missing, report_value=False)


def _provider_code_rules() -> RuleChain:
    return RuleChain(
        _required("codPrestador"),
        (
            Rule(
                "codPrestador",
                f"Must be exactly {PROVIDER_CODE_LENGTH} characters",
                lambda v, r: _length(v) != PROVIDER_CODE_LENGTH,
            ),
        ),
    )


def _non_negative(field: str) -> Rule:
    return Rule(field, "Cannot be negative", _negative)


def _collection_concept() -> Rule:
    return Rule("conceptoRecaudo", "Invalid Concepto Recaudo", _not_in(VALID_COLLECTION_CONCEPTS))


# =============================================================================
# STAGE 3: TRANSACTION AND USER TABLES
# =============================================================================

TRANSACTION_RULES: Tuple[RuleEntry, ...] = (
    Rule(
        "numDocumentoIdObligado",
        f"Must be between {OBLIGATED_ID_MIN_LENGTH} and {OBLIGATED_ID_MAX_LENGTH} characters",
        lambda v, r: _missing(v)
        or not OBLIGATED_ID_MIN_LENGTH <= _length(v) <= OBLIGATED_ID_MAX_LENGTH,
    ),
    Rule(
        "numFactura",
        "Must be a string or null",
        lambda v, r: v is not None and not isinstance(v, str),
    ),
    Rule(
        "tipoNota",
        f"Must be a string max {NOTE_TYPE_MAX_LENGTH} chars or null",
        lambda v, r: v is not None
        and (not isinstance(v, str) or len(v) > NOTE_TYPE_MAX_LENGTH),
    ),
    # A RIPS without an electronic invoice (FEV) is reported with note type RS
    Rule(
        "tipoNota",
        f"For RIPS without FEV (no invoice number), tipoNota should be '{NO_INVOICE_NOTE_TYPE}'",
        lambda v, r: v is not None
        and not r.get("numFactura")
        and v != NO_INVOICE_NOTE_TYPE,
        severity=Severity.WARNING,
    ),
)


def _document_length_rules() -> Tuple[Rule, ...]:
    rules = []
    for doc_type, limits in DOC_LENGTHS.items():
        max_length, min_length = limits.get("max"), limits.get("min")
        if max_length:
            rules.append(
                Rule(
                    "numDocumentoIdentificacion",
                    f"Max length exceeded (Max: {max_length})",
                    lambda v, r, t=doc_type, n=max_length: r.get("tipoDocumentoIdentificacion") == t
                    and _length(v) > n,
                )
            )
        if min_length:
            rules.append(
                Rule(
                    "numDocumentoIdentificacion",
                    f"Min length not met (Min: {min_length})",
                    lambda v, r, t=doc_type, n=min_length: r.get("tipoDocumentoIdentificacion") == t
                    and _length(v) < n,
                )
            )
    return tuple(rules)


def _is_domestic(record: Record) -> bool:
    return record.get("codPaisResidencia") == DOMESTIC_COUNTRY_CODE


# Rules evaluated before the age check
USER_IDENTITY_RULES: Tuple[RuleEntry, ...] = (
    Rule("tipoDocumentoIdentificacion", "Invalid Document Type", _not_in(VALID_DOCUMENT_TYPES)),
    RuleChain(
        Rule("numDocumentoIdentificacion", "Missing Document Number", _missing),
        (
            Rule(
                "numDocumentoIdentificacion",
                "Must contain only numbers for CC/TI",
                lambda v, r: r.get("tipoDocumentoIdentificacion") in NUMERIC_DOCUMENT_TYPES
                and not (isinstance(v, str) and v.isdigit() and v.isascii())
                and not (isinstance(v, int) and not isinstance(v, bool)),
            ),
        )
        + _document_length_rules(),
    ),
)

# Rules evaluated after the age check
USER_RULES: Tuple[RuleEntry, ...] = (
    Rule("tipoUsuario", "Invalid User Type", _not_in(VALID_USER_TYPES)),
    Rule("codSexo", "Invalid Sex Code", _not_in(VALID_SEX_CODES)),
    RuleChain(
        Rule(
            "codMunicipioResidencia",
            "Municipality required for Colombia",
            lambda v, r: _is_domestic(r) and _missing(v),
        ),
        (
            Rule(
                "codMunicipioResidencia",
                f"Municipality code must be {MUNICIPALITY_CODE_LENGTH} characters",
                lambda v, r: _is_domestic(r) and _length(v) != MUNICIPALITY_CODE_LENGTH,
            ),
        ),
    ),
    Rule("incapacidad", "Must be SI or NO", _not_in(VALID_INCAPACIDAD)),
)

# TI and RC tolerate one year past their nominal range (18 and 7)
AGE_BANDS: Tuple[AgeBand, ...] = (
    AgeBand("CC", "CC is for >= 18 years old", lambda age: age < 18),
    AgeBand("TI", "TI is for >= 7 years old", lambda age: age < 7),
    AgeBand("TI", "TI is invalid for >= 19 years old", lambda age: age >= 19),
    AgeBand("RC", "RC is invalid for >= 8 years old", lambda age: age >= 8),
    AgeBand("CN", "CN is for <= 3 years old", lambda age: age > 3),
    AgeBand("AS", "AS is for > 18 years old", lambda age: age <= 18),
    AgeBand("MS", "MS is for minors (<= 18)", lambda age: age > 18),
)


# =============================================================================
# STAGE 4: SERVICE TABLES
# =============================================================================

CONSULTATION_RULES: Tuple[RuleEntry, ...] = (
    _provider_code_rules(),
    RuleChain(
        _required("fechaInicioAtencion"),
        (Rule("fechaInicioAtencion", "Invalid Date Format", _bad_date),),
    ),
    _required("codConsulta"),
    Rule("modalidadGrupoServicio", "Invalid Modality Code", _not_in(VALID_MODALITIES)),
    Rule("grupoServicios", "Invalid Service Group Code", _not_in(VALID_SERVICE_GROUPS)),
    _required("finalidadTecnologiaSalud"),
    Rule("causaMotivoAtencion", "Invalid Cause Code", _not_in(VALID_CAUSES)),
    _required("codDiagnosticoPrincipal"),
    Rule("tipoDiagnosticoPrincipal", "Invalid Diagnosis Type", _not_in(VALID_DIAGNOSIS_TYPES)),
    _non_negative("valorPagoModerador"),
    _non_negative("valorConsulta"),
    _collection_concept(),
)

PROCEDURE_RULES: Tuple[RuleEntry, ...] = (
    _provider_code_rules(),
    Rule("fechaInicioAtencion", "Invalid Date Format", _bad_date),
    _required("codProcedimiento"),
    Rule("viaIngresoServicio", "Invalid Via Ingreso Code", _not_in(VALID_ENTRY_ROUTES)),
    Rule("modalidadGrupoServicio", "Invalid Modality Code", _not_in(VALID_MODALITIES)),
    Rule("grupoServicios", "Invalid Service Group Code", _not_in(VALID_SERVICE_GROUPS)),
    _required("finalidadTecnologiaSalud"),
    _non_negative("valorPagoModerador"),
    _non_negative("valorProcedimiento"),
    _collection_concept(),
)

MEDICATION_RULES: Tuple[RuleEntry, ...] = (
    _provider_code_rules(),
    Rule("fechaDispensAdmon", "Invalid Date Format", _bad_date),
    _required("codDiagnosticoPrincipal"),
    _required("tipoMedicamento"),
    _required("codTecnologiaSalud"),
    _required("nomTecnologiaSalud"),
    Rule(
        "diasTratamiento",
        f"Invalid Days (0-{MAX_TREATMENT_DAYS})",
        _bad_treatment_days,
    ),
    _non_negative("valorPagoModerador"),
    _non_negative("valorUnitarioMedicamento"),
    _non_negative("valorServicio"),
    _collection_concept(),
)

SERVICE_RULES: Dict[ServiceKind, Tuple[RuleEntry, ...]] = {
    ServiceKind.CONSULTATION: CONSULTATION_RULES,
    ServiceKind.PROCEDURE: PROCEDURE_RULES,
    ServiceKind.MEDICATION: MEDICATION_RULES,
}
