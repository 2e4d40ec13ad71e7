"""
RIPS Validator - Document Validation

This module checks a generated RIPS document against the structural,
enumerated, cross-field and age-based business rules and returns the
findings as data. It never raises for a bad document and never mutates it.

Pipeline Position:
    Generation → [Validation] → Output
                  ^^^^^^^^^^^^
                  You are here

Finding Order:
    transaction → users (array order) → per user: consultas,
    procedimientos, medicamentos (array order)

Author: Shubham Singh
Date: December 2025
"""

from datetime import date
from typing import Any, List, Mapping, Optional, Sequence

from loguru import logger

from rips_generation.core.enums import ServiceKind, Severity
from rips_generation.core.models import ValidationFinding
from rips_generation.utils.dates import compute_age
from rips_generation.validation.rules import (
    AGE_BANDS,
    SERVICE_RULES,
    TRANSACTION_RULES,
    USER_IDENTITY_RULES,
    USER_RULES,
    Rule,
    RuleChain,
    RuleEntry,
)


STRUCTURE_SCOPE = "Structure"
TRANSACTION_SCOPE = "Transaction"


# =============================================================================
# STAGE 1: RULE TABLE EVALUATION
# =============================================================================


def _as_record(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def evaluate_rules(
    rules: Sequence[RuleEntry], record: Mapping[str, Any], scope: str
) -> List[ValidationFinding]:
    """
    Apply an ordered rule table to one record.

    Every entry runs; a RuleChain's follow-up rules run only when its guard
    passes.
    """
    findings: List[ValidationFinding] = []
    for entry in rules:
        if isinstance(entry, RuleChain):
            guard_findings = evaluate_rules((entry.guard,), record, scope)
            findings.extend(guard_findings)
            if not guard_findings:
                findings.extend(evaluate_rules(entry.then, record, scope))
            continue

        value = record.get(entry.field)
        if entry.violated(value, record):
            findings.append(_finding(entry, scope, value))
    return findings


def _finding(rule: Rule, scope: str, value: Any) -> ValidationFinding:
    return ValidationFinding(
        scope=scope,
        field=rule.field,
        message=rule.message,
        value=value if rule.report_value else None,
        severity=rule.severity,
    )


# =============================================================================
# STAGE 2: VALIDATOR CLASS
# =============================================================================


class RipsValidator:
    """
    Validates RIPS transaction documents.

    What it does:
        Walks the document in order, applying the transaction, user, age
        and service rule tables, and collects one ValidationFinding per
        violated rule.

    When to use:
        - After either generation strategy produced a document
        - On a hand-edited document before submission

    How it works:
        STAGE 2.1: Structural gate (missing "transaccion" stops everything)
        STAGE 2.2: Transaction rules; non-list "usuarios" stops here
        STAGE 2.3: Per user: identity rules, age bands, remaining user rules
        STAGE 2.4: Per service record: the table for its kind

    Example:
        >>> validator = RipsValidator(reference_date=date(2025, 1, 1))
        >>> findings = validator.validate(result.document)
        >>> [f.message for f in findings if f.is_error]
        ['Municipality required for Colombia']
    """

    def __init__(self, reference_date: Optional[date] = None):
        """
        Args:
            reference_date: Day ages are computed against (default: today)
        """
        self._reference_date = reference_date

    def validate(self, document: Any) -> List[ValidationFinding]:
        """
        Validate a document.

        Args:
            document: Parsed RIPS JSON ({"transaccion": {...}})

        Returns:
            Ordered findings; empty when the document is clean
        """
        # =====================================================================
        # STAGE 2.1: STRUCTURAL GATE
        # =====================================================================
        transaction = _as_record(document).get("transaccion")
        if not isinstance(transaction, Mapping):
            logger.warning("Validation stopped | missing transaction object")
            return [
                ValidationFinding(
                    scope=STRUCTURE_SCOPE,
                    field="transaccion",
                    message="Missing transaction object",
                )
            ]

        # =====================================================================
        # STAGE 2.2: TRANSACTION
        # =====================================================================
        findings = evaluate_rules(TRANSACTION_RULES, transaction, TRANSACTION_SCOPE)

        users = transaction.get("usuarios")
        if not isinstance(users, list):
            findings.append(
                ValidationFinding(
                    scope=TRANSACTION_SCOPE,
                    field="usuarios",
                    message="Must be an array",
                    value=users,
                )
            )
            return findings

        # =====================================================================
        # STAGE 2.3 / 2.4: USERS AND SERVICES
        # =====================================================================
        for index, raw_user in enumerate(users):
            findings.extend(self.validate_user(raw_user, index))

        error_count = sum(1 for f in findings if f.severity == Severity.ERROR)
        logger.info(
            f"Validation complete | users={len(users)} | "
            f"errors={error_count} | warnings={len(findings) - error_count}"
        )
        return findings

    def validate_user(self, raw_user: Any, index: int) -> List[ValidationFinding]:
        """Findings for one user and all of its services."""
        user = _as_record(raw_user)
        scope = self.user_scope(user, index)

        findings = evaluate_rules(USER_IDENTITY_RULES, user, scope)
        findings.extend(self.check_age(user, scope))
        findings.extend(evaluate_rules(USER_RULES, user, scope))

        services = _as_record(user.get("servicios"))
        for kind, rules in SERVICE_RULES.items():
            records = services.get(kind.value)
            if not isinstance(records, list):
                continue
            for position, raw_record in enumerate(records):
                record = _as_record(raw_record)
                findings.extend(
                    evaluate_rules(rules, record, self.service_scope(scope, kind, record, position))
                )
        return findings

    def check_age(self, user: Mapping[str, Any], scope: str) -> List[ValidationFinding]:
        """
        Date of birth must parse; the resulting age must fit the band of
        the user's document type.
        """
        age = compute_age(user.get("fechaNacimiento"), self._reference_date)
        if age < 0:
            return [
                ValidationFinding(
                    scope=scope,
                    field="fechaNacimiento",
                    message="Invalid or missing Date of Birth",
                    value=user.get("fechaNacimiento"),
                )
            ]

        doc_type = user.get("tipoDocumentoIdentificacion")
        return [
            ValidationFinding(
                scope=scope,
                field="tipoDocumentoIdentificacion",
                message=band.message,
                value=f"Age: {age}, Type: {doc_type}",
            )
            for band in AGE_BANDS
            if band.document_type == doc_type and band.violated(age)
        ]

    @staticmethod
    def user_scope(user: Mapping[str, Any], index: int) -> str:
        number = user.get("consecutivo") or index + 1
        return (
            f"User {number} ({_display(user.get('tipoDocumentoIdentificacion'))} "
            f"{_display(user.get('numDocumentoIdentificacion'))})"
        )

    @staticmethod
    def service_scope(
        user_scope: str, kind: ServiceKind, record: Mapping[str, Any], position: int
    ) -> str:
        number = record.get("consecutivo") or position + 1
        return f"{user_scope} > {kind.scope_label} {number}"


def validate_rips_document(
    document: Any, reference_date: Optional[date] = None
) -> List[ValidationFinding]:
    """Validate a RIPS document with a one-off RipsValidator."""
    return RipsValidator(reference_date=reference_date).validate(document)
