"""
Validation Layer - RIPS Business Rules

Submodules:
    rules.py          → Ordered rule tables (transaction, user, age, services)
    rips_validator.py → RipsValidator and validate_rips_document

Dependency Rule:
    This layer depends on: core, utils
    This layer is used by: pipeline (orchestrator)

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.validation.rips_validator import (
    RipsValidator,
    evaluate_rules,
    validate_rips_document,
)
from rips_generation.validation.rules import (
    AGE_BANDS,
    SERVICE_RULES,
    TRANSACTION_RULES,
    USER_IDENTITY_RULES,
    USER_RULES,
    AgeBand,
    Rule,
    RuleChain,
)

__all__ = [
    "RipsValidator",
    "evaluate_rules",
    "validate_rips_document",
    "AGE_BANDS",
    "SERVICE_RULES",
    "TRANSACTION_RULES",
    "USER_IDENTITY_RULES",
    "USER_RULES",
    "AgeBand",
    "Rule",
    "RuleChain",
]
