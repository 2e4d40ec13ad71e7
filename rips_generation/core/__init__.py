"""
Core Layer - Domain Models, Enums, Constants and Configuration

This layer contains the foundation of the RIPS generation engine.

Submodules:
    models.py     → Shared data structures (ValidationFinding, Selection, GenerationResult)
    document.py   → Typed RIPS document records (users and services)
    enums.py      → Enumerations (NodeKind, BindingKind, Severity, ServiceKind)
    constants.py  → Reference code sets and document rules
    config.py     → RipsSettings (pydantic-settings)
    logging.py    → loguru sink setup
    exceptions.py → Domain-specific exceptions

Dependency Rule:
    This layer depends on NOTHING else in the package.
    All other layers may depend on this layer.

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.core.models import (
    ValidationFinding,
    Selection,
    GlobalParams,
    ColumnInfo,
    EqualsPredicate,
    RangePredicate,
    GenerationResult,
)
from rips_generation.core.enums import (
    NodeKind,
    BindingKind,
    Severity,
    ServiceKind,
    ContextMode,
    JoinMode,
)
from rips_generation.core.config import DefaultCodes, RipsSettings
from rips_generation.core.exceptions import (
    RipsGenerationError,
    ConfigurationError,
    MappingError,
    PresetNotFoundError,
    MalformedMappingError,
    RepositoryError,
    QueryError,
    InvalidIdentifierError,
    GenerationError,
)

__all__ = [
    # Models
    "ValidationFinding",
    "Selection",
    "GlobalParams",
    "ColumnInfo",
    "EqualsPredicate",
    "RangePredicate",
    "GenerationResult",
    # Enums
    "NodeKind",
    "BindingKind",
    "Severity",
    "ServiceKind",
    "ContextMode",
    "JoinMode",
    # Configuration
    "DefaultCodes",
    "RipsSettings",
    # Exceptions
    "RipsGenerationError",
    "ConfigurationError",
    "MappingError",
    "PresetNotFoundError",
    "MalformedMappingError",
    "RepositoryError",
    "QueryError",
    "InvalidIdentifierError",
    "GenerationError",
]
