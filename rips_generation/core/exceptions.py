"""
Domain Exceptions for RIPS Generation

This module defines all custom exceptions used throughout the RIPS generation
engine. Validation findings are NOT exceptions: they are returned as data
(see core.models.ValidationFinding). Exceptions here cover the cases where
a document cannot be produced at all.

Exception Hierarchy:
    RipsGenerationError (base)
    ├── ConfigurationError          → Invalid settings
    ├── MappingError                → Preset / mapping problems
    │   ├── PresetNotFoundError
    │   └── MalformedMappingError
    ├── RepositoryError             → Data store access failures
    │   ├── QueryError
    │   └── InvalidIdentifierError
    └── GenerationError             → Direct pipeline failures

Usage:
    from rips_generation.core.exceptions import PresetNotFoundError

    try:
        result = pipeline.generate_from_preset(7, "2025-01-01", "2025-01-31")
    except PresetNotFoundError as e:
        logger.error(f"Preset missing: {e.preset_id}")

Author: Shubham Singh
Date: December 2025
"""

from typing import Optional


# =============================================================================
# STAGE 1: BASE EXCEPTION
# =============================================================================


class RipsGenerationError(Exception):
    """
    Base exception for all RIPS generation errors.

    What it does:
        Provides a common base class for all domain-specific exceptions,
        enabling catch-all handling while preserving specific error types.

    Attributes:
        message: Human-readable error description
        context: Dictionary of additional context for debugging
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        """
        Initialize with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional debugging context (table, path, ids)
        """
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format message with context for display."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


# =============================================================================
# STAGE 2: CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(RipsGenerationError):
    """
    Error in engine configuration.

    When raised:
        - Missing database URL
        - Unknown join or context mode
        - Unwritable output directory
    """

    pass


# =============================================================================
# STAGE 3: MAPPING ERRORS
# =============================================================================
# Precondition failures of the preset-driven path. Raised before any
# document work begins.


class MappingError(RipsGenerationError):
    """Base exception for mapping configuration problems."""

    pass


class PresetNotFoundError(MappingError):
    """
    Stored mapping preset does not exist.

    Attributes:
        preset_id: The id that was requested
    """

    def __init__(self, preset_id: int):
        self.preset_id = preset_id
        super().__init__("Preset not found", context={"preset_id": preset_id})


class MalformedMappingError(MappingError):
    """
    Mapping JSON could not be parsed into a MappingConfig.

    When raised:
        - Preset mapping column is not valid JSON
        - JSON top level is not an object
        - A binding entry has an unknown type or missing keys

    Attributes:
        reason: Why the mapping was rejected
        path: Schema path of the offending binding (if known)
    """

    def __init__(self, reason: str, path: Optional[str] = None):
        self.reason = reason
        self.path = path
        context = {"reason": reason}
        if path:
            context["path"] = path
        super().__init__("Invalid mapping JSON in preset", context=context)


# =============================================================================
# STAGE 4: REPOSITORY ERRORS
# =============================================================================


class RepositoryError(RipsGenerationError):
    """
    Error accessing a data store (source EMR database or local store).
    """

    pass


class QueryError(RepositoryError):
    """
    A query against a data store failed.

    Attributes:
        table: Table being queried
        original_error: The wrapped driver/ORM exception
    """

    def __init__(self, table: str, original_error: Optional[Exception] = None):
        self.table = table
        self.original_error = original_error
        super().__init__(
            f"Query failed for {table}",
            context={
                "table": table,
                "original_error": str(original_error) if original_error else None,
            },
        )


class InvalidIdentifierError(RepositoryError):
    """
    Table or column name rejected by the identifier whitelist.

    Attributes:
        identifier: The rejected name
    """

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("Invalid table or column name", context={"identifier": identifier})


# =============================================================================
# STAGE 5: GENERATION ERRORS
# =============================================================================


class GenerationError(RipsGenerationError):
    """
    Error while building a RIPS document from explicit selections.

    When raised:
        - No selections supplied
        - No facility configured in the source database
        - Any unexpected failure inside the direct pipeline (wrapped)
    """

    pass
