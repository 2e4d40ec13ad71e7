"""
RIPS Generation Module

Builds RIPS transaction documents (the Colombian healthcare-services report)
from an OpenEMR-style clinical database, either by interpreting a stored
mapping preset or from an explicit patient/encounter selection, and
validates every document against the RIPS business rules.

Architecture Overview:
    rips_generation/
    ├── core/           → Models, enums, constants, settings, logging (Layer 0 - Pure)
    ├── utils/          → Date and number coercion helpers (Layer 0 - Pure)
    ├── schema/         → Schema AST, bindings, MappingConfig (Layer 1 - Model)
    ├── repository/     → Source EMR and local store access (Layer 1 - Infrastructure)
    ├── interpreter/    → Preset-driven tree interpreter (Layer 2 - Business Logic)
    ├── selection/      → Selection-based direct pipeline (Layer 2 - Business Logic)
    ├── validation/     → Rule tables and validator (Layer 3 - Business Logic)
    └── pipeline.py     → Main orchestrator (Layer 4 - Public API)

Quick Start:
    from rips_generation import RipsPipeline

    pipeline = RipsPipeline.from_environment()
    result = pipeline.generate_from_selections(
        [{"patientId": 12, "encounterIds": [301], "userType": "01"}]
    )

Author: Shubham Singh
Date: December 2025
"""

__version__ = "1.0.0"
__author__ = "Shubham Singh"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================

# Main Entry Point
from rips_generation.pipeline import RipsPipeline

# Core Models
from rips_generation.core.models import (
    GenerationResult,
    GlobalParams,
    Selection,
    ValidationFinding,
)

# Enums
from rips_generation.core.enums import ContextMode, JoinMode, Severity

# Configuration
from rips_generation.core.config import DefaultCodes, RipsSettings
from rips_generation.core.logging import configure_logging

# Building blocks
from rips_generation.schema import RIPS_SCHEMA, MappingConfig
from rips_generation.validation import validate_rips_document

__all__ = [
    # Main Entry Point
    "RipsPipeline",
    # Core Models
    "GenerationResult",
    "GlobalParams",
    "Selection",
    "ValidationFinding",
    # Enums
    "ContextMode",
    "JoinMode",
    "Severity",
    # Configuration
    "DefaultCodes",
    "RipsSettings",
    "configure_logging",
    # Building blocks
    "RIPS_SCHEMA",
    "MappingConfig",
    "validate_rips_document",
]
