"""
Repository Layer - Data Access for the Source EMR and the Local Store

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.repository.protocols import (
    SourceRepository,
    ClinicalRecordsRepository,
    ReferenceLookup,
    ReferenceCodeRepository,
    MappingPresetRepository,
    GenerationAuditRepository,
)
from rips_generation.repository.database import get_engine
from rips_generation.repository.sql_source import SqlSourceRepository, check_identifier
from rips_generation.repository.local_store import (
    LocalStore,
    ReferenceStore,
    PresetStore,
    GenerationAuditStore,
    ReferenceRecord,
    RipsPreset,
    RipsGeneration,
)

__all__ = [
    "SourceRepository",
    "ClinicalRecordsRepository",
    "ReferenceLookup",
    "ReferenceCodeRepository",
    "MappingPresetRepository",
    "GenerationAuditRepository",
    "get_engine",
    "SqlSourceRepository",
    "check_identifier",
    "LocalStore",
    "ReferenceStore",
    "PresetStore",
    "GenerationAuditStore",
    "ReferenceRecord",
    "RipsPreset",
    "RipsGeneration",
]
