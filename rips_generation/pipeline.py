"""
RIPS Generation Pipeline - Main Orchestrator

This is the PUBLIC API entry point for the RIPS generation engine. It wires
the repositories, both generation strategies and the validator into one
facade, and always returns the document together with its findings.

Architecture Diagram:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                            RipsPipeline                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   preset + dates ──→ TreeInterpreter ───┐                           │
    │                                         ├──→ RipsValidator → Result │
    │   selections ─────→ SelectionPipeline ──┘                           │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Usage:
    from rips_generation import RipsPipeline

    pipeline = RipsPipeline.from_environment()
    result = pipeline.generate_from_preset(3, "2025-01-01", "2025-01-31")
    pipeline.save_result(result)

Author: Shubham Singh
Date: December 2025
"""

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from loguru import logger

from rips_generation.core.config import RipsSettings
from rips_generation.core.constants import OUTPUT_FILENAME_TEMPLATE
from rips_generation.core.exceptions import PresetNotFoundError
from rips_generation.core.models import (
    GenerationResult,
    GlobalParams,
    Selection,
    ValidationFinding,
)
from rips_generation.interpreter import TreeInterpreter, create_join_strategy
from rips_generation.repository import LocalStore, SqlSourceRepository
from rips_generation.schema import RIPS_SCHEMA, MappingConfig
from rips_generation.selection import SelectionPipeline
from rips_generation.validation import RipsValidator


PRESET_AUDIT_LABEL = "RIPS_PRESET"


# =============================================================================
# STAGE 1: PIPELINE CLASS
# =============================================================================


class RipsPipeline:
    """
    Main orchestrator for RIPS generation.

    What it does:
        Runs either generation strategy, reserves the file consecutive,
        validates the document and returns a GenerationResult. Validation
        findings never prevent a result from being returned.

    When to use:
        - Always; it is the recommended way to use the package.

    How it works:
        STAGE 1: Build repositories and strategies from settings
        STAGE 2: generate_from_preset() / generate_from_selections()
        STAGE 3: save_result() writes the document as JSON

    Example:
        >>> pipeline = RipsPipeline.from_environment()
        >>> result = pipeline.generate_from_selections([Selection(12, (301,), "01")])
        >>> result.filename, result.is_valid
        ('RIPS_18.json', True)
    """

    def __init__(
        self,
        settings: RipsSettings,
        source: Optional[SqlSourceRepository] = None,
        local_store: Optional[LocalStore] = None,
        interpreter: Optional[TreeInterpreter] = None,
        selection_pipeline: Optional[SelectionPipeline] = None,
        validator: Optional[RipsValidator] = None,
    ):
        """
        Initialize the pipeline with settings and optional component overrides.

        Args:
            settings: Engine settings
            source: Source EMR repository (built from settings if omitted)
            local_store: Presets, references and audit (built if omitted)
            interpreter: TreeInterpreter override (for testing)
            selection_pipeline: SelectionPipeline override (for testing)
            validator: RipsValidator override (for testing)
        """
        # =====================================================================
        # STAGE 1.1: REPOSITORIES
        # =====================================================================
        self._settings = settings

        if source is None:
            settings.validate_for_generation()
            source = SqlSourceRepository.from_url(settings.source_database_url)
        self._source = source

        if local_store is None:
            local_store = LocalStore.from_url(
                settings.local_database_url,
                incapacidad_table=settings.incapacidad_table,
                user_type_table=settings.user_type_table,
            )
            local_store.init_schema()
        self._local_store = local_store

        # =====================================================================
        # STAGE 1.2: GENERATION STRATEGIES
        # =====================================================================
        self._interpreter = interpreter or TreeInterpreter(
            source=source,
            references=local_store.references,
            join_strategy=create_join_strategy(settings.join_mode, settings.declared_joins),
            context_mode=settings.context_mode,
        )
        self._selection_pipeline = selection_pipeline or SelectionPipeline(
            records=source,
            references=local_store.references,
            audit=local_store.audit,
            defaults=settings.default_codes,
            diagnosis_code_types=settings.diagnosis_code_types,
            procedure_code_types=settings.procedure_code_types,
            max_workers=settings.max_fetch_workers,
        )

        # =====================================================================
        # STAGE 1.3: VALIDATOR
        # =====================================================================
        self._validator = validator or RipsValidator()

        logger.info(
            f"RipsPipeline initialized | context_mode={settings.context_mode.value} | "
            f"join_mode={settings.join_mode.value} | workers={settings.max_fetch_workers}"
        )

    # =========================================================================
    # STAGE 2: GENERATION API
    # =========================================================================

    def generate_from_preset(
        self,
        preset_id: int,
        date_start: Optional[str] = None,
        date_end: Optional[str] = None,
    ) -> GenerationResult:
        """
        Generate a document by interpreting a stored mapping preset.

        Args:
            preset_id: Id of the stored preset
            date_start: Inclusive lower date bound (ISO)
            date_end: Inclusive upper date bound (ISO)

        Returns:
            GenerationResult with findings

        Raises:
            PresetNotFoundError: No preset with that id
            MalformedMappingError: The stored mapping cannot be parsed
        """
        # =====================================================================
        # STAGE 2.1: PRECONDITIONS
        # =====================================================================
        preset = self._local_store.presets.get(preset_id)
        if preset is None:
            raise PresetNotFoundError(preset_id)
        mapping = MappingConfig.from_json(preset["mapping"])

        for problem in mapping.check_against(RIPS_SCHEMA):
            logger.warning(f"Preset mapping problem | preset_id={preset_id} | {problem}")

        # =====================================================================
        # STAGE 2.2: INTERPRET
        # =====================================================================
        logger.info(
            f"Generating RIPS from preset | preset_id={preset_id} | "
            f"name={preset['name']} | range={date_start}..{date_end}"
        )
        document = self._interpreter.generate(
            mapping, GlobalParams(date_start=date_start, date_end=date_end)
        )

        # =====================================================================
        # STAGE 2.3: RESERVE CONSECUTIVE AND VALIDATE
        # =====================================================================
        users = (document.get("transaccion") or {}).get("usuarios")
        user_count = len(users) if isinstance(users, list) else 0
        consecutivo = self._local_store.audit.create(user_count, PRESET_AUDIT_LABEL)

        result = GenerationResult(
            document=document,
            consecutivo=consecutivo,
            filename=OUTPUT_FILENAME_TEMPLATE.format(consecutivo=consecutivo),
            strategy="preset",
        )
        return self._validate(result)

    def generate_from_selections(
        self, selections: Sequence[Union[Selection, Dict[str, Any]]]
    ) -> GenerationResult:
        """
        Generate a document from explicit patient/encounter selections.

        Args:
            selections: Selection objects or their dict form
                ({"patientId", "encounterIds", "userType"})

        Returns:
            GenerationResult with findings

        Raises:
            GenerationError: Empty selection, no facility, or fetch failure
        """
        parsed = [s if isinstance(s, Selection) else Selection.from_dict(s) for s in selections]
        result = self._selection_pipeline.generate(parsed)
        return self._validate(result)

    def validate_document(
        self, document: Dict[str, Any], reference_date: Optional[date] = None
    ) -> List[ValidationFinding]:
        """Validate an arbitrary document (e.g. one edited by hand)."""
        if reference_date is None:
            return self._validator.validate(document)
        return RipsValidator(reference_date=reference_date).validate(document)

    # =========================================================================
    # STAGE 3: OUTPUT
    # =========================================================================

    def save_result(
        self, result: GenerationResult, output_dir: Optional[str] = None
    ) -> str:
        """
        Write the document to `<output_dir>/<result.filename>`.

        Returns:
            Path to the saved file
        """
        dir_path = Path(output_dir or self._settings.output_directory)
        dir_path.mkdir(parents=True, exist_ok=True)
        filepath = dir_path / result.filename

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(result.document, f, indent=2, ensure_ascii=False)

        logger.info(
            f"Saved RIPS | file={filepath} | users={result.user_count} | "
            f"errors={result.error_count} | warnings={result.warning_count}"
        )
        return str(filepath)

    # =========================================================================
    # STAGE 4: LOOKUPS
    # =========================================================================

    def peek_next_consecutive(self) -> int:
        """Consecutive the next generation will probably get (display only)."""
        return self._local_store.audit.peek_next_consecutive()

    def list_presets(self) -> List[Dict[str, Any]]:
        return self._local_store.presets.list()

    def create_preset(self, name: str, mapping: Union[MappingConfig, Dict[str, Any]]) -> int:
        """Store a mapping preset after parsing it (malformed mappings are rejected)."""
        if not isinstance(mapping, MappingConfig):
            mapping = MappingConfig.from_dict(mapping)
        return self._local_store.presets.create(name, mapping.to_json())

    def list_user_types(self) -> List[Dict[str, Any]]:
        return self._local_store.references.get_user_types()

    # =========================================================================
    # STAGE 5: FACTORY METHODS
    # =========================================================================

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> "RipsPipeline":
        """
        Create a pipeline from environment configuration.

        Raises:
            ConfigurationError: If required settings are missing

        Example:
            >>> pipeline = RipsPipeline.from_environment(".env")
        """
        settings = RipsSettings.from_environment(env_file=env_file, validate_on_load=True)
        return cls(settings)

    # =========================================================================
    # STAGE 6: PRIVATE HELPERS
    # =========================================================================

    def _validate(self, result: GenerationResult) -> GenerationResult:
        result.findings = self._validator.validate(result.document)
        logger.info(
            f"Generated {result.filename} | strategy={result.strategy} | "
            f"users={result.user_count} | errors={result.error_count} | "
            f"warnings={result.warning_count}"
        )
        return result

    # =========================================================================
    # STAGE 7: PROPERTIES
    # =========================================================================

    @property
    def settings(self) -> RipsSettings:
        return self._settings

    @property
    def local_store(self) -> LocalStore:
        return self._local_store

    @property
    def interpreter(self) -> TreeInterpreter:
        return self._interpreter


# =============================================================================
# STAGE 8: SMOKE TEST
# =============================================================================

if __name__ == "__main__":
    import sys

    logger.remove()
    logger.add(sys.stderr, level="INFO")

    print("\n--- RIPS Generation Pipeline Smoke Test ---\n")

    try:
        print("1. Initializing pipeline from environment...")
        pipeline = RipsPipeline.from_environment()
        print("   [OK] Pipeline initialized successfully")

        print("\n2. Configuration loaded:")
        for key, value in pipeline.settings.to_dict().items():
            print(f"   - {key}: {value}")

        print("\n3. Local store status:")
        print(f"   - Presets: {len(pipeline.list_presets())}")
        print(f"   - User types: {len(pipeline.list_user_types())}")
        print(f"   - Next consecutive: {pipeline.peek_next_consecutive()}")
        print("   [OK] Local store reachable")

        print("\n[OK] SMOKE TEST PASSED: System is ready for generation.")

    except Exception as e:
        print(f"\n[FAIL] SMOKE TEST FAILED: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
