"""
Repository Protocols - Data Access Contracts

This module defines the contracts between the generation engine and its
data stores. The engine depends only on these protocols, so tests can pass
in-memory fakes and deployments can swap the SQL implementations.

Architecture:
    SourceRepository          → Generic row fetch + introspection (tree interpreter)
    ClinicalRecordsRepository → Batch EMR queries (direct pipeline)
    ReferenceLookup           → First reference record matching a value
    ReferenceCodeRepository   → Self-seeding incapacidad options, user types
    MappingPresetRepository   → Stored mapping presets (CRUD)
    GenerationAuditRepository → Monotonic file consecutive

Pipeline Position:
    Config → [Repository] → Interpreter / Direct Pipeline → Validation → Output
              ^^^^^^^^^^^^
              You are here

Author: Shubham Singh
Date: December 2025
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from rips_generation.core.models import ColumnInfo, Predicate


Row = Dict[str, Any]


# =============================================================================
# STAGE 1: SOURCE EMR CONTRACTS
# =============================================================================


@runtime_checkable
class SourceRepository(Protocol):
    """
    Generic access to the source EMR tables.

    What it does:
        Lets the tree interpreter iterate any table a preset names without
        knowing its schema up front.

    Required Methods:
        columns_of(table)              → Column list (introspection)
        fetch_rows(table, predicates)  → Rows matching all predicates (AND)
    """

    def columns_of(self, table: str) -> List[ColumnInfo]:
        """
        Introspect a table's columns.

        Raises:
            InvalidIdentifierError: Table name fails the whitelist
            QueryError: Introspection failed
        """
        ...

    def fetch_rows(self, table: str, predicates: Sequence[Predicate]) -> List[Row]:
        """
        Fetch rows in store order.

        Raises:
            InvalidIdentifierError: Table or column name fails the whitelist
            QueryError: Query failed
        """
        ...


@runtime_checkable
class ClinicalRecordsRepository(Protocol):
    """
    Batch queries used by the direct pipeline. Every method takes the whole
    id set at once; an empty id list returns an empty list without querying.
    """

    def get_primary_facility(self) -> Optional[Row]:
        """First facility record, or None."""
        ...

    def get_patients(self, patient_ids: Sequence[int]) -> List[Row]:
        ...

    def get_encounters_for_patients(
        self,
        patient_ids: Sequence[int],
        start: Optional[Any] = None,
        end: Optional[Any] = None,
    ) -> List[Row]:
        ...

    def get_billing_records(self, encounter_numbers: Sequence[int]) -> List[Row]:
        ...

    def get_prescriptions(self, encounter_numbers: Sequence[int]) -> List[Row]:
        ...

    def get_billing_options(self, encounter_numbers: Sequence[int]) -> List[Row]:
        ...

    def get_providers(self, provider_ids: Sequence[int]) -> List[Row]:
        ...


# =============================================================================
# STAGE 2: LOCAL STORE CONTRACTS
# =============================================================================


@runtime_checkable
class ReferenceLookup(Protocol):
    """Reference-table lookup used by the lookup binding."""

    def find_one(
        self, ref_table: str, match_column: str, match_value: str
    ) -> Optional[Row]:
        """
        First record of `ref_table` whose `match_column` equals `match_value`.

        Returns:
            Record as a dict keyed by reference column names, or None
        """
        ...


@runtime_checkable
class ReferenceCodeRepository(Protocol):
    """Reference code sets read by the direct pipeline."""

    def ensure_incapacidad_options(self) -> None:
        """Seed the SI/NO incapacidad rows when the table is empty."""
        ...

    def get_incapacidad_options(self) -> List[Row]:
        ...

    def get_user_types(self) -> List[Row]:
        """Enabled user types ({codigo, nombre}) ordered by name."""
        ...


@runtime_checkable
class MappingPresetRepository(Protocol):
    """Stored presets: {id, name, mapping (JSON text)}."""

    def get(self, preset_id: int) -> Optional[Row]:
        ...

    def list(self) -> List[Row]:
        ...

    def create(self, name: str, mapping: str) -> int:
        ...

    def update(
        self, preset_id: int, name: Optional[str] = None, mapping: Optional[str] = None
    ) -> bool:
        ...

    def delete(self, preset_id: int) -> bool:
        ...


@runtime_checkable
class GenerationAuditRepository(Protocol):
    """Sequence of generated files."""

    def create(self, patient_count: int, file_name: Optional[str] = None) -> int:
        """
        Record one generation and return its id.

        The id comes from an auto-increment key, so it is unique and
        strictly ascending under concurrent callers.
        """
        ...

    def peek_next_consecutive(self) -> int:
        """Last id + 1. For display only; not reserved."""
        ...
