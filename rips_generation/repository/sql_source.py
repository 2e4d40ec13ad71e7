"""
SQL Source Repository - OpenEMR Access via SQLAlchemy Core

This module implements both source-side contracts over a relational EMR
database (OpenEMR schema, MySQL in production, SQLite in tests).

Architecture:
    SqlSourceRepository
    ├── SourceRepository          → columns_of / fetch_rows (any table)
    └── ClinicalRecordsRepository → batch queries used by the direct pipeline

Safety:
    Table and column names that arrive from presets are checked against
    ^[A-Za-z0-9_]+$ before they reach SQLAlchemy; values are always bound
    parameters. Tables are reflected once and cached.

Usage:
    from rips_generation.repository import SqlSourceRepository

    source = SqlSourceRepository.from_url("mysql+pymysql://user:pw@host/openemr")
    columns = source.columns_of("form_encounter")
    rows = source.fetch_rows("billing", [EqualsPredicate("encounter", 42)])

Author: Shubham Singh
Date: December 2025
"""

import threading
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from sqlalchemy import Engine, MetaData, Table, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from rips_generation.core.constants import IDENTIFIER_PATTERN
from rips_generation.core.exceptions import InvalidIdentifierError, QueryError
from rips_generation.core.models import (
    ColumnInfo,
    EqualsPredicate,
    Predicate,
    RangePredicate,
)
from rips_generation.repository.database import get_engine


Row = Dict[str, Any]


# =============================================================================
# STAGE 1: COLUMN SETS FOR BATCH QUERIES
# =============================================================================
# Columns missing from a given OpenEMR install (document_type and user_type
# are site customizations) are skipped rather than failing the query.

PATIENT_COLUMNS = (
    "pid", "fname", "mname", "lname", "DOB", "sex", "ss",
    "country_code", "city", "document_type", "user_type",
)
ENCOUNTER_COLUMNS = (
    "id", "date", "encounter", "pid", "invoice_refno", "reason", "provider_id",
)
BILLING_COLUMNS = ("encounter", "code_type", "code", "fee", "date")
PRESCRIPTION_COLUMNS = (
    "encounter", "rxnorm_drugcode", "drug", "quantity", "unit",
    "start_date", "end_date", "provider_id",
)
BILLING_OPTION_COLUMNS = ("encounter", "is_unable_to_work")
PROVIDER_COLUMNS = (
    "id", "username", "fname", "mname", "lname", "federaltaxid", "npi", "taxonomy",
)


def check_identifier(name: str) -> str:
    """
    Reject names that are not plain SQL identifiers.

    Raises:
        InvalidIdentifierError: If the name fails the whitelist
    """
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise InvalidIdentifierError(str(name))
    return name


# =============================================================================
# STAGE 2: REPOSITORY
# =============================================================================


class SqlSourceRepository:
    """
    Source EMR access over a SQLAlchemy engine.

    What it does:
        Introspects tables, fetches rows under AND-ed predicates, and runs
        the IN-list batch queries of the direct pipeline.

    When to use:
        - Production: bound to the OpenEMR database URL
        - Tests: bound to an in-memory SQLite engine with OpenEMR-like tables

    Example:
        >>> source = SqlSourceRepository(engine)
        >>> [c.name for c in source.columns_of("patient_data")][:3]
        ['pid', 'fname', 'lname']
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, url: str) -> "SqlSourceRepository":
        return cls(get_engine(url))

    # -------------------------------------------------------------------------
    # 2.1 Reflection
    # -------------------------------------------------------------------------

    def _table(self, name: str) -> Table:
        check_identifier(name)
        with self._lock:
            table = self._tables.get(name)
            if table is None:
                try:
                    table = Table(name, self._metadata, autoload_with=self._engine)
                except SQLAlchemyError as e:
                    raise QueryError(name, e) from e
                self._tables[name] = table
            return table

    # -------------------------------------------------------------------------
    # 2.2 SourceRepository
    # -------------------------------------------------------------------------

    def columns_of(self, table: str) -> List[ColumnInfo]:
        """Introspect a table's columns in declaration order."""
        check_identifier(table)
        try:
            columns = inspect(self._engine).get_columns(table)
        except SQLAlchemyError as e:
            raise QueryError(table, e) from e
        return [ColumnInfo(name=c["name"], type=str(c.get("type", ""))) for c in columns]

    def fetch_rows(self, table: str, predicates: Sequence[Predicate]) -> List[Row]:
        """SELECT * FROM table WHERE <all predicates>."""
        sa_table = self._table(table)
        stmt = select(sa_table)
        for predicate in predicates:
            name = check_identifier(predicate.column)
            if name not in sa_table.c:
                raise QueryError(table, KeyError(f"unknown column {name}"))
            column = sa_table.c[name]
            if isinstance(predicate, RangePredicate):
                stmt = stmt.where(column >= predicate.start, column <= predicate.end)
            elif isinstance(predicate, EqualsPredicate):
                stmt = stmt.where(column == predicate.value)
        return self._execute(table, stmt)

    # -------------------------------------------------------------------------
    # 2.3 ClinicalRecordsRepository
    # -------------------------------------------------------------------------

    def get_primary_facility(self) -> Optional[Row]:
        table = self._table("facility")
        rows = self._execute("facility", select(table).limit(1))
        return rows[0] if rows else None

    def get_patients(self, patient_ids: Sequence[int]) -> List[Row]:
        return self._select_in("patient_data", PATIENT_COLUMNS, "pid", patient_ids)

    def get_encounters_for_patients(
        self,
        patient_ids: Sequence[int],
        start: Optional[Any] = None,
        end: Optional[Any] = None,
    ) -> List[Row]:
        if not patient_ids:
            return []
        table = self._table("form_encounter")
        stmt = self._projection(table, ENCOUNTER_COLUMNS).where(
            table.c.pid.in_(list(patient_ids))
        )
        if start is not None:
            stmt = stmt.where(table.c.date >= start)
        if end is not None:
            stmt = stmt.where(table.c.date <= end)
        return self._execute("form_encounter", stmt.order_by(table.c.date.desc()))

    def get_billing_records(self, encounter_numbers: Sequence[int]) -> List[Row]:
        return self._select_in("billing", BILLING_COLUMNS, "encounter", encounter_numbers)

    def get_prescriptions(self, encounter_numbers: Sequence[int]) -> List[Row]:
        return self._select_in(
            "prescriptions", PRESCRIPTION_COLUMNS, "encounter", encounter_numbers
        )

    def get_billing_options(self, encounter_numbers: Sequence[int]) -> List[Row]:
        return self._select_in(
            "form_misc_billing_options", BILLING_OPTION_COLUMNS, "encounter", encounter_numbers
        )

    def get_providers(self, provider_ids: Sequence[int]) -> List[Row]:
        return self._select_in("users", PROVIDER_COLUMNS, "id", provider_ids)

    # -------------------------------------------------------------------------
    # 2.4 Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _projection(table: Table, columns: Sequence[str]):
        present = [table.c[name] for name in columns if name in table.c]
        return select(*present)

    def _select_in(
        self, table_name: str, columns: Sequence[str], key: str, values: Sequence[Any]
    ) -> List[Row]:
        if not values:
            return []
        table = self._table(table_name)
        stmt = self._projection(table, columns).where(table.c[key].in_(list(values)))
        return self._execute(table_name, stmt)

    def _execute(self, table_name: str, stmt) -> List[Row]:
        try:
            with self._engine.connect() as conn:
                rows = [dict(row._mapping) for row in conn.execute(stmt)]
        except SQLAlchemyError as e:
            raise QueryError(table_name, e) from e
        logger.debug(f"Fetched rows | table={table_name} | count={len(rows)}")
        return rows
