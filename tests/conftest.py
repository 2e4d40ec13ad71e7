"""Shared test fixtures for rips_generation tests."""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import Column, Integer, MetaData, Table, Text, create_engine, insert
from sqlalchemy.pool import StaticPool

from rips_generation.core.models import ColumnInfo, EqualsPredicate, RangePredicate
from rips_generation.repository.local_store import LocalStore
from rips_generation.repository.sql_source import SqlSourceRepository


REFERENCE_DATE = date(2025, 6, 1)


def birth_date_for_age(age: int, reference: date = REFERENCE_DATE) -> str:
    """ISO birth date that puts a person in the middle of `age` on `reference`."""
    return (reference - timedelta(days=int((age + 0.5) * 365.25))).isoformat()


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


# =============================================================================
# SOURCE EMR DATABASE
# =============================================================================


def _create_openemr_tables(metadata: MetaData) -> Dict[str, Table]:
    return {
        "facility": Table(
            "facility", metadata,
            Column("id", Integer, primary_key=True),
            Column("name", Text),
            Column("facility_code", Text),
            Column("federal_ein", Text),
        ),
        "patient_data": Table(
            "patient_data", metadata,
            Column("pid", Integer, primary_key=True),
            Column("fname", Text),
            Column("lname", Text),
            Column("DOB", Text),
            Column("sex", Text),
            Column("ss", Text),
            Column("country_code", Text),
            Column("city", Text),
            Column("document_type", Text),
            Column("user_type", Text),
        ),
        "form_encounter": Table(
            "form_encounter", metadata,
            Column("id", Integer, primary_key=True),
            Column("date", Text),
            Column("encounter", Integer),
            Column("pid", Integer),
            Column("invoice_refno", Text),
            Column("reason", Text),
            Column("provider_id", Integer),
        ),
        "billing": Table(
            "billing", metadata,
            Column("id", Integer, primary_key=True),
            Column("date", Text),
            Column("pid", Integer),
            Column("encounter", Integer),
            Column("code_type", Text),
            Column("code", Text),
            Column("fee", Text),
        ),
        "prescriptions": Table(
            "prescriptions", metadata,
            Column("id", Integer, primary_key=True),
            Column("pid", Integer),
            Column("encounter", Integer),
            Column("rxnorm_drugcode", Text),
            Column("drug", Text),
            Column("quantity", Text),
            Column("unit", Text),
            Column("start_date", Text),
            Column("end_date", Text),
            Column("provider_id", Integer),
        ),
        "form_misc_billing_options": Table(
            "form_misc_billing_options", metadata,
            Column("id", Integer, primary_key=True),
            Column("encounter", Integer),
            Column("is_unable_to_work", Integer),
        ),
        "users": Table(
            "users", metadata,
            Column("id", Integer, primary_key=True),
            Column("username", Text),
            Column("fname", Text),
            Column("lname", Text),
            Column("federaltaxid", Text),
            Column("npi", Text),
        ),
    }


OPENEMR_ROWS: Dict[str, List[Dict[str, Any]]] = {
    "facility": [
        {"id": 1, "name": "IPS Central", "facility_code": "110010000101", "federal_ein": "900123456"},
    ],
    "patient_data": [
        {
            "pid": 1, "fname": "Ana", "lname": "Gomez", "DOB": "1985-03-10", "sex": "F",
            "ss": "1020304050", "country_code": "170", "city": "11001",
            "document_type": "CC", "user_type": "01",
        },
        {
            "pid": 2, "fname": "Luis", "lname": "Perez", "DOB": "2012-06-01", "sex": "M",
            "ss": "1098765432", "country_code": "170", "city": "05001",
            "document_type": "TI", "user_type": None,
        },
    ],
    "form_encounter": [
        {"id": 10, "date": "2025-01-15 09:30:00", "encounter": 1001, "pid": 1,
         "invoice_refno": "FEV-0001", "reason": "Control", "provider_id": 5},
        {"id": 11, "date": "2025-01-20 10:00:00", "encounter": 1002, "pid": 1,
         "invoice_refno": None, "reason": "Gripa", "provider_id": 5},
        {"id": 20, "date": "2025-01-18 08:00:00", "encounter": 2001, "pid": 2,
         "invoice_refno": None, "reason": "EDA", "provider_id": 6},
    ],
    "billing": [
        {"id": 1, "date": "2025-01-15 09:30:00", "pid": 1, "encounter": 1001,
         "code_type": "ICD10", "code": "E119", "fee": "0"},
        {"id": 2, "date": "2025-01-15 09:30:00", "pid": 1, "encounter": 1001,
         "code_type": "ICD10", "code": "I10", "fee": "0"},
        {"id": 3, "date": "2025-01-15 09:45:00", "pid": 1, "encounter": 1001,
         "code_type": "CPT4", "code": "99213", "fee": "45000.00"},
        {"id": 4, "date": "2025-01-20 10:00:00", "pid": 1, "encounter": 1002,
         "code_type": "ICD10", "code": "J069", "fee": "0"},
        {"id": 5, "date": "2025-01-18 08:00:00", "pid": 2, "encounter": 2001,
         "code_type": "ICD10", "code": "A09", "fee": "0"},
        {"id": 6, "date": "2025-01-18 08:15:00", "pid": 2, "encounter": 2001,
         "code_type": "CUPS", "code": "890201", "fee": "30000"},
    ],
    "prescriptions": [
        {"id": 1, "pid": 1, "encounter": 1001, "rxnorm_drugcode": "860975",
         "drug": "Metformina 850 mg", "quantity": "60", "unit": "mg",
         "start_date": "2025-01-15", "end_date": "2025-02-14", "provider_id": 5},
    ],
    "form_misc_billing_options": [
        {"id": 1, "encounter": 1002, "is_unable_to_work": 1},
    ],
    "users": [
        {"id": 5, "username": "drsmith", "fname": "Juan", "lname": "Smith",
         "federaltaxid": "79876543", "npi": None},
        {"id": 6, "username": "drruiz", "fname": "Marta", "lname": "Ruiz",
         "federaltaxid": None, "npi": "1234567890"},
    ],
}


@pytest.fixture
def source_engine():
    """In-memory SQLite database with OpenEMR-like tables and sample rows."""
    engine = _memory_engine()
    metadata = MetaData()
    tables = _create_openemr_tables(metadata)
    metadata.create_all(engine)
    with engine.begin() as conn:
        for name, rows in OPENEMR_ROWS.items():
            conn.execute(insert(tables[name]), rows)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_source(source_engine):
    return SqlSourceRepository(source_engine)


# =============================================================================
# LOCAL STORE
# =============================================================================


@pytest.fixture
def local_store():
    """Local store on its own in-memory database, schema created."""
    engine = _memory_engine()
    store = LocalStore(engine)
    store.init_schema()
    yield store
    engine.dispose()


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeSource:
    """
    In-memory SourceRepository.

    Applies equality and range predicates to its rows and records every
    call so tests can assert on the inferred predicates.
    """

    def __init__(
        self,
        tables: Dict[str, List[Dict[str, Any]]],
        failing: Optional[set] = None,
        failing_columns: Optional[set] = None,
    ):
        self.tables = tables
        self.failing = failing or set()
        self.failing_columns = failing_columns or set()
        self.fetch_calls: List[tuple] = []

    def columns_of(self, table: str) -> List[ColumnInfo]:
        if table in self.failing_columns:
            raise RuntimeError(f"cannot introspect {table}")
        rows = self.tables.get(table, [])
        names: List[str] = []
        for row in rows:
            for key in row:
                if key not in names:
                    names.append(key)
        return [ColumnInfo(name=n) for n in names]

    def fetch_rows(self, table: str, predicates) -> List[Dict[str, Any]]:
        self.fetch_calls.append((table, list(predicates)))
        if table in self.failing:
            raise RuntimeError(f"connection lost while reading {table}")
        rows = self.tables.get(table, [])
        for predicate in predicates:
            if isinstance(predicate, EqualsPredicate):
                rows = [r for r in rows if r.get(predicate.column) == predicate.value]
            elif isinstance(predicate, RangePredicate):
                rows = [
                    r for r in rows
                    if predicate.start <= str(r.get(predicate.column)) <= predicate.end
                ]
        return [dict(r) for r in rows]


class FakeReferences:
    """In-memory ReferenceLookup keyed by table name."""

    def __init__(self, records: Dict[str, List[Dict[str, Any]]]):
        self.records = records

    def find_one(self, ref_table: str, match_column: str, match_value: str):
        for record in self.records.get(ref_table, []):
            if str(record.get(match_column)) == match_value:
                return record
        return None


@pytest.fixture
def fake_references():
    return FakeReferences(
        {
            "RIPSSexo": [
                {"codigo": "F", "nombre": "Femenino", "extraI": "female"},
                {"codigo": "M", "nombre": "Masculino", "extraI": "male"},
            ],
        }
    )
