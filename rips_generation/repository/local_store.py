"""
Local Store - Presets, Reference Records and Generation Audit

The application's own database (SQLite by default). It holds the SISPRO
reference tables synchronized from the ministry, the user-authored mapping
presets, and one audit row per generated file whose auto-increment id is
the file consecutive.

Architecture:
    LocalStore (aggregate, owns the session factory)
    ├── ReferenceStore        → ReferenceLookup + ReferenceCodeRepository
    ├── PresetStore           → MappingPresetRepository
    └── GenerationAuditStore  → GenerationAuditRepository

Usage:
    from rips_generation.repository import LocalStore

    store = LocalStore.from_url("sqlite:///rips_local.db")
    store.init_schema()
    preset_id = store.presets.create("Monthly", mapping_json)
    consecutivo = store.audit.create(patient_count=3, file_name="RIPS_JSON")

Author: Shubham Singh
Date: December 2025
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from rips_generation.core.constants import (
    INCAPACIDAD_REFERENCE_TABLE,
    INCAPACIDAD_SEED_ROWS,
    USER_TYPE_REFERENCE_TABLE,
)
from rips_generation.core.exceptions import InvalidIdentifierError, QueryError
from rips_generation.repository.database import get_engine


Base = declarative_base()

Row = Dict[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# STAGE 1: ORM MODELS
# =============================================================================


class ReferenceRecord(Base):
    """One row of a synchronized SISPRO reference table."""

    __tablename__ = "reference_records"
    __table_args__ = (
        UniqueConstraint("table_name", "external_id", name="uq_reference_table_external"),
        Index("ix_reference_table_name", "table_name"),
        Index("ix_reference_codigo", "codigo"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(String(128), nullable=False)
    external_id = Column(Integer, nullable=False)
    codigo = Column(String(64), nullable=False)
    nombre = Column(Text, nullable=False)
    descripcion = Column(Text, nullable=True)
    habilitado = Column(Boolean, nullable=False, default=True)
    extra_i = Column(Text, nullable=True)
    extra_ii = Column(Text, nullable=True)
    extra_iii = Column(Text, nullable=True)
    extra_iv = Column(Text, nullable=True)
    extra_v = Column(Text, nullable=True)
    valor = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class RipsPreset(Base):
    """A named mapping configuration."""

    __tablename__ = "rips_presets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    mapping = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class RipsGeneration(Base):
    """One generated file; the id is its consecutive."""

    __tablename__ = "rips_generations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_count = Column(Integer, nullable=False, default=0)
    file_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


# Column names as they appear in preset lookups (camelCase, as stored by the
# mapping editor) and as ORM attributes
_REFERENCE_FIELDS = {
    "id": "id",
    "tableName": "table_name",
    "externalId": "external_id",
    "codigo": "codigo",
    "nombre": "nombre",
    "descripcion": "descripcion",
    "habilitado": "habilitado",
    "extraI": "extra_i",
    "extraII": "extra_ii",
    "extraIII": "extra_iii",
    "extraIV": "extra_iv",
    "extraV": "extra_v",
    "valor": "valor",
}
_REFERENCE_ATTRIBUTES = {attr: attr for attr in _REFERENCE_FIELDS.values()}


def _reference_attribute(column: str) -> str:
    attribute = _REFERENCE_FIELDS.get(column) or _REFERENCE_ATTRIBUTES.get(column)
    if attribute is None:
        raise InvalidIdentifierError(column)
    return attribute


def _reference_to_dict(record: ReferenceRecord) -> Row:
    return {external: getattr(record, attr) for external, attr in _REFERENCE_FIELDS.items()}


# =============================================================================
# STAGE 2: REFERENCE STORE
# =============================================================================


class ReferenceStore:
    """
    Reference records: lookups for presets and code sets for the direct pipeline.

    The incapacidad table is not part of the SISPRO sync, so it seeds itself
    with SI/NO the first time it is read.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        incapacidad_table: str = INCAPACIDAD_REFERENCE_TABLE,
        user_type_table: str = USER_TYPE_REFERENCE_TABLE,
    ):
        self._session_factory = session_factory
        self.incapacidad_table = incapacidad_table
        self.user_type_table = user_type_table

    def find_one(self, ref_table: str, match_column: str, match_value: str) -> Optional[Row]:
        """First record of `ref_table` with `match_column == match_value` (by id)."""
        column = getattr(ReferenceRecord, _reference_attribute(match_column))
        stmt = (
            select(ReferenceRecord)
            .where(ReferenceRecord.table_name == ref_table, column == match_value)
            .order_by(ReferenceRecord.id)
            .limit(1)
        )
        try:
            with self._session_factory() as session:
                record = session.scalars(stmt).first()
                return _reference_to_dict(record) if record else None
        except SQLAlchemyError as e:
            raise QueryError(ref_table, e) from e

    def add_records(self, table_name: str, rows: Iterable[Row]) -> int:
        """
        Insert records into a reference table.

        Each row uses the ORM attribute names (external_id, codigo, nombre,
        extra_i, ...). Returns the number inserted.
        """
        count = 0
        try:
            with self._session_factory() as session, session.begin():
                for row in rows:
                    session.add(ReferenceRecord(table_name=table_name, **row))
                    count += 1
        except SQLAlchemyError as e:
            raise QueryError(table_name, e) from e
        return count

    def ensure_incapacidad_options(self) -> None:
        """
        Seed SI/NO when the incapacidad table is empty.

        The count and the insert share one transaction. A concurrent caller
        that seeds first makes our commit fail on uq_reference_table_external,
        which is treated as "already seeded".
        """
        try:
            with self._session_factory() as session, session.begin():
                if self._count_records(session, self.incapacidad_table) > 0:
                    return
                for row in INCAPACIDAD_SEED_ROWS:
                    session.add(ReferenceRecord(table_name=self.incapacidad_table, **row))
        except IntegrityError:
            logger.debug(f"Incapacidad options already seeded | table={self.incapacidad_table}")
            return
        except SQLAlchemyError as e:
            raise QueryError(self.incapacidad_table, e) from e

        logger.info(f"Seeded incapacidad options | table={self.incapacidad_table}")

    @staticmethod
    def _count_records(session, table_name: str) -> int:
        stmt = select(func.count(ReferenceRecord.id)).where(
            ReferenceRecord.table_name == table_name
        )
        return session.scalar(stmt) or 0

    def get_incapacidad_options(self) -> List[Row]:
        return self._enabled_records(self.incapacidad_table, order_by_name=False)

    def get_user_types(self) -> List[Row]:
        return [
            {"codigo": r["codigo"], "nombre": r["nombre"]}
            for r in self._enabled_records(self.user_type_table, order_by_name=True)
        ]

    def _enabled_records(self, table_name: str, order_by_name: bool) -> List[Row]:
        order = ReferenceRecord.nombre if order_by_name else ReferenceRecord.id
        stmt = (
            select(ReferenceRecord)
            .where(ReferenceRecord.table_name == table_name, ReferenceRecord.habilitado.is_(True))
            .order_by(order)
        )
        try:
            with self._session_factory() as session:
                return [_reference_to_dict(r) for r in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise QueryError(table_name, e) from e


# =============================================================================
# STAGE 3: PRESET STORE
# =============================================================================


class PresetStore:
    """CRUD over stored mapping presets. The mapping is kept as JSON text."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @staticmethod
    def _to_dict(preset: RipsPreset) -> Row:
        return {"id": preset.id, "name": preset.name, "mapping": preset.mapping}

    def get(self, preset_id: int) -> Optional[Row]:
        try:
            with self._session_factory() as session:
                preset = session.get(RipsPreset, preset_id)
                return self._to_dict(preset) if preset else None
        except SQLAlchemyError as e:
            raise QueryError("rips_presets", e) from e

    def list(self) -> List[Row]:
        try:
            with self._session_factory() as session:
                presets = session.scalars(select(RipsPreset).order_by(RipsPreset.name))
                return [self._to_dict(p) for p in presets]
        except SQLAlchemyError as e:
            raise QueryError("rips_presets", e) from e

    def create(self, name: str, mapping: str) -> int:
        try:
            with self._session_factory() as session, session.begin():
                preset = RipsPreset(name=name, mapping=mapping)
                session.add(preset)
                session.flush()
                preset_id = preset.id
        except SQLAlchemyError as e:
            raise QueryError("rips_presets", e) from e
        logger.info(f"Created preset | id={preset_id} | name={name}")
        return preset_id

    def update(
        self, preset_id: int, name: Optional[str] = None, mapping: Optional[str] = None
    ) -> bool:
        try:
            with self._session_factory() as session, session.begin():
                preset = session.get(RipsPreset, preset_id)
                if preset is None:
                    return False
                if name is not None:
                    preset.name = name
                if mapping is not None:
                    preset.mapping = mapping
        except SQLAlchemyError as e:
            raise QueryError("rips_presets", e) from e
        return True

    def delete(self, preset_id: int) -> bool:
        try:
            with self._session_factory() as session, session.begin():
                preset = session.get(RipsPreset, preset_id)
                if preset is None:
                    return False
                session.delete(preset)
        except SQLAlchemyError as e:
            raise QueryError("rips_presets", e) from e
        return True


# =============================================================================
# STAGE 4: GENERATION AUDIT
# =============================================================================


class GenerationAuditStore:
    """One row per generated file; the auto-increment id is the consecutive."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, patient_count: int, file_name: Optional[str] = None) -> int:
        try:
            with self._session_factory() as session, session.begin():
                record = RipsGeneration(patient_count=patient_count, file_name=file_name)
                session.add(record)
                session.flush()
                generation_id = record.id
        except SQLAlchemyError as e:
            raise QueryError("rips_generations", e) from e
        logger.info(f"Recorded generation | consecutivo={generation_id} | patients={patient_count}")
        return generation_id

    def peek_next_consecutive(self) -> int:
        try:
            with self._session_factory() as session:
                last_id = session.scalar(select(func.max(RipsGeneration.id)))
        except SQLAlchemyError as e:
            raise QueryError("rips_generations", e) from e
        return (last_id or 0) + 1


# =============================================================================
# STAGE 5: AGGREGATE
# =============================================================================


class LocalStore:
    """
    The local database and its three stores.

    Example:
        >>> store = LocalStore.from_url("sqlite://")
        >>> store.init_schema()
        >>> store.audit.peek_next_consecutive()
        1
    """

    def __init__(
        self,
        engine: Engine,
        incapacidad_table: str = INCAPACIDAD_REFERENCE_TABLE,
        user_type_table: str = USER_TYPE_REFERENCE_TABLE,
    ):
        self.engine = engine
        self._session_factory = sessionmaker(autoflush=False, bind=engine)
        self.references = ReferenceStore(self._session_factory, incapacidad_table, user_type_table)
        self.presets = PresetStore(self._session_factory)
        self.audit = GenerationAuditStore(self._session_factory)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "LocalStore":
        return cls(get_engine(url), **kwargs)

    def init_schema(self) -> None:
        """Create missing tables."""
        Base.metadata.create_all(self.engine)
