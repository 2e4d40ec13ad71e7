"""Tests for rips_generation.repository (SQL source and local store)."""

import pytest

from rips_generation.core.exceptions import InvalidIdentifierError, QueryError
from rips_generation.core.models import EqualsPredicate, RangePredicate
from rips_generation.repository.local_store import ReferenceStore
from rips_generation.repository.sql_source import check_identifier


class TestSqlSource:
    def test_columns_in_declaration_order(self, sql_source):
        names = [c.name for c in sql_source.columns_of("form_encounter")]
        assert names == [
            "id", "date", "encounter", "pid", "invoice_refno", "reason", "provider_id",
        ]

    def test_fetch_rows_applies_predicates(self, sql_source):
        rows = sql_source.fetch_rows(
            "billing",
            [EqualsPredicate("encounter", 1001), EqualsPredicate("code_type", "ICD10")],
        )
        assert sorted(r["code"] for r in rows) == ["E119", "I10"]

        ranged = sql_source.fetch_rows(
            "form_encounter", [RangePredicate("date", "2025-01-16", "2025-01-31")]
        )
        assert sorted(r["encounter"] for r in ranged) == [1002, 2001]

    def test_fetch_rows_without_predicates_returns_all(self, sql_source):
        assert len(sql_source.fetch_rows("patient_data", [])) == 2

    @pytest.mark.parametrize("name", ["billing; DROP TABLE users", "a.b", "", "x-y"])
    def test_rejects_unsafe_identifiers(self, sql_source, name):
        with pytest.raises(InvalidIdentifierError):
            sql_source.fetch_rows(name, [])
        with pytest.raises(InvalidIdentifierError):
            check_identifier(name)

    def test_rejects_unsafe_predicate_column(self, sql_source):
        with pytest.raises(InvalidIdentifierError):
            sql_source.fetch_rows("billing", [EqualsPredicate("code OR 1=1", 1)])

    def test_unknown_table_and_column(self, sql_source):
        with pytest.raises(QueryError):
            sql_source.fetch_rows("no_such_table", [])
        with pytest.raises(QueryError):
            sql_source.columns_of("no_such_table")
        with pytest.raises(QueryError):
            sql_source.fetch_rows("billing", [EqualsPredicate("missing_column", 1)])

    def test_primary_facility(self, sql_source):
        facility = sql_source.get_primary_facility()
        assert facility["facility_code"] == "110010000101"

    def test_batch_queries(self, sql_source):
        patients = sql_source.get_patients([1, 2, 99])
        assert sorted(p["pid"] for p in patients) == [1, 2]

        encounters = sql_source.get_encounters_for_patients([1])
        assert [e["id"] for e in encounters] == [11, 10]

        billing = sql_source.get_billing_records([1001])
        assert len(billing) == 3
        assert sql_source.get_prescriptions([1001])[0]["drug"] == "Metformina 850 mg"
        assert sql_source.get_billing_options([1002])[0]["is_unable_to_work"] == 1
        providers = {p["id"]: p for p in sql_source.get_providers([5, 6])}
        assert providers[6]["npi"] == "1234567890"

    def test_batch_queries_skip_empty_lists(self, sql_source):
        assert sql_source.get_patients([]) == []
        assert sql_source.get_encounters_for_patients([]) == []
        assert sql_source.get_billing_records([]) == []

    def test_encounter_date_bounds(self, sql_source):
        encounters = sql_source.get_encounters_for_patients(
            [1, 2], start="2025-01-16", end="2025-01-19"
        )
        assert [e["id"] for e in encounters] == [20]


class TestReferenceStore:
    def test_find_one_by_external_column(self, local_store):
        references = local_store.references
        references.add_records(
            "RIPSSexo",
            [
                {"external_id": 1, "codigo": "F", "nombre": "Femenino", "extra_i": "female"},
                {"external_id": 2, "codigo": "M", "nombre": "Masculino", "extra_i": "male"},
            ],
        )
        assert references.find_one("RIPSSexo", "nombre", "Masculino")["codigo"] == "M"
        assert references.find_one("RIPSSexo", "extraI", "female")["codigo"] == "F"
        assert references.find_one("RIPSSexo", "nombre", "Otro") is None
        assert references.find_one("RIPSPais", "nombre", "Masculino") is None

    def test_find_one_rejects_unknown_column(self, local_store):
        with pytest.raises(InvalidIdentifierError):
            local_store.references.find_one("RIPSSexo", "nombre; --", "x")

    def test_incapacidad_seeding_is_idempotent(self, local_store):
        references = local_store.references
        references.ensure_incapacidad_options()
        references.ensure_incapacidad_options()
        options = references.get_incapacidad_options()
        assert [(o["codigo"], o["extraI"]) for o in options] == [("SI", "1"), ("NO", "0")]

    def test_incapacidad_seeding_tolerates_concurrent_seed(self, local_store, monkeypatch):
        references = local_store.references
        references.ensure_incapacidad_options()
        # another caller counted before our seed committed
        monkeypatch.setattr(ReferenceStore, "_count_records", staticmethod(lambda session, table_name: 0))
        references.ensure_incapacidad_options()
        options = references.get_incapacidad_options()
        assert [o["codigo"] for o in options] == ["SI", "NO"]

    def test_user_types_sorted_by_name_and_enabled_only(self, local_store):
        local_store.references.add_records(
            "RIPSTipoUsuarioVersion2",
            [
                {"external_id": 1, "codigo": "02", "nombre": "Subsidiado"},
                {"external_id": 2, "codigo": "01", "nombre": "Contributivo"},
                {"external_id": 3, "codigo": "99", "nombre": "Anterior", "habilitado": False},
            ],
        )
        assert local_store.references.get_user_types() == [
            {"codigo": "01", "nombre": "Contributivo"},
            {"codigo": "02", "nombre": "Subsidiado"},
        ]


class TestPresetStore:
    def test_crud(self, local_store):
        presets = local_store.presets
        preset_id = presets.create("OpenEMR", '{"transaccion.numFactura": {"type": "static", "value": "F1"}}')
        assert presets.get(preset_id)["name"] == "OpenEMR"

        assert presets.update(preset_id, name="OpenEMR v2") is True
        assert presets.get(preset_id)["name"] == "OpenEMR v2"
        assert [p["id"] for p in presets.list()] == [preset_id]

        assert presets.delete(preset_id) is True
        assert presets.get(preset_id) is None
        assert presets.delete(preset_id) is False
        assert presets.update(preset_id, name="x") is False

    def test_list_sorted_by_name(self, local_store):
        local_store.presets.create("b", "{}")
        local_store.presets.create("a", "{}")
        assert [p["name"] for p in local_store.presets.list()] == ["a", "b"]


class TestGenerationAudit:
    def test_ids_ascend_and_peek_follows(self, local_store):
        audit = local_store.audit
        assert audit.peek_next_consecutive() == 1
        first = audit.create(2, "RIPS_JSON")
        second = audit.create(1, "RIPS_PRESET")
        assert second > first
        assert audit.peek_next_consecutive() == second + 1

    def test_peek_does_not_reserve(self, local_store):
        audit = local_store.audit
        assert audit.peek_next_consecutive() == audit.peek_next_consecutive()
