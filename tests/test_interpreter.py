"""Tests for rips_generation.interpreter."""

import pytest

from conftest import REFERENCE_DATE, FakeReferences, FakeSource
from rips_generation.core.enums import ContextMode, JoinMode
from rips_generation.core.models import (
    ColumnInfo,
    EqualsPredicate,
    GlobalParams,
    RangePredicate,
)
from rips_generation.interpreter import (
    DeclaredJoinStrategy,
    ExecutionContext,
    HeuristicJoinStrategy,
    TreeInterpreter,
    apply_derivation,
    create_join_strategy,
)
from rips_generation.schema import RIPS_SCHEMA, MappingConfig
from rips_generation.schema.bindings import DerivedBinding
from rips_generation.schema.nodes import format_path, iter_leaf_paths
from rips_generation.validation import validate_rips_document


PATIENTS = [
    {"pid": 1, "ss": "1020304050", "sex": "Femenino", "DOB": "1985-03-10", "date": "2025-01-02"},
    {"pid": 2, "ss": "1098765432", "sex": "Masculino", "DOB": "2012-06-01", "date": "2025-03-01"},
]
ENCOUNTERS = [
    {"id": 10, "pid": 1, "encounter": 1001, "date": "2025-01-15 09:30:00"},
    {"id": 11, "pid": 1, "encounter": 1002, "date": "2025-01-20 10:00:00"},
    {"id": 20, "pid": 2, "encounter": 2001, "date": "2025-01-18 08:00:00"},
]
BILLING = [
    {"encounter": 1001, "code": "99213", "date": "2025-01-15 09:45:00"},
    {"encounter": 2001, "code": "890201", "date": "2025-01-18 08:15:00"},
]


def _get_by_path(document, path):
    """Walk to `path`, descending into the first element of every list."""
    node = document
    for segment in path:
        if isinstance(node, list):
            if not node:
                return "EMPTY"
            node = node[0]
        node = node[segment]
    return node


class TestExecutionContext:
    def test_shadowing_overwrites_parent_fields(self):
        parent = ExecutionContext().child("form_encounter", {"date": "2025-01-15", "pid": 1}, 1)
        child = parent.child("billing", {"date": "2025-01-16"}, 1)
        assert child.get("date") == "2025-01-16"
        assert child.get("pid") == 1
        assert parent.get("date") == "2025-01-15"

    def test_namespaced_keeps_ancestor_bare_keys(self):
        root = ExecutionContext(mode=ContextMode.NAMESPACED)
        encounter = root.child("form_encounter", {"date": "2025-01-15"}, 1)
        billing = encounter.child("billing", {"date": "2025-01-16"}, 2)
        assert billing.get("date") == "2025-01-15"
        assert billing.field("billing", "date") == "2025-01-16"
        assert billing.field("form_encounter", "date") == "2025-01-15"
        assert billing.row_index == 2

    def test_values_view_is_read_only(self):
        context = ExecutionContext({"pid": 1})
        with pytest.raises(TypeError):
            context.values["pid"] = 2


class TestJoinStrategies:
    def test_heuristic_adds_date_range_and_context_joins(self):
        strategy = HeuristicJoinStrategy()
        columns = [ColumnInfo("pid"), ColumnInfo("encounter"), ColumnInfo("date")]
        context = ExecutionContext({"pid": 7, "encounter": 0})
        predicates = strategy.build_predicates(
            "billing", columns, context, GlobalParams("2025-01-01", "2025-01-31")
        )
        assert predicates == [
            RangePredicate("date", "2025-01-01", "2025-01-31"),
            EqualsPredicate("pid", 7),
        ]

    def test_heuristic_falls_back_to_date_service(self):
        strategy = HeuristicJoinStrategy()
        predicates = strategy.build_predicates(
            "claims", [ColumnInfo("date_service")], ExecutionContext(), GlobalParams("a", "b")
        )
        assert predicates == [RangePredicate("date_service", "a", "b")]

    def test_no_range_without_both_bounds(self):
        strategy = HeuristicJoinStrategy()
        predicates = strategy.build_predicates(
            "form_encounter", [ColumnInfo("date")], ExecutionContext(), GlobalParams("2025-01-01")
        )
        assert predicates == []

    def test_declared_joins(self):
        strategy = DeclaredJoinStrategy({"prescriptions": {"patient_id": "pid"}})
        context = ExecutionContext({"pid": 3, "encounter": 99})
        columns = [ColumnInfo("patient_id"), ColumnInfo("encounter")]
        assert strategy.build_predicates("prescriptions", columns, context, GlobalParams()) == [
            EqualsPredicate("patient_id", 3)
        ]
        assert strategy.build_predicates("billing", columns, context, GlobalParams()) == []

    def test_registry(self):
        assert isinstance(create_join_strategy(JoinMode.HEURISTIC), HeuristicJoinStrategy)
        declared = create_join_strategy(JoinMode.DECLARED, {"billing": {"encounter": "encounter"}})
        assert declared.strategy_name == "declared"


class TestDerivations:
    def test_row_number(self):
        context = ExecutionContext().child("t", {}, row_index=3)
        assert apply_derivation(context, DerivedBinding(function="row_number")) == 3

    def test_days_between_rounds_up(self):
        context = ExecutionContext({"start": "2025-01-01 08:00", "end": "2025-01-03 09:00"})
        binding = DerivedBinding(function="days_between", columns=["start", "end"])
        assert apply_derivation(context, binding) == 3

    def test_days_between_missing_uses_default(self):
        binding = DerivedBinding(function="days_between", columns=["start", "end"], default=0)
        assert apply_derivation(ExecutionContext({"start": "2025-01-01"}), binding) == 0

    def test_iso_datetime_and_coalesce(self):
        context = ExecutionContext({"date": "2025-01-15 09:30:00", "federaltaxid": "", "npi": "55"})
        iso = DerivedBinding(function="iso_datetime", columns=["date"])
        first = DerivedBinding(function="coalesce", columns=["federaltaxid", "npi"])
        assert apply_derivation(context, iso) == "2025-01-15 09:30"
        assert apply_derivation(context, first) == "55"

    def test_number(self):
        binding = DerivedBinding(function="number", columns=["fee"], default=0)
        assert apply_derivation(ExecutionContext({"fee": "45000.50"}), binding) == 45000.5
        assert apply_derivation(ExecutionContext({"fee": "n/a"}), binding) == 0

    def test_unknown_function(self):
        with pytest.raises(ValueError, match="Unknown derivation"):
            apply_derivation(ExecutionContext(), DerivedBinding(function="nope"))


class TestTreeInterpreter:
    @pytest.fixture
    def source(self):
        return FakeSource(
            {"patient_data": PATIENTS, "form_encounter": ENCOUNTERS, "billing": BILLING}
        )

    def test_every_leaf_path_is_present(self, source):
        mapping = MappingConfig.from_dict(
            {"transaccion.usuarios": {"type": "list", "table": "patient_data"}}
        )
        document = TreeInterpreter(source).generate(mapping, GlobalParams())
        for path in iter_leaf_paths(RIPS_SCHEMA):
            value = _get_by_path(document, path)
            assert value is None or value == "EMPTY", format_path(path)

    def test_users_bound_without_services(self, source):
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.numDocumentoIdentificacion": {"type": "field", "column": "ss"},
            }
        )
        document = TreeInterpreter(source).generate(mapping, GlobalParams())
        users = document["transaccion"]["usuarios"]
        assert [u["numDocumentoIdentificacion"] for u in users] == ["1020304050", "1098765432"]
        for user in users:
            assert all(records == [] for records in user["servicios"].values())
            assert user["tipoUsuario"] is None

        findings = validate_rips_document(document, reference_date=REFERENCE_DATE)
        assert findings[0].scope == "Transaction"
        assert findings[0].field == "numDocumentoIdObligado"
        user_fields = {f.field for f in findings if f.scope.startswith("User 1 ")}
        assert {"tipoDocumentoIdentificacion", "tipoUsuario", "incapacidad"} <= user_fields

    def test_unbound_array_is_empty(self, source):
        document = TreeInterpreter(source).generate(MappingConfig(), GlobalParams())
        assert document["transaccion"]["usuarios"] == []
        assert document["transaccion"]["numFactura"] is None

    def test_nested_arrays_join_on_context(self, source):
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.consecutivo": {"type": "derived", "function": "row_number"},
                "transaccion.usuarios.servicios.consultas": {"type": "list", "table": "form_encounter"},
                "transaccion.usuarios.servicios.consultas.consecutivo": {
                    "type": "derived", "function": "row_number",
                },
                "transaccion.usuarios.servicios.consultas.fechaInicioAtencion": {
                    "type": "derived", "function": "iso_datetime", "columns": ["date"],
                },
                "transaccion.usuarios.servicios.procedimientos": {"type": "list", "table": "billing"},
                "transaccion.usuarios.servicios.procedimientos.codProcedimiento": {
                    "type": "field", "column": "code",
                },
            }
        )
        document = TreeInterpreter(source).generate(mapping, GlobalParams())
        users = document["transaccion"]["usuarios"]
        assert [u["consecutivo"] for u in users] == [1, 2]

        first_consults = users[0]["servicios"]["consultas"]
        assert [c["consecutivo"] for c in first_consults] == [1, 2]
        assert first_consults[0]["fechaInicioAtencion"] == "2025-01-15 09:30"
        assert len(users[1]["servicios"]["consultas"]) == 1

        # procedimientos sits beside consultas, so it sees only the patient
        # context: no "encounter" key, so billing lines join on nothing
        assert len(users[0]["servicios"]["procedimientos"]) == len(BILLING)

    def test_date_range_filters_top_level(self, source):
        mapping = MappingConfig.from_dict(
            {"transaccion.usuarios": {"type": "list", "table": "patient_data"}}
        )
        document = TreeInterpreter(source).generate(
            mapping, GlobalParams("2025-01-01", "2025-01-31")
        )
        assert len(document["transaccion"]["usuarios"]) == 1
        table, predicates = source.fetch_calls[0]
        assert table == "patient_data"
        assert predicates == [RangePredicate("date", "2025-01-01", "2025-01-31")]

    def test_static_and_lookup_bindings(self, source, fake_references):
        mapping = MappingConfig.from_dict(
            {
                "transaccion.numDocumentoIdObligado": {"type": "static", "value": "900123456"},
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.codSexo": {
                    "type": "lookup", "column": "sex", "refTable": "RIPSSexo",
                },
                "transaccion.usuarios.tipoUsuario": {
                    "type": "lookup", "column": "missing", "refTable": "RIPSSexo",
                },
            }
        )
        document = TreeInterpreter(source, references=fake_references).generate(
            mapping, GlobalParams()
        )
        assert document["transaccion"]["numDocumentoIdObligado"] == "900123456"
        assert [u["codSexo"] for u in document["transaccion"]["usuarios"]] == ["F", "M"]
        assert document["transaccion"]["usuarios"][0]["tipoUsuario"] is None

    def test_lookup_without_match_is_null(self, source):
        references = FakeReferences({"RIPSSexo": []})
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.codSexo": {
                    "type": "lookup", "column": "sex", "refTable": "RIPSSexo",
                },
            }
        )
        document = TreeInterpreter(source, references=references).generate(mapping, GlobalParams())
        assert document["transaccion"]["usuarios"][0]["codSexo"] is None

    def test_failing_fetch_degrades_to_empty(self):
        source = FakeSource({"patient_data": PATIENTS, "form_encounter": ENCOUNTERS}, failing={"form_encounter"})
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.servicios.consultas": {"type": "list", "table": "form_encounter"},
            }
        )
        document = TreeInterpreter(source).generate(mapping, GlobalParams())
        users = document["transaccion"]["usuarios"]
        assert len(users) == 2
        assert all(u["servicios"]["consultas"] == [] for u in users)

    def test_failing_introspection_degrades_to_empty(self):
        source = FakeSource(
            {"patient_data": PATIENTS, "form_encounter": ENCOUNTERS},
            failing_columns={"form_encounter"},
        )
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.servicios.consultas": {"type": "list", "table": "form_encounter"},
                "transaccion.usuarios.servicios.consultas.codConsulta": {
                    "type": "field", "column": "encounter",
                },
            }
        )
        document = TreeInterpreter(source).generate(mapping, GlobalParams())
        users = document["transaccion"]["usuarios"]
        assert [u["servicios"]["consultas"] for u in users] == [[], []]
        assert [t for t, _ in source.fetch_calls] == ["patient_data"]

    def test_failing_lookup_degrades_to_null(self, source):
        class BrokenReferences:
            def find_one(self, ref_table, match_column, match_value):
                raise RuntimeError("reference store offline")

        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.codSexo": {
                    "type": "lookup", "column": "sex", "refTable": "RIPSSexo",
                },
            }
        )
        document = TreeInterpreter(source, references=BrokenReferences()).generate(
            mapping, GlobalParams()
        )
        assert [u["codSexo"] for u in document["transaccion"]["usuarios"]] == [None, None]

    def test_namespaced_mode_reads_qualified_field(self, source):
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.servicios.consultas": {"type": "list", "table": "form_encounter"},
                "transaccion.usuarios.servicios.consultas.fechaInicioAtencion": {
                    "type": "field", "table": "form_encounter", "column": "date",
                },
                "transaccion.usuarios.servicios.consultas.codDiagnosticoPrincipal": {
                    "type": "field", "column": "date",
                },
            }
        )
        interpreter = TreeInterpreter(source, context_mode=ContextMode.NAMESPACED)
        consult = interpreter.generate(mapping, GlobalParams())["transaccion"]["usuarios"][0][
            "servicios"
        ]["consultas"][0]
        assert consult["fechaInicioAtencion"] == "2025-01-15 09:30:00"
        # bare key keeps the patient's value in namespaced mode
        assert consult["codDiagnosticoPrincipal"] == "2025-01-02"

    def test_idempotent(self, source):
        mapping = MappingConfig.from_dict(
            {
                "transaccion.usuarios": {"type": "list", "table": "patient_data"},
                "transaccion.usuarios.servicios.consultas": {"type": "list", "table": "form_encounter"},
            }
        )
        interpreter = TreeInterpreter(source)
        assert interpreter.generate(mapping, GlobalParams()) == interpreter.generate(
            mapping, GlobalParams()
        )
