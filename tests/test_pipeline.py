"""Tests for the RipsPipeline facade (both strategies end to end)."""

import json

import pytest

from conftest import REFERENCE_DATE
from rips_generation import RipsPipeline
from rips_generation.core.config import RipsSettings
from rips_generation.core.enums import Severity
from rips_generation.core.exceptions import (
    GenerationError,
    MalformedMappingError,
    PresetNotFoundError,
)
from rips_generation.validation import RipsValidator


PRESET_MAPPING = {
    "transaccion.numDocumentoIdObligado": {"type": "static", "value": "900123456"},
    "transaccion.usuarios": {"type": "list", "table": "patient_data"},
    "transaccion.usuarios.tipoDocumentoIdentificacion": {"type": "field", "column": "document_type"},
    "transaccion.usuarios.numDocumentoIdentificacion": {"type": "field", "column": "ss"},
    "transaccion.usuarios.tipoUsuario": {"type": "static", "value": "01"},
    "transaccion.usuarios.fechaNacimiento": {
        "type": "derived", "function": "iso_date", "columns": ["DOB"],
    },
    "transaccion.usuarios.codSexo": {"type": "field", "column": "sex"},
    "transaccion.usuarios.codPaisResidencia": {"type": "field", "column": "country_code"},
    "transaccion.usuarios.codMunicipioResidencia": {"type": "field", "column": "city"},
    "transaccion.usuarios.incapacidad": {"type": "static", "value": "NO"},
    "transaccion.usuarios.consecutivo": {"type": "derived", "function": "row_number"},
    "transaccion.usuarios.servicios.consultas": {"type": "list", "table": "form_encounter"},
    "transaccion.usuarios.servicios.consultas.codPrestador": {
        "type": "static", "value": "110010000101",
    },
    "transaccion.usuarios.servicios.consultas.fechaInicioAtencion": {
        "type": "derived", "function": "iso_datetime", "columns": ["date"],
    },
    "transaccion.usuarios.servicios.consultas.consecutivo": {
        "type": "derived", "function": "row_number",
    },
}


@pytest.fixture
def settings(tmp_path):
    return RipsSettings(
        _env_file=None,
        source_database_url="sqlite://",
        output_directory=tmp_path / "out",
    )


@pytest.fixture
def pipeline(settings, sql_source, local_store):
    return RipsPipeline(
        settings,
        source=sql_source,
        local_store=local_store,
        validator=RipsValidator(reference_date=REFERENCE_DATE),
    )


class TestPresetGeneration:
    def test_generates_and_validates(self, pipeline):
        preset_id = pipeline.create_preset("OpenEMR basico", PRESET_MAPPING)
        result = pipeline.generate_from_preset(preset_id)

        assert result.strategy == "preset"
        assert result.filename == f"RIPS_{result.consecutivo}.json"
        users = result.document["transaccion"]["usuarios"]
        assert [u["consecutivo"] for u in users] == [1, 2]
        assert [len(u["servicios"]["consultas"]) for u in users] == [2, 1]
        assert users[0]["fechaNacimiento"] == "1985-03-10"

        # unbound required consultation fields are reported, not fatal
        fields = {(f.field, f.message) for f in result.errors}
        assert ("codConsulta", "Required") in fields
        assert ("codDiagnosticoPrincipal", "Required") in fields
        assert not any(f.field == "numDocumentoIdObligado" for f in result.findings)

    def test_date_range_limits_encounters(self, pipeline):
        preset_id = pipeline.create_preset("OpenEMR basico", PRESET_MAPPING)
        result = pipeline.generate_from_preset(preset_id, "2025-01-16", "2025-01-31")
        users = result.document["transaccion"]["usuarios"]
        assert [len(u["servicios"]["consultas"]) for u in users] == [1, 1]

    def test_records_audit_row(self, pipeline, local_store):
        preset_id = pipeline.create_preset("OpenEMR basico", PRESET_MAPPING)
        before = pipeline.peek_next_consecutive()
        result = pipeline.generate_from_preset(preset_id)
        assert result.consecutivo == before
        assert local_store.audit.peek_next_consecutive() == before + 1

    def test_unknown_preset(self, pipeline):
        with pytest.raises(PresetNotFoundError):
            pipeline.generate_from_preset(404)

    def test_malformed_stored_mapping(self, pipeline, local_store):
        preset_id = local_store.presets.create("roto", "{bad")
        with pytest.raises(MalformedMappingError):
            pipeline.generate_from_preset(preset_id)
        assert pipeline.peek_next_consecutive() == 1

    def test_create_preset_rejects_bad_binding(self, pipeline):
        with pytest.raises(MalformedMappingError):
            pipeline.create_preset("x", {"transaccion.numFactura": {"type": "magic"}})
        assert pipeline.list_presets() == []

    def test_structural_problems_do_not_abort(self, pipeline):
        preset_id = pipeline.create_preset(
            "x", {"transaccion.nope": {"type": "static", "value": 1}}
        )
        result = pipeline.generate_from_preset(preset_id)
        assert result.document["transaccion"]["usuarios"] == []
        assert "nope" not in result.document["transaccion"]


class TestSelectionGeneration:
    def test_accepts_dict_selections(self, pipeline):
        result = pipeline.generate_from_selections(
            [
                {"patientId": 1, "encounterIds": [10, 11], "userType": "02"},
                {"patient_id": 2, "encounter_ids": [20], "user_type": "03"},
            ]
        )
        assert result.strategy == "selection"
        assert result.user_count == 2
        assert result.is_valid
        assert result.findings == []

    def test_empty_selection(self, pipeline):
        with pytest.raises(GenerationError):
            pipeline.generate_from_selections([])

    def test_selection_without_patient_id(self, pipeline):
        with pytest.raises(GenerationError, match="requires patientId"):
            pipeline.generate_from_selections([{"encounterIds": [10]}])

    def test_selection_with_non_numeric_ids(self, pipeline):
        with pytest.raises(GenerationError, match="must be integers"):
            pipeline.generate_from_selections([{"patientId": 1, "encounterIds": ["ten"]}])


class TestValidationAndOutput:
    def test_validate_document(self, pipeline):
        findings = pipeline.validate_document({"usuarios": []}, reference_date=REFERENCE_DATE)
        assert findings[0].scope == "Structure"
        assert findings[0].severity == Severity.ERROR

    def test_save_result(self, pipeline, settings):
        result = pipeline.generate_from_selections([{"patientId": 2, "encounterIds": [20]}])
        path = pipeline.save_result(result)
        assert path.endswith(result.filename)
        assert str(settings.output_directory) in path
        with open(path, encoding="utf-8") as f:
            assert json.load(f) == result.document

    def test_save_result_to_explicit_directory(self, pipeline, tmp_path):
        result = pipeline.generate_from_selections([{"patientId": 1, "encounterIds": [10]}])
        path = pipeline.save_result(result, output_dir=str(tmp_path / "explicit"))
        assert (tmp_path / "explicit" / result.filename).exists()
        assert path == str(tmp_path / "explicit" / result.filename)
