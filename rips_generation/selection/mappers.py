"""
Direct Pipeline Mappers

Pure functions that turn EMR rows into typed RIPS records. The EMR schema
carries no value for most categorical RIPS fields, so those take the
configured DefaultCodes.

Author: Shubham Singh
Date: December 2025
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from rips_generation.core.config import DefaultCodes
from rips_generation.core.constants import INCAPACIDAD_NO
from rips_generation.core.document import (
    RipsConsultation,
    RipsMedication,
    RipsProcedure,
    RipsServices,
    RipsTransaction,
    RipsUser,
)
from rips_generation.utils.dates import ceil_days_between, to_iso_date, to_iso_datetime
from rips_generation.utils.numbers import to_number


Row = Mapping[str, Any]

MAX_RELATED_DIAGNOSES = 3


# =============================================================================
# STAGE 1: HELPERS
# =============================================================================


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def provider_document_number(provider: Optional[Row]) -> str:
    """Professional id: federal tax id, else NPI."""
    if not provider:
        return ""
    return _text(provider.get("federaltaxid") or provider.get("npi"))


def _provider(provider_id: Any, providers: Mapping[int, Row]) -> Optional[Row]:
    return providers.get(provider_id) if provider_id else None


def _diagnosis(diagnoses: Sequence[Row], index: int) -> str:
    return _text(diagnoses[index].get("code")) if len(diagnoses) > index else ""


# =============================================================================
# STAGE 2: SERVICE MAPPERS
# =============================================================================


def map_consultation(
    encounter: Row,
    provider_code: str,
    diagnoses: Sequence[Row],
    providers: Mapping[int, Row],
    consecutivo: int,
    defaults: DefaultCodes,
) -> RipsConsultation:
    """
    One consultation for an encounter.

    Diagnoses are the encounter's diagnostic billing lines in fetch order:
    the first is principal, the next three are related 1..3.
    """
    provider = _provider(encounter.get("provider_id"), providers)
    return RipsConsultation(
        cod_prestador=provider_code or "",
        fecha_inicio_atencion=to_iso_datetime(encounter.get("date")),
        cod_consulta=defaults.consultation_code,
        modalidad_grupo_servicio=defaults.modality,
        grupo_servicios=defaults.service_group,
        cod_servicio=defaults.service_code,
        finalidad_tecnologia_salud=defaults.consultation_finality,
        causa_motivo_atencion=defaults.cause,
        cod_diagnostico_principal=_diagnosis(diagnoses, 0),
        cod_diagnostico_relacionado1=_diagnosis(diagnoses, 1),
        cod_diagnostico_relacionado2=_diagnosis(diagnoses, 2),
        cod_diagnostico_relacionado3=_diagnosis(diagnoses, MAX_RELATED_DIAGNOSES),
        tipo_diagnostico_principal=defaults.diagnosis_type,
        tipo_documento_identificacion=defaults.document_type,
        num_documento_identificacion=provider_document_number(provider),
        concepto_recaudo=defaults.collection_concept,
        consecutivo=consecutivo,
    )


def map_procedure(
    billing_line: Row,
    encounter: Row,
    provider_code: str,
    diagnoses: Sequence[Row],
    providers: Mapping[int, Row],
    consecutivo: int,
    defaults: DefaultCodes,
) -> RipsProcedure:
    """One procedure for a procedure-type billing line."""
    provider = _provider(encounter.get("provider_id"), providers)
    return RipsProcedure(
        cod_prestador=provider_code or "",
        fecha_inicio_atencion=to_iso_datetime(
            billing_line.get("date") or encounter.get("date")
        ),
        cod_procedimiento=_text(billing_line.get("code")),
        via_ingreso_servicio=defaults.entry_route,
        modalidad_grupo_servicio=defaults.modality,
        grupo_servicios=defaults.service_group,
        cod_servicio=defaults.service_code,
        finalidad_tecnologia_salud=defaults.procedure_finality,
        tipo_documento_identificacion=defaults.document_type,
        num_documento_identificacion=provider_document_number(provider),
        cod_diagnostico_principal=_diagnosis(diagnoses, 0),
        cod_diagnostico_relacionado=_diagnosis(diagnoses, 1),
        valor_procedimiento=to_number(billing_line.get("fee"), 0),
        concepto_recaudo=defaults.collection_concept,
        consecutivo=consecutivo,
    )


def map_medication(
    prescription: Row,
    encounter: Row,
    provider_code: str,
    diagnoses: Sequence[Row],
    providers: Mapping[int, Row],
    consecutivo: int,
    defaults: DefaultCodes,
) -> RipsMedication:
    """
    One medication for a prescription.

    The prescriber is the prescription's provider, else the encounter's.
    Treatment days are 0 unless both start and end dates are present.
    """
    provider = _provider(prescription.get("provider_id"), providers) or _provider(
        encounter.get("provider_id"), providers
    )
    return RipsMedication(
        cod_prestador=provider_code or "",
        fecha_dispens_admon=to_iso_datetime(
            prescription.get("start_date") or encounter.get("date")
        ),
        cod_diagnostico_principal=_diagnosis(diagnoses, 0),
        cod_diagnostico_relacionado=_diagnosis(diagnoses, 1),
        tipo_medicamento=defaults.medication_type,
        cod_tecnologia_salud=_text(prescription.get("rxnorm_drugcode")),
        nom_tecnologia_salud=_text(prescription.get("drug")),
        cantidad_medicamento=to_number(prescription.get("quantity"), 0),
        unidad_medida=_text(prescription.get("unit")),
        dias_tratamiento=ceil_days_between(
            prescription.get("start_date"), prescription.get("end_date")
        ),
        tipo_documento_identificacion=defaults.document_type,
        num_documento_identificacion=provider_document_number(provider),
        concepto_recaudo=defaults.collection_concept,
        consecutivo=consecutivo,
    )


# =============================================================================
# STAGE 3: USER AND TRANSACTION MAPPERS
# =============================================================================


def map_user(
    patient: Row,
    selection_user_type: str,
    incapacidad: str,
    consecutivo: int,
    services: RipsServices,
    defaults: DefaultCodes,
) -> RipsUser:
    """User record. The patient's own user type wins over the selection's."""
    return RipsUser(
        tipo_documento_identificacion=_text(patient.get("document_type")) or defaults.document_type,
        num_documento_identificacion=_text(patient.get("ss")),
        tipo_usuario=_text(patient.get("user_type")) or selection_user_type or "",
        fecha_nacimiento=to_iso_date(patient.get("DOB")),
        cod_sexo=_text(patient.get("sex")),
        cod_pais_residencia=_text(patient.get("country_code")) or defaults.country_code,
        cod_municipio_residencia=_text(patient.get("city")),
        incapacidad=incapacidad or INCAPACIDAD_NO,
        consecutivo=consecutivo,
        servicios=services,
    )


def map_transaction(
    obligated_id: str, invoice_number: str, users: List[RipsUser]
) -> RipsTransaction:
    """Transaction header. Note type and number are not reported."""
    return RipsTransaction(
        num_documento_id_obligado=obligated_id or "",
        num_factura=invoice_number,
        usuarios=users,
        tipo_nota=None,
        num_nota=None,
    )


def group_by(rows: Sequence[Row], key: str) -> Dict[Any, List[Row]]:
    """Rows grouped by a column, preserving fetch order within each group."""
    groups: Dict[Any, List[Row]] = {}
    for row in rows:
        groups.setdefault(row.get(key), []).append(row)
    return groups
