"""
RIPS Document Schema

The single schema both generation strategies produce. Keys follow the
official RIPS JSON names (Resolución 2275 de 2023); labels are the
Spanish captions shown in the mapping editor.

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.schema.nodes import ArrayNode, LeafNode, ObjectNode, RootNode


def _text(label: str) -> LeafNode:
    return LeafNode(label=label, value_kind="string")


def _number(label: str) -> LeafNode:
    return LeafNode(label=label, value_kind="number")


# =============================================================================
# STAGE 1: SERVICE SECTIONS
# =============================================================================

CONSULTATION_NODE = ArrayNode.of(
    "Consultas",
    {
        "codPrestador": _text("Código Prestador"),
        "fechaInicioAtencion": LeafNode("Fecha Atención", "datetime"),
        "numAutorizacion": _text("Num Autorización"),
        "codConsulta": _text("Código Consulta"),
        "modalidadGrupoServicio": _text("Modalidad"),
        "grupoServicios": _text("Grupo Servicios"),
        "codServicio": _text("Código Servicio"),
        "finalidadTecnologiaSalud": _text("Finalidad"),
        "causaMotivoAtencion": _text("Causa Externa"),
        "codDiagnosticoPrincipal": _text("Diagnóstico Principal"),
        "codDiagnosticoRelacionado1": _text("Diagnóstico Rel 1"),
        "codDiagnosticoRelacionado2": _text("Diagnóstico Rel 2"),
        "codDiagnosticoRelacionado3": _text("Diagnóstico Rel 3"),
        "tipoDiagnosticoPrincipal": _text("Tipo Diagnóstico"),
        "tipoDocumentoIdentificacion": _text("Tipo Doc Profesional"),
        "numDocumentoIdentificacion": _text("Num Doc Profesional"),
        "valorPagoModerador": _number("Valor Pago Moderador"),
        "valorConsulta": _number("Valor Consulta"),
        "conceptoRecaudo": _text("Concepto Recaudo"),
        "numFEVPagoModerador": _text("Num FEV Pago Moderador"),
        "consecutivo": _number("Consecutivo"),
    },
)

PROCEDURE_NODE = ArrayNode.of(
    "Procedimientos",
    {
        "codPrestador": _text("Código Prestador"),
        "fechaInicioAtencion": LeafNode("Fecha Atención", "datetime"),
        "idMIPRES": _text("ID MIPRES"),
        "numAutorizacion": _text("Num Autorización"),
        "codProcedimiento": _text("Código Procedimiento"),
        "viaIngresoServicio": _text("Vía Ingreso"),
        "modalidadGrupoServicio": _text("Modalidad"),
        "grupoServicios": _text("Grupo Servicios"),
        "codServicio": _text("Código Servicio"),
        "finalidadTecnologiaSalud": _text("Finalidad"),
        "tipoDocumentoIdentificacion": _text("Tipo Doc Profesional"),
        "numDocumentoIdentificacion": _text("Num Doc Profesional"),
        "codDiagnosticoPrincipal": _text("Diagnóstico Principal"),
        "codDiagnosticoRelacionado": _text("Diagnóstico Relacionado"),
        "codComplicacion": _text("Complicación"),
        "valorPagoModerador": _number("Valor Pago Moderador"),
        "valorProcedimiento": _number("Valor Procedimiento"),
        "conceptoRecaudo": _text("Concepto Recaudo"),
        "numFEVPagoModerador": _text("Num FEV Pago Moderador"),
        "consecutivo": _number("Consecutivo"),
    },
)

MEDICATION_NODE = ArrayNode.of(
    "Medicamentos",
    {
        "codPrestador": _text("Código Prestador"),
        "numAutorizacion": _text("Num Autorización"),
        "idMIPRES": _text("ID MIPRES"),
        "fechaDispensAdmon": LeafNode("Fecha Dispensación", "datetime"),
        "codDiagnosticoPrincipal": _text("Diagnóstico Principal"),
        "codDiagnosticoRelacionado": _text("Diagnóstico Relacionado"),
        "tipoMedicamento": _text("Tipo Medicamento"),
        "codTecnologiaSalud": _text("Código Tecnología"),
        "nomTecnologiaSalud": _text("Nombre Tecnología"),
        "concentracionMedicamento": _number("Concentración"),
        "unidadMedida": _text("Unidad Medida"),
        "formaFarmaceutica": _text("Forma Farmacéutica"),
        "unidadMinDispensacion": _text("Unidad Mínima Dispensación"),
        "cantidadMedicamento": _number("Cantidad"),
        "diasTratamiento": _number("Días Tratamiento"),
        "tipoDocumentoIdentificacion": _text("Tipo Doc Profesional"),
        "numDocumentoIdentificacion": _text("Num Doc Profesional"),
        "valorPagoModerador": _number("Valor Pago Moderador"),
        "valorUnitarioMedicamento": _number("Valor Unitario"),
        "valorServicio": _number("Valor Servicio"),
        "conceptoRecaudo": _text("Concepto Recaudo"),
        "numFEVPagoModerador": _text("Num FEV Pago Moderador"),
        "consecutivo": _number("Consecutivo"),
    },
)

# No EMR data backs these yet; they are emitted as empty arrays unless bound
PLACEHOLDER_NODES = {
    "urgencias": ArrayNode.of("Urgencias", {}),
    "hospitalizacion": ArrayNode.of("Hospitalización", {}),
    "recienNacidos": ArrayNode.of("Recién Nacidos", {}),
    "otrosServicios": ArrayNode.of("Otros Servicios", {}),
}


# =============================================================================
# STAGE 2: USER AND TRANSACTION
# =============================================================================

SERVICES_NODE = ObjectNode.of(
    "Servicios",
    {
        "consultas": CONSULTATION_NODE,
        "procedimientos": PROCEDURE_NODE,
        "medicamentos": MEDICATION_NODE,
        **PLACEHOLDER_NODES,
    },
)

USER_NODE = ArrayNode.of(
    "Usuarios",
    {
        "tipoDocumentoIdentificacion": _text("Tipo Documento"),
        "numDocumentoIdentificacion": _text("Número Documento"),
        "tipoUsuario": _text("Tipo Usuario"),
        "fechaNacimiento": LeafNode("Fecha Nacimiento", "date"),
        "codSexo": _text("Sexo"),
        "codPaisResidencia": _text("País Residencia"),
        "codMunicipioResidencia": _text("Municipio Residencia"),
        "incapacidad": _text("Incapacidad"),
        "consecutivo": _number("Consecutivo"),
        "servicios": SERVICES_NODE,
    },
)

TRANSACTION_NODE = ObjectNode.of(
    "Transacción",
    {
        "numDocumentoIdObligado": _text("NIT del Prestador"),
        "numFactura": _text("Número de Factura"),
        "tipoNota": _text("Tipo de Nota"),
        "numNota": _text("Número de Nota"),
        "usuarios": USER_NODE,
    },
)

RIPS_SCHEMA = RootNode.of("RIPS", {"transaccion": TRANSACTION_NODE})
