"""
RIPS Document Records

Typed records for the parts of a RIPS transaction document. The direct
(selection-based) pipeline builds these records and serializes them with
to_dict(); the tree interpreter produces the same JSON shape directly from
the schema. Attribute names are snake_case, JSON keys are the official
camelCase RIPS names.

Document Shape:
    RipsTransaction
    └── usuarios: List[RipsUser]
        └── servicios: RipsServices
            ├── consultas:      List[RipsConsultation]
            ├── procedimientos: List[RipsProcedure]
            ├── medicamentos:   List[RipsMedication]
            └── urgencias / hospitalizacion / recienNacidos / otrosServicios (empty)

Author: Shubham Singh
Date: December 2025
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# =============================================================================
# STAGE 1: SERVICE RECORDS
# =============================================================================


@dataclass(frozen=True)
class RipsConsultation:
    """One consultation (one per reported encounter)."""

    cod_prestador: str
    fecha_inicio_atencion: str
    cod_consulta: str
    modalidad_grupo_servicio: str
    grupo_servicios: str
    cod_servicio: str
    finalidad_tecnologia_salud: str
    causa_motivo_atencion: str
    cod_diagnostico_principal: str
    tipo_diagnostico_principal: str
    concepto_recaudo: str
    consecutivo: int
    num_autorizacion: str = ""
    cod_diagnostico_relacionado1: str = ""
    cod_diagnostico_relacionado2: str = ""
    cod_diagnostico_relacionado3: str = ""
    tipo_documento_identificacion: str = ""
    num_documento_identificacion: str = ""
    valor_pago_moderador: float = 0
    valor_consulta: float = 0
    num_fev_pago_moderador: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to RIPS JSON keys."""
        return {
            "codPrestador": self.cod_prestador,
            "fechaInicioAtencion": self.fecha_inicio_atencion,
            "numAutorizacion": self.num_autorizacion,
            "codConsulta": self.cod_consulta,
            "modalidadGrupoServicio": self.modalidad_grupo_servicio,
            "grupoServicios": self.grupo_servicios,
            "codServicio": self.cod_servicio,
            "finalidadTecnologiaSalud": self.finalidad_tecnologia_salud,
            "causaMotivoAtencion": self.causa_motivo_atencion,
            "codDiagnosticoPrincipal": self.cod_diagnostico_principal,
            "codDiagnosticoRelacionado1": self.cod_diagnostico_relacionado1,
            "codDiagnosticoRelacionado2": self.cod_diagnostico_relacionado2,
            "codDiagnosticoRelacionado3": self.cod_diagnostico_relacionado3,
            "tipoDiagnosticoPrincipal": self.tipo_diagnostico_principal,
            "tipoDocumentoIdentificacion": self.tipo_documento_identificacion,
            "numDocumentoIdentificacion": self.num_documento_identificacion,
            "valorPagoModerador": self.valor_pago_moderador,
            "valorConsulta": self.valor_consulta,
            "conceptoRecaudo": self.concepto_recaudo,
            "numFEVPagoModerador": self.num_fev_pago_moderador,
            "consecutivo": self.consecutivo,
        }


@dataclass(frozen=True)
class RipsProcedure:
    """One procedure (one per procedure-type billing line)."""

    cod_prestador: str
    fecha_inicio_atencion: str
    cod_procedimiento: str
    via_ingreso_servicio: str
    modalidad_grupo_servicio: str
    grupo_servicios: str
    cod_servicio: str
    finalidad_tecnologia_salud: str
    cod_diagnostico_principal: str
    concepto_recaudo: str
    consecutivo: int
    id_mipres: Optional[str] = None
    num_autorizacion: str = ""
    tipo_documento_identificacion: str = ""
    num_documento_identificacion: str = ""
    cod_diagnostico_relacionado: str = ""
    cod_complicacion: str = ""
    valor_pago_moderador: float = 0
    valor_procedimiento: float = 0
    num_fev_pago_moderador: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to RIPS JSON keys."""
        return {
            "codPrestador": self.cod_prestador,
            "fechaInicioAtencion": self.fecha_inicio_atencion,
            "idMIPRES": self.id_mipres,
            "numAutorizacion": self.num_autorizacion,
            "codProcedimiento": self.cod_procedimiento,
            "viaIngresoServicio": self.via_ingreso_servicio,
            "modalidadGrupoServicio": self.modalidad_grupo_servicio,
            "grupoServicios": self.grupo_servicios,
            "codServicio": self.cod_servicio,
            "finalidadTecnologiaSalud": self.finalidad_tecnologia_salud,
            "tipoDocumentoIdentificacion": self.tipo_documento_identificacion,
            "numDocumentoIdentificacion": self.num_documento_identificacion,
            "codDiagnosticoPrincipal": self.cod_diagnostico_principal,
            "codDiagnosticoRelacionado": self.cod_diagnostico_relacionado,
            "codComplicacion": self.cod_complicacion,
            "valorPagoModerador": self.valor_pago_moderador,
            "valorProcedimiento": self.valor_procedimiento,
            "conceptoRecaudo": self.concepto_recaudo,
            "numFEVPagoModerador": self.num_fev_pago_moderador,
            "consecutivo": self.consecutivo,
        }


@dataclass(frozen=True)
class RipsMedication:
    """One medication (one per prescription of a reported encounter)."""

    cod_prestador: str
    fecha_dispens_admon: str
    cod_diagnostico_principal: str
    tipo_medicamento: str
    cod_tecnologia_salud: str
    nom_tecnologia_salud: str
    dias_tratamiento: int
    concepto_recaudo: str
    consecutivo: int
    num_autorizacion: str = ""
    id_mipres: Optional[str] = None
    cod_diagnostico_relacionado: str = ""
    concentracion_medicamento: float = 0
    unidad_medida: str = ""
    forma_farmaceutica: str = ""
    unidad_min_dispensacion: str = ""
    cantidad_medicamento: float = 0
    tipo_documento_identificacion: str = ""
    num_documento_identificacion: str = ""
    valor_pago_moderador: float = 0
    valor_unitario_medicamento: float = 0
    valor_servicio: float = 0
    num_fev_pago_moderador: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to RIPS JSON keys."""
        return {
            "codPrestador": self.cod_prestador,
            "numAutorizacion": self.num_autorizacion,
            "idMIPRES": self.id_mipres,
            "fechaDispensAdmon": self.fecha_dispens_admon,
            "codDiagnosticoPrincipal": self.cod_diagnostico_principal,
            "codDiagnosticoRelacionado": self.cod_diagnostico_relacionado,
            "tipoMedicamento": self.tipo_medicamento,
            "codTecnologiaSalud": self.cod_tecnologia_salud,
            "nomTecnologiaSalud": self.nom_tecnologia_salud,
            "concentracionMedicamento": self.concentracion_medicamento,
            "unidadMedida": self.unidad_medida,
            "formaFarmaceutica": self.forma_farmaceutica,
            "unidadMinDispensacion": self.unidad_min_dispensacion,
            "cantidadMedicamento": self.cantidad_medicamento,
            "diasTratamiento": self.dias_tratamiento,
            "tipoDocumentoIdentificacion": self.tipo_documento_identificacion,
            "numDocumentoIdentificacion": self.num_documento_identificacion,
            "valorPagoModerador": self.valor_pago_moderador,
            "valorUnitarioMedicamento": self.valor_unitario_medicamento,
            "valorServicio": self.valor_servicio,
            "conceptoRecaudo": self.concepto_recaudo,
            "numFEVPagoModerador": self.num_fev_pago_moderador,
            "consecutivo": self.consecutivo,
        }


# =============================================================================
# STAGE 2: CONTAINERS
# =============================================================================


@dataclass
class RipsServices:
    """
    All services rendered to one user.

    The emergency, hospitalization, newborn and other-service sections are
    always emitted empty: the source EMR schema carries no data for them.
    """

    consultas: List[RipsConsultation] = field(default_factory=list)
    procedimientos: List[RipsProcedure] = field(default_factory=list)
    medicamentos: List[RipsMedication] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to RIPS JSON keys."""
        return {
            "consultas": [c.to_dict() for c in self.consultas],
            "procedimientos": [p.to_dict() for p in self.procedimientos],
            "medicamentos": [m.to_dict() for m in self.medicamentos],
            "urgencias": [],
            "hospitalizacion": [],
            "recienNacidos": [],
            "otrosServicios": [],
        }


@dataclass
class RipsUser:
    """One reported patient."""

    tipo_documento_identificacion: str
    num_documento_identificacion: str
    tipo_usuario: str
    fecha_nacimiento: str
    cod_sexo: str
    cod_pais_residencia: str
    cod_municipio_residencia: str
    incapacidad: str
    consecutivo: int
    servicios: RipsServices = field(default_factory=RipsServices)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to RIPS JSON keys."""
        return {
            "tipoDocumentoIdentificacion": self.tipo_documento_identificacion,
            "numDocumentoIdentificacion": self.num_documento_identificacion,
            "tipoUsuario": self.tipo_usuario,
            "fechaNacimiento": self.fecha_nacimiento,
            "codSexo": self.cod_sexo,
            "codPaisResidencia": self.cod_pais_residencia,
            "codMunicipioResidencia": self.cod_municipio_residencia,
            "incapacidad": self.incapacidad,
            "consecutivo": self.consecutivo,
            "servicios": self.servicios.to_dict(),
        }


@dataclass
class RipsTransaction:
    """Top-level transaction (one per generated file)."""

    num_documento_id_obligado: str
    num_factura: Optional[str]
    usuarios: List[RipsUser] = field(default_factory=list)
    tipo_nota: Optional[str] = None
    num_nota: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Wrap into the full document: {"transaccion": {...}}."""
        return {
            "transaccion": {
                "numDocumentoIdObligado": self.num_documento_id_obligado,
                "numFactura": self.num_factura,
                "tipoNota": self.tipo_nota,
                "numNota": self.num_nota,
                "usuarios": [u.to_dict() for u in self.usuarios],
            }
        }
