"""
Selection-Based Direct Pipeline

Builds a RIPS document from an explicit list of {patient, encounters}
selections, without a preset. Every lookup is a batch query over the whole
selection; the independent queries of each phase run on a thread pool and
are merged into lookup maps only after all of them complete.

Pipeline Position:
    Selections → [Direct Pipeline] → Validation → Output
                  ^^^^^^^^^^^^^^^
                  You are here

How it works:
    STAGE 1: Fetch phase 1 (facility, patients, encounters, incapacidad options)
    STAGE 2: Fetch phase 2 (billing lines, prescriptions, billing options)
    STAGE 3: Fetch phase 3 (providers)
    STAGE 4: Reserve the file consecutive
    STAGE 5: Map users and services, then the transaction

Author: Shubham Singh
Date: December 2025
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from loguru import logger

from rips_generation.core.config import DefaultCodes
from rips_generation.core.constants import (
    INCAPACIDAD_NO,
    INCAPACIDAD_YES,
    OUTPUT_FILENAME_TEMPLATE,
)
from rips_generation.core.document import RipsServices, RipsUser
from rips_generation.core.exceptions import GenerationError, RipsGenerationError
from rips_generation.core.models import GenerationResult, Selection
from rips_generation.repository.protocols import (
    ClinicalRecordsRepository,
    GenerationAuditRepository,
    ReferenceCodeRepository,
)
from rips_generation.selection.mappers import (
    group_by,
    map_consultation,
    map_medication,
    map_procedure,
    map_transaction,
    map_user,
)


Row = Dict[str, Any]

AUDIT_FILE_LABEL = "RIPS_JSON"


class SelectionPipeline:
    """
    Direct (selection-based) RIPS generation.

    What it does:
        Resolves the selected patients and encounters with batch queries and
        maps them through the fixed mappers: one consultation per encounter,
        one procedure per procedure-type billing line, one medication per
        prescription.

    When to use:
        - The user picked patients and encounters by hand
        - No preset exists for the source schema

    Example:
        >>> pipeline = SelectionPipeline(source, store.references, store.audit)
        >>> result = pipeline.generate([Selection(12, [301], "01")])
        >>> result.filename
        'RIPS_17.json'
    """

    def __init__(
        self,
        records: ClinicalRecordsRepository,
        references: ReferenceCodeRepository,
        audit: GenerationAuditRepository,
        defaults: Optional[DefaultCodes] = None,
        diagnosis_code_types: Sequence[str] = ("ICD10", "ICD9"),
        procedure_code_types: Sequence[str] = ("CPT4", "HCPCS", "CUPS"),
        max_workers: int = 4,
    ):
        self._records = records
        self._references = references
        self._audit = audit
        self._defaults = defaults or DefaultCodes()
        self._diagnosis_types = {t.upper() for t in diagnosis_code_types}
        self._procedure_types = {t.upper() for t in procedure_code_types}
        self._max_workers = max_workers

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def generate(self, selections: Sequence[Selection]) -> GenerationResult:
        """
        Build the document for the given selections.

        Selections whose patient or encounters cannot be resolved are
        skipped and do not consume a user consecutivo.

        Returns:
            GenerationResult without findings (the facade validates)

        Raises:
            GenerationError: Empty selection, no facility, or any failure
                while fetching or mapping (other domain errors pass through)
        """
        if not selections:
            raise GenerationError("At least one selection is required")

        try:
            return self._generate(list(selections))
        except Exception as e:
            logger.error(
                f"Failed to generate RIPS | selection_count={len(selections)} | "
                f"patient_ids={[s.patient_id for s in selections]} | {e}"
            )
            if isinstance(e, RipsGenerationError):
                raise
            raise GenerationError(
                "Unexpected error while generating RIPS",
                context={"selection_count": len(selections), "error": str(e)},
            ) from e

    # =========================================================================
    # GENERATION STAGES
    # =========================================================================

    def _generate(self, selections: List[Selection]) -> GenerationResult:
        patient_ids = list(dict.fromkeys(s.patient_id for s in selections))

        # STAGE 1: facility, patients, encounters, incapacidad options
        phase1 = self._run_phase(
            {
                "facility": self._records.get_primary_facility,
                "patients": lambda: self._records.get_patients(patient_ids),
                "encounters": lambda: self._records.get_encounters_for_patients(patient_ids),
                "incapacidad": self._load_incapacidad_options,
            }
        )
        facility = phase1["facility"]
        if not facility:
            raise GenerationError("No facility found. Cannot generate RIPS.")

        patient_map = {p.get("pid"): p for p in phase1["patients"]}
        encounter_map = {e.get("id"): e for e in phase1["encounters"]}
        yes_code, no_code = phase1["incapacidad"]

        selected_encounters = [
            encounter_map[encounter_id]
            for s in selections
            for encounter_id in s.encounter_ids
            if encounter_id in encounter_map
        ]
        encounter_numbers = list(
            dict.fromkeys(e["encounter"] for e in selected_encounters if e.get("encounter"))
        )

        # STAGE 2: rows keyed by encounter number
        phase2 = self._run_phase(
            {
                "billing": lambda: self._records.get_billing_records(encounter_numbers),
                "prescriptions": lambda: self._records.get_prescriptions(encounter_numbers),
                "billing_options": lambda: self._records.get_billing_options(encounter_numbers),
            }
        )
        billing_by_encounter = group_by(phase2["billing"], "encounter")
        prescriptions_by_encounter = group_by(phase2["prescriptions"], "encounter")
        unable_to_work = {
            o.get("encounter"): o.get("is_unable_to_work") for o in phase2["billing_options"]
        }

        # STAGE 3: providers referenced by encounters and prescriptions
        provider_ids = list(
            dict.fromkeys(
                row.get("provider_id")
                for row in selected_encounters + phase2["prescriptions"]
                if row.get("provider_id")
            )
        )
        phase3 = self._run_phase(
            {"providers": lambda: self._records.get_providers(provider_ids)}
        )
        providers = {p.get("id"): p for p in phase3["providers"]}

        logger.info(
            f"Resolved selection data | patients={len(patient_map)} | "
            f"encounters={len(selected_encounters)} | billing={len(phase2['billing'])} | "
            f"prescriptions={len(phase2['prescriptions'])} | providers={len(providers)}"
        )

        # STAGE 4: reserve the file consecutive
        consecutivo = self._audit.create(len(selections), AUDIT_FILE_LABEL)

        # STAGE 5: map
        provider_code = str(facility.get("facility_code") or facility.get("federal_ein") or "")
        users: List[RipsUser] = []
        for selection in selections:
            patient = patient_map.get(selection.patient_id)
            if patient is None:
                logger.warning(f"Skipping selection | patient_id={selection.patient_id} | patient not found")
                continue
            encounters = [
                encounter_map[i] for i in selection.encounter_ids if i in encounter_map
            ]
            if not encounters:
                logger.warning(f"Skipping selection | patient_id={selection.patient_id} | no encounters resolved")
                continue

            incapacidad = no_code
            if any(unable_to_work.get(e.get("encounter")) == 1 for e in encounters):
                incapacidad = yes_code

            services = self._map_services(
                encounters,
                provider_code,
                billing_by_encounter,
                prescriptions_by_encounter,
                providers,
            )
            users.append(
                map_user(
                    patient,
                    selection.user_type,
                    incapacidad,
                    len(users) + 1,
                    services,
                    self._defaults,
                )
            )

        invoice_number = self._first_invoice_number(selections[0], encounter_map)
        transaction = map_transaction(str(facility.get("federal_ein") or ""), invoice_number, users)

        logger.info(f"Built RIPS document | consecutivo={consecutivo} | users={len(users)}")
        return GenerationResult(
            document=transaction.to_document(),
            consecutivo=consecutivo,
            filename=OUTPUT_FILENAME_TEMPLATE.format(consecutivo=consecutivo),
            strategy="selection",
        )

    def _map_services(
        self,
        encounters: List[Row],
        provider_code: str,
        billing_by_encounter: Mapping[Any, List[Row]],
        prescriptions_by_encounter: Mapping[Any, List[Row]],
        providers: Mapping[int, Row],
    ) -> RipsServices:
        services = RipsServices()
        for encounter in encounters:
            number = encounter.get("encounter")
            lines = billing_by_encounter.get(number, []) if number else []
            diagnoses = [b for b in lines if self._code_type(b) in self._diagnosis_types]
            procedures = [b for b in lines if self._code_type(b) in self._procedure_types]

            services.consultas.append(
                map_consultation(
                    encounter,
                    provider_code,
                    diagnoses,
                    providers,
                    len(services.consultas) + 1,
                    self._defaults,
                )
            )
            for line in procedures:
                services.procedimientos.append(
                    map_procedure(
                        line,
                        encounter,
                        provider_code,
                        diagnoses,
                        providers,
                        len(services.procedimientos) + 1,
                        self._defaults,
                    )
                )
            prescriptions = prescriptions_by_encounter.get(number, []) if number else []
            for prescription in prescriptions:
                services.medicamentos.append(
                    map_medication(
                        prescription,
                        encounter,
                        provider_code,
                        diagnoses,
                        providers,
                        len(services.medicamentos) + 1,
                        self._defaults,
                    )
                )
        return services

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run_phase(self, tasks: Mapping[str, Callable[[], Any]]) -> Dict[str, Any]:
        """Run independent fetches concurrently; re-raise the first failure."""
        workers = max(1, min(self._max_workers, len(tasks)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="rips-fetch") as pool:
            futures = {name: pool.submit(task) for name, task in tasks.items()}
            return {name: future.result() for name, future in futures.items()}

    def _load_incapacidad_options(self):
        self._references.ensure_incapacidad_options()
        options = self._references.get_incapacidad_options()
        yes_code = next(
            (o.get("codigo") for o in options if str(o.get("extraI")) == "1"), None
        ) or INCAPACIDAD_YES
        no_code = next(
            (o.get("codigo") for o in options if str(o.get("extraI")) == "0"), None
        ) or INCAPACIDAD_NO
        return yes_code, no_code

    @staticmethod
    def _code_type(line: Mapping[str, Any]) -> str:
        return str(line.get("code_type") or "").upper()

    @staticmethod
    def _first_invoice_number(first: Selection, encounter_map: Mapping[Any, Row]) -> str:
        if not first.encounter_ids:
            return ""
        encounter = encounter_map.get(first.encounter_ids[0])
        if encounter is None:
            return ""
        return str(encounter.get("invoice_refno") or "")
