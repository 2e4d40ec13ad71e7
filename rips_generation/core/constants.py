"""
Constants for RIPS Generation

Constant Categories:
    REFERENCE CODE SETS   → Enumerated values accepted by the validator
    DOCUMENT RULES        → Per-document-type length limits and age policy inputs
    INTERPRETER HEURISTICS → Column names used for join/date inference
    REFERENCE SEEDS       → Rows seeded into self-populating reference tables

Author: Shubham Singh
Date: December 2025
"""

import re
from typing import Dict, FrozenSet, List, Optional, Tuple


# =============================================================================
# STAGE 1: REFERENCE CODE SETS
# =============================================================================
# Simplified versions of the SISPRO reference tables. Only membership is
# checked; descriptions live in the synchronized reference store.

VALID_DOCUMENT_TYPES: Tuple[str, ...] = (
    "CC", "CE", "CD", "PA", "SC", "PE", "RC", "TI", "CN", "AS", "MS", "DE", "SI", "PT",
)

VALID_USER_TYPES: Tuple[str, ...] = (
    "01", "02", "03", "04", "05", "06", "07", "08", "09", "10", "11", "12", "13",
)

VALID_SEX_CODES: Tuple[str, ...] = ("M", "F", "I")

VALID_MODALITIES: Tuple[str, ...] = ("01", "02", "03", "04", "06", "07", "08", "09")

VALID_SERVICE_GROUPS: Tuple[str, ...] = ("01", "02", "03", "04", "05")

# 38 is the generic "other" cause the direct pipeline falls back to
VALID_CAUSES: Tuple[str, ...] = (
    "21", "22", "23", "24", "25", "26", "27", "28", "29", "30", "38",
)

VALID_DIAGNOSIS_TYPES: Tuple[str, ...] = ("01", "02", "03")

VALID_COLLECTION_CONCEPTS: Tuple[str, ...] = ("01", "02", "03", "04", "05")

VALID_ENTRY_ROUTES: Tuple[str, ...] = ("01", "02", "03", "04")

INCAPACIDAD_YES = "SI"
INCAPACIDAD_NO = "NO"
VALID_INCAPACIDAD: Tuple[str, ...] = (INCAPACIDAD_YES, INCAPACIDAD_NO)


# =============================================================================
# STAGE 2: DOCUMENT RULES
# =============================================================================

# Max (and optional min) length of a user's document number, per type
DOC_LENGTHS: Dict[str, Dict[str, Optional[int]]] = {
    "CC": {"min": None, "max": 10},
    "CE": {"min": None, "max": 6},
    "CD": {"min": None, "max": 16},
    "PA": {"min": None, "max": 16},
    "SC": {"min": None, "max": 16},
    "PE": {"min": None, "max": 15},
    "RC": {"min": None, "max": 11},
    "TI": {"min": None, "max": 11},
    "CN": {"min": 9, "max": 20},
    "AS": {"min": None, "max": 10},
    "MS": {"min": None, "max": 12},
    "DE": {"min": None, "max": 20},
    "PT": {"min": None, "max": 20},
    "SI": {"min": None, "max": 20},
}

NUMERIC_DOCUMENT_TYPES: FrozenSet[str] = frozenset({"CC", "TI"})

DOMESTIC_COUNTRY_CODE = "170"
MUNICIPALITY_CODE_LENGTH = 5

PROVIDER_CODE_LENGTH = 12

OBLIGATED_ID_MIN_LENGTH = 4
OBLIGATED_ID_MAX_LENGTH = 12

# Note type for a RIPS sent without an electronic invoice (FEV)
NO_INVOICE_NOTE_TYPE = "RS"
NOTE_TYPE_MAX_LENGTH = 2

MAX_TREATMENT_DAYS = 999

DAYS_PER_YEAR = 365.25


# =============================================================================
# STAGE 3: INTERPRETER HEURISTICS
# =============================================================================

# Checked in order; the first one present on a table gets the range filter
DATE_FILTER_COLUMNS: Tuple[str, ...] = ("date", "date_service")

# Parent-child join keys inferred from column-name coincidence
CONTEXT_JOIN_COLUMNS: Tuple[str, ...] = ("pid", "encounter")

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

PATH_SEPARATOR = "."


# =============================================================================
# STAGE 4: REFERENCE SEEDS
# =============================================================================

INCAPACIDAD_REFERENCE_TABLE = "RIPSIncapacidad"
USER_TYPE_REFERENCE_TABLE = "RIPSTipoUsuarioVersion2"

# extraI carries the boolean the EMR stores in is_unable_to_work
INCAPACIDAD_SEED_ROWS: List[Dict[str, object]] = [
    {"external_id": 1, "codigo": INCAPACIDAD_YES, "nombre": "Si", "extra_i": "1"},
    {"external_id": 2, "codigo": INCAPACIDAD_NO, "nombre": "No", "extra_i": "0"},
]

OUTPUT_FILENAME_TEMPLATE = "RIPS_{consecutivo}.json"
