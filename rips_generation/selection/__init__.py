"""
Selection Layer - Direct (Selection-Based) Generation

Submodules:
    mappers.py            → EMR rows → typed RIPS records
    selection_pipeline.py → SelectionPipeline (batch fetch + mapping)

Author: Shubham Singh
Date: December 2025
"""

from rips_generation.selection.mappers import (
    map_consultation,
    map_procedure,
    map_medication,
    map_user,
    map_transaction,
    provider_document_number,
)
from rips_generation.selection.selection_pipeline import SelectionPipeline

__all__ = [
    "map_consultation",
    "map_procedure",
    "map_medication",
    "map_user",
    "map_transaction",
    "provider_document_number",
    "SelectionPipeline",
]
